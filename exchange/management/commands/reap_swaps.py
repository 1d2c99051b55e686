# Reap Expired Swaps Management Command
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from exchange.engine import build_engine
from exchange.errors import StoreUnavailable
from exchange.models import Swap
from exchange.notifications import NullNotifier
from exchange import lifecycle


class Command(BaseCommand):
    help = 'Cancels pending swap requests whose response window has expired.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the swaps that would be cancelled without changing them.',
        )
        parser.add_argument(
            '--no-notify',
            action='store_true',
            help='Do not send swap.expired events to the participants.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        engine = build_engine(notifier=NullNotifier() if options['no_notify'] else None)
        now = timezone.now()

        if dry_run:
            expired = Swap.objects.filter(
                status=lifecycle.PENDING,
                expires_at__lte=now,
            ).order_by('expires_at', 'id')
            for swap in expired:
                self.stdout.write(
                    f'  [DRY-RUN] Swap {swap.id}: requester {swap.requester_id}, '
                    f'item {swap.requested_item_id}, expired at {swap.expires_at}'
                )
            self.stdout.write(self.style.SUCCESS(
                f'Dry run completed. {expired.count()} swap(s) would be cancelled.'
            ))
            return

        try:
            reaped = engine.reap(now=now)
        except StoreUnavailable as exc:
            raise CommandError(f'Swap store unavailable: {exc}') from exc

        for swap_id in reaped:
            self.stdout.write(f'  Cancelled swap {swap_id}')
        self.stdout.write(self.style.SUCCESS(f'Reaped {len(reaped)} expired swap(s).'))
