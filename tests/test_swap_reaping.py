"""
Tests for expiry of unanswered swap requests: engine.reap() and the
reap_swaps management command.
"""

from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from exchange.engine import SwapLifecycleEngine
from exchange.models import Swap

from swap_fixtures import SwapFixturesMixin


class SwapReapTests(SwapFixturesMixin, TestCase):

    def setUp(self):
        self.set_up_swap_fixtures()
        self.now = timezone.now()

    def _create_at(self, created_at, requester=None, item=None):
        engine = SwapLifecycleEngine(
            self.engine.ledger, self.engine.items, self.engine.swaps, self.notifier,
            clock=lambda: created_at,
        )
        return engine.create(
            (requester or self.requester).id,
            (item or self.wanted).id,
            'points',
            points_offered=100,
        )

    def test_reap_only_touches_expired_pending_swaps(self):
        stale = self._create_at(self.now - timedelta(days=8))
        fresh = self._create_at(self.now - timedelta(days=2), requester=self.bystander)

        reaped = self.engine.reap(now=self.now)

        self.assertEqual(reaped, [stale.id])
        self.assertEqual(self.engine.get(stale.id).status, 'cancelled')
        self.assertEqual(self.engine.get(fresh.id).status, 'pending')

    def test_reap_boundary_is_inclusive(self):
        swap = self._create_at(self.now - timedelta(days=7))

        self.assertEqual(self.engine.reap(now=swap.expires_at), [swap.id])

    def test_accepted_swaps_never_expire(self):
        swap = self._create_at(self.now - timedelta(days=6))
        self.engine.respond(swap.id, self.owner.id, 'accept')

        self.assertEqual(self.engine.reap(now=self.now + timedelta(days=30)), [])
        self.assertEqual(self.engine.get(swap.id).status, 'accepted')

    def test_reap_skips_swaps_already_moved_by_a_person(self):
        swap = self._create_at(self.now - timedelta(days=8))
        # Owner rejected it between the sweep's query and its update
        self.engine.swaps.transition(swap.id, 'pending', 'rejected', self.now)

        self.assertEqual(self.engine.reap(now=self.now), [])
        self.assertEqual(self.engine.get(swap.id).status, 'rejected')

    def test_reaped_pair_can_request_again(self):
        self._create_at(self.now - timedelta(days=8))
        self.engine.reap()

        swap = self.create_points_swap(100)

        self.assertEqual(swap.status, 'pending')

    def test_expiry_note_follows_ttl(self):
        engine = SwapLifecycleEngine(
            self.engine.ledger, self.engine.items, self.engine.swaps, self.notifier,
            ttl=timedelta(days=1),
        )

        self.assertEqual(engine.expiry_note(), 'Expired: no response within 1 day')
        self.assertEqual(self.engine.expiry_note(), 'Expired: no response within 7 days')


class ReapSwapsCommandTests(SwapFixturesMixin, TestCase):

    def setUp(self):
        self.set_up_swap_fixtures()
        created_at = timezone.now() - timedelta(days=10)
        engine = SwapLifecycleEngine(
            self.engine.ledger, self.engine.items, self.engine.swaps, self.notifier,
            clock=lambda: created_at,
        )
        self.stale = engine.create(self.requester.id, self.wanted.id, 'points', points_offered=100)

    def test_dry_run_changes_nothing(self):
        out = StringIO()
        call_command('reap_swaps', '--dry-run', stdout=out)

        self.assertIn(f'Swap {self.stale.id}', out.getvalue())
        self.assertIn('1 swap(s) would be cancelled', out.getvalue())
        self.assertEqual(Swap.objects.get(pk=self.stale.id).status, 'pending')

    def test_command_cancels_expired_swaps(self):
        out = StringIO()
        call_command('reap_swaps', '--no-notify', stdout=out)

        self.assertIn('Reaped 1 expired swap(s).', out.getvalue())
        self.assertEqual(Swap.objects.get(pk=self.stale.id).status, 'cancelled')

    def test_command_is_idempotent(self):
        call_command('reap_swaps', stdout=StringIO())
        out = StringIO()
        call_command('reap_swaps', stdout=out)

        self.assertIn('Reaped 0 expired swap(s).', out.getvalue())
