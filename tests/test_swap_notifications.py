"""
Tests for swap event emission.

Events are queued with transaction.on_commit, so they are checked inside
captureOnCommitCallbacks(execute=True).
"""

from datetime import timedelta
from unittest.mock import MagicMock

from django.dispatch import receiver
from django.test import TestCase
from django.utils import timezone

from exchange.engine import SwapLifecycleEngine
from exchange.errors import StaleSwapState
from exchange.models import Item
from exchange.notifications import NullNotifier, SignalNotifier, deliver
from exchange.signals import swap_event

from swap_fixtures import SwapFixturesMixin


class SwapEventTests(SwapFixturesMixin, TestCase):

    def setUp(self):
        self.set_up_swap_fixtures()

    def test_request_notifies_owner(self):
        with self.captureOnCommitCallbacks(execute=True):
            swap = self.create_direct_swap()

        self.assertEqual(self.notifier.events, [
            ('swap.requested', self.owner.id, {
                'swap_id': swap.id,
                'kind': 'direct',
                'status': 'pending',
                'requester_id': self.requester.id,
                'owner_id': self.owner.id,
                'requested_item_id': self.wanted.id,
            }),
        ])

    def test_events_are_not_sent_before_commit(self):
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            self.create_direct_swap()

        self.assertEqual(self.notifier.events, [])
        self.assertEqual(len(callbacks), 1)

    def test_lifecycle_event_targets(self):
        with self.captureOnCommitCallbacks(execute=True):
            swap = self.create_points_swap(100)
        with self.captureOnCommitCallbacks(execute=True):
            self.engine.respond(swap.id, self.owner.id, 'accept')
        with self.captureOnCommitCallbacks(execute=True):
            self.engine.complete(swap.id, self.requester.id)

        self.assertEqual(self.notifier.for_user(self.owner.id), ['swap.requested', 'swap.completed'])
        self.assertEqual(self.notifier.for_user(self.requester.id), ['swap.accepted', 'swap.completed'])

    def test_reject_and_cancel_targets(self):
        with self.captureOnCommitCallbacks(execute=True):
            swap = self.create_direct_swap()
            self.engine.respond(swap.id, self.owner.id, 'reject', note='Too small')
        with self.captureOnCommitCallbacks(execute=True):
            other = self.create_points_swap(100)
            self.engine.cancel(other.id, self.requester.id)

        self.assertEqual(self.notifier.for_user(self.requester.id), ['swap.rejected'])
        self.assertEqual(
            self.notifier.for_user(self.owner.id),
            ['swap.requested', 'swap.requested', 'swap.cancelled']
        )
        self.assertEqual(self.notifier.events[1][2]['note'], 'Too small')

    def test_expiry_notifies_both_parties(self):
        created_at = timezone.now() - timedelta(days=8)
        engine = SwapLifecycleEngine(
            self.engine.ledger, self.engine.items, self.engine.swaps, self.notifier,
            clock=lambda: created_at,
        )
        swap = engine.create(self.requester.id, self.wanted.id, 'points', points_offered=100)

        with self.captureOnCommitCallbacks(execute=True):
            self.engine.reap()

        self.assertEqual(
            [(event, target) for event, target, _ in self.notifier.events],
            [('swap.expired', self.requester.id), ('swap.expired', self.owner.id)]
        )
        self.assertEqual(self.notifier.events[0][2]['swap_id'], swap.id)

    def test_message_notifies_other_party(self):
        swap = self.create_direct_swap()

        with self.captureOnCommitCallbacks(execute=True):
            self.engine.post_message(swap.id, self.owner.id, 'Happy to swap')

        event, target, payload = self.notifier.events[-1]
        self.assertEqual((event, target), ('swap.message', self.requester.id))
        self.assertEqual(payload['body'], 'Happy to swap')
        self.assertEqual(payload['sender_id'], self.owner.id)

    def test_failed_command_sends_nothing(self):
        swap = self.create_direct_swap()
        Item.objects.filter(pk=self.wanted.pk).update(availability='reserved')

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(StaleSwapState):
                self.engine.respond(swap.id, self.owner.id, 'accept')

        self.assertEqual(callbacks, [])

    def test_broken_notifier_does_not_fail_the_command(self):
        broken = MagicMock()
        broken.emit.side_effect = RuntimeError('gateway down')
        engine = SwapLifecycleEngine(
            self.engine.ledger, self.engine.items, self.engine.swaps, broken
        )

        with self.assertLogs('exchange.notifications', level='ERROR'):
            with self.captureOnCommitCallbacks(execute=True):
                swap = engine.create(self.requester.id, self.wanted.id, 'points', points_offered=100)

        self.assertEqual(engine.get(swap.id).status, 'pending')
        broken.emit.assert_called_once()


class SignalNotifierTests(TestCase):

    def test_emit_sends_swap_event_signal(self):
        received = []

        @receiver(swap_event, weak=False)
        def collect(sender, event, target_user_id, payload, **kwargs):
            received.append((event, target_user_id, payload))

        try:
            SignalNotifier().emit('swap.accepted', 7, {'swap_id': 3})
        finally:
            swap_event.disconnect(collect)

        self.assertEqual(received, [('swap.accepted', 7, {'swap_id': 3})])

    def test_failing_receiver_is_logged_not_raised(self):
        def explode(sender, **kwargs):
            raise ValueError('receiver bug')

        swap_event.connect(explode, weak=False)
        try:
            with self.assertLogs('exchange.notifications', level='ERROR') as logs:
                SignalNotifier().emit('swap.completed', 1, {'swap_id': 9})
        finally:
            swap_event.disconnect(explode)

        self.assertIn('receiver bug', logs.output[0])

    def test_audit_receiver_logs_every_event(self):
        with self.assertLogs('exchange.signals', level='INFO') as logs:
            SignalNotifier().emit('swap.requested', 2, {'swap_id': 5})

        self.assertIn('swap.requested', logs.output[0])

    def test_deliver_swallows_notifier_errors(self):
        notifier = MagicMock()
        notifier.emit.side_effect = ConnectionError('socket closed')

        with self.assertLogs('exchange.notifications', level='ERROR'):
            deliver(notifier, 'swap.cancelled', 4, {'swap_id': 1})

    def test_null_notifier_drops_events(self):
        self.assertIsNone(NullNotifier().emit('swap.expired', 1, {'swap_id': 1}))
