"""
Tests for the ORM-backed ledger, item availability and swap record stores.
"""

from datetime import timedelta
from unittest.mock import patch

from django.db import OperationalError
from django.test import TestCase
from django.utils import timezone

from exchange.errors import (
    DuplicateActiveSwap,
    InsufficientBalance,
    InvalidCommand,
    InvalidTransition,
    ItemNotFound,
    StoreUnavailable,
    SwapNotFound,
)
from exchange.models import Swap, SwapMessage
from exchange.stores import (
    DjangoItemAvailabilityStore,
    DjangoLedgerStore,
    DjangoSwapRecordStore,
)

from swap_fixtures import SwapFixturesMixin


class LedgerStoreTests(SwapFixturesMixin, TestCase):

    def setUp(self):
        self.ledger = DjangoLedgerStore()
        self.user = self.create_user('saver', points=120)

    def test_balance(self):
        self.assertEqual(self.ledger.balance(self.user.id), 120)

    def test_credit_adds_points(self):
        self.ledger.credit(self.user.id, 30)

        self.assertEqual(self.ledger.balance(self.user.id), 150)

    def test_debit_subtracts_points(self):
        self.ledger.debit(self.user.id, 120)

        self.assertEqual(self.ledger.balance(self.user.id), 0)

    def test_debit_never_goes_negative(self):
        with self.assertRaises(InsufficientBalance):
            self.ledger.debit(self.user.id, 121)

        self.assertEqual(self.ledger.balance(self.user.id), 120)

    def test_amounts_must_be_positive_integers(self):
        for amount in (0, -5, 1.5, True, '10'):
            with self.assertRaises(InvalidCommand):
                self.ledger.credit(self.user.id, amount)
            with self.assertRaises(InvalidCommand):
                self.ledger.debit(self.user.id, amount)

        self.assertEqual(self.ledger.balance(self.user.id), 120)

    def test_unknown_user(self):
        with self.assertRaises(InvalidCommand):
            self.ledger.balance(999999)
        with self.assertRaises(InvalidCommand):
            self.ledger.credit(999999, 10)
        with self.assertRaises(InvalidCommand):
            self.ledger.debit(999999, 10)

    def test_record_swap_bumps_counters(self):
        self.ledger.record_swap(self.user.id, spent=40)
        self.ledger.record_swap(self.user.id, earned=25)
        self.user.refresh_from_db()

        self.assertEqual(self.user.items_swapped, 2)
        self.assertEqual(self.user.points_spent, 40)
        self.assertEqual(self.user.points_earned, 25)

    def test_database_failure_becomes_store_unavailable(self):
        with patch('exchange.stores.User.objects.filter', side_effect=OperationalError('lock wait timeout')):
            with self.assertRaises(StoreUnavailable) as ctx:
                self.ledger.credit(self.user.id, 10)

        self.assertTrue(ctx.exception.retryable)


class ItemAvailabilityStoreTests(SwapFixturesMixin, TestCase):

    def setUp(self):
        self.items = DjangoItemAvailabilityStore()
        self.owner = self.create_user('owner')
        self.item = self.create_item(self.owner, point_value=75)

    def test_get_returns_snapshot(self):
        record = self.items.get(self.item.id)

        self.assertEqual(record.id, self.item.id)
        self.assertEqual(record.owner_id, self.owner.id)
        self.assertEqual(record.point_value, 75)
        self.assertTrue(record.is_available)

    def test_get_missing_item(self):
        with self.assertRaises(ItemNotFound):
            self.items.get(999999)

    def test_compare_and_set_applies_when_expected_matches(self):
        self.assertTrue(self.items.compare_and_set(self.item.id, 'available', 'reserved'))
        self.item.refresh_from_db()

        self.assertEqual(self.item.availability, 'reserved')

    def test_compare_and_set_fails_without_raising_when_state_moved(self):
        self.items.compare_and_set(self.item.id, 'available', 'reserved')

        self.assertFalse(self.items.compare_and_set(self.item.id, 'available', 'reserved'))

    def test_reservation_can_be_released(self):
        self.items.compare_and_set(self.item.id, 'available', 'reserved')

        self.assertTrue(self.items.compare_and_set(self.item.id, 'reserved', 'available'))

    def test_illegal_moves_are_refused(self):
        with self.assertRaises(InvalidTransition):
            self.items.compare_and_set(self.item.id, 'available', 'swapped')
        with self.assertRaises(InvalidTransition):
            self.items.compare_and_set(self.item.id, 'swapped', 'available')


class SwapRecordStoreTests(SwapFixturesMixin, TestCase):

    def setUp(self):
        self.swaps = DjangoSwapRecordStore()
        self.owner = self.create_user('owner')
        self.requester = self.create_user('requester')
        self.wanted = self.create_item(self.owner)
        self.now = timezone.now()

    def _insert(self, **overrides):
        fields = {
            'kind': 'points',
            'requester_id': self.requester.id,
            'owner_id': self.owner.id,
            'requested_item_id': self.wanted.id,
            'points_offered': 100,
            'created_at': self.now,
            'expires_at': self.now + timedelta(days=7),
            'note': 'Swap requested',
        }
        fields.update(overrides)
        return self.swaps.insert(**fields)

    def test_insert_records_pending_timeline(self):
        swap = self._insert()

        self.assertEqual(swap.status, 'pending')
        self.assertEqual(len(swap.timeline), 1)
        self.assertEqual(swap.timeline[0].status, 'pending')
        self.assertEqual(swap.timeline[0].note, 'Swap requested')

    def test_insert_duplicate_active_swap(self):
        self._insert()

        with self.assertRaises(DuplicateActiveSwap):
            self._insert()

        self.assertEqual(Swap.objects.count(), 1)

    def test_find_by_id_missing(self):
        with self.assertRaises(SwapNotFound):
            self.swaps.find_by_id(999999)

    def test_find_active_for(self):
        self.assertIsNone(self.swaps.find_active_for(self.requester.id, self.wanted.id))

        swap = self._insert()

        self.assertEqual(self.swaps.find_active_for(self.requester.id, self.wanted.id).id, swap.id)

    def test_transition_is_compare_and_set(self):
        swap = self._insert()
        later = self.now + timedelta(hours=1)

        self.assertTrue(self.swaps.transition(swap.id, 'pending', 'rejected', later, 'No thanks'))
        self.assertFalse(self.swaps.transition(swap.id, 'pending', 'cancelled', later))

        stored = self.swaps.find_by_id(swap.id)
        self.assertEqual(stored.status, 'rejected')
        self.assertEqual([entry.status for entry in stored.timeline], ['pending', 'rejected'])
        self.assertEqual(stored.timeline[-1].note, 'No thanks')

    def test_transition_refuses_illegal_move(self):
        swap = self._insert()

        with self.assertRaises(InvalidTransition):
            self.swaps.transition(swap.id, 'pending', 'completed', self.now)

    def test_terminal_transition_frees_the_pair(self):
        swap = self._insert()
        self.swaps.transition(swap.id, 'pending', 'cancelled', self.now)

        self.assertIsNone(self.swaps.find_active_for(self.requester.id, self.wanted.id))
        self.assertEqual(self._insert().status, 'pending')

    def test_transition_sets_extra_fields(self):
        swap = self._insert()
        self.swaps.transition(swap.id, 'pending', 'accepted', self.now, accepted_at=self.now)

        self.assertEqual(self.swaps.find_by_id(swap.id).accepted_at, self.now)

    def test_list_for_covers_both_roles_and_filters(self):
        swap = self._insert()

        self.assertEqual([s.id for s in self.swaps.list_for(self.requester.id)], [swap.id])
        self.assertEqual([s.id for s in self.swaps.list_for(self.owner.id)], [swap.id])
        self.assertEqual(list(self.swaps.list_for(self.owner.id, status='accepted')), [])
        self.assertEqual(list(self.swaps.list_for(self.owner.id, kind='direct')), [])
        self.assertEqual(len(self.swaps.list_for(self.owner.id, status='pending', kind='points')), 1)

    def test_list_for_pages_lazily(self):
        ids = [
            self._insert(requested_item_id=self.create_item(self.owner, f'Coat {n}').id).id
            for n in range(3)
        ]
        records = self.swaps.list_for(self.requester.id)

        with self.assertNumQueries(1):
            self.assertEqual(records.count(), 3)
        self.assertEqual([r.id for r in records[1:3]], [ids[1], ids[0]])
        self.assertEqual(records[0].id, ids[2])

    def test_expired_pending_ids(self):
        stale = self._insert(expires_at=self.now - timedelta(minutes=1))
        other = self.create_item(self.owner, 'Silk Scarf', category='accessories')
        self._insert(requested_item_id=other.id)

        self.assertEqual(self.swaps.expired_pending_ids(self.now), [stale.id])
        self.assertEqual(self.swaps.expired_pending_ids(self.now - timedelta(hours=1)), [])

    def test_pending_for_item(self):
        swap = self._insert()
        other = self.create_item(self.owner, 'Silk Scarf', category='accessories')

        self.assertEqual([s.id for s in self.swaps.pending_for_item(self.wanted.id)], [swap.id])
        self.assertEqual(self.swaps.pending_for_item(other.id), [])

        self.swaps.transition(swap.id, 'pending', 'rejected', self.now)
        self.assertEqual(self.swaps.pending_for_item(self.wanted.id), [])

    def test_messages_read_tracking(self):
        swap = self._insert()
        self.swaps.add_message(swap.id, self.requester.id, 'Hi!', self.now)
        self.swaps.add_message(swap.id, self.requester.id, 'Still available?', self.now)
        self.swaps.add_message(swap.id, self.owner.id, 'Yes', self.now)

        self.assertEqual(self.swaps.unread_count(swap.id, self.owner.id), 2)
        self.assertEqual(self.swaps.unread_count(swap.id, self.requester.id), 1)
        self.assertEqual(self.swaps.mark_read(swap.id, self.owner.id), 2)
        self.assertEqual(self.swaps.unread_count(swap.id, self.owner.id), 0)
        self.assertEqual(SwapMessage.objects.filter(is_read=False).count(), 1)
        self.assertEqual([m.body for m in self.swaps.list_messages(swap.id)], ['Hi!', 'Still available?', 'Yes'])
