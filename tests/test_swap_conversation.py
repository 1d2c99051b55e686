"""
Tests for the per-swap conversation and the read accessors.
"""

from django.test import TestCase

from exchange.errors import InvalidCommand, NotParticipant, SwapNotFound

from swap_fixtures import SwapFixturesMixin


class SwapConversationTests(SwapFixturesMixin, TestCase):

    def setUp(self):
        self.set_up_swap_fixtures()
        self.swap = self.create_direct_swap()

    def test_participants_exchange_messages(self):
        self.engine.post_message(self.swap.id, self.requester.id, 'Is it still available?')
        self.engine.post_message(self.swap.id, self.owner.id, 'Yes!')

        messages = self.engine.messages(self.swap.id, self.owner.id)

        self.assertEqual([m.body for m in messages], ['Is it still available?', 'Yes!'])
        self.assertEqual([m.sender_id for m in messages], [self.requester.id, self.owner.id])

    def test_unread_count_and_mark_read(self):
        self.engine.post_message(self.swap.id, self.requester.id, 'Hello')
        self.engine.post_message(self.swap.id, self.requester.id, 'Any news?')

        self.assertEqual(self.engine.unread_count(self.swap.id, self.owner.id), 2)
        self.assertEqual(self.engine.unread_count(self.swap.id, self.requester.id), 0)
        self.assertEqual(self.engine.mark_messages_read(self.swap.id, self.owner.id), 2)
        self.assertEqual(self.engine.unread_count(self.swap.id, self.owner.id), 0)

    def test_outsiders_cannot_read_or_post(self):
        with self.assertRaises(NotParticipant):
            self.engine.post_message(self.swap.id, self.bystander.id, 'Hi')
        with self.assertRaises(NotParticipant):
            self.engine.messages(self.swap.id, self.bystander.id)
        with self.assertRaises(NotParticipant):
            self.engine.mark_messages_read(self.swap.id, self.bystander.id)

    def test_message_length(self):
        with self.assertRaises(InvalidCommand):
            self.engine.post_message(self.swap.id, self.requester.id, '   ')
        with self.assertRaises(InvalidCommand):
            self.engine.post_message(self.swap.id, self.requester.id, 'x' * 1001)

        message = self.engine.post_message(self.swap.id, self.requester.id, 'x' * 1000)
        self.assertEqual(len(message.body), 1000)

    def test_conversation_continues_after_swap_ends(self):
        self.engine.respond(self.swap.id, self.owner.id, 'reject')

        message = self.engine.post_message(self.swap.id, self.requester.id, 'Thanks anyway')

        self.assertFalse(message.is_read)


class SwapQueryTests(SwapFixturesMixin, TestCase):

    def setUp(self):
        self.set_up_swap_fixtures()

    def test_get_checks_participation_when_user_given(self):
        swap = self.create_direct_swap()

        self.assertEqual(self.engine.get(swap.id, self.owner.id).id, swap.id)
        self.assertEqual(self.engine.get(swap.id).id, swap.id)
        with self.assertRaises(NotParticipant):
            self.engine.get(swap.id, self.bystander.id)
        with self.assertRaises(SwapNotFound):
            self.engine.get(999999)

    def test_list_for_filters(self):
        direct = self.create_direct_swap()
        scarf = self.create_item(self.bystander, 'Silk Scarf', category='accessories', point_value=20)
        points = self.engine.create(self.requester.id, scarf.id, 'points', points_offered=20)
        self.engine.respond(points.id, self.bystander.id, 'reject')

        self.assertEqual({s.id for s in self.engine.list_for(self.requester.id)}, {direct.id, points.id})
        self.assertEqual([s.id for s in self.engine.list_for(self.requester.id, status='rejected')], [points.id])
        self.assertEqual([s.id for s in self.engine.list_for(self.requester.id, kind='direct')], [direct.id])
        self.assertEqual([s.id for s in self.engine.list_for(self.owner.id)], [direct.id])

    def test_list_for_rejects_unknown_filters(self):
        with self.assertRaises(InvalidCommand):
            self.engine.list_for(self.requester.id, status='declined')
        with self.assertRaises(InvalidCommand):
            self.engine.list_for(self.requester.id, kind='barter')

    def test_pending_for_item_is_owner_only(self):
        swap = self.create_direct_swap()

        self.assertEqual([s.id for s in self.engine.pending_for_item(self.wanted.id, self.owner.id)], [swap.id])
        with self.assertRaises(NotParticipant):
            self.engine.pending_for_item(self.wanted.id, self.requester.id)
