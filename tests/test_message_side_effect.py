"""
Tests for MessageSideEffect: recording, direct sends and conversations.
"""

from django.test import SimpleTestCase, override_settings

from core.exceptions import InvalidReceiver, Unauthorized, ValidationFailed
from core.messaging import MessageSideEffect
from core.models import Account, Message
from tests.fakes import FakeStore


class RecordTests(SimpleTestCase):

    def setUp(self):
        self.store = FakeStore()
        self.owner = self.store.account('owner@example.com', role=Account.Role.STUDIO_OWNER)
        self.client_account = self.store.account('client@example.com')
        self.messaging = MessageSideEffect(self.store)

    def test_records_guest_message(self):
        message = self.messaging.record(None, self.owner.id, 'Hello', guest_name='Walk-in')

        self.assertIsNone(message.sender_id)
        self.assertEqual(message.receiver_id, self.owner.id)
        self.assertEqual(message.guest_name, 'Walk-in')

    def test_records_account_message(self):
        message = self.messaging.record(self.client_account.id, self.owner.id, 'Hello')

        self.assertEqual(message.sender_id, self.client_account.id)
        self.assertEqual(message.guest_name, '')

    def test_unknown_receiver(self):
        with self.assertRaises(InvalidReceiver):
            self.messaging.record(None, 'nobody', 'Hello', guest_name='Walk-in')


class SendTests(SimpleTestCase):

    def setUp(self):
        self.store = FakeStore()
        self.alice = self.store.account('alice@example.com')
        self.bob = self.store.account('bob@example.com')
        self.messaging = MessageSideEffect(self.store)

    def test_send(self):
        message = self.messaging.send(self.alice, self.bob.id, '  See you at ten  ')

        self.assertEqual(message.content, 'See you at ten')
        self.assertEqual(len(self.store.messages.objects), 1)

    def test_send_requires_sender(self):
        with self.assertRaises(Unauthorized):
            self.messaging.send(None, self.bob.id, 'Hi')

    def test_cannot_message_yourself(self):
        with self.assertRaises(ValidationFailed):
            self.messaging.send(self.alice, self.alice.id, 'Hi')

        with self.assertRaises(ValidationFailed):
            self.messaging.send(self.alice, str(self.alice.id), 'Hi')

    def test_blank_content(self):
        with self.assertRaises(ValidationFailed):
            self.messaging.send(self.alice, self.bob.id, '   ')

    def test_unknown_receiver(self):
        with self.assertRaises(InvalidReceiver):
            self.messaging.send(self.alice, 'nobody', 'Hi')


class ConversationTests(SimpleTestCase):

    def setUp(self):
        self.store = FakeStore()
        self.owner = self.store.account('owner@example.com', role=Account.Role.STUDIO_OWNER, name='Olga')
        self.alice = self.store.account('alice@example.com', name='Alice')
        self.bob = self.store.account('bob@example.com', name='Bob')
        self.messaging = MessageSideEffect(self.store)

        self.messaging.send(self.alice, self.owner.id, 'first from alice')
        self.messaging.send(self.owner, self.alice.id, 'reply to alice')
        self.messaging.record(None, self.owner.id, 'guest note', guest_name='Walk-in')
        # Rows written before guest names were enforced
        self.store.messages.add(Message(receiver=self.owner, content='anonymous note'))
        self.messaging.send(self.bob, self.owner.id, 'hello from bob')

    def test_summaries_newest_first_with_one_entry_per_account(self):
        summaries = self.messaging.conversation_summaries(self.owner)

        self.assertEqual(
            [s.participant_name for s in summaries],
            ['Bob', 'Guest Client', 'Walk-in', 'Alice']
        )
        alice = summaries[-1]
        self.assertEqual(alice.participant_id, self.alice.id)
        self.assertEqual(alice.last_message, 'reply to alice')
        self.assertFalse(alice.is_guest)

    def test_every_guest_message_is_its_own_entry(self):
        summaries = self.messaging.conversation_summaries(self.owner)

        guests = [s for s in summaries if s.is_guest]
        self.assertEqual(len(guests), 2)
        self.assertTrue(all(s.participant_id is None for s in guests))

    @override_settings(STUDIO_MARKETPLACE={'GUEST_PARTICIPANT_NAME': 'Visitor'})
    def test_guest_label_is_configurable(self):
        summaries = self.messaging.conversation_summaries(self.owner)

        self.assertIn('Visitor', [s.participant_name for s in summaries])

    def test_thread_is_oldest_first_and_private(self):
        thread = self.messaging.conversation_with(self.owner, self.alice.id)

        self.assertEqual([m.content for m in thread], ['first from alice', 'reply to alice'])

    def test_thread_with_unknown_account_is_empty(self):
        self.assertEqual(self.messaging.conversation_with(self.owner, 'nobody'), [])

    def test_conversations_require_account(self):
        with self.assertRaises(Unauthorized):
            self.messaging.conversation_summaries(None)
        with self.assertRaises(Unauthorized):
            self.messaging.conversation_with(None, self.alice.id)
