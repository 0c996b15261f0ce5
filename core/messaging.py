"""
Messages between accounts, and from guests to accounts.

Booking creation records a note to the listing owner through
``MessageSideEffect.record``; authenticated accounts message each other
through ``send``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .conf import marketplace_setting
from .exceptions import InvalidReceiver, Unauthorized, ValidationFailed
from .permissions import is_authenticated
from .repositories import default_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversationSummary:
    participant_id: Optional[object]
    participant_name: str
    last_message: str
    last_message_at: datetime
    is_guest: bool


class MessageSideEffect:

    def __init__(self, store=None):
        self.store = store or default_store()

    def record(self, sender_id, receiver_id, content, guest_name=None):
        """
        Persist a message. The only check is that the receiver resolves;
        callers are trusted to have authorized the send.

        Raises:
            InvalidReceiver: receiver_id does not resolve to an account
        """
        receiver = self.store.accounts.get(receiver_id)
        if receiver is None:
            raise InvalidReceiver()

        sender = self.store.accounts.get(sender_id) if sender_id is not None else None

        return self.store.messages.create(
            sender=sender,
            receiver=receiver,
            content=content,
            guest_name=guest_name or '',
        )

    def send(self, sender, receiver_id, content):
        """Direct account-to-account message."""
        if not is_authenticated(sender):
            raise Unauthorized()

        if not content or not content.strip():
            raise ValidationFailed('Message content cannot be empty.')

        if str(receiver_id) == str(sender.id):
            raise ValidationFailed('You cannot send a message to yourself.')

        message = self.record(sender.id, receiver_id, content.strip())

        logger.info(
            f"Message sent. Message ID: {message.id}, "
            f"Sender: {sender.email}, Receiver ID: {receiver_id}"
        )
        return message

    def conversation_summaries(self, account):
        """
        One summary per account the given account has exchanged messages
        with, plus one per guest message received, newest first.
        """
        if not is_authenticated(account):
            raise Unauthorized()

        messages = (
            self.store.messages.query(sender_id=account.id)
            + self.store.messages.query(receiver_id=account.id)
        )
        messages.sort(key=lambda m: m.created_at, reverse=True)

        guest_label = marketplace_setting('GUEST_PARTICIPANT_NAME')
        summaries = []
        seen = set()

        for message in messages:
            if message.sender_id is None:
                summaries.append(ConversationSummary(
                    participant_id=None,
                    participant_name=message.guest_name or guest_label,
                    last_message=message.content,
                    last_message_at=message.created_at,
                    is_guest=True,
                ))
                continue

            other = message.receiver if message.sender_id == account.id else message.sender
            if other.id in seen:
                continue
            seen.add(other.id)

            summaries.append(ConversationSummary(
                participant_id=other.id,
                participant_name=other.display_name,
                last_message=message.content,
                last_message_at=message.created_at,
                is_guest=False,
            ))

        return summaries

    def conversation_with(self, account, other_id):
        """Messages exchanged between two accounts, oldest first."""
        if not is_authenticated(account):
            raise Unauthorized()

        other = self.store.accounts.get(other_id)
        if other is None:
            return []

        thread = (
            self.store.messages.query(sender_id=account.id, receiver_id=other.id)
            + self.store.messages.query(sender_id=other.id, receiver_id=account.id)
        )
        # A self-conversation would list each message twice
        unique = {message.id: message for message in thread}
        return sorted(unique.values(), key=lambda m: m.created_at)
