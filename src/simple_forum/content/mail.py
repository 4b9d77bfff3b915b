"""Direct mail between users (in-memory)."""

from __future__ import annotations

import dataclasses
import datetime
import threading
import uuid

from simple_forum.content.paging import page


@dataclasses.dataclass
class MailMessage:
    id: str
    sender: str
    recipient: str
    subject: str
    body: str
    timestamp: datetime.datetime
    read: bool = False
    flagged: bool = False


class MailStore:
    """Thread-safe mailbox storage keyed by message id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._messages: dict[str, MailMessage] = {}

    def send(self, sender: str, recipient: str, subject: str, body: str) -> MailMessage:
        message = MailMessage(
            id=str(uuid.uuid4()),
            sender=sender,
            recipient=recipient,
            subject=subject,
            body=body,
            timestamp=datetime.datetime.now(datetime.UTC),
        )
        with self._lock:
            self._messages[message.id] = message
        return message

    def get(self, message_id: str) -> MailMessage | None:
        with self._lock:
            return self._messages.get(message_id)

    def inbox(
        self,
        recipient: str,
        offset: int,
        limit: int,
        unread_only: bool = False,
        flagged_only: bool = False,
    ) -> list[MailMessage]:
        with self._lock:
            messages = [m for m in self._messages.values() if m.recipient == recipient]
        if unread_only:
            messages = [m for m in messages if not m.read]
        if flagged_only:
            messages = [m for m in messages if m.flagged]
        messages.sort(key=lambda m: m.timestamp)
        return page(messages, offset, limit)

    def outbox(self, sender: str, offset: int, limit: int) -> list[MailMessage]:
        with self._lock:
            messages = [m for m in self._messages.values() if m.sender == sender]
        messages.sort(key=lambda m: m.timestamp)
        return page(messages, offset, limit)

    def mark(self, message_id: str, read: bool, flagged: bool) -> None:
        with self._lock:
            message = self._messages[message_id]
            message.read = read
            message.flagged = flagged
