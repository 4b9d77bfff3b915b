"""Direct-mail endpoints.

Unlike forums, every mail action needs a live session: there is no public
mail.  Message-level access is by participation.  Sender and recipient may
read a message; only the recipient may mark it read or flagged.
"""

from __future__ import annotations

import logging

from simple_forum.auth.registry import SessionNotFound
from simple_forum.auth.service import AuthService
from simple_forum.auth.session import Session
from simple_forum.content.mail import MailMessage, MailStore
from simple_forum.handlers import responses
from simple_forum.handlers.responses import Response
from simple_forum.identity.models import User
from simple_forum.identity.store import IdentityStore
from simple_forum.policy.engine import PolicyEngine

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "mail"

_NOT_ALLOWED = "You are not allowed to access this message."


class PostOffice:
    def __init__(
        self,
        mail: MailStore,
        identities: IdentityStore,
        auth: AuthService,
        policy_engine: PolicyEngine,
    ) -> None:
        self._mail = mail
        self._identities = identities
        self._auth = auth
        self._policy = policy_engine.resolve(RESOURCE_TYPE)
        if self._policy.allow_anonymous:
            logger.warning("Mail policy allows anonymous access; mail still requires a live session")

    def send(self, session_id: str | None, recipient: str, subject: str, body: str) -> Response:
        caller = self._caller(session_id)
        if isinstance(caller, Response):
            return caller
        session, _ = caller

        recipient_user = self._identities.find(recipient)
        if recipient_user is None:
            return responses.text(responses.BAD_REQUEST, f"Recipient {recipient} not found.")

        message = self._mail.send(session.user_id, recipient_user.id, subject, body)
        logger.info(
            "Sent a direct message to %s [session:%s] [userid:%s]",
            recipient_user.id,
            session.session_id,
            session.user_id,
        )
        return responses.text(responses.OK, message.id)

    def inbox(
        self,
        session_id: str | None,
        offset: int = 0,
        limit: int = 50,
        unread_only: bool = False,
        flagged_only: bool = False,
    ) -> Response:
        caller = self._caller(session_id)
        if isinstance(caller, Response):
            return caller
        session, _ = caller

        messages = self._mail.inbox(session.user_id, offset, limit, unread_only, flagged_only)
        return responses.json_body([self._summarize(m, m.sender) for m in messages])

    def outbox(self, session_id: str | None, offset: int = 0, limit: int = 50) -> Response:
        caller = self._caller(session_id)
        if isinstance(caller, Response):
            return caller
        session, _ = caller

        messages = self._mail.outbox(session.user_id, offset, limit)
        return responses.json_body([self._summarize(m, m.recipient) for m in messages])

    def message(self, session_id: str | None, message_id: str) -> Response:
        if not responses.valid_id(message_id):
            return responses.text(responses.BAD_REQUEST, "Invalid message id provided.")

        caller = self._caller(session_id)
        if isinstance(caller, Response):
            return caller
        session, _ = caller

        message = self._mail.get(message_id)
        if message is None or session.user_id not in (message.sender, message.recipient):
            return responses.text(responses.UNAUTHORIZED, _NOT_ALLOWED)

        return responses.json_body(responses.MessageBody(
            sender=self._identities.get_identifier(message.sender),
            recipient=self._identities.get_identifier(message.recipient),
            subject=message.subject,
            body=message.body,
            timestamp=message.timestamp,
            read=message.read,
            flagged=message.flagged,
        ))

    def mark(self, session_id: str | None, message_id: str, read: bool, flagged: bool) -> Response:
        if not responses.valid_id(message_id):
            return responses.text(responses.BAD_REQUEST, "Invalid message id provided.")

        caller = self._caller(session_id)
        if isinstance(caller, Response):
            return caller
        session, _ = caller

        message = self._mail.get(message_id)
        if message is None or message.recipient != session.user_id:
            return responses.text(responses.UNAUTHORIZED, _NOT_ALLOWED)

        self._mail.mark(message.id, read=read, flagged=flagged)
        return responses.text(responses.OK)

    # -- private helpers -----------------------------------------------------

    def _caller(self, session_id: str | None) -> tuple[Session, User] | Response:
        try:
            return self._auth.require_user(session_id)
        except SessionNotFound as exc:
            return responses.text(responses.UNAUTHORIZED, str(exc))

    def _summarize(self, message: MailMessage, other: str) -> responses.MessageSummary:
        return responses.MessageSummary(
            id=message.id,
            other=self._identities.get_identifier(other),
            subject=message.subject,
            timestamp=message.timestamp,
            unread=not message.read,
            flagged=message.flagged,
        )
