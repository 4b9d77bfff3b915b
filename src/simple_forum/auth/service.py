"""Login, registration and logout on top of the session registry.

The service is the only writer to the registry besides the registry itself:
login and registration create sessions, logout removes them.  Identity
storage and password checks are delegated to the identity collaborators;
failures surface as typed exceptions for the request handlers to translate.
"""

from __future__ import annotations

import datetime
import logging
from typing import Callable

from simple_forum.auth.registry import SessionNotFound, SessionRegistry
from simple_forum.auth.session import Session
from simple_forum.identity import passwords
from simple_forum.identity.models import User
from simple_forum.identity.store import IdentityConflictError, IdentityStore

logger = logging.getLogger(__name__)


class InvalidCredentialsError(Exception):
    """Raised when a login identifier or password does not match."""

    def __init__(self) -> None:
        super().__init__("Username or password is invalid.")


class AuthService:
    """Orchestrates the session lifecycle for account endpoints."""

    def __init__(
        self,
        registry: SessionRegistry,
        identities: IdentityStore,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self._registry = registry
        self._identities = identities
        self._clock = clock or (lambda: datetime.datetime.now(datetime.UTC))

    def login(self, identifier: str, password: str) -> str:
        """Authenticate by username or email and return a new session id.

        Raises ``InvalidCredentialsError`` for an unknown user and for a wrong
        password alike.  ``SessionCollisionError`` propagates unchanged.
        """
        user = self._identities.find(identifier)
        if user is None:
            raise InvalidCredentialsError()
        stored_hash = user.password_hash
        if not passwords.password_matches(stored_hash, password):
            raise InvalidCredentialsError()

        session_id = self._registry.create_session(user.id)
        self._identities.record_login(user.id, self._clock())
        if passwords.needs_rehash(stored_hash):
            upgraded = passwords.hash_password(password)
            if self._identities.replace_password_hash(user.id, stored_hash, upgraded):
                logger.info("Upgraded password hash for user %s", user.id)
        logger.info("User %s logged in [session:%s] [userid:%s]", user.username, session_id, user.id)
        return session_id

    def register(self, username: str, email: str, password: str) -> str:
        """Create an account and return a session id for it.

        Raises ``IdentityConflictError`` if the username or email is taken.
        """
        username = username.strip()
        email = email.strip()
        if not username or not email or not password:
            raise ValueError("Username, email and password are required.")
        if self._identities.exists(username, email):
            raise IdentityConflictError("Username or email already in use.")

        user = self._identities.create(
            username=username,
            email=email,
            password_hash=passwords.hash_password(password),
        )
        self._identities.record_login(user.id, self._clock())
        logger.info("User account %s registered [userid:%s]", username, user.id)

        session_id = self._registry.create_session(user.id)
        logger.info("User %s logged in [session:%s] [userid:%s]", username, session_id, user.id)
        return session_id

    def logout(self, session_id: str) -> None:
        """End *session_id*.  Raises ``SessionNotFound`` if it is not live."""
        session = self._registry.resolve(session_id)
        if not self._registry.remove(session_id):
            raise SessionNotFound()
        logger.info("User logged out [session:%s] [userid:%s]", session_id, session.user_id)

    def require_user(self, session_id: str | None) -> tuple[Session, User]:
        """Resolve *session_id* and load its user.

        Raises ``SessionNotFound`` if the session is not live or the user no
        longer exists.
        """
        if not session_id:
            raise SessionNotFound()
        session = self._registry.resolve(session_id)
        user = self._identities.get(session.user_id)
        if user is None:
            raise SessionNotFound()
        return session, user

    def current_user(self, session_id: str | None) -> User | None:
        """Return the user behind *session_id*, or ``None`` for anonymous callers."""
        try:
            _, user = self.require_user(session_id)
        except SessionNotFound:
            return None
        return user
