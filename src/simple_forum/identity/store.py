"""In-memory identity store.

Holds user records and answers the three questions the rest of the system
asks about identities: *who has this id*, *who goes by this username or
email*, and *what is the public identifier for this id*.  Username and email
are both unique keys; a registration that reuses either is refused.
"""

from __future__ import annotations

import datetime
import logging
import threading
import uuid

from simple_forum.identity.models import PermissionTier, User

logger = logging.getLogger(__name__)

UNKNOWN_IDENTIFIER = "[deleted]"


class IdentityConflictError(Exception):
    """Raised when a username or email is already in use."""


class IdentityStore:
    """Thread-safe mapping of user id to ``User`` with unique username/email."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[str, User] = {}
        self._by_username: dict[str, str] = {}
        self._by_email: dict[str, str] = {}

    def add(self, user: User) -> User:
        """Insert *user*.  Raises ``IdentityConflictError`` on any key clash."""
        username_key = user.username.casefold()
        email_key = user.email.casefold()
        with self._lock:
            if user.id in self._users:
                raise IdentityConflictError(f"User id already exists: {user.id}")
            if username_key in self._by_username or email_key in self._by_email:
                raise IdentityConflictError("Username or email already in use.")
            self._users[user.id] = user
            self._by_username[username_key] = user.id
            self._by_email[email_key] = user.id
        logger.debug("Stored user %s (%s)", user.username, user.id)
        return user

    def create(
        self,
        username: str,
        email: str,
        password_hash: str,
        permission_tier: PermissionTier = PermissionTier.REGISTERED_USER,
    ) -> User:
        """Build a new ``User`` with a fresh id and insert it."""
        user = User(
            id=str(uuid.uuid4()),
            username=username,
            email=email,
            password_hash=password_hash,
            permission_tier=permission_tier,
        )
        return self.add(user)

    def get(self, user_id: str) -> User | None:
        with self._lock:
            return self._users.get(user_id)

    def find(self, identifier: str) -> User | None:
        """Look up by username first, then by email."""
        key = identifier.casefold()
        with self._lock:
            user_id = self._by_username.get(key) or self._by_email.get(key)
            return self._users.get(user_id) if user_id else None

    def exists(self, username: str, email: str) -> bool:
        with self._lock:
            return (
                username.casefold() in self._by_username
                or email.casefold() in self._by_email
            )

    def record_login(self, user_id: str, when: datetime.datetime) -> None:
        with self._lock:
            user = self._users.get(user_id)
            if user is not None:
                user.last_login = when

    def replace_password_hash(self, user_id: str, expected: str, new_hash: str) -> bool:
        """Swap in *new_hash* only if the stored hash is still *expected*.

        Returns ``False`` when another writer changed the hash first.
        """
        with self._lock:
            user = self._users.get(user_id)
            if user is None or user.password_hash != expected:
                return False
            user.password_hash = new_hash
            return True

    def get_identifier(self, user_id: str) -> str:
        """Return the public name for *user_id* (its username)."""
        user = self.get(user_id)
        return user.username if user is not None else UNKNOWN_IDENTIFIER

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)
