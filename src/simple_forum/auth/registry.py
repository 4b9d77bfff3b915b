"""Concurrent in-memory session registry with sliding expiration.

Pattern: Sharded Registry, Lazy Eviction
-----------------------------------------
Sessions live in a fixed number of shards, each a plain ``dict`` guarded by
its own ``threading.Lock``.  A session id always hashes to the same shard, so
every operation on one session is serialised by one lock while operations on
sessions in other shards proceed in parallel.

Three behaviours carry the whole contract:

  1. **Insert only if absent.**  ``create_session`` never overwrites.  If the
     freshly generated id is already taken it raises
     ``SessionCollisionError`` and leaves the existing session untouched;
     regenerating and retrying is the caller's decision.
  2. **Touch on resolve.**  Every successful ``resolve`` restarts the window
     at the resolution time, so activity keeps a session alive indefinitely
     and only inactivity longer than the window kills it.
  3. **Evict on resolve after expiry.**  There is no timer.  An expired entry
     is removed by the first ``resolve`` that finds it, and that call reports
     ``SessionNotFound`` exactly as if the id had never existed.

The registry never logs, retries, or swallows errors: every failure reaches
the immediate caller as a typed exception.  The map itself is never exposed;
callers cannot iterate it or hold references into it.
"""

from __future__ import annotations

import datetime
import threading
import uuid
from typing import Callable

from simple_forum.auth.session import Session

DEFAULT_TTL = datetime.timedelta(minutes=15)
DEFAULT_SHARDS = 16


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def _new_session_id() -> str:
    return str(uuid.uuid4())


class SessionNotFound(Exception):
    """Raised when a session id is unknown or its session has expired."""

    def __init__(self) -> None:
        super().__init__("Invalid session ID provided or session timed out.")


class SessionCollisionError(Exception):
    """Raised when a newly generated session id is already registered."""


class RegistryClosedError(Exception):
    """Raised when the registry is used after ``close()``."""


class _Shard:
    __slots__ = ("lock", "sessions")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.sessions: dict[str, Session] = {}


class SessionRegistry:
    """Process-wide mapping of session id to ``Session``.

    Args:
        ttl:        Sliding expiry window.
        shards:     Number of independently locked partitions.
        clock:      Returns the current aware UTC time; injectable for tests.
        id_factory: Produces new opaque session ids.
    """

    def __init__(
        self,
        ttl: datetime.timedelta = DEFAULT_TTL,
        shards: int = DEFAULT_SHARDS,
        clock: Callable[[], datetime.datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_session_id,
    ) -> None:
        if ttl <= datetime.timedelta(0):
            raise ValueError("Session TTL must be positive")
        if shards < 1:
            raise ValueError("Session registry needs at least one shard")
        self._ttl = ttl
        self._clock = clock
        self._id_factory = id_factory
        self._shards = tuple(_Shard() for _ in range(shards))
        self._closed = False

    @property
    def ttl(self) -> datetime.timedelta:
        return self._ttl

    @property
    def closed(self) -> bool:
        return self._closed

    def create_session(self, user_id: str) -> str:
        """Register a new session for *user_id* and return its id.

        Raises ``SessionCollisionError`` if the generated id is already present.
        """
        session_id = self._id_factory()
        shard = self._shard_for(session_id)
        with shard.lock:
            self._check_open()
            if session_id in shard.sessions:
                raise SessionCollisionError(
                    "Failed to create new user session; session id collision occurred."
                )
            shard.sessions[session_id] = Session(
                session_id=session_id,
                user_id=user_id,
                expires_at=self._clock() + self._ttl,
            )
        return session_id

    def resolve(self, session_id: str) -> Session:
        """Return the live session for *session_id*, extending its window.

        An expired session is evicted by this call.  Raises ``SessionNotFound``
        for unknown and expired ids alike.
        """
        shard = self._shard_for(session_id)
        with shard.lock:
            self._check_open()
            session = shard.sessions.get(session_id)
            if session is None:
                raise SessionNotFound()
            now = self._clock()
            if session.is_expired(now):
                del shard.sessions[session_id]
                raise SessionNotFound()
            session = session.extended(now, self._ttl)
            shard.sessions[session_id] = session
        return session

    def remove(self, session_id: str) -> bool:
        """Remove *session_id*; return whether a session was actually removed."""
        shard = self._shard_for(session_id)
        with shard.lock:
            self._check_open()
            return shard.sessions.pop(session_id, None) is not None

    def sweep_expired(self) -> int:
        """Evict every expired session, one shard at a time.

        Returns the number of sessions removed.  Live sessions are not extended.
        """
        self._check_open()
        removed = 0
        for shard in self._shards:
            with shard.lock:
                if self._closed:
                    break
                now = self._clock()
                expired = [sid for sid, s in shard.sessions.items() if s.is_expired(now)]
                for sid in expired:
                    del shard.sessions[sid]
                removed += len(expired)
        return removed

    def close(self) -> None:
        """Drop every session.  Any later operation raises ``RegistryClosedError``."""
        for shard in self._shards:
            with shard.lock:
                self._closed = True
                shard.sessions.clear()

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.sessions)
        return total

    # -- private helpers -----------------------------------------------------

    def _shard_for(self, session_id: str) -> _Shard:
        return self._shards[hash(session_id) % len(self._shards)]

    def _check_open(self) -> None:
        if self._closed:
            raise RegistryClosedError("Session registry has been closed")
