"""Session record handed out by the session registry.

Pattern: Snapshot Out, Registry Owns
-------------------------------------
A ``Session`` binds an opaque token to an authenticated user for a bounded,
renewable window.  The registry is the only owner of session state: it stores
one immutable ``Session`` per token and *replaces* it whenever the window
slides forward.  Callers receive the same frozen object, so holding on to a
session can never mutate the registry behind its back, and a stale snapshot
simply shows an older ``expires_at``.

The session is intentionally immutable.  Extension is expressed as a new
snapshot built by ``extended()``, never as an in-place update.
"""

from __future__ import annotations

import dataclasses
import datetime


@dataclasses.dataclass(frozen=True)
class Session:
    """Immutable snapshot of an authenticated interaction window.

    Attributes:
        session_id: Opaque unique token issued at login or registration.
        user_id:    Id of the authenticated user; fixed for the session's lifetime.
        expires_at: Absolute UTC expiry; the session is dead from this instant on.
    """

    session_id: str
    user_id: str
    expires_at: datetime.datetime

    def is_expired(self, now: datetime.datetime) -> bool:
        return now >= self.expires_at

    def extended(self, now: datetime.datetime, ttl: datetime.timedelta) -> Session:
        """Return a copy whose window restarts at *now*."""
        return dataclasses.replace(self, expires_at=now + ttl)

    def __str__(self) -> str:
        return f"Session(user={self.user_id}, expires_at={self.expires_at.isoformat()})"
