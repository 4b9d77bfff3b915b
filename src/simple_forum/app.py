"""Composition root.

Pattern: Explicit Process-Wide State
-------------------------------------
The session registry is the only mutable state shared by every request, and
it lives exactly as long as the process serves requests.  Rather than a
module-level singleton, ``ForumApplication`` creates it in ``start()``, hands
the same instance to every component that needs it, and tears it down in
``stop()``.  A restart therefore invalidates every session, which is the
intended behaviour: nothing about sessions is persisted.
"""

from __future__ import annotations

import datetime
import logging
from typing import Callable

from simple_forum.auth.registry import SessionRegistry
from simple_forum.auth.service import AuthService
from simple_forum.auth.sweeper import ExpirySweeper
from simple_forum.content.forums import ForumStore
from simple_forum.content.mail import MailStore
from simple_forum.handlers.accounts import AccountHandlers
from simple_forum.handlers.forums import ForumHandlers
from simple_forum.handlers.mail import PostOffice
from simple_forum.identity.store import IdentityStore
from simple_forum.policy.engine import PolicyEngine
from simple_forum.settings import Settings

logger = logging.getLogger(__name__)


class ForumApplication:
    """Owns the registry, the stores and the request handlers."""

    def __init__(
        self,
        settings: Settings | None = None,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self._clock = clock
        self.policy_engine = PolicyEngine(policy_path=self.settings.policy_path)
        self.identities = IdentityStore()
        self.forum_store = ForumStore()
        self.mail_store = MailStore()

        self.registry: SessionRegistry | None = None
        self._sweeper: ExpirySweeper | None = None
        self.auth: AuthService | None = None
        self.accounts: AccountHandlers | None = None
        self.forums: ForumHandlers | None = None
        self.mail: PostOffice | None = None

    @property
    def running(self) -> bool:
        return self.registry is not None

    def start(self) -> ForumApplication:
        if self.running:
            return self
        session_cfg = self.settings.session
        clock_kwargs = {"clock": self._clock} if self._clock is not None else {}
        self.registry = SessionRegistry(ttl=session_cfg.ttl, shards=session_cfg.shards, **clock_kwargs)
        self.auth = AuthService(self.registry, self.identities, clock=self._clock)
        self.accounts = AccountHandlers(self.identities, self.auth, self.policy_engine)
        self.forums = ForumHandlers(self.forum_store, self.identities, self.auth, self.policy_engine)
        self.mail = PostOffice(self.mail_store, self.identities, self.auth, self.policy_engine)

        if session_cfg.sweep_interval_seconds > 0:
            self._sweeper = ExpirySweeper(self.registry, session_cfg.sweep_interval_seconds)
            self._sweeper.start()

        logger.info(
            "Application started: session ttl=%s, shards=%d, sweep=%ss",
            session_cfg.ttl,
            session_cfg.shards,
            session_cfg.sweep_interval_seconds or "off",
        )
        return self

    def stop(self) -> None:
        if not self.running:
            return
        if self._sweeper is not None:
            self._sweeper.stop()
            self._sweeper = None
        dropped = len(self.registry)
        self.registry.close()
        self.registry = None
        self.auth = self.accounts = self.forums = self.mail = None
        logger.info("Application stopped, %d session(s) discarded", dropped)

    def __enter__(self) -> ForumApplication:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
