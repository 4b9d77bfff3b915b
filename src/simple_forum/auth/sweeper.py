"""Optional background sweep of expired sessions.

The registry reclaims expired entries lazily, when someone resolves them.  A
session nobody asks about again stays in memory until the process exits.  The
sweeper bounds that by calling ``SessionRegistry.sweep_expired`` on a fixed
interval from a daemon thread.  It never extends a session, so the
touch-on-resolve and evict-on-resolve behaviours are unchanged whether it
runs or not.
"""

from __future__ import annotations

import logging
import threading

from simple_forum.auth.registry import RegistryClosedError, SessionRegistry

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Periodically evicts expired sessions from a ``SessionRegistry``."""

    def __init__(self, registry: SessionRegistry, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("Sweep interval must be positive")
        self._registry = registry
        self._interval = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="session-expiry-sweeper", daemon=True
        )
        self._thread.start()
        logger.info("Session expiry sweeper started (interval=%ss)", self._interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("Session expiry sweeper stopped")

    def sweep_once(self) -> int:
        removed = self._registry.sweep_expired()
        if removed:
            logger.debug("Swept %d expired session(s)", removed)
        return removed

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self.sweep_once()
            except RegistryClosedError:
                break
