"""
Background sweep of expired revocation rows.

Housekeeping only: an expired token is rejected on its own exp claim, so a
missed sweep costs storage, never correctness. Runs on a daemon thread with
its own start/stop lifecycle, outside request handling.
"""
from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class BlacklistSweeper:
    def __init__(self, revocations, storage, interval: float = 3600.0):
        if interval <= 0:
            raise ValueError("sweep interval must be positive")
        self.revocations = revocations
        self.storage = storage
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> int:
        """One sweep; returns the number of blacklist rows removed."""
        try:
            removed = self.revocations.sweep_expired_blacklist()
            self.revocations.sweep_expired_refresh()
            return removed
        finally:
            # The worker thread owns its own scoped session
            self.storage.close()

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.run_once()
            except Exception:
                logger.exception("Token sweep failed, retrying next interval")

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="blacklist-sweeper", daemon=True)
        self._thread.start()
        logger.info("Blacklist sweeper started (every %.0fs)", self.interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("Blacklist sweeper stopped")
