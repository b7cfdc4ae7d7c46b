"""
Background expiry sweep for the MX cache.
Removes entries that were cached once and never looked up again.
"""

import logging
import threading

from mx_cache import MXCache

logger = logging.getLogger(__name__)


class CacheSweeper:
    """
    Periodic expired-entry sweeper with controlled lifecycle.

    Features:
    - Sweeps an MXCache every interval on a daemon thread
    - Each sweep runs inside the cache lock, never alongside a get/set
    - Clean shutdown via threading.Event
    """

    def __init__(self, cache: MXCache, interval_seconds: float = 60.0):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.cache = cache
        self.interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start the sweeper thread."""
        if self._thread and self._thread.is_alive():
            logger.warning("CacheSweeper already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._sweep_loop, daemon=True, name="CacheSweeper")
        self._thread.start()
        logger.info(f"CacheSweeper started (interval={self.interval}s)")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the sweeper thread and wait for it to finish."""
        if not self._thread:
            return

        self._stop_event.set()
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("CacheSweeper did not stop within timeout")
        else:
            logger.debug("CacheSweeper stopped")
        self._thread = None

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def sweep_once(self) -> int:
        """
        Run a single sweep iteration.
        Returns number of expired entries removed.
        """
        removed = self.cache.clean_expired()
        if removed:
            logger.debug(f"Swept {removed} expired MX cache entries")
        return removed

    def _sweep_loop(self) -> None:
        """Main sweep loop."""
        # wait() returns True as soon as stop() is called
        while not self._stop_event.wait(self.interval):
            try:
                self.sweep_once()
            except Exception as e:
                logger.error(f"Unexpected error in CacheSweeper: {e}")
