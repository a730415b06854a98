"""Sliding-window rate limiter keyed by caller-chosen strings."""

import threading
import time
from collections.abc import Callable

from loguru import logger


class RateLimiter:
    """
    Allow at most ``max_attempts`` per key within a sliding time window.

    Only allowed attempts are recorded; a rejected call does not extend the
    window.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.time,
    ):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._attempts: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    def _live_attempts(self, key: str, now: float) -> list[float]:
        live = [t for t in self._attempts.get(key, []) if now - t < self.window_seconds]
        self._attempts[key] = live
        return live

    def is_rate_limited(self, key: str) -> bool:
        """Check the limit for a key and record the attempt when allowed."""
        with self._lock:
            now = self._clock()
            live = self._live_attempts(key, now)
            if len(live) >= self.max_attempts:
                logger.warning(f"Rate limit reached for '{key}'")
                return True
            live.append(now)
            return False

    def get_remaining_attempts(self, key: str) -> int:
        with self._lock:
            live = self._live_attempts(key, self._clock())
            return max(0, self.max_attempts - len(live))

    def get_time_until_reset(self, key: str) -> float:
        """Seconds until the oldest recorded attempt leaves the window."""
        with self._lock:
            now = self._clock()
            live = self._live_attempts(key, now)
            if not live:
                return 0.0
            return max(0.0, self.window_seconds - (now - min(live)))

    def clear(self, key: str | None = None) -> None:
        """Forget attempts for one key, or for every key."""
        with self._lock:
            if key is None:
                self._attempts.clear()
            else:
                self._attempts.pop(key, None)
