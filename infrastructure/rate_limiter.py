"""Per-key sliding-window rate limiter.

Used to notice bursts of editor activity: every text edit records a hit, and
once a key exceeds ``max_requests`` hits inside ``window_seconds`` the caller
reacts (the trigger adapter clears queued waveforms) and the window restarts.

Timestamps are kept in memory per key; the clock is injectable for tests.

Usage::

    from infrastructure.rate_limiter import RateLimiter

    limiter = RateLimiter(max_requests=30, window_seconds=20)

    if not limiter.allow("edits"):
        dispatcher.clear_all()
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable

logger = logging.getLogger(__name__)

_DEFAULT_MAX = 30
_DEFAULT_WINDOW = 20.0  # seconds


class RateLimiter:
    """In-memory sliding-window rate limiter.

    Args:
        max_requests: Maximum hits allowed in the window (default: 30).
        window_seconds: Sliding window size in seconds (default: 20).
        clock: Monotonic time source.
    """

    def __init__(
        self,
        max_requests: int = _DEFAULT_MAX,
        window_seconds: float = _DEFAULT_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max = max_requests
        self._window = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    @property
    def max_requests(self) -> int:
        return self._max

    @max_requests.setter
    def max_requests(self, value: int) -> None:
        self._max = value

    def allow(self, key: str) -> bool:
        """Record a hit for ``key`` and report whether it is within limits.

        When the limit is exceeded the key's window is reset, so the next
        burst is measured from scratch.

        Returns:
            True if the hit is allowed, False if it pushed the key over the limit.
        """
        now = self._clock()
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            while hits and now - hits[0] >= self._window:
                hits.popleft()
            if len(hits) >= self._max:
                hits.clear()
                logger.warning(
                    "RateLimiter: key '%s' exceeded %d hits/%.0fs", key, self._max, self._window
                )
                return False
            hits.append(now)
            return True
