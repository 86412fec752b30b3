"""Minimum-interval pacing for outbound API calls.

Each integration client owns one RateLimiter. Before every request the client
calls `wait()`, which blocks the calling thread for whatever remains of the
configured interval since the previous call.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from loguru import logger


class RateLimiter:
    """Pace calls to no more than one per `min_interval_seconds`.

    The internal lock only protects the last-call timestamp. Concurrent callers
    each pay their own wait; fair scheduling across threads is the caller's job.
    """

    def __init__(
        self,
        min_interval_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        name: str = "api",
    ):
        if min_interval_seconds < 0:
            raise ValueError("min_interval_seconds must be >= 0")

        self.min_interval_seconds = min_interval_seconds
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_call: float | None = None

    @classmethod
    def from_milliseconds(cls, interval_ms: int, **kwargs) -> RateLimiter:
        return cls(interval_ms / 1000.0, **kwargs)

    @property
    def last_call(self) -> float | None:
        return self._last_call

    def wait(self) -> float:
        """Block until the interval has elapsed, then record this call.

        Returns:
            Seconds slept (0.0 when no wait was needed)
        """
        with self._lock:
            slept = 0.0
            if self._last_call is not None:
                elapsed = self._clock() - self._last_call
                remaining = self.min_interval_seconds - elapsed
                if remaining > 0:
                    logger.trace(f"Rate limiting {self.name}: sleeping {remaining * 1000:.0f}ms")
                    self._sleep(remaining)
                    slept = remaining

            self._last_call = self._clock()
            return slept

    def reset(self) -> None:
        """Forget the previous call so the next one proceeds immediately."""
        with self._lock:
            self._last_call = None
