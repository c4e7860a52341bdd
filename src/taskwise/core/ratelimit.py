# src/taskwise/core/ratelimit.py

"""
Per-user rate limits.

LIMITS is the declarative table (rate tokens per period, burst capacity).
TokenBucketRateLimiter is the in-process implementation of the RateLimiter port.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

logger = logging.getLogger(__name__)

MINUTE: Final[float] = 60.0
HOUR: Final[float] = 60.0 * MINUTE


@dataclass(frozen=True, slots=True)
class TokenBucket:
    rate: int
    period: float
    capacity: int

    @property
    def refill_per_second(self) -> float:
        return self.rate / self.period


LIMITS: Final[dict[str, TokenBucket]] = {
    # Task operations
    "create_task": TokenBucket(rate=20, period=MINUTE, capacity=5),
    "update_task": TokenBucket(rate=50, period=MINUTE, capacity=10),
    "delete_task": TokenBucket(rate=30, period=MINUTE, capacity=5),
    # Assistant
    "create_thread": TokenBucket(rate=10, period=HOUR, capacity=3),
    "send_message": TokenBucket(rate=20, period=HOUR, capacity=5),
    # Scheduled tasks
    "create_scheduled_task": TokenBucket(rate=5, period=HOUR, capacity=2),
    "update_scheduled_task": TokenBucket(rate=10, period=HOUR, capacity=3),
    # Preferences
    "update_preferences": TokenBucket(rate=10, period=MINUTE, capacity=2),
}


class TokenBucketRateLimiter:
    """
    In-memory token buckets keyed by (limit name, key).

    Buckets start full. Unknown limit names are always allowed.
    """

    def __init__(
        self,
        limits: dict[str, TokenBucket] | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._limits = dict(LIMITS if limits is None else limits)
        self._clock = clock
        self._state: dict[tuple[str, str], tuple[float, float]] = {}  # -> (tokens, last_ts)
        self._lock = threading.Lock()

    def limit(self, name: str, *, key: str) -> tuple[bool, float]:
        bucket = self._limits.get(name)
        if bucket is None:
            return True, 0.0

        now = self._clock()
        with self._lock:
            tokens, last = self._state.get((name, key), (float(bucket.capacity), now))
            tokens = min(float(bucket.capacity), tokens + (now - last) * bucket.refill_per_second)

            if tokens >= 1.0:
                self._state[(name, key)] = (tokens - 1.0, now)
                return True, 0.0

            self._state[(name, key)] = (tokens, now)
            retry_after = (1.0 - tokens) / bucket.refill_per_second

        logger.info("Rate limited name=%s key=%s retry_after=%.1fs", name, key, retry_after)
        return False, retry_after
