"""
Outbound Rate Limiter

Per-logical-endpoint sliding-window request counter. Each logical endpoint
(markets, orderbook, trades) has its own budget of `limit_per_minute` calls
within any trailing 60-second window.

check_and_record() runs strictly before network I/O: when the budget is spent
it raises RateLimitExceeded and nothing is sent.

Example:
    >>> limiter = RateLimiter(limit_per_minute=2)
    >>> limiter.check_and_record("markets")
    >>> limiter.check_and_record("markets")
    >>> limiter.check_and_record("markets")
    Traceback (most recent call last):
    ...
    core.exceptions.RateLimitExceeded: Rate limit exceeded for markets. Max 2 requests per minute.
"""

import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from core.exceptions import RateLimitExceeded
from core.logging import get_logger


class RateLimiter:
    """
    Sliding-window limiter keyed by endpoint label.

    Attributes:
        limit_per_minute: Allowed calls per endpoint in any trailing window
        window_seconds: Window length (60s)
    """

    def __init__(
        self,
        limit_per_minute: int = 60,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit_per_minute < 1:
            raise ValueError(f"limit_per_minute must be at least 1, got {limit_per_minute}")
        self.limit_per_minute = limit_per_minute
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self.logger = get_logger(__name__)

    def _prune(self, timestamps: Deque[float], now: float) -> None:
        window_start = now - self.window_seconds
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

    def check_and_record(self, endpoint: str) -> None:
        """
        Admit one call for endpoint, or raise if its budget is spent.

        Raises:
            RateLimitExceeded: If the trailing window already holds
                limit_per_minute calls for this endpoint
        """
        with self._lock:
            now = self._clock()
            timestamps = self._requests.setdefault(endpoint, deque())
            self._prune(timestamps, now)

            if len(timestamps) >= self.limit_per_minute:
                self.logger.warning(
                    f"Rate limit reached for '{endpoint}' "
                    f"({len(timestamps)}/{self.limit_per_minute} in {self.window_seconds:g}s)"
                )
                raise RateLimitExceeded(endpoint, self.limit_per_minute)

            timestamps.append(now)

    def remaining(self, endpoint: str) -> int:
        """Calls still available for endpoint in the current window."""
        with self._lock:
            timestamps = self._requests.get(endpoint)
            if not timestamps:
                return self.limit_per_minute
            self._prune(timestamps, self._clock())
            return max(0, self.limit_per_minute - len(timestamps))

    def reset(self, endpoint: Optional[str] = None) -> None:
        """Forget recorded calls for one endpoint, or for all of them."""
        with self._lock:
            if endpoint is None:
                self._requests.clear()
            else:
                self._requests.pop(endpoint, None)
