"""
Upstream Call Metrics

Bounded, append-only history of upstream call outcomes with on-demand
aggregation. Nothing is maintained incrementally: every summary is computed
from the retained history when it is requested.

Usage:
    recorder = CallMetricsRecorder(max_entries=10_000)
    recorder.record(outcome)
    recorder.get_summary()              # last 5 minutes
    recorder.get_recent_failures(10)    # newest first
    recorder.get_call_rate("trades")    # calls in the last minute
"""

import threading
from collections import deque
from datetime import datetime, timedelta
from typing import Callable, Deque, Dict, List

from core.schemas import CallMetricsSummary, CallOutcome, EndpointStats
from core.utils.time import current_utc_datetime


class CallMetricsRecorder:
    """
    Capped history of CallOutcome records.

    Attributes:
        max_entries: Retained outcomes; the oldest are dropped first past this cap
    """

    DEFAULT_SUMMARY_WINDOW = 5 * 60.0
    DEFAULT_RATE_WINDOW = 60.0

    def __init__(
        self,
        max_entries: int = 10_000,
        now: Callable[[], datetime] = current_utc_datetime,
    ):
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.max_entries = max_entries
        self._now = now
        self._outcomes: Deque[CallOutcome] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def record(self, outcome: CallOutcome) -> None:
        with self._lock:
            self._outcomes.append(outcome)

    def _snapshot(self) -> List[CallOutcome]:
        with self._lock:
            return list(self._outcomes)

    def _since(self, window_seconds: float) -> List[CallOutcome]:
        cutoff = self._now() - timedelta(seconds=window_seconds)
        return [o for o in self._snapshot() if o.timestamp >= cutoff]

    def get_summary(self, window_seconds: float = DEFAULT_SUMMARY_WINDOW) -> CallMetricsSummary:
        """
        Aggregate outcomes recorded within the trailing window.

        Endpoint stats are keyed as "METHOD endpoint", e.g. "GET trades".

        Returns:
            CallMetricsSummary with totals, success rate and average latency
        """
        recent = self._since(window_seconds)

        total = len(recent)
        successes = sum(1 for o in recent if o.success)
        total_time = sum(o.response_time_ms for o in recent)

        grouped: Dict[str, List[CallOutcome]] = {}
        for outcome in recent:
            grouped.setdefault(f"{outcome.method} {outcome.endpoint}", []).append(outcome)

        endpoint_stats = {}
        for key, outcomes in grouped.items():
            ok = sum(1 for o in outcomes if o.success)
            endpoint_stats[key] = EndpointStats(
                calls=len(outcomes),
                successes=ok,
                failures=len(outcomes) - ok,
                avg_response_time_ms=sum(o.response_time_ms for o in outcomes) / len(outcomes),
            )

        return CallMetricsSummary(
            window_seconds=window_seconds,
            total_calls=total,
            success_count=successes,
            failure_count=total - successes,
            success_rate=successes / total if total else 0.0,
            average_response_time_ms=total_time / total if total else 0.0,
            endpoint_stats=endpoint_stats,
        )

    def get_recent_failures(self, limit: int = 10) -> List[CallOutcome]:
        """The `limit` most recent failed outcomes, newest first."""
        if limit <= 0:
            return []
        failures = [o for o in self._snapshot() if not o.success]
        return list(reversed(failures[-limit:]))

    def get_call_rate(self, endpoint: str, window_seconds: float = DEFAULT_RATE_WINDOW) -> int:
        """Number of calls to endpoint within the trailing window."""
        return sum(1 for o in self._since(window_seconds) if o.endpoint == endpoint)

    def clear(self) -> None:
        with self._lock:
            self._outcomes.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._outcomes)
