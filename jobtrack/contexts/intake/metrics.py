"""
Timing metrics for parse operations.

Each successful parse records how long request preparation, the API call
(including retries and backoff) and response processing took. A short history
is kept per session to compute averages.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Optional

# Keep the last N operations
MAX_METRICS_HISTORY = 10


@dataclass(frozen=True)
class ParsingMetrics:
    """Timings (ms) of one parse operation."""

    request_preparation_ms: float
    api_call_ms: float
    response_processing_ms: float
    total_ms: float
    attempts: int = 1


@dataclass
class ParseTimer:
    """
    Collects timestamps during a parse and converts them to ParsingMetrics.

    Example:
        timer = ParseTimer()
        timer.mark("api_call_start")
        ...
        metrics = timer.finish(attempts=1)
    """

    start: float = field(default_factory=time.perf_counter)
    marks: dict[str, float] = field(default_factory=dict)

    def mark(self, name: str) -> None:
        self.marks[name] = time.perf_counter()

    def _elapsed_ms(self, begin: str, end: str, now: float) -> float:
        begin_t = self.marks.get(begin, self.start)
        end_t = self.marks.get(end, now)
        return max(end_t - begin_t, 0.0) * 1000.0

    def finish(self, attempts: int = 1) -> ParsingMetrics:
        now = time.perf_counter()
        return ParsingMetrics(
            request_preparation_ms=self._elapsed_ms("start", "api_call_start", now),
            api_call_ms=self._elapsed_ms("api_call_start", "api_call_end", now),
            response_processing_ms=self._elapsed_ms("api_call_end", "response_processed", now),
            total_ms=(now - self.start) * 1000.0,
            attempts=attempts,
        )


class MetricsHistory:
    """Bounded, thread-safe history of ParsingMetrics."""

    def __init__(self, max_entries: int = MAX_METRICS_HISTORY):
        self._entries: deque[ParsingMetrics] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, metrics: ParsingMetrics) -> None:
        with self._lock:
            self._entries.append(metrics)

    def entries(self) -> list[ParsingMetrics]:
        with self._lock:
            return list(self._entries)

    def average(self) -> Optional[ParsingMetrics]:
        """Mean of every recorded field, or None if nothing was recorded."""
        entries = self.entries()
        if not entries:
            return None

        count = len(entries)
        return ParsingMetrics(
            request_preparation_ms=sum(m.request_preparation_ms for m in entries) / count,
            api_call_ms=sum(m.api_call_ms for m in entries) / count,
            response_processing_ms=sum(m.response_processing_ms for m in entries) / count,
            total_ms=sum(m.total_ms for m in entries) / count,
            attempts=round(sum(m.attempts for m in entries) / count),
        )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
