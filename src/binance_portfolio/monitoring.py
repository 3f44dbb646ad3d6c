"""
Fetch monitoring and statistics for the portfolio aggregator.

Tracks per-source outcomes so operators can see why a product line went
missing from a portfolio, not just that it did.
"""

import time
from dataclasses import dataclass
from typing import Dict, List, Optional
from collections import defaultdict, deque


@dataclass(frozen=True)
class FetchMetrics:
    """Metrics for a single source fetch."""
    source: str
    success: bool
    duration_ms: float
    timestamp: float
    error: Optional[str] = None


@dataclass
class Statistics:
    """Aggregate fetch statistics."""
    total_fetches: int = 0
    successful_fetches: int = 0
    failed_fetches: int = 0
    total_cycles: int = 0
    failed_cycles: int = 0
    total_duration_ms: float = 0.0
    avg_duration_ms: float = 0.0
    min_duration_ms: float = float("inf")
    max_duration_ms: float = 0.0

    def update(self, metrics: FetchMetrics) -> None:
        """Update statistics with new fetch metrics."""
        self.total_fetches += 1
        self.total_duration_ms += metrics.duration_ms
        self.avg_duration_ms = self.total_duration_ms / self.total_fetches
        self.min_duration_ms = min(self.min_duration_ms, metrics.duration_ms)
        self.max_duration_ms = max(self.max_duration_ms, metrics.duration_ms)

        if metrics.success:
            self.successful_fetches += 1
        else:
            self.failed_fetches += 1


class FetchMonitor:
    """Records fetch outcomes per source."""

    def __init__(self, max_history: int = 1000):
        """Initialize fetch monitor."""
        self._max_history = max_history
        self._statistics = Statistics()
        self._history: deque[FetchMetrics] = deque(maxlen=max_history)
        self._source_stats: Dict[str, deque[FetchMetrics]] = defaultdict(
            lambda: deque(maxlen=self._max_history)
        )

    def record_fetch(
        self,
        source: str,
        success: bool,
        duration_ms: float,
        error: Optional[str] = None,
    ) -> None:
        """Record metrics for a completed fetch."""
        metrics = FetchMetrics(
            source=source,
            success=success,
            duration_ms=duration_ms,
            timestamp=time.time(),
            error=error,
        )

        self._statistics.update(metrics)
        self._history.append(metrics)

        # Sub-account sources are keyed by kind, not by identifier
        self._source_stats[source.split(":", 1)[0]].append(metrics)

    def record_cycle(self, success: bool) -> None:
        """Record the outcome of a whole aggregation cycle."""
        self._statistics.total_cycles += 1
        if not success:
            self._statistics.failed_cycles += 1

    @property
    def statistics(self) -> Statistics:
        """Get current statistics snapshot."""
        return self._statistics

    def get_source_stats(self, source: str) -> Dict[str, float]:
        """Get statistics for a specific source kind (e.g. ``futures``, ``sub_spot``)."""
        fetches = self._source_stats.get(source)

        if not fetches:
            return {
                "count": 0,
                "avg_duration_ms": 0.0,
                "min_duration_ms": 0.0,
                "max_duration_ms": 0.0,
                "success_rate": 0.0,
            }

        durations = [m.duration_ms for m in fetches]
        successful = sum(1 for m in fetches if m.success)

        return {
            "count": len(fetches),
            "avg_duration_ms": sum(durations) / len(durations),
            "min_duration_ms": min(durations),
            "max_duration_ms": max(durations),
            "success_rate": successful / len(fetches),
        }

    def get_recent_failures(self, count: int = 10) -> List[FetchMetrics]:
        """Get the most recent failed fetches."""
        return [m for m in self._history if not m.success][-count:]

    def get_error_rate(self, window_seconds: float = 60.0) -> float:
        """Get fetch error rate for the recent time window."""
        cutoff_time = time.time() - window_seconds
        recent = [m for m in self._history if m.timestamp >= cutoff_time]

        if not recent:
            return 0.0

        failed_count = sum(1 for m in recent if not m.success)
        return failed_count / len(recent)

    def reset(self) -> None:
        """Reset all statistics and history."""
        self._statistics = Statistics()
        self._history.clear()
        self._source_stats.clear()
