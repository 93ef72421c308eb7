"""In-memory TTL cache for whole-period fetch results."""

import time
from collections.abc import Callable

import structlog

from healthspan.domain.models import AggregatedMetric, ReportingPeriod

logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 3600.0  # 1 hour


class MetricCache:
    """
    Explicit, injectable cache keyed by reporting period.

    Owned by whoever composes the orchestrator. Entries are tuples of
    frozen models, so callers cannot alter a cached result.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[ReportingPeriod, tuple[float, tuple[AggregatedMetric, ...]]] = {}
        self.logger = logger.bind(component="metric_cache")

    def get(self, period: ReportingPeriod) -> list[AggregatedMetric] | None:
        """Return cached metrics if fresh, else None."""
        entry = self._entries.get(period)
        if entry is None:
            return None
        stored_at, metrics = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[period]
            self.logger.debug("cache_entry_expired", period=period.value)
            return None
        return list(metrics)

    def put(self, period: ReportingPeriod, metrics: list[AggregatedMetric]) -> None:
        self._entries[period] = (self._clock(), tuple(metrics))

    def invalidate(self, period: ReportingPeriod | None = None) -> None:
        """Drop one period, or everything when no period is given."""
        if period is None:
            self._entries.clear()
        else:
            self._entries.pop(period, None)
        self.logger.info("cache_invalidated", period=period.value if period else "all")

    def __len__(self) -> int:
        return len(self._entries)
