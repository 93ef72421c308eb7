"""
Protocols for the collaborators the aggregation core depends on.

Implementations live outside the core (see healthspan.adapters); the core
only ever talks to these structural interfaces. Every method is a
suspension point and may be called concurrently from several tasks.
"""

from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable

from healthspan.domain.models import (
    IntervalSample,
    MetricType,
    Observation,
    StatisticOption,
    UserProfile,
    WindowStatistic,
)


@runtime_checkable
class HealthSource(Protocol):
    """
    Device/sensor data source.

    Raises SourceUnavailableError when a capability is disabled or not
    permitted. Must tolerate concurrent calls.
    """

    source_name: str

    async def latest(self, metric_type: MetricType) -> Observation | None:
        """Most recent reading within the source's lookback, or None."""
        ...

    async def ranged_samples(
        self, metric_type: MetricType, start: datetime, end: datetime
    ) -> list[IntervalSample]:
        """Raw interval samples overlapping [start, end)."""
        ...

    async def windowed_statistic(
        self,
        metric_type: MetricType,
        option: StatisticOption,
        anchor: datetime,
        interval: timedelta,
        start: datetime,
        end: datetime,
    ) -> list[WindowStatistic]:
        """Buckets of length `interval`, aligned to `anchor`, covering [start, end)."""
        ...


@runtime_checkable
class ManualMetricStore(Protocol):
    """User-entered questionnaire values."""

    async def current(self) -> list[Observation]: ...


@runtime_checkable
class UserProfileProvider(Protocol):
    async def current(self) -> UserProfile: ...
