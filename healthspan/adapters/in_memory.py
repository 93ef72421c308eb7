"""
In-memory collaborators for the aggregation core.

Used by the test suite and the system check, and as the storage behind
the Apple Health export reader. Latency and failures can be injected to
exercise timeouts and graceful degradation.
"""

import asyncio
from collections import defaultdict
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta

import structlog

from healthspan.domain.errors import SourceUnavailableError
from healthspan.domain.models import (
    IntervalSample,
    MetricType,
    Observation,
    ObservationSource,
    SleepStage,
    StatisticOption,
    UserProfile,
    WindowStatistic,
)

logger = structlog.get_logger(__name__)


class InMemoryHealthSource:
    """
    HealthSource over samples held in memory.

    Point samples are bucketed by their timestamp; sleep intervals belong
    to the night in which they start. Access is serialized with a lock so
    concurrent tasks see a consistent view.
    """

    def __init__(
        self,
        source_name: str = "in-memory",
        *,
        latency_seconds: float = 0.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.source_name = source_name
        self.latency_seconds = latency_seconds
        self.clock = clock or (lambda: datetime.now(UTC))
        self.call_count = 0
        self.logger = logger.bind(source=source_name)

        self._samples: dict[MetricType, list[Observation]] = defaultdict(list)
        self._sleep: list[IntervalSample] = []
        self._delays: dict[MetricType, float] = {}
        self._failures: dict[MetricType, Exception] = {}
        self._lock = asyncio.Lock()

    # Loading

    def add_sample(self, metric_type: MetricType, value: float, timestamp: datetime) -> None:
        self._samples[metric_type].append(
            Observation(
                metric_type=metric_type,
                value=value,
                timestamp=timestamp,
                source=ObservationSource.DEVICE,
            )
        )

    def add_daily_values(
        self, metric_type: MetricType, first_day: datetime, values: Iterable[float | None]
    ) -> None:
        """One sample at noon of each consecutive day; None leaves the day empty."""
        for offset, value in enumerate(values):
            if value is not None:
                day = first_day + timedelta(days=offset)
                self.add_sample(metric_type, value, day.replace(hour=12, minute=0, second=0))

    def add_sleep(self, start: datetime, end: datetime, stage: SleepStage) -> None:
        self._sleep.append(IntervalSample(start=start, end=end, stage=stage))

    def slow_down(self, metric_type: MetricType, seconds: float) -> None:
        self._delays[metric_type] = seconds

    def fail(self, metric_type: MetricType, error: Exception | None = None) -> None:
        """Make every call for `metric_type` raise; defaults to a disabled capability."""
        self._failures[metric_type] = error or SourceUnavailableError(
            metric_type, "capability not authorized"
        )

    def restore(self, metric_type: MetricType) -> None:
        self._failures.pop(metric_type, None)
        self._delays.pop(metric_type, None)

    # HealthSource protocol

    async def latest(self, metric_type: MetricType) -> Observation | None:
        await self._enter(metric_type)
        async with self._lock:
            now = self.clock()
            candidates = [s for s in self._samples.get(metric_type, []) if s.timestamp <= now]
        return max(candidates, key=lambda s: s.timestamp, default=None)

    async def ranged_samples(
        self, metric_type: MetricType, start: datetime, end: datetime
    ) -> list[IntervalSample]:
        await self._enter(metric_type)
        if metric_type is not MetricType.SLEEP_HOURS:
            return []
        async with self._lock:
            return sorted(
                (s for s in self._sleep if start <= s.start < end), key=lambda s: s.start
            )

    async def windowed_statistic(
        self,
        metric_type: MetricType,
        option: StatisticOption,
        anchor: datetime,
        interval: timedelta,
        start: datetime,
        end: datetime,
    ) -> list[WindowStatistic]:
        await self._enter(metric_type)
        if interval <= timedelta(0):
            raise ValueError("interval must be positive")

        async with self._lock:
            samples = [s for s in self._samples.get(metric_type, []) if start <= s.timestamp < end]

        if not samples:
            return []

        buckets: list[WindowStatistic] = []
        bucket_start = anchor
        while bucket_start < end:
            bucket_end = bucket_start + interval
            values = [s.value for s in samples if bucket_start <= s.timestamp < bucket_end]
            buckets.append(
                WindowStatistic(day_start=bucket_start, value=_reduce(values, option))
            )
            bucket_start = bucket_end
        return buckets

    async def _enter(self, metric_type: MetricType) -> None:
        self.call_count += 1
        delay = self._delays.get(metric_type, self.latency_seconds)
        if delay > 0:
            await asyncio.sleep(delay)
        error = self._failures.get(metric_type)
        if error is not None:
            self.logger.debug("injected_failure", metric=metric_type.value, error=str(error))
            raise error


def _reduce(values: list[float], option: StatisticOption) -> float | None:
    if not values:
        return None
    if option is StatisticOption.SUM:
        return sum(values)
    return sum(values) / len(values)


class InMemoryManualMetricStore:
    """ManualMetricStore holding questionnaire values in memory."""

    def __init__(self, observations: Iterable[Observation] = ()) -> None:
        self._observations: list[Observation] = list(observations)
        self._failure: Exception | None = None

    def record(
        self, metric_type: MetricType, value: float, timestamp: datetime | None = None
    ) -> Observation:
        observation = Observation(
            metric_type=metric_type,
            value=value,
            timestamp=timestamp or datetime.now(UTC),
            source=ObservationSource.MANUAL,
        )
        self._observations.append(observation)
        return observation

    def fail(self, error: Exception) -> None:
        self._failure = error

    async def current(self) -> list[Observation]:
        if self._failure is not None:
            raise self._failure
        return list(self._observations)


class StaticUserProfileProvider:
    def __init__(self, profile: UserProfile | None = None) -> None:
        self.profile = profile or UserProfile()

    async def current(self) -> UserProfile:
        return self.profile
