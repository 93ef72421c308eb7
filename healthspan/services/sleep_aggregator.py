"""
Sleep duration per night and averaged over rolling windows.

Sleep cannot use the source's windowed statistics: a night is a set of
staged intervals, and only the asleep stages count toward duration.
"""

from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from healthspan.domain.errors import (
    ImplausibleValueError,
    MetricUnavailableError,
    NoDataError,
    SourceUnavailableError,
)
from healthspan.domain.models import (
    IntervalSample,
    MetricType,
    Observation,
    ObservationSource,
    ReportingPeriod,
)
from healthspan.domain.result import Result
from healthspan.services.sources import HealthSource
from healthspan.services.windows import night_bounds, rolling_window

logger = structlog.get_logger(__name__)

MIN_PLAUSIBLE_AVERAGE_HOURS = 0.5
MAX_PLAUSIBLE_AVERAGE_HOURS = 16.0

SleepResult = Result[Observation, MetricUnavailableError]


def asleep_hours(samples: list[IntervalSample]) -> float:
    """Total asleep time in hours; in-bed and awake intervals are ignored."""
    seconds = sum(s.duration_seconds for s in samples if s.stage.is_asleep)
    return seconds / 3600.0


class SleepAggregator:
    """Computes nightly sleep and multi-night averages from raw intervals."""

    def __init__(
        self,
        source: HealthSource,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.source = source
        self.clock = clock or (lambda: datetime.now(UTC))
        self.logger = logger.bind(component="sleep_aggregator")

    async def nightly_sleep(self, day: datetime) -> SleepResult:
        """Sleep recorded during the calendar day containing `day`.

        A night with no asleep intervals is NoData, never a zero reading.
        """
        start, end = night_bounds(day)
        samples = await self.source.ranged_samples(MetricType.SLEEP_HOURS, start, end)
        hours = asleep_hours(samples)

        if hours <= 0:
            return Result.err(NoDataError(MetricType.SLEEP_HOURS, f"night of {start.date()}"))

        return Result.ok(
            Observation(
                metric_type=MetricType.SLEEP_HOURS,
                value=hours,
                timestamp=min(end, self.clock()),
                source=ObservationSource.DEVICE,
            )
        )

    async def average_sleep(
        self, period: ReportingPeriod, end_date: datetime | None = None
    ) -> SleepResult:
        """Average over the nights of the window that have data."""
        end_date = end_date or self.clock()

        if period is ReportingPeriod.DAY:
            try:
                return await self.nightly_sleep(end_date)
            except SourceUnavailableError as e:
                return Result.err(e)

        window = rolling_window(period, end_date)
        nightly_hours: list[float] = []
        unavailable: SourceUnavailableError | None = None
        failed_nights = 0

        # One query per night, in date order.
        for night in window.day_starts():
            try:
                result = await self.nightly_sleep(night)
            except Exception as e:
                if isinstance(e, SourceUnavailableError):
                    unavailable = e
                failed_nights += 1
                self.logger.warning(
                    "sleep_night_failed", night=night.date().isoformat(), error=str(e)
                )
                continue

            if result.is_ok():
                nightly_hours.append(result.unwrap().value)

        # Every night failed: the source itself is down.
        if unavailable is not None and failed_nights == window.days:
            return Result.err(unavailable)

        if not nightly_hours:
            return Result.err(NoDataError(MetricType.SLEEP_HOURS, f"no nights in {period.value}"))

        average = sum(nightly_hours) / len(nightly_hours)
        self.logger.debug(
            "sleep_average_computed",
            period=period.value,
            nights_with_data=len(nightly_hours),
            window_days=window.days,
            average_hours=round(average, 3),
        )

        if not MIN_PLAUSIBLE_AVERAGE_HOURS <= average <= MAX_PLAUSIBLE_AVERAGE_HOURS:
            return Result.err(
                ImplausibleValueError(MetricType.SLEEP_HOURS, f"average {average:.2f}h")
            )

        return Result.ok(
            Observation(
                metric_type=MetricType.SLEEP_HOURS,
                value=average,
                timestamp=end_date,
                source=ObservationSource.DEVICE,
            )
        )
