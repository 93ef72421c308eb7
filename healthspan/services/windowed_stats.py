"""
Period aggregation for device metrics other than sleep.

Two rules, selected by the catalog's aggregation method:

- cumulative (steps, energy, exercise): days without data count as zero,
  and the total is divided by every calendar day in the window.
- average (heart rate, HRV, mass, VO2 max, SpO2): only days that produced
  a daily average take part; empty days carry no signal.

The asymmetry is deliberate and must not be "fixed".
"""

from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta

import structlog

from healthspan.domain.catalog import MetricCatalog
from healthspan.domain.errors import (
    MetricUnavailableError,
    NoDataError,
    ProgrammerError,
    SourceUnavailableError,
)
from healthspan.domain.models import (
    AggregationMethod,
    MetricType,
    Observation,
    ObservationSource,
    ReportingPeriod,
    StatisticOption,
    WindowStatistic,
)
from healthspan.domain.result import Result
from healthspan.services.sources import HealthSource
from healthspan.services.windows import ONE_DAY, RollingWindow, rolling_window, start_of_day

logger = structlog.get_logger(__name__)

StatsResult = Result[Observation, MetricUnavailableError]


def cumulative_daily_average(daily_values: Sequence[float | None]) -> float:
    """Mean over every day, counting missing days as zero."""
    if not daily_values:
        raise ValueError("window has no days")
    return sum(v or 0.0 for v in daily_values) / len(daily_values)


def discrete_daily_average(daily_values: Sequence[float | None]) -> float | None:
    """Mean over the days that reported a value, or None when none did."""
    present = [v for v in daily_values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def align_to_window(
    buckets: Sequence[WindowStatistic], window: RollingWindow
) -> list[float | None]:
    """One entry per calendar day of the window; buckets outside it are ignored."""
    tz = window.start.tzinfo
    by_day = {start_of_day(b.day_start.astimezone(tz)).date(): b.value for b in buckets}
    return [by_day.get(day.date()) for day in window.day_starts()]


class WindowedStatsAggregator:
    """Aggregates cumulative and discrete-average device metrics over rolling windows."""

    def __init__(
        self,
        source: HealthSource,
        catalog: MetricCatalog | None = None,
        clock: Callable[[], datetime] | None = None,
        latest_lookback: timedelta = timedelta(days=7),
    ) -> None:
        self.source = source
        self.catalog = catalog or MetricCatalog()
        self.clock = clock or (lambda: datetime.now(UTC))
        self.latest_lookback = latest_lookback
        self.logger = logger.bind(component="windowed_stats")

    async def aggregate(self, metric_type: MetricType, period: ReportingPeriod) -> StatsResult:
        """Aggregate one metric for one period, dispatching on its aggregation method."""
        method = self.catalog.method_for(metric_type)
        now = self.clock()

        try:
            match method:
                case AggregationMethod.CUMULATIVE:
                    return await self._cumulative(metric_type, period, now)
                case AggregationMethod.AVERAGE:
                    return await self._discrete_average(metric_type, period, now)
                case AggregationMethod.SPECIAL_WINDOWED:
                    raise ProgrammerError(
                        f"{metric_type.value} needs a specialised aggregator, "
                        "not windowed statistics"
                    )
        except SourceUnavailableError as e:
            return Result.err(e)
        except ProgrammerError:
            raise
        except Exception as e:
            self.logger.exception(
                "windowed_statistic_failed", metric=metric_type.value, error=str(e)
            )
            return Result.err(SourceUnavailableError(metric_type, str(e)))

        raise ProgrammerError(f"Unhandled aggregation method: {method}")

    async def _cumulative(
        self, metric_type: MetricType, period: ReportingPeriod, now: datetime
    ) -> StatsResult:
        if period is ReportingPeriod.DAY:
            today = start_of_day(now)
            buckets = await self.source.windowed_statistic(
                metric_type, StatisticOption.SUM, today, ONE_DAY, today, now
            )
            total = next((b.value for b in buckets if b.value is not None), None)
            if total is None:
                return Result.err(NoDataError(metric_type, "nothing recorded today"))
            return Result.ok(self._observation(metric_type, total, now))

        window = rolling_window(period, now)
        buckets = await self.source.windowed_statistic(
            metric_type, StatisticOption.SUM, window.anchor, ONE_DAY, window.start, window.end
        )
        if not buckets:
            return Result.err(NoDataError(metric_type, f"empty {period.value} statistics"))

        daily = align_to_window(buckets, window)
        value = cumulative_daily_average(daily)
        self.logger.debug(
            "cumulative_average_computed",
            metric=metric_type.value,
            period=period.value,
            days_with_data=sum(1 for v in daily if v is not None),
            window_days=window.days,
            value=round(value, 3),
        )
        return Result.ok(self._observation(metric_type, value, now))

    async def _discrete_average(
        self, metric_type: MetricType, period: ReportingPeriod, now: datetime
    ) -> StatsResult:
        if period is ReportingPeriod.DAY:
            latest = await self.source.latest(metric_type)
            if latest is None:
                return Result.err(NoDataError(metric_type, "no recent reading"))
            if latest.timestamp < now - self.latest_lookback:
                return Result.err(
                    NoDataError(metric_type, f"latest reading older than {self.latest_lookback}")
                )
            return Result.ok(latest)

        window = rolling_window(period, now)
        buckets = await self.source.windowed_statistic(
            metric_type,
            StatisticOption.AVERAGE,
            window.anchor,
            ONE_DAY,
            window.start,
            window.end,
        )
        value = discrete_daily_average(align_to_window(buckets, window))
        if value is None:
            return Result.err(NoDataError(metric_type, f"no daily averages in {period.value}"))
        return Result.ok(self._observation(metric_type, value, now))

    @staticmethod
    def _observation(metric_type: MetricType, value: float, now: datetime) -> Observation:
        return Observation(
            metric_type=metric_type,
            value=value,
            timestamp=now,
            source=ObservationSource.DEVICE,
        )
