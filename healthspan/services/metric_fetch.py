"""
Fan-out/fan-in orchestration of every metric for a reporting period.

Key patterns:
- One task per metric type inside an asyncio.TaskGroup, all issued before any is awaited
- Result values for expected failures, so one missing metric never fails the batch
- Merge and impact decoration run sequentially after the join, without locks
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import datetime, timedelta

import structlog

from healthspan.config import AppConfig, FetchConfig, get_config
from healthspan.domain.catalog import MetricCatalog
from healthspan.domain.errors import (
    ImplausibleValueError,
    MetricUnavailableError,
    NoDataError,
    ProgrammerError,
    SourceUnavailableError,
)
from healthspan.domain.models import (
    AggregatedMetric,
    AggregationMethod,
    MetricBatch,
    MetricType,
    Observation,
    ReportingPeriod,
    UserProfile,
)
from healthspan.domain.result import Result
from healthspan.observability import configure_logging
from healthspan.services.impact_calculator import ImpactCalculator
from healthspan.services.metric_cache import MetricCache
from healthspan.services.sleep_aggregator import SleepAggregator
from healthspan.services.sources import HealthSource, ManualMetricStore, UserProfileProvider
from healthspan.services.windowed_stats import WindowedStatsAggregator

configure_logging(get_config().logging)

logger = structlog.get_logger(__name__)

FetchResult = Result[Observation, MetricUnavailableError]


def merge_observations(
    device: Mapping[MetricType, Observation], manual: Iterable[Observation]
) -> dict[MetricType, Observation]:
    """Combine device and manual values per type.

    A manual value fills a gap, or replaces a device value only when it is
    strictly newer. Equal timestamps keep the device value.
    """
    merged = dict(device)
    for observation in manual:
        existing = merged.get(observation.metric_type)
        if existing is None or observation.timestamp > existing.timestamp:
            merged[observation.metric_type] = observation
    return merged


def _unwrap_programmer_error(group: ExceptionGroup) -> Exception:
    """First ProgrammerError inside a task group failure, or the group itself."""
    errors = group.subgroup(ProgrammerError)
    if errors is None:
        return group
    first = errors.exceptions[0]
    while isinstance(first, ExceptionGroup):
        first = first.exceptions[0]
    return first


class MetricFetchOrchestrator:
    """
    Produces the full list of aggregated metrics for a reporting period.

    Design principles:
    - Graceful degradation (a failed metric is absent, never zero)
    - Cooperative cancellation (a cancelled call returns nothing at all)
    - Observable (structured logging of every unavailable metric)
    """

    def __init__(
        self,
        health_source: HealthSource,
        manual_store: ManualMetricStore,
        profile_provider: UserProfileProvider,
        *,
        catalog: MetricCatalog | None = None,
        impact_calculator: ImpactCalculator | None = None,
        cache: MetricCache | None = None,
        config: FetchConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or get_config().fetch
        self.catalog = catalog or MetricCatalog()
        self.health_source = health_source
        self.manual_store = manual_store
        self.profile_provider = profile_provider
        self.impact_calculator = impact_calculator or ImpactCalculator(self.catalog)
        self.cache = cache

        tz = self.config.tzinfo
        self.clock = clock or (lambda: datetime.now(tz))

        self.sleep_aggregator = SleepAggregator(health_source, clock=self.clock)
        self.windowed_stats = WindowedStatsAggregator(
            health_source,
            catalog=self.catalog,
            clock=self.clock,
            latest_lookback=timedelta(days=self.config.latest_lookback_days),
        )
        self.logger = logger.bind(component="metric_fetch")

    @classmethod
    def from_config(
        cls,
        health_source: HealthSource,
        manual_store: ManualMetricStore,
        profile_provider: UserProfileProvider,
        config: AppConfig | None = None,
        **kwargs,
    ) -> "MetricFetchOrchestrator":
        """Compose an orchestrator whose fetch and cache settings come from `config`."""
        config = config or get_config()
        cache = MetricCache(ttl_seconds=config.cache.ttl_seconds) if config.cache.enabled else None
        return cls(
            health_source,
            manual_store,
            profile_provider,
            cache=cache,
            config=config.fetch,
            **kwargs,
        )

    async def fetch_all_metrics(self, period: ReportingPeriod) -> list[AggregatedMetric]:
        """Every available metric for `period`, served from the cache when fresh."""
        if self.cache is not None:
            cached = self.cache.get(period)
            if cached is not None:
                self.logger.debug("metric_cache_hit", period=period.value, count=len(cached))
                return cached

        batch = await self.fetch_report(period)

        if self.cache is not None:
            self.cache.put(period, batch.metrics)
        return batch.metrics

    async def fetch_report(self, period: ReportingPeriod) -> MetricBatch:
        """Fetch every metric for `period` and report why missing ones are missing."""
        start_time = time.perf_counter()
        profile = await self._load_profile()

        device_types = self.catalog.device_types()
        manual_types = self.catalog.manual_types()

        # Structured concurrency: all tasks are created before any is awaited
        try:
            async with asyncio.TaskGroup() as task_group:
                device_tasks = {
                    metric_type: task_group.create_task(
                        self._run_task(metric_type, self._aggregate_device(metric_type, period)),
                        name=f"device:{metric_type.value}",
                    )
                    for metric_type in device_types
                }
                manual_tasks = {
                    metric_type: task_group.create_task(
                        self._run_task(metric_type, self._read_manual(metric_type)),
                        name=f"manual:{metric_type.value}",
                    )
                    for metric_type in manual_types
                }
        except ExceptionGroup as group:
            raise _unwrap_programmer_error(group) from None

        # Fan-in: every task has finished, nothing else touches these collections
        failures: dict[MetricType, list[str]] = {}
        device = self._successful(device_tasks, failures)
        manual = self._successful(manual_tasks, failures)
        merged = merge_observations(device, manual.values())

        unavailable = {
            metric_type: "; ".join(reasons)
            for metric_type, reasons in failures.items()
            if metric_type not in merged
        }
        metrics = self._finalize(merged, period, profile)

        duration = time.perf_counter() - start_time
        self.logger.info(
            "metric_fetch_completed",
            period=period.value,
            total_metrics=len(metrics),
            unavailable_metrics=len(unavailable),
            duration_seconds=round(duration, 3),
        )
        return MetricBatch(
            period=period,
            metrics=metrics,
            unavailable=unavailable,
            duration_seconds=duration,
        )

    async def fetch_latest(self, metric_type: MetricType) -> AggregatedMetric | None:
        """Most recent single value for one metric type, or None."""
        spec = self.catalog.spec_for(metric_type)
        profile = await self._load_profile()

        device_task: asyncio.Task[FetchResult] | None = None
        manual_task: asyncio.Task[FetchResult] | None = None
        try:
            async with asyncio.TaskGroup() as task_group:
                if spec.is_device_capable:
                    device_task = task_group.create_task(
                        self._run_task(
                            metric_type, self._aggregate_device(metric_type, ReportingPeriod.DAY)
                        ),
                        name=f"device:{metric_type.value}",
                    )
                if spec.is_manual_capable:
                    manual_task = task_group.create_task(
                        self._run_task(metric_type, self._read_manual(metric_type)),
                        name=f"manual:{metric_type.value}",
                    )
        except ExceptionGroup as group:
            raise _unwrap_programmer_error(group) from None

        failures: dict[MetricType, list[str]] = {}
        device = self._successful({metric_type: device_task} if device_task else {}, failures)
        manual = self._successful({metric_type: manual_task} if manual_task else {}, failures)
        merged = merge_observations(device, manual.values())

        if metric_type not in merged:
            self.logger.info(
                "latest_metric_unavailable",
                metric=metric_type.value,
                reason="; ".join(failures.get(metric_type, [])),
            )
            return None

        metrics = self._finalize(merged, None, profile)
        return metrics[0] if metrics else None

    def invalidate_cache(self, period: ReportingPeriod | None = None) -> None:
        if self.cache is not None:
            self.cache.invalidate(period)

    async def _aggregate_device(
        self, metric_type: MetricType, period: ReportingPeriod
    ) -> FetchResult:
        if self.catalog.method_for(metric_type) is AggregationMethod.SPECIAL_WINDOWED:
            return await self.sleep_aggregator.average_sleep(period, self.clock())
        return await self.windowed_stats.aggregate(metric_type, period)

    async def _read_manual(self, metric_type: MetricType) -> FetchResult:
        """Current questionnaire value; never aggregated over time."""
        entries = await self.manual_store.current()
        observations = [o for o in entries if o.metric_type == metric_type]
        if not observations:
            return Result.err(NoDataError(metric_type, "no manual entry"))
        plausible = [o for o in observations if self.catalog.is_valid(metric_type, o.value)]
        if not plausible:
            return Result.err(
                ImplausibleValueError(metric_type, f"{len(observations)} manual entries")
            )
        return Result.ok(max(plausible, key=lambda o: o.timestamp))

    async def _run_task(
        self, metric_type: MetricType, work: Awaitable[FetchResult]
    ) -> FetchResult:
        """Resolve every recoverable failure of one metric to an error Result.

        Cancellation and programmer errors pass through untouched.
        """
        try:
            return await asyncio.wait_for(work, timeout=self.config.metric_timeout_seconds)
        except TimeoutError:
            self.logger.warning(
                "metric_fetch_timeout",
                metric=metric_type.value,
                timeout_seconds=self.config.metric_timeout_seconds,
            )
            return Result.err(
                SourceUnavailableError(
                    metric_type, f"timed out after {self.config.metric_timeout_seconds}s"
                )
            )
        except MetricUnavailableError as e:
            return Result.err(e)
        except ProgrammerError:
            raise
        except Exception as e:
            self.logger.exception(
                "unexpected_metric_fetch_error", metric=metric_type.value, error=str(e)
            )
            return Result.err(SourceUnavailableError(metric_type, str(e)))

    def _successful(
        self,
        tasks: Mapping[MetricType, asyncio.Task[FetchResult]],
        failures: dict[MetricType, list[str]],
    ) -> dict[MetricType, Observation]:
        """Plausible observations per type; everything else is recorded in `failures`."""
        observations: dict[MetricType, Observation] = {}
        for metric_type, task in tasks.items():
            result = task.result()
            if result.is_ok():
                observation = result.unwrap()
                if self.catalog.is_valid(metric_type, observation.value):
                    observations[metric_type] = observation
                    continue
                self.logger.warning(
                    "implausible_metric_dropped",
                    metric=metric_type.value,
                    value=observation.value,
                    source=observation.source.value,
                )
                result = Result.err(
                    ImplausibleValueError(metric_type, f"value {observation.value:g}")
                )
            error = result.unwrap_err()
            failures.setdefault(metric_type, []).append(f"{task.get_name()}: {error.reason}")
            self.logger.info(
                "metric_unavailable",
                metric=metric_type.value,
                task=task.get_name(),
                reason=error.reason,
                detail=error.detail,
            )
        return observations

    def _finalize(
        self,
        merged: Mapping[MetricType, Observation],
        period: ReportingPeriod | None,
        profile: UserProfile | None,
    ) -> list[AggregatedMetric]:
        """Build output metrics with impact attached, in catalog order."""
        today = self.clock().date()
        metrics: list[AggregatedMetric] = []

        for metric_type in self.catalog.ordered(merged):
            observation = merged[metric_type]
            metric = AggregatedMetric(
                metric_type=metric_type,
                value=observation.value,
                window_end=observation.timestamp,
                source=observation.source,
                period=period,
            )
            if profile is not None:
                impact = self.impact_calculator.impact(metric, profile, today)
                metric = metric.model_copy(update={"impact": impact})
            metrics.append(metric)

        return metrics

    async def _load_profile(self) -> UserProfile | None:
        try:
            return await self.profile_provider.current()
        except Exception as e:
            self.logger.warning("user_profile_unavailable", error=str(e))
            return None
