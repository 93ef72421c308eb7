from datetime import UTC, datetime

import pytest

from healthspan.domain.models import (
    AggregatedMetric,
    MetricType,
    ObservationSource,
    ReportingPeriod,
)
from healthspan.services.metric_cache import MetricCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def metrics() -> list[AggregatedMetric]:
    return [
        AggregatedMetric(
            metric_type=MetricType.STEPS,
            value=8200,
            window_end=datetime(2025, 6, 15, 18, tzinfo=UTC),
            source=ObservationSource.DEVICE,
            period=ReportingPeriod.MONTH,
        )
    ]


class TestMetricCache:
    def test_fresh_entry_is_returned(
        self, fake_clock: FakeClock, metrics: list[AggregatedMetric]
    ) -> None:
        cache = MetricCache(ttl_seconds=60, clock=fake_clock)
        cache.put(ReportingPeriod.MONTH, metrics)

        fake_clock.now = 59.0

        assert cache.get(ReportingPeriod.MONTH) == metrics
        assert cache.get(ReportingPeriod.DAY) is None

    def test_expired_entry_is_dropped(
        self, fake_clock: FakeClock, metrics: list[AggregatedMetric]
    ) -> None:
        cache = MetricCache(ttl_seconds=60, clock=fake_clock)
        cache.put(ReportingPeriod.MONTH, metrics)

        fake_clock.now = 60.0

        assert cache.get(ReportingPeriod.MONTH) is None
        assert len(cache) == 0

    def test_callers_cannot_alter_cached_lists(
        self, fake_clock: FakeClock, metrics: list[AggregatedMetric]
    ) -> None:
        cache = MetricCache(clock=fake_clock)
        cache.put(ReportingPeriod.YEAR, metrics)

        metrics.clear()
        returned = cache.get(ReportingPeriod.YEAR)
        assert returned is not None
        returned.clear()

        assert len(cache.get(ReportingPeriod.YEAR) or []) == 1

    def test_invalidate_single_period(
        self, fake_clock: FakeClock, metrics: list[AggregatedMetric]
    ) -> None:
        cache = MetricCache(clock=fake_clock)
        cache.put(ReportingPeriod.DAY, metrics)
        cache.put(ReportingPeriod.MONTH, metrics)

        cache.invalidate(ReportingPeriod.DAY)

        assert cache.get(ReportingPeriod.DAY) is None
        assert cache.get(ReportingPeriod.MONTH) is not None

    def test_invalidate_everything(
        self, fake_clock: FakeClock, metrics: list[AggregatedMetric]
    ) -> None:
        cache = MetricCache(clock=fake_clock)
        for period in ReportingPeriod:
            cache.put(period, metrics)

        cache.invalidate()

        assert len(cache) == 0

    @pytest.mark.parametrize("ttl", [0, -5])
    def test_ttl_must_be_positive(self, ttl: float) -> None:
        with pytest.raises(ValueError, match="ttl_seconds"):
            MetricCache(ttl_seconds=ttl)
