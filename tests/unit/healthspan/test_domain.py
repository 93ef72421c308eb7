"""
Tests for domain models, the Result type and the metric catalog.

Testing philosophy:
- Property-based testing for range checks
- Frozen models stay frozen
- Unknown metric types are loud programmer errors
"""

from datetime import UTC, date, datetime, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from healthspan.domain.catalog import MetricCatalog, MetricSpec
from healthspan.domain.errors import (
    NoDataError,
    ProgrammerError,
    SourceUnavailableError,
    UnknownMetricTypeError,
)
from healthspan.domain.models import (
    AggregatedMetric,
    AggregationMethod,
    IntervalSample,
    MetricType,
    Observation,
    ObservationSource,
    SleepStage,
    SourceCapability,
    UserProfile,
)
from healthspan.domain.result import Result


class TestResult:
    """Test the Result type for explicit error handling."""

    def test_result_ok_creates_successful_result(self) -> None:
        result: Result[str, Exception] = Result.ok("success")
        assert result.is_ok()
        assert not result.is_err()
        assert result.unwrap() == "success"

    def test_result_error_creates_failed_result(self) -> None:
        error = NoDataError(MetricType.STEPS, "empty")
        result: Result[str, NoDataError] = Result.err(error)
        assert result.is_err()
        assert result.unwrap_or("default") == "default"
        assert result.unwrap_err() is error

    def test_unwrap_raises_on_error_result(self) -> None:
        result: Result[str, SourceUnavailableError] = Result.err(
            SourceUnavailableError(MetricType.VO2_MAX, "not authorized")
        )

        with pytest.raises(SourceUnavailableError, match="vo2_max: source_unavailable"):
            result.unwrap()

    def test_result_rejects_both_or_neither(self) -> None:
        with pytest.raises(ValueError):
            Result(value=1, error=ValueError("x"))
        with pytest.raises(ValueError):
            Result()


class TestObservation:
    """Observations are immutable single readings."""

    @given(value=st.floats(min_value=0.0, max_value=100_000.0))
    def test_observation_keeps_value_and_defaults_timestamp(self, value: float) -> None:
        observation = Observation(
            metric_type=MetricType.STEPS, value=value, source=ObservationSource.DEVICE
        )

        assert observation.value == value
        assert observation.timestamp.tzinfo == UTC

    def test_observation_is_frozen(self) -> None:
        observation = Observation(
            metric_type=MetricType.STEPS, value=10.0, source=ObservationSource.DEVICE
        )

        with pytest.raises(ValidationError, match="frozen"):
            observation.value = 20.0  # type: ignore

    def test_aggregated_metric_is_frozen(self) -> None:
        metric = AggregatedMetric(
            metric_type=MetricType.STEPS,
            value=8000.0,
            window_end=datetime.now(UTC),
            source=ObservationSource.DEVICE,
        )

        with pytest.raises(ValidationError, match="frozen"):
            metric.impact = None  # type: ignore

    def test_interval_cannot_end_before_start(self) -> None:
        start = datetime(2025, 6, 15, 2, 0, tzinfo=UTC)
        with pytest.raises(ValidationError, match="must not precede"):
            IntervalSample(start=start, end=start - timedelta(minutes=1), stage=SleepStage.AWAKE)

    @pytest.mark.parametrize(
        "stage,asleep",
        [
            (SleepStage.IN_BED, False),
            (SleepStage.AWAKE, False),
            (SleepStage.ASLEEP_UNSPECIFIED, True),
            (SleepStage.ASLEEP_CORE, True),
            (SleepStage.ASLEEP_DEEP, True),
            (SleepStage.ASLEEP_REM, True),
        ],
    )
    def test_sleep_stage_asleep_classification(self, stage: SleepStage, asleep: bool) -> None:
        assert stage.is_asleep is asleep


class TestUserProfile:
    def test_age_from_birth_year(self) -> None:
        assert UserProfile(birth_year=1985).age(date(2025, 1, 1)) == 40

    def test_age_unknown_without_birth_year(self) -> None:
        assert UserProfile().age() is None


class TestMetricCatalog:
    """The catalog is the single source of aggregation rules."""

    @pytest.fixture
    def catalog(self) -> MetricCatalog:
        return MetricCatalog()

    def test_every_metric_type_is_registered(self, catalog: MetricCatalog) -> None:
        assert set(catalog) == set(MetricType)

    @pytest.mark.parametrize(
        "metric_type,method",
        [
            (MetricType.STEPS, AggregationMethod.CUMULATIVE),
            (MetricType.ACTIVE_ENERGY_BURNED, AggregationMethod.CUMULATIVE),
            (MetricType.EXERCISE_MINUTES, AggregationMethod.CUMULATIVE),
            (MetricType.RESTING_HEART_RATE, AggregationMethod.AVERAGE),
            (MetricType.HEART_RATE_VARIABILITY, AggregationMethod.AVERAGE),
            (MetricType.BODY_MASS, AggregationMethod.AVERAGE),
            (MetricType.VO2_MAX, AggregationMethod.AVERAGE),
            (MetricType.OXYGEN_SATURATION, AggregationMethod.AVERAGE),
            (MetricType.SLEEP_HOURS, AggregationMethod.SPECIAL_WINDOWED),
        ],
    )
    def test_method_for(
        self, catalog: MetricCatalog, metric_type: MetricType, method: AggregationMethod
    ) -> None:
        assert catalog.method_for(metric_type) is method

    def test_unknown_type_is_a_programmer_error(self, catalog: MetricCatalog) -> None:
        with pytest.raises(UnknownMetricTypeError):
            catalog.method_for("blood_glucose")  # type: ignore[arg-type]

        with pytest.raises(ProgrammerError):
            catalog.is_valid("blood_glucose", 5.0)  # type: ignore[arg-type]

    def test_sleep_and_physiology_are_device_capable(self, catalog: MetricCatalog) -> None:
        device = set(catalog.device_types())
        assert MetricType.SLEEP_HOURS in device
        assert MetricType.RESTING_HEART_RATE in device
        assert MetricType.STRESS_LEVEL not in device

    def test_manual_only_and_overlapping_types(self, catalog: MetricCatalog) -> None:
        assert catalog.overlapping_types() == [MetricType.BLOOD_PRESSURE]
        assert set(catalog.manual_only_types()) == {
            MetricType.NUTRITION_QUALITY,
            MetricType.SMOKING_STATUS,
            MetricType.ALCOHOL_CONSUMPTION,
            MetricType.SOCIAL_CONNECTIONS_QUALITY,
            MetricType.STRESS_LEVEL,
        }
        assert MetricType.BLOOD_PRESSURE in catalog.manual_types()

    @given(value=st.floats(allow_nan=True, allow_infinity=True))
    def test_is_valid_matches_declared_range(self, value: float) -> None:
        catalog = MetricCatalog()
        spec = catalog.spec_for(MetricType.OXYGEN_SATURATION)

        expected = spec.min_value <= value <= spec.max_value
        assert catalog.is_valid(MetricType.OXYGEN_SATURATION, value) is expected

    def test_range_bounds_are_inclusive(self, catalog: MetricCatalog) -> None:
        assert catalog.is_valid(MetricType.OXYGEN_SATURATION, 100.0)
        assert catalog.is_valid(MetricType.STEPS, 0.0)
        assert not catalog.is_valid(MetricType.STEPS, -1.0)

    def test_ordered_follows_catalog_order(self, catalog: MetricCatalog) -> None:
        shuffled = [MetricType.STRESS_LEVEL, MetricType.STEPS, MetricType.SLEEP_HOURS]
        assert catalog.ordered(shuffled) == [
            MetricType.STEPS,
            MetricType.SLEEP_HOURS,
            MetricType.STRESS_LEVEL,
        ]

    def test_spec_rejects_inverted_range(self) -> None:
        with pytest.raises(ValidationError):
            MetricSpec(
                display_name="Broken",
                aggregation_method=AggregationMethod.AVERAGE,
                unit="x",
                min_value=10,
                max_value=1,
                capabilities=frozenset({SourceCapability.DEVICE}),
                baseline_value=5,
            )
