"""
Domain models for health metric aggregation.

These models represent the core concepts of the pipeline and are framework-agnostic.
They use Pydantic for validation; every model that leaves a fetch call is frozen.
"""

from datetime import UTC, date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MetricType(str, Enum):
    """Health metrics the pipeline knows how to aggregate."""

    STEPS = "steps"
    EXERCISE_MINUTES = "exercise_minutes"
    ACTIVE_ENERGY_BURNED = "active_energy_burned"
    SLEEP_HOURS = "sleep_hours"
    RESTING_HEART_RATE = "resting_heart_rate"
    HEART_RATE_VARIABILITY = "heart_rate_variability"
    BODY_MASS = "body_mass"
    VO2_MAX = "vo2_max"
    OXYGEN_SATURATION = "oxygen_saturation"
    BLOOD_PRESSURE = "blood_pressure"
    NUTRITION_QUALITY = "nutrition_quality"
    SMOKING_STATUS = "smoking_status"
    ALCOHOL_CONSUMPTION = "alcohol_consumption"
    SOCIAL_CONNECTIONS_QUALITY = "social_connections_quality"
    STRESS_LEVEL = "stress_level"


class AggregationMethod(str, Enum):
    """Statistical rule used to reduce a time series to one reporting value."""

    CUMULATIVE = "cumulative"
    AVERAGE = "average"
    SPECIAL_WINDOWED = "special_windowed"


class SourceCapability(str, Enum):
    DEVICE = "device"
    MANUAL = "manual"


# Observations carry the capability that produced them.
ObservationSource = SourceCapability


class ReportingPeriod(str, Enum):
    """Trailing rolling windows ending today (not calendar boundaries)."""

    DAY = "day"
    MONTH = "month"
    YEAR = "year"


class StatisticOption(str, Enum):
    """Bucket reduction requested from a HealthSource."""

    SUM = "sum"
    AVERAGE = "average"


class SleepStage(str, Enum):
    IN_BED = "in_bed"
    AWAKE = "awake"
    ASLEEP_UNSPECIFIED = "asleep_unspecified"
    ASLEEP_CORE = "asleep_core"
    ASLEEP_DEEP = "asleep_deep"
    ASLEEP_REM = "asleep_rem"

    @property
    def is_asleep(self) -> bool:
        return self not in (SleepStage.IN_BED, SleepStage.AWAKE)


class BiologicalSex(str, Enum):
    MALE = "male"
    FEMALE = "female"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class BaselineComparison(str, Enum):
    BETTER = "better"
    SAME = "same"
    WORSE = "worse"


class Observation(BaseModel):
    """A single measured value from one source."""

    model_config = ConfigDict(frozen=True)

    metric_type: MetricType
    value: float
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    source: ObservationSource


class IntervalSample(BaseModel):
    """A raw sleep interval as reported by a device source."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    stage: SleepStage

    @model_validator(mode="after")
    def end_not_before_start(self) -> "IntervalSample":
        if self.end < self.start:
            raise ValueError("interval end must not precede its start")
        return self

    @property
    def duration_seconds(self) -> float:
        return (self.end - self.start).total_seconds()


class WindowStatistic(BaseModel):
    """One daily bucket of a windowed statistic; value is None when the day had no data."""

    model_config = ConfigDict(frozen=True)

    day_start: datetime
    value: float | None = None


class UserProfile(BaseModel):
    """Demographic attributes supplied by an external profile provider."""

    model_config = ConfigDict(frozen=True)

    birth_year: int | None = Field(default=None, ge=1900, le=2100)
    sex: BiologicalSex = BiologicalSex.PREFER_NOT_TO_SAY
    height_cm: float | None = Field(default=None, gt=0.0)
    weight_kg: float | None = Field(default=None, gt=0.0)

    def age(self, today: date | None = None) -> int | None:
        if self.birth_year is None:
            return None
        current_year = (today or datetime.now(UTC).date()).year
        return max(0, current_year - self.birth_year)


class ImpactDetail(BaseModel):
    """Daily lifespan impact of one metric value."""

    model_config = ConfigDict(frozen=True)

    metric_type: MetricType
    current_value: float
    baseline_value: float
    lifespan_impact_minutes: float = Field(
        description="Minutes of life gained (+) or lost (-) per day"
    )
    comparison: BaselineComparison
    explanation: str = ""


class AggregatedMetric(BaseModel):
    """The unit of output: one value per metric type per requested period."""

    model_config = ConfigDict(frozen=True)

    metric_type: MetricType
    value: float
    window_end: datetime
    source: ObservationSource
    period: ReportingPeriod | None = None
    impact: ImpactDetail | None = None


class MetricBatch(BaseModel):
    """Everything one orchestration call produced, including why metrics are missing."""

    model_config = ConfigDict(frozen=True)

    period: ReportingPeriod
    metrics: list[AggregatedMetric]
    unavailable: dict[MetricType, str] = Field(default_factory=dict)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    duration_seconds: float = Field(ge=0.0)


class ImpactSummary(BaseModel):
    """Period-scaled total impact for presentation."""

    model_config = ConfigDict(frozen=True)

    period: ReportingPeriod
    daily_total_minutes: float
    period_total_minutes: float
    metric_count: int = Field(ge=0)
