"""
ManualMetricStore backed by onboarding questionnaire answers.

Each answer is a level chosen by the user; a per-question scoring table
turns it into the 0-10 score the impact formulas expect. Smoking and
alcohol use 10 for "never". Stress is stored with 10 as the most
stressed, so the scale is inverted relative to the wording of the answers.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from healthspan.domain.models import MetricType, Observation, ObservationSource


class NutritionQuality(str, Enum):
    VERY_HEALTHY = "very_healthy"
    MOSTLY_HEALTHY = "mostly_healthy"
    MIXED = "mixed"
    MOSTLY_UNHEALTHY = "mostly_unhealthy"


class SmokingFrequency(str, Enum):
    DAILY = "daily"
    OCCASIONALLY = "occasionally"
    FORMER = "former"
    NEVER = "never"


class AlcoholFrequency(str, Enum):
    DAILY = "daily"
    SEVERAL_TIMES_A_WEEK = "several_times_a_week"
    OCCASIONALLY = "occasionally"
    NEVER = "never"


class SocialConnections(str, Enum):
    VERY_STRONG = "very_strong"
    GOOD = "good"
    MODERATE = "moderate"
    LIMITED = "limited"


class StressLevel(str, Enum):
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"
    VERY_LOW = "very_low"


class BloodPressureReading(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    UNKNOWN = "unknown"


SCORES: dict[type[Enum], dict[Enum, float]] = {
    NutritionQuality: {
        NutritionQuality.VERY_HEALTHY: 9.0,
        NutritionQuality.MOSTLY_HEALTHY: 7.0,
        NutritionQuality.MIXED: 5.0,
        NutritionQuality.MOSTLY_UNHEALTHY: 3.0,
    },
    SmokingFrequency: {
        SmokingFrequency.DAILY: 1.0,
        SmokingFrequency.OCCASIONALLY: 3.0,
        SmokingFrequency.FORMER: 6.0,
        SmokingFrequency.NEVER: 9.0,
    },
    AlcoholFrequency: {
        AlcoholFrequency.DAILY: 3.0,
        AlcoholFrequency.SEVERAL_TIMES_A_WEEK: 4.0,
        AlcoholFrequency.OCCASIONALLY: 7.0,
        AlcoholFrequency.NEVER: 9.0,
    },
    SocialConnections: {
        SocialConnections.VERY_STRONG: 9.0,
        SocialConnections.GOOD: 7.0,
        SocialConnections.MODERATE: 5.0,
        SocialConnections.LIMITED: 2.0,
    },
    StressLevel: {
        StressLevel.HIGH: 8.0,
        StressLevel.MODERATE: 5.0,
        StressLevel.LOW: 3.0,
        StressLevel.VERY_LOW: 1.0,
    },
    # Systolic mmHg estimates
    BloodPressureReading: {
        BloodPressureReading.LOW: 115.0,
        BloodPressureReading.MODERATE: 125.0,
        BloodPressureReading.HIGH: 140.0,
        BloodPressureReading.UNKNOWN: 120.0,
    },
}


class QuestionnaireAnswers(BaseModel):
    """Answers given during onboarding; unanswered questions stay None."""

    model_config = ConfigDict(frozen=True)

    nutrition: NutritionQuality | None = None
    smoking: SmokingFrequency | None = None
    alcohol: AlcoholFrequency | None = None
    social_connections: SocialConnections | None = None
    stress: StressLevel | None = None
    blood_pressure: BloodPressureReading | None = None
    answered_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


_QUESTION_METRICS: dict[str, MetricType] = {
    "nutrition": MetricType.NUTRITION_QUALITY,
    "smoking": MetricType.SMOKING_STATUS,
    "alcohol": MetricType.ALCOHOL_CONSUMPTION,
    "social_connections": MetricType.SOCIAL_CONNECTIONS_QUALITY,
    "stress": MetricType.STRESS_LEVEL,
    "blood_pressure": MetricType.BLOOD_PRESSURE,
}


def score_answer(answer: Enum) -> float:
    return SCORES[type(answer)][answer]


def answers_to_observations(answers: QuestionnaireAnswers) -> list[Observation]:
    observations = []
    for field, metric_type in _QUESTION_METRICS.items():
        answer = getattr(answers, field)
        if answer is None:
            continue
        observations.append(
            Observation(
                metric_type=metric_type,
                value=score_answer(answer),
                timestamp=answers.answered_at,
                source=ObservationSource.MANUAL,
            )
        )
    return observations


class QuestionnaireMetricStore:
    """Serves the most recent questionnaire as manual observations."""

    def __init__(self, answers: QuestionnaireAnswers | None = None) -> None:
        self.answers = answers

    def update(self, answers: QuestionnaireAnswers) -> None:
        self.answers = answers

    async def current(self) -> list[Observation]:
        if self.answers is None:
            return []
        return answers_to_observations(self.answers)
