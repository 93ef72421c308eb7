from datetime import UTC, datetime

import pytest

from healthspan.adapters.questionnaire import (
    SCORES,
    AlcoholFrequency,
    BloodPressureReading,
    NutritionQuality,
    QuestionnaireAnswers,
    QuestionnaireMetricStore,
    SmokingFrequency,
    SocialConnections,
    StressLevel,
    answers_to_observations,
    score_answer,
)
from healthspan.domain.catalog import MetricCatalog
from healthspan.domain.models import MetricType, ObservationSource

ANSWERED_AT = datetime(2025, 6, 1, 9, 30, tzinfo=UTC)


@pytest.fixture
def answers() -> QuestionnaireAnswers:
    return QuestionnaireAnswers(
        nutrition=NutritionQuality.MOSTLY_HEALTHY,
        smoking=SmokingFrequency.NEVER,
        alcohol=AlcoholFrequency.OCCASIONALLY,
        social_connections=SocialConnections.GOOD,
        stress=StressLevel.HIGH,
        blood_pressure=BloodPressureReading.HIGH,
        answered_at=ANSWERED_AT,
    )


class TestScoring:
    def test_every_answer_has_a_plausible_score(self) -> None:
        catalog = MetricCatalog()
        question_types = {
            NutritionQuality: MetricType.NUTRITION_QUALITY,
            SmokingFrequency: MetricType.SMOKING_STATUS,
            AlcoholFrequency: MetricType.ALCOHOL_CONSUMPTION,
            SocialConnections: MetricType.SOCIAL_CONNECTIONS_QUALITY,
            StressLevel: MetricType.STRESS_LEVEL,
            BloodPressureReading: MetricType.BLOOD_PRESSURE,
        }

        for question, metric_type in question_types.items():
            assert set(SCORES[question]) == set(question)
            for answer in question:
                assert catalog.is_valid(metric_type, score_answer(answer))

    def test_never_smoking_scores_highest(self) -> None:
        assert score_answer(SmokingFrequency.NEVER) > score_answer(SmokingFrequency.DAILY)
        assert score_answer(AlcoholFrequency.NEVER) > score_answer(AlcoholFrequency.DAILY)

    def test_stress_score_rises_with_stress(self) -> None:
        scores = [score_answer(level) for level in StressLevel]

        assert scores == sorted(scores, reverse=True)
        assert score_answer(StressLevel.HIGH) == 8.0


class TestQuestionnaireMetricStore:
    def test_answers_become_manual_observations(self, answers: QuestionnaireAnswers) -> None:
        observations = {o.metric_type: o for o in answers_to_observations(answers)}

        assert len(observations) == 6
        assert observations[MetricType.BLOOD_PRESSURE].value == 140.0
        assert observations[MetricType.SMOKING_STATUS].value == 9.0
        assert all(o.source is ObservationSource.MANUAL for o in observations.values())
        assert all(o.timestamp == ANSWERED_AT for o in observations.values())

    def test_unanswered_questions_are_skipped(self) -> None:
        partial = QuestionnaireAnswers(nutrition=NutritionQuality.MIXED, answered_at=ANSWERED_AT)

        (observation,) = answers_to_observations(partial)

        assert observation.metric_type is MetricType.NUTRITION_QUALITY
        assert observation.value == 5.0

    async def test_empty_store_has_no_observations(self) -> None:
        assert await QuestionnaireMetricStore().current() == []

    async def test_update_replaces_previous_answers(self, answers: QuestionnaireAnswers) -> None:
        store = QuestionnaireMetricStore(answers)
        store.update(QuestionnaireAnswers(stress=StressLevel.VERY_LOW, answered_at=ANSWERED_AT))

        (observation,) = await store.current()

        assert observation.metric_type is MetricType.STRESS_LEVEL
        assert observation.value == 1.0
