"""
Lifespan impact of individual metric values.

Every figure here is a DAILY impact in minutes of life gained (positive)
or lost (negative). Nothing in this module knows about reporting periods;
scaling a daily figure to a month or year belongs to `summarize_impact`,
which only reads the per-metric impacts.
"""

import math
from collections.abc import Callable, Iterable
from datetime import date

import structlog

from healthspan.domain.catalog import MetricCatalog
from healthspan.domain.models import (
    AggregatedMetric,
    BaselineComparison,
    ImpactDetail,
    ImpactSummary,
    MetricType,
    ReportingPeriod,
    UserProfile,
)

logger = structlog.get_logger(__name__)

BASELINE_LIFE_YEARS = 78.0
DAYS_PER_YEAR = 365.25
BASELINE_LIFE_MINUTES = BASELINE_LIFE_YEARS * DAYS_PER_YEAR * 24 * 60
DEFAULT_AGE = 40
KG_TO_LB = 2.20462
NEUTRAL_BAND_MINUTES = 0.5

PERIOD_MULTIPLIERS: dict[ReportingPeriod, int] = {
    ReportingPeriod.DAY: 1,
    ReportingPeriod.MONTH: 30,
    ReportingPeriod.YEAR: 365,
}


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def relative_risk_minutes(relative_risk: float, scaling: float, age: int | None) -> float:
    """Convert a relative mortality risk into minutes per day over the remaining lifespan."""
    remaining_years = max(1.0, BASELINE_LIFE_YEARS - (age if age is not None else DEFAULT_AGE))
    total_change = BASELINE_LIFE_MINUTES * (1.0 - relative_risk) * scaling
    return total_change / (remaining_years * DAYS_PER_YEAR)


def steps_relative_risk(steps: float) -> float:
    s = max(0.0, steps)
    if s < 2700:
        return 1.6 - 0.2 * s / 2700
    if s < 4000:
        return 1.4 - 0.1 * (s - 2700) / 1300
    if s <= 10000:
        ratio = (s - 4000) / 6000
        return 1.3 - 0.35 * math.log(1 + ratio * (math.e - 1))
    if s <= 12000:
        return 0.95 - 0.05 * (s - 10000) / 2000
    if s <= 20000:
        return 0.90 + 0.03 * (s - 12000) / 8000
    if s <= 25000:
        return 0.93 + 0.07 * (s - 20000) / 5000
    return 1.0 + 0.15 * min((s - 25000) / 10000, 1.0)


def exercise_relative_risk(weekly_minutes: float) -> float:
    wk = weekly_minutes
    if wk <= 0:
        return 1.0
    if wk <= 150:
        return 1.0 - 0.23 * math.log(1 + wk / 150 * (math.e - 1))
    if wk <= 300:
        return 0.77 - 0.12 * (wk - 150) / 150
    return 0.65 - 0.05 * min((wk - 300) / 300, 1.0)


def sleep_relative_risk(hours: float) -> float:
    h = _clamp(hours, 3.0, 12.0)
    if 7.0 <= h <= 8.0:
        return 1.0 + min(abs(h - 7.5), 0.5) / 0.5 * 0.02
    if h < 6.0:
        return 1.0 + (6.0 - h) * 0.08
    if h < 7.0:
        return 1.0 + (7.0 - h) * 0.06
    if h <= 9.0:
        return 1.0 + (h - 8.0) * 0.06
    return 1.0 + (h - 9.0) * 0.10


def stress_relative_risk(level: float) -> float:
    lvl = _clamp(level, 1.0, 10.0)
    if lvl <= 3:
        return 1.0
    if lvl <= 6:
        return 1.0 + 0.03 * (lvl - 3)
    if lvl <= 8:
        return 1.09 + 0.05 * (lvl - 6)
    return 1.19 + 0.08 * (lvl - 8)


def alcohol_drinks_per_day(score: float) -> float:
    """Questionnaire score (10 = never) to drinks per day."""
    if 9 <= score <= 10:
        return 0.0
    if 7 <= score < 9:
        return 0.5
    if 3 <= score < 7:
        return 1.0
    if 1 <= score < 3:
        return 2.0
    return 0.0


def smoking_status_code(score: float) -> int:
    """Questionnaire score (10 = never) to 0 never, 1 former, 2 light, 3 heavy."""
    if 9 <= score <= 10:
        return 0
    if 6 <= score < 9:
        return 1
    if 2 <= score < 6:
        return 2
    if 0 <= score < 2:
        return 3
    return 0


SMOKING_DAILY_MINUTES = {0: 0.0, 1: -116.1, 2: -232.2, 3: -348.3}


class ImpactCalculator:
    """
    Pure mapping of (metric value, user profile) to a daily ImpactDetail.

    Holds no state beyond the catalog, so a single instance can be shared
    by concurrent tasks.
    """

    def __init__(self, catalog: MetricCatalog | None = None) -> None:
        self.catalog = catalog or MetricCatalog()
        self._formulas: dict[MetricType, Callable[[float, int | None], float]] = {
            MetricType.STEPS: self._steps,
            MetricType.EXERCISE_MINUTES: self._exercise,
            MetricType.ACTIVE_ENERGY_BURNED: self._active_energy,
            MetricType.SLEEP_HOURS: self._sleep,
            MetricType.RESTING_HEART_RATE: self._resting_heart_rate,
            MetricType.HEART_RATE_VARIABILITY: self._heart_rate_variability,
            MetricType.BODY_MASS: self._body_mass,
            MetricType.VO2_MAX: self._vo2_max,
            MetricType.OXYGEN_SATURATION: self._oxygen_saturation,
            MetricType.BLOOD_PRESSURE: self._blood_pressure,
            MetricType.NUTRITION_QUALITY: self._nutrition,
            MetricType.SMOKING_STATUS: self._smoking,
            MetricType.ALCOHOL_CONSUMPTION: self._alcohol,
            MetricType.SOCIAL_CONNECTIONS_QUALITY: self._social,
            MetricType.STRESS_LEVEL: self._stress,
        }

    def daily_minutes(
        self, metric_type: MetricType, value: float, profile: UserProfile, today: date | None = None
    ) -> float:
        spec = self.catalog.spec_for(metric_type)
        formula = self._formulas.get(metric_type)
        if formula is None:
            logger.warning("impact_formula_missing", metric=metric_type.value, unit=spec.unit)
            return 0.0
        return formula(value, profile.age(today))

    def impact(
        self, metric: AggregatedMetric, profile: UserProfile, today: date | None = None
    ) -> ImpactDetail:
        """Daily impact of one aggregated metric. Never scaled by the metric's period."""
        spec = self.catalog.spec_for(metric.metric_type)
        minutes = self.daily_minutes(metric.metric_type, metric.value, profile, today)

        if minutes > NEUTRAL_BAND_MINUTES:
            comparison = BaselineComparison.BETTER
        elif minutes < -NEUTRAL_BAND_MINUTES:
            comparison = BaselineComparison.WORSE
        else:
            comparison = BaselineComparison.SAME

        verb = "gains" if minutes >= 0 else "costs"
        return ImpactDetail(
            metric_type=metric.metric_type,
            current_value=metric.value,
            baseline_value=spec.baseline_value,
            lifespan_impact_minutes=minutes,
            comparison=comparison,
            explanation=(
                f"{spec.display_name} of {metric.value:.1f} {spec.unit} "
                f"{verb} {abs(minutes):.1f} minutes per day"
            ),
        )

    # Device metrics

    @staticmethod
    def _steps(value: float, age: int | None) -> float:
        return relative_risk_minutes(steps_relative_risk(value), 0.082, age)

    @staticmethod
    def _exercise(value: float, age: int | None) -> float:
        return relative_risk_minutes(exercise_relative_risk(value * 7), 0.126, age)

    @staticmethod
    def _active_energy(value: float, age: int | None) -> float:
        kcal = _clamp(value, 0.0, 1300.0)
        diff = _clamp(kcal - 400.0, -900.0, 900.0)
        return diff / 100.0 * 17.4

    @staticmethod
    def _sleep(value: float, age: int | None) -> float:
        return relative_risk_minutes(sleep_relative_risk(value), 0.05, age)

    @staticmethod
    def _resting_heart_rate(value: float, age: int | None) -> float:
        bpm = _clamp(value, 40.0, 120.0)
        return relative_risk_minutes(1.0 + (bpm - 60.0) / 10.0 * 0.16, 0.04, age)

    @staticmethod
    def _heart_rate_variability(value: float, age: int | None) -> float:
        ms = _clamp(value, 5.0, 150.0)
        diff = _clamp(ms - 40.0, -70.0, 70.0)
        return diff / 10.0 * 17.4

    @staticmethod
    def _body_mass(value: float, age: int | None) -> float:
        lbs = _clamp(value * KG_TO_LB, 80.0, 400.0)
        return -(lbs - 160.0) / 20.0 * 17.4

    @staticmethod
    def _vo2_max(value: float, age: int | None) -> float:
        vo2 = _clamp(value, 15.0, 80.0)
        diff = _clamp(vo2 - 40.0, -20.0, 20.0)
        return diff / 5.0 * 21.8

    @staticmethod
    def _oxygen_saturation(value: float, age: int | None) -> float:
        spo2 = _clamp(value, 80.0, 100.0)
        return (spo2 - 98.0) / 2.0 * 8.7

    @staticmethod
    def _blood_pressure(value: float, age: int | None) -> float:
        systolic = _clamp(value, 90.0, 200.0)
        relative_risk = 1.0 + max(0.0, systolic - 120.0) / 10.0 * 0.10
        return relative_risk_minutes(relative_risk, 0.04, age)

    # Lifestyle metrics

    @staticmethod
    def _nutrition(value: float, age: int | None) -> float:
        q = _clamp(value, 1.0, 10.0)
        if q < 7.0:
            return (q - 7.0) * 139.0 / 6.0
        if q < 8.0:
            return 0.0
        return (q - 8.0) * 66.7 / 2.0

    @staticmethod
    def _smoking(value: float, age: int | None) -> float:
        return SMOKING_DAILY_MINUTES[smoking_status_code(value)]

    @staticmethod
    def _alcohol(value: float, age: int | None) -> float:
        drinks = _clamp(alcohol_drinks_per_day(value), 0.0, 5.0)
        if drinks <= 1.0:
            relative_risk = 1.0 + drinks * 0.05
        else:
            relative_risk = 1.05 + (drinks - 1.0) * 0.15
        return relative_risk_minutes(relative_risk, 0.08, age)

    @staticmethod
    def _social(value: float, age: int | None) -> float:
        q = _clamp(value, 1.0, 10.0)
        return (q - 5.5) * 52.0 / 4.5

    @staticmethod
    def _stress(value: float, age: int | None) -> float:
        return relative_risk_minutes(stress_relative_risk(value), 0.04, age)


def summarize_impact(metrics: Iterable[AggregatedMetric], period: ReportingPeriod) -> ImpactSummary:
    """Total impact over a period, for presentation.

    Per-metric impacts stay daily; only the sum is multiplied.
    """
    impacts = [m.impact for m in metrics if m.impact is not None]
    daily_total = sum(i.lifespan_impact_minutes for i in impacts)
    return ImpactSummary(
        period=period,
        daily_total_minutes=daily_total,
        period_total_minutes=daily_total * PERIOD_MULTIPLIERS[period],
        metric_count=len(impacts),
    )
