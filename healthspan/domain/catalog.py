"""
Static registry of supported metric types.

The catalog is the single place that knows how each metric is aggregated,
which sources can supply it and which values are plausible.
"""

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, model_validator

from healthspan.domain.errors import UnknownMetricTypeError
from healthspan.domain.models import AggregationMethod, MetricType, SourceCapability

DEVICE = frozenset({SourceCapability.DEVICE})
MANUAL = frozenset({SourceCapability.MANUAL})
DEVICE_AND_MANUAL = frozenset({SourceCapability.DEVICE, SourceCapability.MANUAL})


class MetricSpec(BaseModel):
    """Immutable description of one metric type."""

    model_config = ConfigDict(frozen=True)

    display_name: str
    aggregation_method: AggregationMethod
    unit: str
    min_value: float
    max_value: float
    capabilities: frozenset[SourceCapability] = Field(min_length=1)
    baseline_value: float
    higher_is_better: bool = True

    @model_validator(mode="after")
    def range_is_ordered(self) -> "MetricSpec":
        if self.min_value > self.max_value:
            raise ValueError("min_value must not exceed max_value")
        return self

    @property
    def is_device_capable(self) -> bool:
        return SourceCapability.DEVICE in self.capabilities

    @property
    def is_manual_capable(self) -> bool:
        return SourceCapability.MANUAL in self.capabilities

    def contains(self, value: float) -> bool:
        # NaN fails both comparisons
        return self.min_value <= value <= self.max_value


_cumulative = AggregationMethod.CUMULATIVE
_average = AggregationMethod.AVERAGE

DEFAULT_METRIC_SPECS: Mapping[MetricType, MetricSpec] = MappingProxyType(
    {
        MetricType.STEPS: MetricSpec(
            display_name="Steps",
            aggregation_method=_cumulative,
            unit="count",
            min_value=0,
            max_value=100_000,
            capabilities=DEVICE,
            baseline_value=7500,
        ),
        MetricType.EXERCISE_MINUTES: MetricSpec(
            display_name="Exercise Minutes",
            aggregation_method=_cumulative,
            unit="min",
            min_value=0,
            max_value=1440,
            capabilities=DEVICE,
            baseline_value=20,
        ),
        MetricType.ACTIVE_ENERGY_BURNED: MetricSpec(
            display_name="Active Energy",
            aggregation_method=_cumulative,
            unit="kcal",
            min_value=0,
            max_value=10_000,
            capabilities=DEVICE,
            baseline_value=400,
        ),
        MetricType.SLEEP_HOURS: MetricSpec(
            display_name="Sleep",
            aggregation_method=AggregationMethod.SPECIAL_WINDOWED,
            unit="hr",
            min_value=0,
            max_value=24,
            capabilities=DEVICE,
            baseline_value=7,
        ),
        MetricType.RESTING_HEART_RATE: MetricSpec(
            display_name="Resting Heart Rate",
            aggregation_method=_average,
            unit="count/min",
            min_value=25,
            max_value=220,
            capabilities=DEVICE,
            baseline_value=70,
            higher_is_better=False,
        ),
        MetricType.HEART_RATE_VARIABILITY: MetricSpec(
            display_name="Heart Rate Variability",
            aggregation_method=_average,
            unit="ms",
            min_value=1,
            max_value=300,
            capabilities=DEVICE,
            baseline_value=35,
        ),
        MetricType.BODY_MASS: MetricSpec(
            display_name="Body Mass",
            aggregation_method=_average,
            unit="kg",
            min_value=20,
            max_value=400,
            capabilities=DEVICE,
            baseline_value=70,
            higher_is_better=False,
        ),
        MetricType.VO2_MAX: MetricSpec(
            display_name="VO2 Max",
            aggregation_method=_average,
            unit="ml/kg/min",
            min_value=10,
            max_value=90,
            capabilities=DEVICE,
            baseline_value=40,
        ),
        MetricType.OXYGEN_SATURATION: MetricSpec(
            display_name="Blood Oxygen",
            aggregation_method=_average,
            unit="%",
            min_value=50,
            max_value=100,
            capabilities=DEVICE,
            baseline_value=98,
        ),
        MetricType.BLOOD_PRESSURE: MetricSpec(
            display_name="Blood Pressure (systolic)",
            aggregation_method=_average,
            unit="mmHg",
            min_value=70,
            max_value=250,
            capabilities=DEVICE_AND_MANUAL,
            baseline_value=120,
            higher_is_better=False,
        ),
        MetricType.NUTRITION_QUALITY: MetricSpec(
            display_name="Nutrition Quality",
            aggregation_method=_average,
            unit="score",
            min_value=0,
            max_value=10,
            capabilities=MANUAL,
            baseline_value=5,
        ),
        MetricType.SMOKING_STATUS: MetricSpec(
            display_name="Smoking Status",
            aggregation_method=_average,
            unit="score",
            min_value=0,
            max_value=10,
            capabilities=MANUAL,
            baseline_value=9,
        ),
        MetricType.ALCOHOL_CONSUMPTION: MetricSpec(
            display_name="Alcohol Consumption",
            aggregation_method=_average,
            unit="score",
            min_value=0,
            max_value=10,
            capabilities=MANUAL,
            baseline_value=7,
        ),
        MetricType.SOCIAL_CONNECTIONS_QUALITY: MetricSpec(
            display_name="Social Connections",
            aggregation_method=_average,
            unit="score",
            min_value=0,
            max_value=10,
            capabilities=MANUAL,
            baseline_value=5,
        ),
        MetricType.STRESS_LEVEL: MetricSpec(
            display_name="Stress Level",
            aggregation_method=_average,
            unit="score",
            min_value=0,
            max_value=10,
            capabilities=MANUAL,
            baseline_value=5,
            higher_is_better=False,
        ),
    }
)


class MetricCatalog:
    """Pure lookup over metric specs. Unknown types are programmer errors."""

    def __init__(self, specs: Mapping[MetricType, MetricSpec] | None = None) -> None:
        self._specs: Mapping[MetricType, MetricSpec] = MappingProxyType(
            dict(specs if specs is not None else DEFAULT_METRIC_SPECS)
        )

    def __contains__(self, metric_type: object) -> bool:
        return metric_type in self._specs

    def __iter__(self):
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def spec_for(self, metric_type: MetricType) -> MetricSpec:
        try:
            return self._specs[metric_type]
        except (KeyError, TypeError):
            raise UnknownMetricTypeError(metric_type) from None

    def method_for(self, metric_type: MetricType) -> AggregationMethod:
        return self.spec_for(metric_type).aggregation_method

    def is_valid(self, metric_type: MetricType, value: float) -> bool:
        return self.spec_for(metric_type).contains(value)

    def device_types(self) -> list[MetricType]:
        return [t for t, spec in self._specs.items() if spec.is_device_capable]

    def manual_types(self) -> list[MetricType]:
        """Types a manual store can supply, including overlapping ones."""
        return [t for t, spec in self._specs.items() if spec.is_manual_capable]

    def manual_only_types(self) -> list[MetricType]:
        return [
            t
            for t, spec in self._specs.items()
            if spec.is_manual_capable and not spec.is_device_capable
        ]

    def overlapping_types(self) -> list[MetricType]:
        return [
            t
            for t, spec in self._specs.items()
            if spec.is_manual_capable and spec.is_device_capable
        ]

    def ordered(self, metric_types: Iterable[MetricType]) -> list[MetricType]:
        """Sort types into catalog order."""
        position = {t: i for i, t in enumerate(self._specs)}
        return sorted(metric_types, key=lambda t: position.get(t, len(position)))
