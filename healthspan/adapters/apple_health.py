"""Apple Health XML export reader.

Parses the export.xml produced by the iOS Health app
(Settings > Health > Export All Health Data) into an in-memory source.
"""

import os
import xml.etree.ElementTree as ET
from collections.abc import Callable
from datetime import datetime

import structlog

from healthspan.adapters.in_memory import InMemoryHealthSource
from healthspan.domain.models import MetricType, SleepStage

logger = structlog.get_logger(__name__)

HK_SLEEP = "HKCategoryTypeIdentifierSleepAnalysis"

QUANTITY_TYPES: dict[str, MetricType] = {
    "HKQuantityTypeIdentifierStepCount": MetricType.STEPS,
    "HKQuantityTypeIdentifierAppleExerciseTime": MetricType.EXERCISE_MINUTES,
    "HKQuantityTypeIdentifierActiveEnergyBurned": MetricType.ACTIVE_ENERGY_BURNED,
    "HKQuantityTypeIdentifierRestingHeartRate": MetricType.RESTING_HEART_RATE,
    "HKQuantityTypeIdentifierHeartRateVariabilitySDNN": MetricType.HEART_RATE_VARIABILITY,
    "HKQuantityTypeIdentifierBodyMass": MetricType.BODY_MASS,
    "HKQuantityTypeIdentifierVO2Max": MetricType.VO2_MAX,
    "HKQuantityTypeIdentifierOxygenSaturation": MetricType.OXYGEN_SATURATION,
    "HKQuantityTypeIdentifierBloodPressureSystolic": MetricType.BLOOD_PRESSURE,
}

SLEEP_VALUES: dict[str, SleepStage] = {
    "HKCategoryValueSleepAnalysisInBed": SleepStage.IN_BED,
    "HKCategoryValueSleepAnalysisAwake": SleepStage.AWAKE,
    "HKCategoryValueSleepAnalysisAsleep": SleepStage.ASLEEP_UNSPECIFIED,
    "HKCategoryValueSleepAnalysisAsleepUnspecified": SleepStage.ASLEEP_UNSPECIFIED,
    "HKCategoryValueSleepAnalysisAsleepCore": SleepStage.ASLEEP_CORE,
    "HKCategoryValueSleepAnalysisAsleepDeep": SleepStage.ASLEEP_DEEP,
    "HKCategoryValueSleepAnalysisAsleepREM": SleepStage.ASLEEP_REM,
}

# (unit in export) -> multiplier into the catalog unit
UNIT_CONVERSIONS: dict[str, float] = {
    "kJ": 1 / 4.184,
    "lb": 0.45359237,
    "g": 0.001,
}

EXPORT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"


def parse_export_date(raw: str) -> datetime:
    return datetime.strptime(raw, EXPORT_DATE_FORMAT)


def _quantity_value(metric_type: MetricType, attrib: dict[str, str]) -> float:
    value = float(attrib["value"])
    value *= UNIT_CONVERSIONS.get(attrib.get("unit", ""), 1.0)
    # SpO2 is exported as a fraction
    if metric_type is MetricType.OXYGEN_SATURATION and value <= 1.0:
        value *= 100.0
    return value


def load_apple_health_export(
    export_path: str,
    *,
    source_name: str = "apple_health",
    clock: Callable[[], datetime] | None = None,
) -> InMemoryHealthSource:
    """Stream-parse an export into an InMemoryHealthSource."""
    if not os.path.exists(export_path):
        raise FileNotFoundError(f"Apple Health export not found at: {export_path}")

    source = InMemoryHealthSource(source_name, clock=clock)
    loaded = skipped = 0

    # Stream parse to handle large files
    for _event, elem in ET.iterparse(export_path, events=("end",)):
        if elem.tag != "Record":
            continue
        attrib = dict(elem.attrib)
        elem.clear()

        record_type = attrib.get("type", "")
        try:
            if record_type == HK_SLEEP:
                stage = SLEEP_VALUES.get(attrib.get("value", ""))
                if stage is None:
                    skipped += 1
                    continue
                source.add_sleep(
                    parse_export_date(attrib["startDate"]),
                    parse_export_date(attrib["endDate"]),
                    stage,
                )
            elif record_type in QUANTITY_TYPES:
                metric_type = QUANTITY_TYPES[record_type]
                source.add_sample(
                    metric_type,
                    _quantity_value(metric_type, attrib),
                    parse_export_date(attrib["startDate"]),
                )
            else:
                continue
            loaded += 1
        except (KeyError, ValueError) as e:
            skipped += 1
            logger.debug("export_record_skipped", record_type=record_type, error=str(e))

    logger.info("apple_health_export_loaded", path=export_path, records=loaded, skipped=skipped)
    return source
