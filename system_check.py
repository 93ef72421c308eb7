"""
Complete system check demonstrating the full aggregation pipeline.

This script checks:
1. Configuration loading and validation
2. Day, month and year reports from device and questionnaire data
3. Latest single values
4. Graceful degradation when capabilities fail or time out
5. Result caching

Run with: uv run python system_check.py
"""

import asyncio
import random
import time
from datetime import UTC, datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from healthspan.adapters import (
    InMemoryHealthSource,
    QuestionnaireAnswers,
    QuestionnaireMetricStore,
    StaticUserProfileProvider,
)
from healthspan.adapters.questionnaire import (
    AlcoholFrequency,
    BloodPressureReading,
    NutritionQuality,
    SmokingFrequency,
    SocialConnections,
    StressLevel,
)
from healthspan.config import (
    AppConfig,
    FetchConfig,
    get_config,
    print_config_summary,
    validate_config,
)
from healthspan.domain.catalog import MetricCatalog
from healthspan.domain.models import (
    BiologicalSex,
    MetricBatch,
    MetricType,
    ReportingPeriod,
    SleepStage,
    UserProfile,
)
from healthspan.services import MetricFetchOrchestrator, summarize_impact

console = Console()
catalog = MetricCatalog()


def build_demo_source(now: datetime, days: int = 365) -> InMemoryHealthSource:
    """A year of plausible wearable data with occasional gaps."""
    rng = random.Random(42)
    source = InMemoryHealthSource("demo-watch", clock=lambda: now)
    first_day = (now - timedelta(days=days - 1)).replace(hour=0, minute=0, second=0, microsecond=0)

    def series(mean: float, spread: float, gap_rate: float = 0.1) -> list[float | None]:
        return [
            None if rng.random() < gap_rate else max(0.0, rng.gauss(mean, spread))
            for _ in range(days)
        ]

    source.add_daily_values(MetricType.STEPS, first_day, series(8500, 2500))
    source.add_daily_values(MetricType.EXERCISE_MINUTES, first_day, series(28, 12, 0.3))
    source.add_daily_values(MetricType.ACTIVE_ENERGY_BURNED, first_day, series(480, 120))
    source.add_daily_values(MetricType.RESTING_HEART_RATE, first_day, series(58, 3, 0.05))
    source.add_daily_values(MetricType.HEART_RATE_VARIABILITY, first_day, series(48, 9, 0.2))
    source.add_daily_values(MetricType.BODY_MASS, first_day, series(71, 0.6, 0.7))
    source.add_daily_values(MetricType.VO2_MAX, first_day, series(44, 1.5, 0.9))
    source.add_daily_values(MetricType.OXYGEN_SATURATION, first_day, series(97, 1, 0.3))

    for offset in range(days):
        if rng.random() < 0.1:
            continue
        night = first_day + timedelta(days=offset, minutes=rng.randint(0, 60))
        asleep = timedelta(hours=max(3.0, rng.gauss(7.2, 0.8)))
        source.add_sleep(night, night + timedelta(minutes=15), SleepStage.IN_BED)
        source.add_sleep(
            night + timedelta(minutes=15),
            night + timedelta(minutes=15) + asleep,
            SleepStage.ASLEEP_CORE,
        )

    return source


def build_demo_orchestrator(
    source: InMemoryHealthSource,
    now: datetime,
    config: AppConfig | None = None,
) -> MetricFetchOrchestrator:
    answers = QuestionnaireAnswers(
        nutrition=NutritionQuality.MOSTLY_HEALTHY,
        smoking=SmokingFrequency.NEVER,
        alcohol=AlcoholFrequency.OCCASIONALLY,
        social_connections=SocialConnections.GOOD,
        stress=StressLevel.MODERATE,
        blood_pressure=BloodPressureReading.MODERATE,
        answered_at=now - timedelta(days=20),
    )
    profile = UserProfile(birth_year=1985, sex=BiologicalSex.FEMALE, height_cm=168, weight_kg=64)
    return MetricFetchOrchestrator.from_config(
        source,
        QuestionnaireMetricStore(answers),
        StaticUserProfileProvider(profile),
        config,
        catalog=catalog,
        clock=lambda: now,
    )


def print_batch(batch: MetricBatch) -> None:
    table = Table(title=f"{batch.period.value.title()} Report")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Unit", style="yellow")
    table.add_column("Source", style="magenta")
    table.add_column("Impact (min/day)", style="white")

    for metric in batch.metrics:
        spec = catalog.spec_for(metric.metric_type)
        impact = (
            f"{metric.impact.lifespan_impact_minutes:+.1f}" if metric.impact is not None else "-"
        )
        table.add_row(
            spec.display_name, f"{metric.value:.1f}", spec.unit, metric.source.value, impact
        )

    console.print(table)

    summary = summarize_impact(batch.metrics, batch.period)
    console.print(
        f"Total impact: {summary.daily_total_minutes:+.1f} min/day, "
        f"{summary.period_total_minutes:+.0f} min over the {batch.period.value}",
        style="bold",
    )


async def check_configuration() -> bool:
    """Check configuration loading and validation."""

    console.print(Panel("🔧 Checking Configuration", style="blue"))

    try:
        validate_config()
        console.print("✅ Configuration loaded successfully", style="green")
        print_config_summary()
        return True

    except Exception as e:
        console.print(f"❌ Configuration check failed: {e}", style="red")
        return False


async def check_period_reports() -> bool:
    """Check day, month and year reports over a year of demo data."""

    console.print(Panel("📊 Checking Period Reports", style="blue"))

    try:
        now = datetime.now(UTC)
        orchestrator = build_demo_orchestrator(build_demo_source(now), now)

        for period in ReportingPeriod:
            batch = await orchestrator.fetch_report(period)
            console.print(
                f"✅ {period.value}: {len(batch.metrics)} metrics in "
                f"{batch.duration_seconds:.2f}s",
                style="green",
            )
            print_batch(batch)

            if any(not catalog.is_valid(m.metric_type, m.value) for m in batch.metrics):
                console.print("❌ Report contains an out-of-range value", style="red")
                return False

        return True

    except Exception as e:
        console.print(f"❌ Period report check failed: {e}", style="red")
        return False


async def check_latest_values() -> bool:
    """Check single latest-value lookups."""

    console.print(Panel("🔎 Checking Latest Values", style="blue"))

    try:
        now = datetime.now(UTC)
        orchestrator = build_demo_orchestrator(build_demo_source(now, days=14), now)

        table = Table(title="Latest Values")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        table.add_column("Recorded", style="yellow")

        latest_types = (MetricType.STEPS, MetricType.RESTING_HEART_RATE, MetricType.STRESS_LEVEL)
        for metric_type in latest_types:
            metric = await orchestrator.fetch_latest(metric_type)
            name = catalog.spec_for(metric_type).display_name
            if metric is None:
                table.add_row(name, "unavailable", "-")
            else:
                table.add_row(name, f"{metric.value:.1f}", metric.window_end.isoformat())

        console.print(table)
        return True

    except Exception as e:
        console.print(f"❌ Latest value check failed: {e}", style="red")
        return False


async def check_graceful_degradation() -> bool:
    """Check that failing or slow capabilities only remove their own metric."""

    console.print(Panel("🛡️ Checking Graceful Degradation", style="blue"))

    try:
        now = datetime.now(UTC)
        source = build_demo_source(now, days=31)
        source.fail(MetricType.HEART_RATE_VARIABILITY)
        source.fail(MetricType.STEPS, ConnectionError("health store busy"))
        source.slow_down(MetricType.VO2_MAX, 2.0)

        config = get_config().model_copy(
            update={"fetch": FetchConfig(metric_timeout_seconds=0.5)}
        )
        orchestrator = build_demo_orchestrator(source, now, config)

        console.print("🔄 Fetching with injected failures...", style="yellow")
        batch = await orchestrator.fetch_report(ReportingPeriod.MONTH)

        table = Table(title="Unavailable Metrics")
        table.add_column("Metric", style="cyan")
        table.add_column("Reason", style="red")
        for metric_type, reason in batch.unavailable.items():
            table.add_row(catalog.spec_for(metric_type).display_name, reason)
        console.print(table)

        returned = {m.metric_type for m in batch.metrics}
        failed = {MetricType.HEART_RATE_VARIABILITY, MetricType.STEPS, MetricType.VO2_MAX}
        if returned & failed:
            console.print("❌ A failed metric was reported", style="red")
            return False
        if MetricType.RESTING_HEART_RATE not in returned:
            console.print("❌ A healthy metric went missing", style="red")
            return False

        console.print(
            f"✅ {len(batch.metrics)} metrics survived {len(failed)} failures", style="green"
        )
        return True

    except Exception as e:
        console.print(f"❌ Graceful degradation check failed: {e}", style="red")
        return False


async def check_caching() -> bool:
    """Check that a cached period skips the source entirely."""

    console.print(Panel("💾 Checking Result Cache", style="blue"))

    try:
        if not get_config().cache.enabled:
            console.print("⏭️  Result cache disabled by HEALTHSPAN_CACHE_ENABLED", style="yellow")
            return True

        now = datetime.now(UTC)
        source = build_demo_source(now)
        orchestrator = build_demo_orchestrator(source, now)

        start = time.perf_counter()
        await orchestrator.fetch_all_metrics(ReportingPeriod.YEAR)
        cold = time.perf_counter() - start
        calls = source.call_count

        start = time.perf_counter()
        await orchestrator.fetch_all_metrics(ReportingPeriod.YEAR)
        warm = time.perf_counter() - start

        if source.call_count != calls:
            console.print("❌ Cached fetch queried the source again", style="red")
            return False

        console.print(f"✅ Cold fetch {cold:.3f}s, cached fetch {warm:.4f}s", style="green")
        return True

    except Exception as e:
        console.print(f"❌ Cache check failed: {e}", style="red")
        return False


async def run_all_checks() -> None:
    """Run all system checks."""

    console.print(Panel("🧪 Healthspan - System Checks", style="bold blue"))

    checks = [
        ("Configuration", check_configuration),
        ("Period Reports", check_period_reports),
        ("Latest Values", check_latest_values),
        ("Graceful Degradation", check_graceful_degradation),
        ("Result Cache", check_caching),
    ]

    results = []

    for check_name, check_func in checks:
        console.print(f"\n{'=' * 60}")
        try:
            result = await check_func()
            results.append((check_name, result))
        except KeyboardInterrupt:
            console.print("\n⏹️  Checks interrupted by user", style="yellow")
            break
        except Exception as e:
            console.print(f"❌ {check_name} failed with exception: {e}", style="red")
            results.append((check_name, False))

    # Summary
    console.print(f"\n{'=' * 60}")
    console.print(Panel("📋 Check Results Summary", style="bold"))

    summary_table = Table()
    summary_table.add_column("Check", style="cyan")
    summary_table.add_column("Result", style="white")

    passed = 0
    for check_name, result in results:
        if result:
            summary_table.add_row(check_name, "✅ PASSED")
            passed += 1
        else:
            summary_table.add_row(check_name, "❌ FAILED")

    console.print(summary_table)

    console.print(f"\n🎯 Results: {passed}/{len(results)} checks passed")

    if passed == len(results):
        console.print("🎉 All checks passed! The aggregation pipeline is ready.", style="green")
    else:
        console.print("⚠️  Some checks failed. Check the logs above for details.", style="yellow")


if __name__ == "__main__":
    try:
        asyncio.run(run_all_checks())
    except KeyboardInterrupt:
        console.print("\n👋 Checks stopped by user", style="yellow")
    except Exception as e:
        console.print(f"\n💥 System check failed: {e}", style="red")
