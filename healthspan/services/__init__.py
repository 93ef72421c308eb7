"""
Core services for the application.

This package contains the aggregation services: sleep and windowed
statistics, impact calculation, caching and the fetch orchestrator.
"""

from .impact_calculator import ImpactCalculator, summarize_impact
from .metric_cache import MetricCache
from .metric_fetch import MetricFetchOrchestrator, merge_observations
from .sleep_aggregator import SleepAggregator
from .sources import HealthSource, ManualMetricStore, UserProfileProvider
from .windowed_stats import WindowedStatsAggregator

__all__ = [
    "HealthSource",
    "ImpactCalculator",
    "ManualMetricStore",
    "MetricCache",
    "MetricFetchOrchestrator",
    "SleepAggregator",
    "UserProfileProvider",
    "WindowedStatsAggregator",
    "merge_observations",
    "summarize_impact",
]
