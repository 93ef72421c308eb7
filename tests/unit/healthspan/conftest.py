"""Shared fixtures: a frozen clock and in-memory collaborators."""

from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from healthspan.adapters.in_memory import (
    InMemoryHealthSource,
    InMemoryManualMetricStore,
    StaticUserProfileProvider,
)
from healthspan.domain.models import BiologicalSex, UserProfile

FROZEN_NOW = datetime(2025, 6, 15, 18, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    return FROZEN_NOW


@pytest.fixture
def clock(now: datetime) -> Callable[[], datetime]:
    return lambda: now


@pytest.fixture
def source(clock: Callable[[], datetime]) -> InMemoryHealthSource:
    return InMemoryHealthSource("test-source", clock=clock)


@pytest.fixture
def manual_store() -> InMemoryManualMetricStore:
    return InMemoryManualMetricStore()


@pytest.fixture
def profile() -> UserProfile:
    return UserProfile(birth_year=1985, sex=BiologicalSex.FEMALE, height_cm=168.0, weight_kg=64.0)


@pytest.fixture
def profile_provider(profile: UserProfile) -> StaticUserProfileProvider:
    return StaticUserProfileProvider(profile)
