"""Concrete collaborators: data sources, manual stores and profile providers."""

from .apple_health import load_apple_health_export
from .in_memory import InMemoryHealthSource, InMemoryManualMetricStore, StaticUserProfileProvider
from .questionnaire import QuestionnaireAnswers, QuestionnaireMetricStore

__all__ = [
    "InMemoryHealthSource",
    "InMemoryManualMetricStore",
    "QuestionnaireAnswers",
    "QuestionnaireMetricStore",
    "StaticUserProfileProvider",
    "load_apple_health_export",
]
