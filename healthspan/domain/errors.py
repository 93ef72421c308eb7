"""
Error taxonomy for metric aggregation.

Recoverable conditions subclass MetricUnavailableError and resolve to
"this metric is absent this call". ProgrammerError is the only kind that
reaches the caller as an exception.
"""

from healthspan.domain.models import MetricType


class MetricUnavailableError(Exception):
    """A metric produced no value for this call."""

    reason = "unavailable"

    def __init__(self, metric_type: MetricType, detail: str = "") -> None:
        self.metric_type = metric_type
        self.detail = detail
        message = f"{metric_type.value}: {self.reason}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class SourceUnavailableError(MetricUnavailableError):
    """The device capability is disabled, not permitted, or failed to answer."""

    reason = "source_unavailable"


class NoDataError(MetricUnavailableError):
    """The source answered but had nothing for the window."""

    reason = "no_data"


class ImplausibleValueError(MetricUnavailableError):
    """A computed aggregate fell outside the metric's valid range."""

    reason = "implausible_value"


class ProgrammerError(Exception):
    """Catalog and caller disagree; never a runtime data condition."""


class UnknownMetricTypeError(ProgrammerError, KeyError):
    def __init__(self, metric_type: object) -> None:
        self.metric_type = metric_type
        super().__init__(f"Unknown metric type: {metric_type!r}")

    def __str__(self) -> str:
        return self.args[0]
