"""Initialization file for the core models."""
from metrics_reporter.core.models.documents import BulkDocument, MetricsSnapshot
from metrics_reporter.core.models.health import (
    EnvironmentInfo,
    HealthCheckResult,
    HealthStatus,
)
from metrics_reporter.core.models.metrics import (
    ApdexValue,
    ApdexValueSource,
    CounterValue,
    CounterValueSource,
    GaugeValueSource,
    HistogramValue,
    HistogramValueSource,
    MeterSetItem,
    MeterValue,
    MeterValueSource,
    MetricTags,
    SetItem,
    TimerValue,
    TimerValueSource,
    ValueSource
)

__all__ = [
    "ApdexValue",
    "ApdexValueSource",
    "BulkDocument",
    "CounterValue",
    "CounterValueSource",
    "EnvironmentInfo",
    "GaugeValueSource",
    "HealthCheckResult",
    "HealthStatus",
    "HistogramValue",
    "HistogramValueSource",
    "MeterSetItem",
    "MeterValue",
    "MeterValueSource",
    "MetricTags",
    "MetricsSnapshot",
    "SetItem",
    "TimerValue",
    "TimerValueSource",
    "ValueSource"
]
