"""Initialization file for the reporters."""
from metrics_reporter.core.reporter.elasticsearch import (
    ElasticsearchReporter,
    ReportRunState,
    ReportRunStateError,
    default_metric_name_formatter
)

__all__ = [
    "ElasticsearchReporter",
    "ReportRunState",
    "ReportRunStateError",
    "default_metric_name_formatter"
]
