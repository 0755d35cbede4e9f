"""Initialization file for the report pipeline."""
from metrics_reporter.core.pipeline.runner import ReportRunner, SnapshotProvider

__all__ = ["ReportRunner", "SnapshotProvider"]
