"""Periodic metrics reporting to Elasticsearch."""
from metrics_reporter.adapters.client import BulkClient, ElasticsearchBulkClient, InMemoryBulkClient
from metrics_reporter.adapters.payload import BulkPayloadBuilder
from metrics_reporter.config import ReporterSettings, build_reporter
from metrics_reporter.core.pipeline import ReportRunner
from metrics_reporter.core.reporter import ElasticsearchReporter, ReportRunStateError

__version__ = "0.1.0"

__all__ = [
    "BulkClient",
    "BulkPayloadBuilder",
    "ElasticsearchBulkClient",
    "ElasticsearchReporter",
    "InMemoryBulkClient",
    "ReportRunStateError",
    "ReportRunner",
    "ReporterSettings",
    "build_reporter"
]
