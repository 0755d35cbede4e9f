"""Initialization file for the bulk clients."""
from metrics_reporter.adapters.client.base import BulkClient
from metrics_reporter.adapters.client.elasticsearch import ElasticsearchBulkClient
from metrics_reporter.adapters.client.memory import InMemoryBulkClient

__all__ = ["BulkClient", "ElasticsearchBulkClient", "InMemoryBulkClient"]
