"""Initialization file for the payload adapters."""
from metrics_reporter.adapters.payload.builder import BulkPayloadBuilder, NameFormatter, to_bulk_body

__all__ = ["BulkPayloadBuilder", "NameFormatter", "to_bulk_body"]
