"""Initialization file for the adapters module."""
from metrics_reporter.adapters import client, payload

__all__ = ["client", "payload"]
