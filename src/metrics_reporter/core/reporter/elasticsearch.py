"""Elasticsearch metrics reporter."""
import asyncio
import logging
import math
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional, Union

from metrics_reporter.adapters.client.base import BulkClient
from metrics_reporter.adapters.payload.builder import BulkPayloadBuilder, NameFormatter
from metrics_reporter.core.models.documents import MetricsSnapshot
from metrics_reporter.core.models.health import (
    HEALTH_STATUS_DEGRADED,
    HEALTH_STATUS_HEALTHY,
    HEALTH_STATUS_UNHEALTHY,
    EnvironmentInfo,
    HealthCheckResult,
    HealthStatus,
)
from metrics_reporter.core.models.metrics import (
    ApdexValueSource,
    CounterValueSource,
    GaugeValueSource,
    HistogramValueSource,
    MeterValueSource,
    MetricTags,
    TimerValueSource,
)
from metrics_reporter.utils.performance import async_timed

logger = logging.getLogger(__name__)

HEALTH_DOCUMENT_NAME = "health"
HEALTH_CHECK_TAG = "health_check"
HEALTH_CHECK_DOCUMENT_NAMES = {
    HealthStatus.UNHEALTHY: "health_checks__unhealthy",
    HealthStatus.DEGRADED: "health_checks__degraded",
    HealthStatus.HEALTHY: "health_checks__healthy",
}


def default_metric_name_formatter(context: str, name: str) -> str:
    """Format (context, name) as 'context__name', lower-cased with underscores for spaces."""
    formatted = f"{context}__{name}" if context and context.strip() else name
    return formatted.replace(" ", "_").lower()


class ReportRunState(str, Enum):
    """Lifecycle of one report cycle."""

    IDLE = "idle"
    RUNNING = "running"
    FLUSHING = "flushing"


class ReportRunStateError(RuntimeError):
    """Raised when report cycle operations are called out of order."""


class ElasticsearchReporter:
    """
    Reports metrics snapshots to Elasticsearch.

    One report cycle runs as ``start_report_run``, any number of
    ``report_metric`` and ``report_health`` calls, then a single
    ``end_and_flush_report_run``. The surrounding scheduler must not overlap
    cycles on the same reporter.
    """

    def __init__(
        self,
        client: BulkClient,
        payload_builder: BulkPayloadBuilder,
        report_interval: Union[timedelta, float],
        name: Optional[str] = None,
        metric_name_formatter: Optional[NameFormatter] = None
    ):
        """
        Initialize the reporter.

        Args:
            client: Bulk client the payload is flushed through
            payload_builder: Builder accumulating the documents of a cycle
            report_interval: How often the scheduler should run a cycle, as a
                timedelta or in seconds
            name: Display name of the reporter, defaults to the class name
            metric_name_formatter: Formats (context, metric name) into document names
        """
        if not isinstance(report_interval, timedelta):
            report_interval = timedelta(seconds=report_interval)

        self._client = client
        self._payload_builder = payload_builder
        self._report_interval = report_interval
        self._name = name or type(self).__name__
        self._metric_name_formatter = metric_name_formatter or default_metric_name_formatter
        self._state = ReportRunState.IDLE
        self._closed = False

        self._handlers: Dict[str, Callable[[str, Any], None]] = {
            "gauge": self._report_gauge,
            "counter": self._report_counter,
            "meter": self._report_meter,
            "timer": self._report_timer,
            "histogram": self._report_histogram,
            "apdex": self._report_apdex,
        }

    @property
    def name(self) -> str:
        return self._name

    @property
    def report_interval(self) -> timedelta:
        return self._report_interval

    @property
    def state(self) -> ReportRunState:
        return self._state

    @property
    def payload_builder(self) -> BulkPayloadBuilder:
        return self._payload_builder

    def start_report_run(self, metrics: Optional[MetricsSnapshot] = None) -> None:
        """Begin a report cycle, discarding anything left in the builder."""
        self._check_open()
        if self._state is not ReportRunState.IDLE:
            raise ReportRunStateError(f"Cannot start a report run for {self.name} while {self._state.value}")

        logger.debug(f"Starting {self.name} report run")
        self._payload_builder.init()
        self._state = ReportRunState.RUNNING

    def report_metric(self, context: str, value_source: Any) -> None:
        """
        Pack one metric into the current cycle.

        Value sources of a kind this reporter does not know, or whose value
        does not match their declared kind, are skipped.

        Args:
            context: Context the metric belongs to
            value_source: Snapshot of the metric's value
        """
        self._require_running("report_metric")

        kind = getattr(value_source, "kind", None)
        handler = self._handlers.get(kind) if isinstance(kind, str) else None
        if handler is None:
            logger.debug(f"Skipping metric of unsupported kind {kind!r} for {self.name}")
            return

        logger.debug(f"Packing {kind} metric for {self.name}")
        handler(context, value_source)

    def report_health(
        self,
        global_tags: Union[MetricTags, Dict[str, str], None],
        healthy_checks: Iterable[HealthCheckResult],
        degraded_checks: Iterable[HealthCheckResult],
        unhealthy_checks: Iterable[HealthCheckResult]
    ) -> None:
        """
        Pack the overall health status and one document per health check.

        The overall status is 3 when any check is unhealthy, 1 when no check is
        unhealthy or degraded, and 2 otherwise.

        Args:
            global_tags: Tags applied to every health document
            healthy_checks: Checks that reported healthy
            degraded_checks: Checks that reported degraded
            unhealthy_checks: Checks that reported unhealthy
        """
        self._require_running("report_health")
        logger.debug(f"Packing health checks for {self.name}")

        unhealthy = list(unhealthy_checks or [])
        degraded = list(degraded_checks or [])
        healthy = list(healthy_checks or [])

        health_status = HEALTH_STATUS_DEGRADED
        if unhealthy:
            health_status = HEALTH_STATUS_UNHEALTHY
        elif not degraded:
            health_status = HEALTH_STATUS_HEALTHY

        if isinstance(global_tags, MetricTags):
            tags = global_tags
        else:
            tags = MetricTags.from_dict(global_tags)

        self._payload_builder.pack(HEALTH_DOCUMENT_NAME, health_status, tags)

        for check in unhealthy + degraded + healthy:
            document_name = HEALTH_CHECK_DOCUMENT_NAMES.get(getattr(check, "status", None))
            if document_name is None:
                logger.debug(f"Skipping health check without a known status: {check!r}")
                continue

            check_tags = MetricTags.concat(tags, MetricTags.single(HEALTH_CHECK_TAG, check.name))
            self._payload_builder.pack(document_name, check.message, check_tags)

        logger.debug(f"Packed health checks for {self.name}")

    def report_environment(self, environment_info: Optional[EnvironmentInfo]) -> None:
        """Environment information is not shipped to Elasticsearch."""

    @async_timed
    async def end_and_flush_report_run(
        self,
        metrics: Optional[MetricsSnapshot] = None,
        timeout: Optional[float] = None
    ) -> bool:
        """
        Flush the cycle's payload through the bulk client and reset.

        The builder is cleared whatever the outcome, so documents from a failed
        flush are dropped rather than retried.

        Args:
            metrics: Snapshot the cycle was built from
            timeout: Seconds to wait for the write, defaults to the report interval

        Returns:
            bool: True if the bulk client delivered the payload, False otherwise
        """
        self._require_running("end_and_flush_report_run")
        self._state = ReportRunState.FLUSHING
        logger.debug(f"Ending {self.name} report run")

        if timeout is None:
            timeout = self._report_interval.total_seconds()

        payload = self._payload_builder.payload
        try:
            return await asyncio.wait_for(self._client.write(payload), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"Flushing {len(payload)} documents for {self.name} timed out after {timeout:.2f} seconds")
            return False
        finally:
            self._payload_builder.clear()
            self._state = ReportRunState.IDLE

    def close(self) -> None:
        """Release the payload buffer. Safe to call more than once."""
        if not self._closed:
            self._payload_builder.clear()
        self._closed = True

    def __enter__(self) -> "ElasticsearchReporter":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._closed:
            raise ReportRunStateError(f"Reporter {self.name} is closed")

    def _require_running(self, operation: str) -> None:
        if self._state is not ReportRunState.RUNNING:
            raise ReportRunStateError(
                f"{operation} called on {self.name} while {self._state.value}; call start_report_run first"
            )

    def _report_gauge(self, context: str, value_source: Any) -> None:
        if not isinstance(value_source, GaugeValueSource):
            return

        if math.isfinite(value_source.value):
            self._payload_builder.pack_value_source(self._metric_name_formatter, context, value_source)

    def _report_counter(self, context: str, value_source: Any) -> None:
        if not isinstance(value_source, CounterValueSource):
            return

        if value_source.value.items and value_source.report_set_items:
            for item in dict.fromkeys(value_source.value.items):
                self._payload_builder.pack_counter_set_items(
                    self._metric_name_formatter, context, value_source, item
                )

        self._payload_builder.pack_value_source(self._metric_name_formatter, context, value_source)

    def _report_meter(self, context: str, value_source: Any) -> None:
        if not isinstance(value_source, MeterValueSource):
            return

        for item in dict.fromkeys(value_source.value.items):
            self._payload_builder.pack_meter_set_items(self._metric_name_formatter, context, value_source, item)

        self._payload_builder.pack_value_source(
            self._metric_name_formatter, context, value_source, value_source.value.to_fields()
        )

    def _report_timer(self, context: str, value_source: Any) -> None:
        if not isinstance(value_source, TimerValueSource):
            return

        fields = value_source.value.rate.to_fields()
        fields.update(value_source.value.histogram.to_fields())

        self._payload_builder.pack_value_source(self._metric_name_formatter, context, value_source, fields)

    def _report_histogram(self, context: str, value_source: Any) -> None:
        if not isinstance(value_source, HistogramValueSource):
            return

        self._payload_builder.pack_value_source(
            self._metric_name_formatter, context, value_source, value_source.value.to_fields()
        )

    def _report_apdex(self, context: str, value_source: Any) -> None:
        if not isinstance(value_source, ApdexValueSource):
            return

        self._payload_builder.pack_value_source(
            self._metric_name_formatter, context, value_source, value_source.value.to_fields()
        )
