"""Unit tests for the Elasticsearch reporter."""
import asyncio
import math
import pytest
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock

from metrics_reporter.adapters.client.memory import InMemoryBulkClient
from metrics_reporter.adapters.payload.builder import BulkPayloadBuilder
from metrics_reporter.core.models.health import HealthCheckResult, HealthStatus
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
)
from metrics_reporter.core.reporter.elasticsearch import (
    ElasticsearchReporter,
    ReportRunState,
    ReportRunStateError,
    default_metric_name_formatter,
)


def format_name(context, name):
    return f"{context}.{name}"


@pytest.fixture
def client():
    return InMemoryBulkClient()


@pytest.fixture
def builder():
    return BulkPayloadBuilder(index="metrics-test")


@pytest.fixture
def reporter(client, builder):
    """Create a reporter with an in-memory client."""
    return ElasticsearchReporter(
        client=client,
        payload_builder=builder,
        report_interval=timedelta(seconds=5),
        metric_name_formatter=format_name
    )


@pytest.fixture
def running_reporter(reporter):
    reporter.start_report_run()
    return reporter


def health_check(name, status, message="message"):
    return HealthCheckResult(name=name, status=status, message=message)


def test_name_and_interval_defaults(client, builder):
    """Test the reporter's default name and interval conversion."""
    reporter = ElasticsearchReporter(client=client, payload_builder=builder, report_interval=2.5)

    assert reporter.name == "ElasticsearchReporter"
    assert reporter.report_interval == timedelta(seconds=2.5)
    assert reporter.state is ReportRunState.IDLE


def test_custom_name(client, builder):
    reporter = ElasticsearchReporter(client=client, payload_builder=builder, report_interval=1, name="es-main")
    assert reporter.name == "es-main"


def test_default_metric_name_formatter():
    """Test the default document name format."""
    assert default_metric_name_formatter("Web App", "Page Views") == "web_app__page_views"
    assert default_metric_name_formatter("", "cpu") == "cpu"
    assert default_metric_name_formatter("  ", "CPU Usage") == "cpu_usage"


@pytest.mark.parametrize("value", [0.0, 0.42, -3.5, 1e300])
def test_report_finite_gauge(running_reporter, builder, value):
    """Test that a finite gauge produces exactly one document."""
    running_reporter.report_metric("process", GaugeValueSource(name="cpu", value=value))

    assert len(builder.payload) == 1
    assert builder.payload[0].fields == {"value": value}


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
def test_report_non_finite_gauge_is_dropped(running_reporter, builder, value):
    """Test that NaN and infinite gauges produce no document."""
    running_reporter.report_metric("process", GaugeValueSource(name="cpu", value=value))

    assert len(builder.payload) == 0


def test_report_counter_with_set_items(running_reporter, builder):
    """Test that a counter with N items produces N + 1 documents, items first."""
    # Arrange
    items = (
        SetItem(item="home", count=2, percent=50.0),
        SetItem(item="cart", count=1, percent=25.0),
        SetItem(item="checkout", count=1, percent=25.0),
    )
    counter = CounterValueSource(name="page views", value=CounterValue(count=4, items=items))

    # Act
    running_reporter.report_metric("web", counter)

    # Assert
    payload = builder.payload
    assert len(payload) == 4
    assert [document.tags.to_dict().get("item") for document in payload] == ["home", "cart", "checkout", None]
    assert payload[-1].fields == {"value": 4}


def test_report_counter_with_duplicate_set_items(running_reporter, builder):
    """Test that only distinct items are reported."""
    item = SetItem(item="home", count=2, percent=100.0)
    counter = CounterValueSource(name="page views", value=CounterValue(count=2, items=(item, item)))

    running_reporter.report_metric("web", counter)

    assert len(builder.payload) == 2


def test_report_counter_set_items_disabled(running_reporter, builder):
    """Test that a counter reports one document when item reporting is off."""
    items = (SetItem(item="home", count=2), SetItem(item="cart", count=1))
    counter = CounterValueSource(
        name="page views",
        value=CounterValue(count=3, items=items),
        report_set_items=False
    )

    running_reporter.report_metric("web", counter)

    assert len(builder.payload) == 1
    assert builder.payload[0].fields == {"value": 3}


def test_report_meter_with_set_items(running_reporter, builder):
    """Test that a meter with M items produces M + 1 documents with rate fields on the aggregate."""
    # Arrange
    items = (
        MeterSetItem(item="GET", percent=75.0, value=MeterValue(count=3)),
        MeterSetItem(item="POST", percent=25.0, value=MeterValue(count=1)),
    )
    meter = MeterValueSource(
        name="requests",
        value=MeterValue(count=4, mean_rate=0.4, one_minute_rate=0.5, items=items)
    )

    # Act
    running_reporter.report_metric("web", meter)

    # Assert
    payload = builder.payload
    assert len(payload) == 3
    aggregate = payload[-1]
    assert {"rate1m", "rate5m", "rate15m", "rate.mean"} <= set(aggregate.fields)
    assert aggregate.fields["count.meter"] == 4
    assert "item" not in aggregate.tags.to_dict()


def test_report_meter_without_set_items(running_reporter, builder):
    meter = MeterValueSource(name="requests", value=MeterValue(count=4))

    running_reporter.report_metric("web", meter)

    assert len(builder.payload) == 1
    assert "rate.mean" in builder.payload[0].fields


def test_report_timer(running_reporter, builder):
    """Test that a timer packs one document merging rate and histogram fields."""
    timer = TimerValueSource(
        name="request duration",
        value=TimerValue(
            rate=MeterValue(count=10, one_minute_rate=1.0),
            histogram=HistogramValue(count=10, mean=0.2, max=0.9)
        )
    )

    running_reporter.report_metric("web", timer)

    assert len(builder.payload) == 1
    fields = builder.payload[0].fields
    assert fields["count.meter"] == 10
    assert fields["rate1m"] == 1.0
    assert fields["count.hist"] == 10
    assert fields["mean"] == 0.2
    assert fields["max"] == 0.9
    assert builder.payload[0].type == "timer"


def test_report_histogram(running_reporter, builder):
    histogram = HistogramValueSource(name="sizes", value=HistogramValue(count=3, median=2.0))

    running_reporter.report_metric("web", histogram)

    assert len(builder.payload) == 1
    assert builder.payload[0].fields["median"] == 2.0
    assert builder.payload[0].fields["count.hist"] == 3


def test_report_apdex(running_reporter, builder):
    apdex = ApdexValueSource(name="checkout", value=ApdexValue(score=0.9, satisfied=9, tolerating=2))

    running_reporter.report_metric("web", apdex)

    assert len(builder.payload) == 1
    assert builder.payload[0].fields["score"] == 0.9
    assert builder.payload[0].fields["satisfied"] == 9


def test_report_unknown_kind_is_ignored(running_reporter, builder):
    """Test that unknown metric kinds are skipped without raising."""
    running_reporter.report_metric("web", SimpleNamespace(kind="summary", name="x", value=1))
    running_reporter.report_metric("web", None)
    running_reporter.report_metric("web", SimpleNamespace(kind=["gauge"], name="x", value=1))

    assert len(builder.payload) == 0


def test_report_mismatched_kind_is_ignored(running_reporter, builder):
    """Test that a value source whose type does not match its kind is skipped."""
    running_reporter.report_metric("web", SimpleNamespace(kind="counter", name="x", value=1))

    assert len(builder.payload) == 0


def test_report_metric_uses_name_formatter(running_reporter, builder):
    running_reporter.report_metric("process", GaugeValueSource(name="cpu", value=1.0))

    assert builder.payload[0].name == "process.cpu"


def test_report_health_all_healthy(running_reporter, builder):
    """Test that K healthy checks give status 1 and K + 1 documents."""
    # Arrange
    healthy = [health_check("db", HealthStatus.HEALTHY), health_check("cache", HealthStatus.HEALTHY)]

    # Act
    running_reporter.report_health({"app": "shop"}, healthy, [], [])

    # Assert
    payload = builder.payload
    assert len(payload) == 3
    assert payload[0].name == "health"
    assert payload[0].fields == {"value": 1}
    assert payload[0].tags.items() == [("app", "shop")]
    assert [document.name for document in payload[1:]] == ["health_checks__healthy"] * 2
    assert payload[1].tags.items() == [("app", "shop"), ("health_check", "db")]


def test_report_health_no_checks(running_reporter, builder):
    running_reporter.report_health(MetricTags.empty(), [], [], [])

    assert len(builder.payload) == 1
    assert builder.payload[0].fields == {"value": 1}


@pytest.mark.parametrize("degraded_count,healthy_count", [(0, 0), (1, 0), (2, 3)])
def test_report_health_any_unhealthy(running_reporter, builder, degraded_count, healthy_count):
    """Test that any unhealthy check gives status 3."""
    unhealthy = [health_check("db", HealthStatus.UNHEALTHY)]
    degraded = [health_check(f"d{i}", HealthStatus.DEGRADED) for i in range(degraded_count)]
    healthy = [health_check(f"h{i}", HealthStatus.HEALTHY) for i in range(healthy_count)]

    running_reporter.report_health(None, healthy, degraded, unhealthy)

    assert builder.payload[0].fields == {"value": 3}
    assert len(builder.payload) == 1 + 1 + degraded_count + healthy_count


def test_report_health_degraded(running_reporter, builder):
    """Test that degraded checks without unhealthy ones give status 2."""
    running_reporter.report_health(
        {},
        [health_check("db", HealthStatus.HEALTHY)],
        [health_check("cache", HealthStatus.DEGRADED)],
        []
    )

    assert builder.payload[0].fields == {"value": 2}


def test_report_health_check_order_and_messages(running_reporter, builder):
    """Test that checks are packed unhealthy, then degraded, then healthy."""
    running_reporter.report_health(
        {"app": "shop"},
        [health_check("db", HealthStatus.HEALTHY, "OK")],
        [health_check("cache", HealthStatus.DEGRADED, "slow")],
        [health_check("queue", HealthStatus.UNHEALTHY, "down")]
    )

    checks = builder.payload[1:]
    assert [document.name for document in checks] == [
        "health_checks__unhealthy",
        "health_checks__degraded",
        "health_checks__healthy",
    ]
    assert [document.fields["value"] for document in checks] == ["down", "slow", "OK"]
    assert [document.tags.to_dict()["health_check"] for document in checks] == ["queue", "cache", "db"]


def test_report_health_field_follows_check_status(running_reporter, builder):
    """Test that the field name is chosen by the check's own status."""
    running_reporter.report_health({}, [health_check("db", HealthStatus.DEGRADED)], [], [])

    assert builder.payload[1].name == "health_checks__degraded"


def test_report_environment_is_noop(running_reporter, builder):
    running_reporter.report_environment(None)

    assert len(builder.payload) == 0


def test_pack_before_start_raises(reporter):
    """Test that packing outside a report run is detected."""
    with pytest.raises(ReportRunStateError):
        reporter.report_metric("process", GaugeValueSource(name="cpu", value=1.0))

    with pytest.raises(ReportRunStateError):
        reporter.report_health({}, [], [], [])


def test_start_twice_raises(running_reporter):
    with pytest.raises(ReportRunStateError):
        running_reporter.start_report_run()


@pytest.mark.asyncio
async def test_flush_before_start_raises(reporter):
    with pytest.raises(ReportRunStateError):
        await reporter.end_and_flush_report_run()


def test_start_clears_previous_documents(reporter, builder):
    """Test that starting a run discards documents left in the builder."""
    builder.pack("stale", 1, MetricTags.empty())

    reporter.start_report_run()

    assert len(builder.payload) == 0


@pytest.mark.asyncio
async def test_flush_success(running_reporter, builder, client):
    """Test flushing hands the payload to the client and clears the builder."""
    # Arrange
    running_reporter.report_metric("process", GaugeValueSource(name="cpu", value=1.0))

    # Act
    result = await running_reporter.end_and_flush_report_run()

    # Assert
    assert result is True
    assert len(client.writes) == 1
    assert len(client.writes[0]) == 1
    assert len(builder.payload) == 0
    assert running_reporter.state is ReportRunState.IDLE


@pytest.mark.asyncio
async def test_flush_failure_still_clears(running_reporter, builder, client):
    """Test that a failed flush returns False and still empties the builder."""
    client.succeed = False
    running_reporter.report_metric("process", GaugeValueSource(name="cpu", value=1.0))

    result = await running_reporter.end_and_flush_report_run()

    assert result is False
    assert len(builder.payload) == 0
    assert running_reporter.state is ReportRunState.IDLE


@pytest.mark.asyncio
async def test_flush_exception_still_clears(builder):
    """Test that an exception from the client propagates after cleanup."""
    # Arrange
    client = AsyncMock()
    client.write = AsyncMock(side_effect=RuntimeError("boom"))
    reporter = ElasticsearchReporter(client=client, payload_builder=builder, report_interval=5)
    reporter.start_report_run()
    reporter.report_metric("process", GaugeValueSource(name="cpu", value=1.0))

    # Act / Assert
    with pytest.raises(RuntimeError):
        await reporter.end_and_flush_report_run()

    assert len(builder.payload) == 0
    assert reporter.state is ReportRunState.IDLE


@pytest.mark.asyncio
async def test_flush_timeout(builder):
    """Test that a flush exceeding its timeout returns False and clears the builder."""
    # Arrange
    async def slow_write(documents):
        await asyncio.sleep(1)
        return True

    client = AsyncMock()
    client.write = slow_write
    reporter = ElasticsearchReporter(client=client, payload_builder=builder, report_interval=5)
    reporter.start_report_run()
    reporter.report_metric("process", GaugeValueSource(name="cpu", value=1.0))

    # Act
    result = await reporter.end_and_flush_report_run(timeout=0.01)

    # Assert
    assert result is False
    assert len(builder.payload) == 0
    assert reporter.state is ReportRunState.IDLE


@pytest.mark.asyncio
async def test_new_run_after_flush(running_reporter, client):
    """Test that a reporter can run consecutive cycles."""
    await running_reporter.end_and_flush_report_run()

    running_reporter.start_report_run()
    running_reporter.report_metric("process", GaugeValueSource(name="cpu", value=2.0))
    await running_reporter.end_and_flush_report_run()

    assert len(client.writes) == 2
    assert client.writes[0] == []
    assert client.writes[1][0].fields == {"value": 2.0}


def test_close_clears_builder(reporter, builder):
    """Test that closing the reporter releases the payload."""
    builder.pack("stale", 1, MetricTags.empty())

    reporter.close()
    reporter.close()

    assert len(builder.payload) == 0


def test_context_manager_closes(client, builder):
    """Test that leaving the context closes the reporter."""
    with ElasticsearchReporter(client=client, payload_builder=builder, report_interval=1) as reporter:
        reporter.start_report_run()
        reporter.report_metric("process", GaugeValueSource(name="cpu", value=1.0))

    assert len(builder.payload) == 0
    with pytest.raises(ReportRunStateError):
        reporter.start_report_run()
