"""
Example script for running the reporter locally against an in-memory bulk client.
This demonstrates a few report runs without an Elasticsearch cluster.
"""
import asyncio
import logging
import random
from datetime import timedelta

from metrics_reporter.adapters.client.memory import InMemoryBulkClient
from metrics_reporter.adapters.payload.builder import BulkPayloadBuilder
from metrics_reporter.core.models import (
    ApdexValue,
    ApdexValueSource,
    CounterValue,
    CounterValueSource,
    GaugeValueSource,
    HealthCheckResult,
    HealthStatus,
    HistogramValue,
    MeterValue,
    MetricsSnapshot,
    MetricTags,
    SetItem,
    TimerValue,
    TimerValueSource,
)
from metrics_reporter.core.pipeline.runner import ReportRunner
from metrics_reporter.core.reporter.elasticsearch import ElasticsearchReporter

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

PAGE_NAMES = ["home", "products", "cart", "checkout"]
HOST_TAGS = MetricTags.from_dict({"host": "local"})


def generate_snapshot() -> MetricsSnapshot:
    """Generate a random metrics snapshot."""
    page_counts = [SetItem(item=page, count=random.randint(0, 50)) for page in PAGE_NAMES]
    total = sum(item.count for item in page_counts) or 1
    page_counts = [
        SetItem(item=item.item, count=item.count, percent=round(item.count * 100.0 / total, 2))
        for item in page_counts
    ]

    durations = HistogramValue(
        count=total,
        mean=random.uniform(0.05, 0.5),
        min=0.01,
        max=random.uniform(0.5, 2.0),
        percentile_95=random.uniform(0.4, 1.0),
        sample_size=total
    )

    return MetricsSnapshot(
        contexts={
            "process": [
                GaugeValueSource(name="cpu usage", value=random.random(), tags=HOST_TAGS),
                GaugeValueSource(name="load average", value=float("nan"), tags=HOST_TAGS),
            ],
            "web": [
                CounterValueSource(
                    name="page views",
                    value=CounterValue(count=total, items=tuple(page_counts)),
                    tags=HOST_TAGS
                ),
                TimerValueSource(
                    name="request duration",
                    value=TimerValue(rate=MeterValue(count=total, mean_rate=total / 10.0), histogram=durations),
                    tags=HOST_TAGS
                ),
                ApdexValueSource(
                    name="checkout apdex",
                    value=ApdexValue(score=0.9, satisfied=9, tolerating=2, frustrating=0, sample_size=11)
                ),
            ],
        },
        global_tags={"app": "shop", "env": "dev"},
        healthy=[HealthCheckResult(name="database", status=HealthStatus.HEALTHY, message="OK")],
        degraded=[HealthCheckResult(name="cache", status=HealthStatus.DEGRADED, message="High latency")]
    )


async def main():
    """Main function to run the example."""
    logger.info("Starting local metrics reporter example")

    client = InMemoryBulkClient(index="metrics-local")

    with ElasticsearchReporter(
        client=client,
        payload_builder=BulkPayloadBuilder(index="metrics-local"),
        report_interval=timedelta(seconds=1)
    ) as reporter:
        runner = ReportRunner(reporter, generate_snapshot)

        try:
            await runner.start()
            await asyncio.sleep(3.5)
        finally:
            await runner.stop()

    logger.info(f"Recorded {len(client.writes)} bulk requests")
    if client.bodies:
        logger.info(f"Last bulk request body:\n{client.bodies[-1]}")

    logger.info("Local metrics reporter example completed")

if __name__ == "__main__":
    asyncio.run(main())
