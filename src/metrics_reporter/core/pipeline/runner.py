"""Scheduled report runner driving one reporter cycle per interval."""
import asyncio
import logging
from typing import Callable, Optional

from metrics_reporter.core.models.documents import MetricsSnapshot
from metrics_reporter.core.reporter.elasticsearch import ElasticsearchReporter

logger = logging.getLogger(__name__)

SnapshotProvider = Callable[[], MetricsSnapshot]


class ReportRunner:
    """
    Runs report cycles on a fixed interval.

    Each tick takes a fresh snapshot from the provider and drives one full
    cycle on the reporter. Cycles never overlap: the next tick is scheduled
    only after the previous flush has completed.
    """

    def __init__(self, reporter: ElasticsearchReporter, snapshot_provider: SnapshotProvider):
        """
        Initialize the report runner.

        Args:
            reporter: Reporter the cycles are run on
            snapshot_provider: Callable returning the metrics snapshot for a cycle
        """
        self.reporter = reporter
        self.snapshot_provider = snapshot_provider

        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None

    async def run_once(self) -> bool:
        """
        Run a single report cycle.

        Returns:
            bool: Result of the flush
        """
        snapshot = self.snapshot_provider()

        self.reporter.start_report_run(snapshot)

        # The flush always runs so the reporter returns to idle
        try:
            for context, value_sources in snapshot.contexts.items():
                for value_source in value_sources:
                    self.reporter.report_metric(context, value_source)

            self.reporter.report_health(
                snapshot.global_tags,
                snapshot.healthy,
                snapshot.degraded,
                snapshot.unhealthy
            )
            self.reporter.report_environment(snapshot.environment)
        except Exception as e:
            logger.error(f"Error packing report run for {self.reporter.name}: {e}")

        return await self.reporter.end_and_flush_report_run(snapshot)

    async def start(self):
        """Start running report cycles in the background."""
        if self._task is not None:
            logger.warning("Report runner is already running")
            return

        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Started {self.reporter.name} every {self.reporter.report_interval.total_seconds()} seconds")

    async def stop(self):
        """Stop running report cycles."""
        if self._task is None:
            logger.warning("No report runner is running")
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass

        self._task = None
        logger.info(f"Stopped {self.reporter.name}")

    async def _run_loop(self):
        """Run a report cycle every report interval until cancelled."""
        interval = self.reporter.report_interval.total_seconds()
        while True:
            try:
                await asyncio.sleep(interval)

                if not await self.run_once():
                    logger.warning(f"{self.reporter.name} failed to flush its report run")
            except asyncio.CancelledError:
                logger.info("Report runner cancelled")
                break
            except Exception as e:
                logger.error(f"Error running report cycle for {self.reporter.name}: {e}")
