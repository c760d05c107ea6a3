"""
Wiring for a stress session.

A StressSession owns one Rendezvous, one Aggregator, P Workers and one
ProgressReporter. Workers and the reporter run on daemon threads; the
aggregator runs on the calling thread, so whatever stops the aggregator
(a stop policy, a fatal artifact error, Ctrl+C) stops the session, and the
abandoned daemon threads die with the process.
"""

import logging
import threading
from typing import TYPE_CHECKING

from sporadic.aggregator import Aggregator
from sporadic.artifacts import FailureSink
from sporadic.execution import Worker
from sporadic.handoff import Rendezvous
from sporadic.reporter import ProgressReporter

if TYPE_CHECKING:
    from sporadic.config import RunConfig
    from sporadic.health import HealthMonitor

logger = logging.getLogger(__name__)


class StressSession:
    """Builds and runs every component of one stress run."""

    def __init__(self, config: "RunConfig", health_monitor: "HealthMonitor | None" = None):
        self.config = config
        self.health_monitor = health_monitor
        self.events = Rendezvous()
        self.sink = FailureSink(config.output_prefix)
        self.aggregator = Aggregator(config, self.sink)
        self.reporter = ProgressReporter(self.events, config.progress_interval)
        self.workers = [
            Worker(config, self.events, health_monitor) for _ in range(config.parallelism)
        ]

    def start_workers(self) -> None:
        for i, worker in enumerate(self.workers):
            threading.Thread(target=worker.run_forever, name=f"worker-{i}", daemon=True).start()
        logger.debug("started %d workers", len(self.workers))

    def run(self) -> None:
        """
        Start producing and consume until a stop condition.

        Raises:
            TerminationRequested: When fail-fast or the failure limit fires.
            ArtifactError: When a failure log cannot be written.
        """
        self.start_workers()
        self.reporter.start()
        try:
            self.aggregator.run(self.events)
        finally:
            self.reporter.stop()
