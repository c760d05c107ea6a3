"""
The aggregator: the single consumer of run results and progress ticks.

All statistics and every stop decision live here. Because the aggregator
handles exactly one event at a time on one thread, RunStats and the
FailureSink need no locking.
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sporadic.handoff import Tick
from sporadic.utils import RunResult, format_duration

if TYPE_CHECKING:
    from sporadic.artifacts import FailureSink
    from sporadic.config import RunConfig
    from sporadic.handoff import Rendezvous

# Failure output longer than this is truncated on the console (the file keeps it all).
MAX_ECHO_BYTES = 2 << 10


class TerminationRequested(Exception):
    """Raised when a stop policy (fail-fast or the failure limit) fires."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass
class RunStats:
    """Running totals for a stress session."""

    runs: int = 0
    failures: int = 0
    total_duration: float = 0.0
    max_duration: float = 0.0
    min_duration: float = math.inf

    def record(self, duration: float) -> None:
        self.runs += 1
        self.total_duration += duration
        self.max_duration = max(self.max_duration, duration)
        self.min_duration = min(self.min_duration, duration)

    @property
    def average(self) -> float:
        """Mean duration per execution (0.0 before the first run)."""
        return self.total_duration / self.runs if self.runs else 0.0

    def snapshot(self) -> str:
        """Return the one-line progress report.

        Note that the denominator counts a failed run twice (once in `runs`,
        once in `failures`); the pass rate and average shown here follow
        that definition rather than `average`.
        """
        total = self.runs + self.failures
        if total == 0:
            return "no runs so far"
        pass_rate = 100.0 * self.runs / total
        return (
            f"{self.runs} runs so far, {self.failures} failures ({pass_rate:.2f}% pass rate). "
            f"{format_duration(self.total_duration / total)} avg, "
            f"{format_duration(self.max_duration)} max, "
            f"{format_duration(self.min_duration)} min"
        )


class Aggregator:
    """
    Consumes results and ticks, keeps RunStats, persists failures and
    applies the fail-fast and failure-limit policies.
    """

    def __init__(self, config: "RunConfig", sink: "FailureSink"):
        """
        Initialize the Aggregator.

        Args:
            config: The shared run configuration (limit and fail-fast are read here)
            sink: FailureSink used to persist failing output
        """
        self.config = config
        self.sink = sink
        self.stats = RunStats()

    def display_progress(self) -> None:
        print(self.stats.snapshot())

    def handle_tick(self) -> None:
        self.display_progress()

    def handle_result(self, result: RunResult) -> Path | None:
        """
        Fold one result into the statistics.

        Returns:
            The path of the saved failure log, or None for a passing run.

        Raises:
            ArtifactError: If the failure log cannot be written.
            TerminationRequested: If fail-fast or the failure limit fires.
        """
        self.stats.record(result.duration)
        if self.stats.runs == 1:
            self.display_progress()
        if not result.failed:
            return None

        self.stats.failures += 1
        self.display_progress()
        path = self.sink.save(result.output)
        self._echo_failure(path, result.output)

        if self.config.fail_fast:
            print("fail fast enabled, exiting")
            raise TerminationRequested("fail fast")
        if self.stats.failures >= self.config.limit:
            print("failure limit hit, exiting")
            raise TerminationRequested("failure limit")
        return path

    def _echo_failure(self, path: Path, output: bytes) -> None:
        if len(output) > MAX_ECHO_BYTES:
            head = output[:MAX_ECHO_BYTES].decode("utf-8", errors="replace")
            print(f"{path}\n{head}\n…")
        else:
            print(f"{path}\n{output.decode('utf-8', errors='replace')}")

    def handle(self, event: Any) -> None:
        if isinstance(event, Tick):
            self.handle_tick()
        else:
            self.handle_result(event)

    def run(self, events: "Rendezvous") -> None:
        """Consume events forever; returns only by raising."""
        while True:
            self.handle(events.get())
