"""
Target execution for sporadic.

This module provides the Worker class which handles:
- Running the target command with combined stdout/stderr capture
- Arming a TimeoutGuard for every execution
- Classifying each run as a failure or a pass
- Handing the result to the aggregator, one run at a time
"""

import logging
import shlex
import signal
import subprocess
import time
from typing import TYPE_CHECKING

from sporadic.guard import TimeoutGuard
from sporadic.utils import RunResult

if TYPE_CHECKING:
    from sporadic.config import RunConfig
    from sporadic.handoff import Rendezvous
    from sporadic.health import HealthMonitor

logger = logging.getLogger(__name__)


def describe_exit(returncode: int) -> str | None:
    """
    Summarize a completion status, or return None for a successful exit.

    Negative return codes mean the process was killed by a signal.
    """
    if returncode == 0:
        return None
    if returncode < 0:
        try:
            sig_name = signal.Signals(-returncode).name
        except ValueError:
            sig_name = f"SIG_{-returncode}"
        return f"signal: {sig_name}"
    return f"exit status {returncode}"


def classify(output: bytes, error: str | None, config: "RunConfig") -> bytes:
    """
    Decide whether a run is a failure.

    A run fails only if it did not complete successfully, the failure filter
    (when set) matches its output, and the ignore filter (when set) does not.

    Returns:
        The output with an "ERROR:" trailer for a failure, or b"" for a pass.
    """
    if error is None:
        return b""
    if config.failure_re is not None and not config.failure_re.search(output):
        return b""
    if config.ignore_re is not None and config.ignore_re.search(output):
        return b""
    return output + f"\nERROR: {error}".encode("utf-8", errors="replace")


class Worker:
    """
    Runs the target over and over and reports every run to the aggregator.

    A worker never stops on its own; it lives until the process exits.
    """

    def __init__(
        self,
        config: "RunConfig",
        results: "Rendezvous",
        health_monitor: "HealthMonitor | None" = None,
    ):
        """
        Initialize the Worker.

        Args:
            config: The shared, read-only run configuration
            results: Rendezvous feeding the aggregator
            health_monitor: Optional HealthMonitor for adverse events
        """
        self.config = config
        self.results = results
        self.health_monitor = health_monitor

    def _run_target(self) -> tuple[bytes, str | None]:
        """Run the target once and return (combined output, error summary or None)."""
        try:
            process = subprocess.Popen(
                self.config.command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            # Couldn't even start it: same path as a failed run with no output.
            logger.debug("could not start %s: %s", self.config.command[0], e)
            if self.health_monitor:
                self.health_monitor.record_start_failure(shlex.join(self.config.command), str(e))
            return b"", str(e)

        guard = None
        if self.config.timeout > 0:
            guard = TimeoutGuard(
                process,
                self.config.timeout,
                kill=self.config.kill,
                grace_period=self.config.grace_period,
                health_monitor=self.health_monitor,
            ).start()
        try:
            output, _ = process.communicate()
        finally:
            if guard is not None:
                guard.done()
        return output, describe_exit(process.returncode)

    def execute_once(self) -> RunResult:
        """Execute the target a single time and classify the outcome."""
        start_time = time.monotonic()
        output, error = self._run_target()
        return RunResult(
            output=classify(output, error, self.config),
            duration=time.monotonic() - start_time,
        )

    def run_forever(self) -> None:
        """Execute, report, repeat. Blocks in `put` until the aggregator takes each result."""
        while True:
            self.results.put(self.execute_once())
