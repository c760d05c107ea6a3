"""
Per-execution timeout enforcement.

A TimeoutGuard watches a single target process. It races a timer against the
worker's "done" signal and, when the timer wins, either reports the pid (so a
debugger can be attached) or escalates: first a soft interrupt that lets the
target dump its state, then a hard kill once the grace period has run out.
"""

import logging
import signal
import subprocess
import sys
import threading
from enum import Enum
from typing import TYPE_CHECKING

from sporadic.config import GRACE_PERIOD

if TYPE_CHECKING:
    from sporadic.health import HealthMonitor

logger = logging.getLogger(__name__)

# SIGABRT makes most runtimes dump stacks or a core before dying.
SOFT_INTERRUPT = getattr(signal, "SIGABRT", None) if sys.platform != "win32" else None


class GuardState(Enum):
    WAITING = "waiting"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


class ProcessControl:
    """The two ways a guard can stop a process: ask it to stop, or force it."""

    def __init__(self, process: subprocess.Popen) -> None:
        self.process = process

    @property
    def pid(self) -> int:
        return self.process.pid

    def interrupt(self) -> None:
        """Send the soft interrupt; without one on this platform, kill outright."""
        if SOFT_INTERRUPT is None:
            self.kill()
            return
        try:
            self.process.send_signal(SOFT_INTERRUPT)
        except ProcessLookupError:
            pass  # Already gone

    def kill(self) -> None:
        try:
            self.process.kill()
        except ProcessLookupError:
            pass


class TimeoutGuard:
    """
    Watch one execution and escalate if it outlives the timeout.

    The guard is cancelled only by `done()`; once started it always ends in
    either CANCELLED or TIMED_OUT.
    """

    def __init__(
        self,
        process: subprocess.Popen,
        timeout: float,
        kill: bool = True,
        grace_period: float = GRACE_PERIOD,
        health_monitor: "HealthMonitor | None" = None,
    ):
        """
        Initialize the guard.

        Args:
            process: The running target process.
            timeout: Seconds to wait for `done()` before acting.
            kill: Escalate to interrupt/kill; if False only print the pid.
            grace_period: Seconds between the soft interrupt and the kill.
            health_monitor: Optional HealthMonitor for escalation events.
        """
        self.control = ProcessControl(process)
        self.timeout = timeout
        self.kill = kill
        self.grace_period = grace_period
        self.health_monitor = health_monitor
        self.state = GuardState.WAITING
        self.interrupted = False
        self.killed = False
        self._done = threading.Event()
        self._thread = threading.Thread(
            target=self._watch, name=f"guard-{self.control.pid}", daemon=True
        )

    def start(self) -> "TimeoutGuard":
        self._thread.start()
        return self

    def done(self) -> None:
        """Signal that the process has finished; cancels any pending escalation."""
        self._done.set()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def _watch(self) -> None:
        if self._done.wait(self.timeout):
            self.state = GuardState.CANCELLED
            return

        self.state = GuardState.TIMED_OUT
        pid = self.control.pid
        if self.health_monitor:
            self.health_monitor.record_timeout(pid, self.timeout)

        if not self.kill:
            print(f"process {pid} timed out")
            return

        logger.debug("process %d timed out, sending soft interrupt", pid)
        self.control.interrupt()
        self.interrupted = True
        if self.health_monitor:
            self.health_monitor.record_interrupt(pid)

        if self._done.wait(self.grace_period):
            return

        logger.debug("process %d survived %.1fs grace period, killing", pid, self.grace_period)
        self.control.kill()
        self.killed = True
        if self.health_monitor:
            self.health_monitor.record_kill(pid, self.grace_period)
