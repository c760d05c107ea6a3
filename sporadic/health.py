"""
Health monitoring for sporadic.

Records discrete adverse execution events (timeouts, escalations, targets
that could not be started) to a JSONL log file for observability.
The HealthMonitor is designed to be non-intrusive: it never raises
exceptions and is safe to call from any worker or guard thread.
"""

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


class HealthMonitor:
    """Track and record adverse execution events.

    Writes events to a JSONL log file and keeps in-memory counters keyed by
    "<category>.<event>".

    All public methods silently swallow I/O errors so the monitor never
    takes the run down.
    """

    def __init__(self, log_path: Path) -> None:
        """Initialize the HealthMonitor.

        Args:
            log_path: Path to the JSONL health events log file.
        """
        self.log_path = log_path
        self.counters: dict[str, int] = {}
        self._lock = threading.Lock()

    def _write_event(self, category: str, event: str, **kwargs: Any) -> None:
        """Append a single event to the JSONL log.

        Args:
            category: Event category.
            event: Event type name.
            **kwargs: Additional event-specific fields.
        """
        record: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "cat": category,
            "event": event,
        }
        record.update(kwargs)
        counter_key = f"{category}.{event}"
        with self._lock:
            try:
                with open(self.log_path, "a", encoding="utf-8") as f:
                    f.write(json.dumps(record, default=str) + "\n")
            except OSError:
                pass  # Never stop the run for a health event
            self.counters[counter_key] = self.counters.get(counter_key, 0) + 1

    def record_timeout(self, pid: int, timeout: float) -> None:
        """Record a run that outlived its timeout."""
        self._write_event("execution", "timeout", pid=pid, timeout=timeout)

    def record_interrupt(self, pid: int) -> None:
        """Record the soft interrupt sent to a timed-out process."""
        self._write_event("execution", "interrupt", pid=pid)

    def record_kill(self, pid: int, grace_period: float) -> None:
        """Record a process force-killed after ignoring the interrupt."""
        self._write_event("execution", "kill", pid=pid, grace_period=grace_period)

    def record_start_failure(self, command: str, error: str) -> None:
        """Record a target that could not be started at all."""
        self._write_event("execution", "start_failure", command=command, error=error)
