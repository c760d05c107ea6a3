"""
This module contains small helpers shared across sporadic.

It includes the per-execution result record, duration formatting and the
TeeLogger used to mirror console output into a log file.
"""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO


@dataclass(frozen=True)
class RunResult:
    """The outcome of one target execution.

    An empty `output` means the run was not classified as a failure.
    """

    output: bytes
    duration: float  # seconds

    @property
    def failed(self) -> bool:
        return bool(self.output)


def format_duration(seconds: float) -> str:
    """Format a duration compactly: 850.0ms, 1.52s, 2m3.5s, 1h2m3s."""
    # Round to the shown precision first so 59.999 becomes 1m0.0s, not 60.00s.
    millis = round(seconds * 1000, 1)
    if millis < 1000:
        return f"{millis:.1f}ms"
    if round(seconds, 2) < 60:
        return f"{round(seconds, 2):.2f}s"
    minutes, secs = divmod(round(seconds, 1), 60.0)
    if minutes < 60:
        return f"{int(minutes)}m{secs:.1f}s"
    hours, rest = divmod(int(round(seconds)), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}h{minutes}m{secs}s"


class TeeLogger:
    """
    A file-like object that writes to both a file and another stream
    (like the original stdout), and flushes immediately.

    Workers, guards and the aggregator all print, so writes are serialized
    with a lock to keep lines from interleaving mid-write.
    """

    def __init__(self, file_path: str | Path, original_stream: TextIO) -> None:
        """Initialize the logger with a file path and an existing stream.

        Args:
            file_path: Path to the log file.
            original_stream: The original stream (e.g., sys.stdout) to tee to.
        """
        self.original_stream = original_stream
        self.log_file = open(file_path, "a", encoding="utf-8")
        self._lock = threading.Lock()

    def write(self, message: str) -> int:
        """Write a message to both the original stream and the log file."""
        with self._lock:
            self.original_stream.write(message)
            self.log_file.write(message)
            self._do_flush()
        return len(message)

    def _do_flush(self) -> None:
        """Flush both underlying streams."""
        self.original_stream.flush()
        self.log_file.flush()

    def flush(self) -> None:
        with self._lock:
            self._do_flush()

    def close(self) -> None:
        """Flush both streams and close the log file."""
        with self._lock:
            self._do_flush()
            self.log_file.close()

    @property
    def encoding(self) -> str:
        """Return the encoding of the original stream."""
        return getattr(self.original_stream, "encoding", "utf-8")

    def isatty(self) -> bool:
        """Return whether the original stream is a TTY."""
        return hasattr(self.original_stream, "isatty") and self.original_stream.isatty()

    def fileno(self) -> int:
        """Return the file descriptor of the original stream.

        Raises OSError if the original stream doesn't have a file descriptor.
        """
        if hasattr(self.original_stream, "fileno"):
            return self.original_stream.fileno()
        raise OSError("TeeLogger does not have a file descriptor")
