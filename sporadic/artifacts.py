"""
Failure artifact persistence for sporadic.

This module provides the FailureSink, which writes the captured output of
every classified failure to its own uniquely named file.
"""

import os
import tempfile
from pathlib import Path


class ArtifactError(OSError):
    """A failure log could not be written. Losing evidence is fatal to the run."""


class FailureSink:
    """
    Persists failing output under a path prefix.

    The prefix is split into a directory and a file-name prefix, so
    "/tmp/run-" produces files like "/tmp/run-k3j2h1x0". An empty directory
    part means the system temp directory.
    """

    def __init__(self, output_prefix: str):
        """
        Initialize the FailureSink.

        Args:
            output_prefix: Directory plus file-name prefix for failure logs.

        Raises:
            ArtifactError: If the target directory cannot be created.
        """
        directory, self.prefix = os.path.split(output_prefix)
        self.directory = Path(directory) if directory else Path(tempfile.gettempdir())
        self.saved: list[Path] = []

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArtifactError(f"failed to create output directory {self.directory}: {e}") from e

    def save(self, output: bytes) -> Path:
        """
        Write `output` verbatim to a new, uniquely named file.

        Returns:
            Path of the file that was created.

        Raises:
            ArtifactError: If the file cannot be created or written.
        """
        try:
            fd, name = tempfile.mkstemp(prefix=self.prefix, dir=self.directory)
        except OSError as e:
            raise ArtifactError(f"failed to create temp file: {e}") from e

        path = Path(name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(output)
        except OSError as e:
            raise ArtifactError(f"failed to write {path}: {e}") from e

        self.saved.append(path)
        return path
