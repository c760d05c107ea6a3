"""
Host facts for sporadic runs.

Used for the default degree of parallelism and for the header printed at the
start of every run.
"""

import os
import platform
import socket
import sys
from pathlib import Path
from typing import Any

import psutil


def default_parallelism() -> int:
    """Return the number of logical CPUs, falling back to 1 when unknown."""
    return psutil.cpu_count(logical=True) or 1


def collect_host_info() -> dict[str, Any]:
    """Gather hostname, platform, interpreter and hardware facts for the run header."""
    return {
        "hostname": socket.gethostname(),
        "platform": platform.platform(),
        "pid": os.getpid(),
        "python_version": sys.version.replace("\n", " "),
        "working_dir": str(Path.cwd()),
        "cpu_count_logical": psutil.cpu_count(logical=True),
        "cpu_count_physical": psutil.cpu_count(logical=False),
        "total_ram_gb": round(psutil.virtual_memory().total / (1024**3), 2),
    }
