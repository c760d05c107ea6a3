"""
Run configuration for sporadic.

The RunConfig is built exactly once, before any worker starts, and is then
handed to every component. Nothing mutates it afterwards, so workers and
guards read it without any locking.
"""

import re
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

DEFAULT_TIMEOUT = 10 * 60.0  # seconds
DEFAULT_LIMIT = 100
GRACE_PERIOD = 10.0  # seconds between the soft interrupt and the kill
PROGRESS_INTERVAL = 2.0  # seconds between progress snapshots

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


class ConfigError(ValueError):
    """Raised when the run cannot start because of bad settings."""


@dataclass(frozen=True)
class RunConfig:
    """Immutable settings shared by every component of a stress run."""

    command: tuple[str, ...]
    parallelism: int
    timeout: float = DEFAULT_TIMEOUT
    kill: bool = True
    failure_re: re.Pattern[bytes] | None = None
    ignore_re: re.Pattern[bytes] | None = None
    output_prefix: str = ""
    limit: int = DEFAULT_LIMIT
    fail_fast: bool = False
    grace_period: float = GRACE_PERIOD
    progress_interval: float = PROGRESS_INTERVAL


def default_output_prefix(now: datetime | None = None) -> str:
    """Return `<tempdir>/sporadic-YYYYmmddTHHMMSS-`, the default failure log prefix."""
    stamp = (now or datetime.now()).strftime("sporadic-%Y%m%dT%H%M%S-")
    return str(Path(tempfile.gettempdir()) / stamp)


def parse_duration(text: str) -> float:
    """
    Parse a duration such as "10m", "1h30m", "1.5s" or "250ms" into seconds.

    A bare number is taken as seconds.

    Raises:
        ConfigError: If the text is not a valid duration.
    """
    text = text.strip()
    if not text:
        raise ConfigError("empty duration")
    try:
        return float(text)
    except ValueError:
        pass

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise ConfigError(f"invalid duration {text!r}")
    return sign * total


def compile_pattern(pattern: str | None, label: str) -> re.Pattern[bytes] | None:
    """
    Compile an output filter into a bytes regex.

    An empty or missing pattern means "no filter".

    Raises:
        ConfigError: With a "bad <label> regexp" message on invalid syntax.
    """
    if not pattern:
        return None
    try:
        return re.compile(pattern.encode("utf-8"))
    except re.error as e:
        raise ConfigError(f"bad {label} regexp: {e}") from e


def build_config(
    command: list[str] | tuple[str, ...],
    parallelism: int,
    timeout: float = DEFAULT_TIMEOUT,
    kill: bool = True,
    failure: str | None = None,
    ignore: str | None = None,
    output_prefix: str | None = None,
    limit: int = DEFAULT_LIMIT,
    fail_fast: bool = False,
) -> RunConfig:
    """
    Validate raw settings and build the RunConfig for a run.

    Args:
        command: Target program followed by its arguments.
        parallelism: Number of concurrent workers.
        timeout: Per-run timeout in seconds; 0 disables the timeout guard.
        kill: Escalate timed-out runs to interrupt/kill instead of only reporting them.
        failure: Count a failing run only if its output matches this regexp.
        ignore: Do not count a failing run if its output matches this regexp.
        output_prefix: Path prefix for failure logs (defaults to a temp dir prefix).
        limit: Stop after this many classified failures.
        fail_fast: Stop at the first classified failure.

    Raises:
        ConfigError: On any invalid value or bad pattern.
    """
    if not command:
        raise ConfigError("no command given")
    if parallelism <= 0:
        raise ConfigError(f"parallelism must be positive, got {parallelism}")
    if timeout < 0:
        raise ConfigError(f"timeout must not be negative, got {timeout}")
    if limit <= 0:
        raise ConfigError(f"failure limit must be positive, got {limit}")

    return RunConfig(
        command=tuple(command),
        parallelism=parallelism,
        timeout=timeout,
        kill=kill,
        failure_re=compile_pattern(failure, "failure"),
        ignore_re=compile_pattern(ignore, "ignore"),
        output_prefix=output_prefix or default_output_prefix(),
        limit=limit,
        fail_fast=fail_fast,
    )
