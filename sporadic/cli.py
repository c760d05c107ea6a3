"""
Command-line entry point for sporadic.

    $ sporadic ./fmt.test -test.run=TestSomething -test.cpu=10

Runs the given command in parallel, in a loop, and collects every failure
into its own log file. The run never finishes on its own: it stops on
Ctrl+C, at the first failure with -f, or once -limit failures were found.
"""

import argparse
import json
import logging
import shlex
import sys
from datetime import datetime
from pathlib import Path
from textwrap import dedent

from sporadic import __version__
from sporadic.aggregator import TerminationRequested
from sporadic.artifacts import ArtifactError
from sporadic.config import (
    DEFAULT_LIMIT,
    DEFAULT_TIMEOUT,
    ConfigError,
    RunConfig,
    build_config,
    default_output_prefix,
    parse_duration,
)
from sporadic.health import HealthMonitor
from sporadic.metadata import collect_host_info, default_parallelism
from sporadic.session import StressSession
from sporadic.utils import TeeLogger, format_duration

EXIT_STOPPED = 1
EXIT_INTERRUPTED = 130

DESCRIPTION = dedent("""\
    The sporadic utility is intended for catching sporadic failures.
    It runs a given process in parallel in a loop and collects any failures.
    Usage:

    \t$ sporadic ./fmt.test -test.run=TestSomething -test.cpu=10
""")


def _duration(text: str) -> float:
    try:
        return parse_duration(text)
    except ConfigError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


_TRUE_WORDS = {"1", "t", "T", "true", "TRUE", "True"}
_FALSE_WORDS = {"0", "f", "F", "false", "FALSE", "False"}


def _bool(text: str) -> bool:
    """Parse a boolean the way Go's flag package does (true/false/1/0/t/f)."""
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value {text!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sporadic",
        usage="%(prog)s [flags] command [args ...]",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument(
        "-p",
        type=int,
        default=None,
        metavar="N",
        help="Run N processes in parallel. (Default: number of logical CPUs)",
    )
    parser.add_argument(
        "-timeout",
        "--timeout",
        type=_duration,
        default=DEFAULT_TIMEOUT,
        metavar="DURATION",
        help="Timeout each process after DURATION, e.g. 90s, 10m, 1h. (Default: 10m)",
    )
    parser.add_argument(
        "-kill",
        "--kill",
        type=_bool,
        nargs="?",
        const=True,
        default=True,
        metavar="BOOL",
        help="Kill timed out processes; with -kill=false just print their pid (to attach with gdb).",
    )
    parser.add_argument(
        "--no-kill",
        dest="kill",
        action="store_false",
        help="Same as -kill=false.",
    )
    parser.add_argument(
        "-failure",
        "--failure",
        default="",
        metavar="REGEXP",
        help="Fail only if output matches REGEXP.",
    )
    parser.add_argument(
        "-ignore",
        "--ignore",
        default="",
        metavar="REGEXP",
        help="Ignore failure if output matches REGEXP.",
    )
    parser.add_argument(
        "-o",
        dest="output",
        default=None,
        metavar="PATH",
        help="Output failure logs to PATH plus a unique suffix. (Default: temp dir)",
    )
    parser.add_argument(
        "-limit",
        "--limit",
        type=int,
        default=DEFAULT_LIMIT,
        metavar="N",
        help=f"Maximum number of failures until exiting. (Default: {DEFAULT_LIMIT})",
    )
    parser.add_argument(
        "-f",
        dest="fail_fast",
        action="store_true",
        help="Exit on first failure.",
    )
    parser.add_argument(
        "-log",
        "--log",
        type=Path,
        default=None,
        metavar="PATH",
        help="Also write all console output to PATH.",
    )
    parser.add_argument(
        "-health-log",
        "--health-log",
        type=Path,
        default=None,
        metavar="PATH",
        help="Record timeouts, kills and start failures as JSON lines in PATH.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def split_argv(parser: argparse.ArgumentParser, argv: list[str]) -> tuple[list[str], list[str]]:
    """
    Split argv into (our flags, target command).

    Flag parsing stops at the first argument that is not a flag (or after
    "--"), so the target's own flags are never interpreted here.
    """
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == "--":
            return argv[:i], argv[i + 1 :]
        if not arg.startswith("-") or arg == "-":
            break
        option, sep, _ = arg.partition("=")
        action = parser._option_string_actions.get(option)
        # Only flags that require a value take the next argument; optional
        # values such as -kill=false must be given inline.
        if action is not None and action.nargs is None and not sep:
            i += 1  # The flag's value is the next argument
        i += 1
    return argv[:i], argv[i:]


def print_header(config: RunConfig) -> None:
    host = collect_host_info()
    header = f"""
================================================================================
SPORADIC RUN
================================================================================
- Hostname:          {host["hostname"]}
- Platform:          {host["platform"]}
- Process ID:        {host["pid"]}
- Python Version:    {host["python_version"]}
- CPUs / RAM:        {host["cpu_count_logical"]} logical, {host["cpu_count_physical"]} physical, {host["total_ram_gb"]} GB
- Working Dir:       {host["working_dir"]}
- Command:           {shlex.join(config.command)}
- Parallelism:       {config.parallelism}
- Timeout:           {format_duration(config.timeout)} (kill: {config.kill})
- Failure Logs:      {config.output_prefix}*
- Failure Limit:     {config.limit} (fail fast: {config.fail_fast})
================================================================================
"""
    print(header, file=sys.stderr)


def print_summary(session: StressSession | None, reason: str, started: datetime) -> None:
    duration = datetime.now() - started
    stats = session.aggregator.stats if session else None
    saved = [str(p) for p in session.sink.saved] if session else []
    summary = f"""
================================================================================
SPORADIC RUN SUMMARY
================================================================================
- Termination:       {reason}
- Total Duration:    {duration}
- Runs:              {stats.runs if stats else 0}
- Failures:          {stats.failures if stats else 0}
- Mean Duration:     {format_duration(stats.average) if stats else "n/a"}
- Failure Logs:
{json.dumps(saved, indent=4)}
================================================================================
"""
    print(summary, file=sys.stderr)


def configure_logging(verbose: bool) -> None:
    """Send log records to the current sys.stderr (the TeeLogger when -log is set)."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def main(argv: list[str] | None = None) -> int:
    """Parse command-line arguments and run a stress session until it is stopped."""
    parser = build_parser()
    flags, command = split_argv(parser, sys.argv[1:] if argv is None else argv)
    args = parser.parse_args(flags)

    parallelism = args.p if args.p is not None else default_parallelism()
    if parallelism <= 0 or args.timeout <= 0 or args.limit <= 0 or not command:
        parser.print_help(sys.stderr)
        return EXIT_STOPPED

    try:
        config = build_config(
            command=command,
            parallelism=parallelism,
            timeout=args.timeout,
            kill=args.kill,
            failure=args.failure,
            ignore=args.ignore,
            output_prefix=args.output or default_output_prefix(),
            limit=args.limit,
            fail_fast=args.fail_fast,
        )
    except ConfigError as e:
        print(e)
        return EXIT_STOPPED

    original_stdout = sys.stdout
    original_stderr = sys.stderr
    tee_logger = None
    if args.log:
        try:
            tee_logger = TeeLogger(args.log, original_stdout)
        except OSError as e:
            print(f"[!] Could not open log file {args.log}: {e}", file=sys.stderr)
            return EXIT_STOPPED
        sys.stdout = tee_logger
        sys.stderr = tee_logger
    configure_logging(args.verbose)

    health_monitor = HealthMonitor(args.health_log) if args.health_log else None
    started = datetime.now()
    session = None
    exit_code = EXIT_STOPPED
    termination_reason = "Completed"
    try:
        print_header(config)
        session = StressSession(config, health_monitor)
        session.run()
    except TerminationRequested as e:
        termination_reason = e.reason
    except ArtifactError as e:
        print(e)
        termination_reason = f"Error: {e}"
    except KeyboardInterrupt:
        print("\n[!] Stopped by user.", file=sys.stderr)
        termination_reason = "KeyboardInterrupt"
        exit_code = EXIT_INTERRUPTED
    finally:
        print_summary(session, termination_reason, started)
        if tee_logger is not None:
            sys.stdout = original_stdout
            sys.stderr = original_stderr
            tee_logger.close()
            configure_logging(args.verbose)
            print(f"[+] Full log saved to: {args.log}", file=sys.stderr)

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
