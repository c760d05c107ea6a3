"""
Tests for the command-line entry point (sporadic/cli.py).

This module tests argument splitting, validation exits and complete runs
that stop through fail-fast, the failure limit or a fatal artifact error.
"""

import io
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from sporadic.cli import EXIT_STOPPED, build_parser, main, split_argv

FAILING = [sys.executable, "-c", "import sys; print('kaboom'); sys.exit(7)"]


class TestSplitArgv(unittest.TestCase):
    def setUp(self):
        self.parser = build_parser()

    def test_flags_stop_at_command(self):
        flags, command = split_argv(
            self.parser, ["-p", "4", "-f", "./fmt.test", "-test.run=X", "-l"]
        )
        self.assertEqual(flags, ["-p", "4", "-f"])
        self.assertEqual(command, ["./fmt.test", "-test.run=X", "-l"])

    def test_flag_with_inline_value(self):
        flags, command = split_argv(self.parser, ["-timeout=1s", "--no-kill", "prog"])
        self.assertEqual(flags, ["-timeout=1s", "--no-kill"])
        self.assertEqual(command, ["prog"])

    def test_double_dash_separator(self):
        flags, command = split_argv(self.parser, ["-limit", "3", "--", "-weird-name"])
        self.assertEqual(flags, ["-limit", "3"])
        self.assertEqual(command, ["-weird-name"])

    def test_no_command(self):
        self.assertEqual(split_argv(self.parser, ["-p", "2"]), (["-p", "2"], []))

    def test_explicit_empty_value_does_not_swallow_command(self):
        flags, command = split_argv(self.parser, ["-failure=", "prog", "arg"])
        self.assertEqual(flags, ["-failure="])
        self.assertEqual(command, ["prog", "arg"])

    def test_optional_bool_value_never_taken_from_next_argument(self):
        flags, command = split_argv(self.parser, ["-kill", "false"])
        self.assertEqual(flags, ["-kill"])
        self.assertEqual(command, ["false"])


class TestParser(unittest.TestCase):
    def test_defaults(self):
        args = build_parser().parse_args([])
        self.assertIsNone(args.p)
        self.assertEqual(args.timeout, 600.0)
        self.assertTrue(args.kill)
        self.assertEqual(args.limit, 100)
        self.assertFalse(args.fail_fast)

    def test_go_style_flags(self):
        args = build_parser().parse_args(
            ["-p", "3", "-timeout", "90s", "--no-kill", "-failure", "OOM", "-o", "/tmp/x-", "-f"]
        )
        self.assertEqual(args.p, 3)
        self.assertEqual(args.timeout, 90.0)
        self.assertFalse(args.kill)
        self.assertEqual(args.failure, "OOM")
        self.assertEqual(args.output, "/tmp/x-")
        self.assertTrue(args.fail_fast)

    def test_kill_accepts_go_style_bool_values(self):
        parser = build_parser()
        cases = [("false", False), ("0", False), ("f", False), ("true", True), ("1", True), ("t", True)]
        for text, expected in cases:
            with self.subTest(text=text):
                flags, command = split_argv(parser, [f"-kill={text}", "prog"])
                self.assertIs(parser.parse_args(flags).kill, expected)
                self.assertEqual(command, ["prog"])

    def test_bare_kill_and_no_kill(self):
        parser = build_parser()
        self.assertIs(parser.parse_args(["-kill"]).kill, True)
        self.assertIs(parser.parse_args(["--no-kill"]).kill, False)

    def test_bad_kill_value_is_a_usage_error(self):
        with patch("sys.stderr", new_callable=io.StringIO):
            with self.assertRaises(SystemExit):
                build_parser().parse_args(["-kill=maybe"])

    def test_bad_duration_is_a_usage_error(self):
        with patch("sys.stderr", new_callable=io.StringIO):
            with self.assertRaises(SystemExit):
                build_parser().parse_args(["-timeout", "soon"])


class CliTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.temp_path = Path(self.temp_dir.name)
        self.stdout = io.StringIO()
        self.stderr = io.StringIO()
        self.patchers = [
            patch("sys.stdout", self.stdout),
            patch("sys.stderr", self.stderr),
        ]
        for patcher in self.patchers:
            patcher.start()

    def tearDown(self):
        for patcher in reversed(self.patchers):
            patcher.stop()
        self.temp_dir.cleanup()


class TestMainValidation(CliTestCase):
    def test_no_command_prints_usage(self):
        self.assertEqual(main(["-p", "2"]), EXIT_STOPPED)
        self.assertIn("usage: sporadic", self.stderr.getvalue())

    def test_non_positive_values_print_usage(self):
        for flags in (["-p", "0"], ["-timeout", "0"], ["-limit", "0"]):
            with self.subTest(flags=flags):
                self.assertEqual(main(flags + ["true"]), EXIT_STOPPED)
        self.assertIn("usage: sporadic", self.stderr.getvalue())

    def test_bad_failure_regexp(self):
        self.assertEqual(main(["-failure", "(oops", "true"]), EXIT_STOPPED)
        self.assertIn("bad failure regexp", self.stdout.getvalue())

    def test_bad_ignore_regexp(self):
        self.assertEqual(main(["-ignore", "[oops", "true"]), EXIT_STOPPED)
        self.assertIn("bad ignore regexp", self.stdout.getvalue())


class TestMainRuns(CliTestCase):
    def test_fail_fast_run(self):
        prefix = self.temp_path / "logs" / "run-"
        code = main(["-p", "2", "-f", "-o", str(prefix)] + FAILING)

        self.assertEqual(code, EXIT_STOPPED)
        artifacts = list(prefix.parent.glob("run-*"))
        self.assertEqual(len(artifacts), 1)
        self.assertEqual(artifacts[0].read_bytes(), b"kaboom\n\nERROR: exit status 7")

        output = self.stdout.getvalue()
        self.assertIn(str(artifacts[0]), output)
        self.assertIn("fail fast enabled, exiting", output)
        self.assertIn("SPORADIC RUN SUMMARY", self.stderr.getvalue())
        self.assertIn("Termination:       fail fast", self.stderr.getvalue())
        self.assertIn("Mean Duration:", self.stderr.getvalue())

    def test_limit_run(self):
        prefix = self.temp_path / "run-"
        code = main(["-p", "2", "-limit", "3", "-o", str(prefix)] + FAILING)

        self.assertEqual(code, EXIT_STOPPED)
        self.assertEqual(len(list(self.temp_path.glob("run-*"))), 3)
        self.assertIn("failure limit hit, exiting", self.stdout.getvalue())

    def test_unwritable_output_is_fatal(self):
        blocker = self.temp_path / "blocker"
        blocker.write_text("")
        code = main(["-p", "1", "-f", "-o", str(blocker / "sub" / "run-")] + FAILING)

        self.assertEqual(code, EXIT_STOPPED)
        self.assertIn("failed to create output directory", self.stdout.getvalue())

    def test_log_file_receives_console_output(self):
        log_path = self.temp_path / "console.log"
        prefix = self.temp_path / "run-"
        main(["-p", "1", "-f", "-log", str(log_path), "-o", str(prefix)] + FAILING)

        log_text = log_path.read_text()
        self.assertIn("SPORADIC RUN", log_text)
        self.assertIn("fail fast enabled, exiting", log_text)
        self.assertIs(sys.stdout, self.stdout)

    def test_verbose_debug_lines_reach_log_file(self):
        log_path = self.temp_path / "console.log"
        prefix = self.temp_path / "run-"
        main(["-p", "2", "-v", "-f", "-log", str(log_path), "-o", str(prefix)] + FAILING)

        self.assertIn("started 2 workers", log_path.read_text())

    def test_unwritable_log_file_is_reported(self):
        log_path = self.temp_path / "missing-dir" / "console.log"
        code = main(["-p", "1", "-f", "-log", str(log_path)] + FAILING)

        self.assertEqual(code, EXIT_STOPPED)
        self.assertIn("[!] Could not open log file", self.stderr.getvalue())
        self.assertIs(sys.stdout, self.stdout)

    def test_health_log_records_start_failures(self):
        health_path = self.temp_path / "health.jsonl"
        prefix = self.temp_path / "run-"
        code = main(
            ["-p", "1", "-f", "-health-log", str(health_path), "-o", str(prefix)]
            + ["/nonexistent/sporadic-target"]
        )

        self.assertEqual(code, EXIT_STOPPED)
        self.assertIn('"start_failure"', health_path.read_text())


if __name__ == "__main__":
    unittest.main()
