"""Tests for ProgressReporter (sporadic/reporter.py)."""

import queue
import unittest

from sporadic.handoff import TICK, Rendezvous
from sporadic.reporter import ProgressReporter


class TestProgressReporter(unittest.TestCase):
    def test_delivers_ticks_periodically(self):
        channel = Rendezvous()
        reporter = ProgressReporter(channel, interval=0.05).start()
        try:
            self.assertIs(channel.get(timeout=2), TICK)
            self.assertIs(channel.get(timeout=2), TICK)
        finally:
            reporter.stop()

    def test_no_tick_before_interval(self):
        channel = Rendezvous()
        reporter = ProgressReporter(channel, interval=5.0).start()
        try:
            with self.assertRaises(queue.Empty):
                channel.get(timeout=0.1)
        finally:
            reporter.stop()

    def test_stop_ends_ticks(self):
        channel = Rendezvous()
        reporter = ProgressReporter(channel, interval=0.05)
        reporter.stop()
        reporter.start()
        with self.assertRaises(queue.Empty):
            channel.get(timeout=0.2)


if __name__ == "__main__":
    unittest.main()
