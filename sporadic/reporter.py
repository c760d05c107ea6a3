"""Periodic progress ticks for the aggregator."""

import threading
from typing import TYPE_CHECKING

from sporadic.config import PROGRESS_INTERVAL
from sporadic.handoff import TICK

if TYPE_CHECKING:
    from sporadic.handoff import Rendezvous


class ProgressReporter:
    """Puts a Tick into the aggregator's rendezvous every `interval` seconds.

    Ticks go through the same rendezvous as run results, so the aggregator
    handles them strictly between results, never alongside one.
    """

    def __init__(self, events: "Rendezvous", interval: float = PROGRESS_INTERVAL):
        self.events = events
        self.interval = interval
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name="progress", daemon=True)

    def start(self) -> "ProgressReporter":
        self._thread.start()
        return self

    def stop(self) -> None:
        self._stopped.set()

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            self.events.put(TICK)
