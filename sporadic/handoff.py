"""
Zero-capacity handoff between producers and the aggregator.

Every worker and the progress reporter push into a single Rendezvous, and the
aggregator is its only consumer. `put` does not return until the consumer
has taken the item, so a slow aggregator throttles the workers instead of a
backlog building up between them.
"""

import queue
import threading
from typing import Any


class Tick:
    """A progress-report event injected by the ProgressReporter."""

    def __repr__(self) -> str:
        return "Tick()"


TICK = Tick()


class Rendezvous:
    """A synchronous channel: each `put` blocks until a matching `get`."""

    def __init__(self) -> None:
        # The slot holds at most one pending item; the per-item event carries
        # the "accepted" acknowledgement back to the producer.
        self._slot: queue.Queue[tuple[Any, threading.Event]] = queue.Queue(maxsize=1)

    def put(self, item: Any) -> None:
        """Hand `item` to the consumer, blocking until it has been taken."""
        accepted = threading.Event()
        self._slot.put((item, accepted))
        accepted.wait()

    def get(self, timeout: float | None = None) -> Any:
        """
        Take the next item, releasing the producer that offered it.

        Raises:
            queue.Empty: If `timeout` elapses with nothing offered.
        """
        item, accepted = self._slot.get(timeout=timeout)
        accepted.set()
        return item
