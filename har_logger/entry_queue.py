"""Per-target entry queue.

Producers push ``EntryItem`` values from any thread; the target's single
writer pops them in FIFO order. A ``Shutdown`` item ends the stream.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryItem:
    """One captured entry handed off to the writer."""

    entry: Any


@dataclass(frozen=True)
class Shutdown:
    """Tells the writer to close its document."""

    pass


Item = Union[EntryItem, Shutdown]


class EntryQueue:
    """Unbounded multi-producer, single-consumer FIFO of queue items."""

    def __init__(self, target: str):
        self.target = target
        self._items: "queue.SimpleQueue[Item]" = queue.SimpleQueue()
        self._shutdown_sent = False
        self._shutdown_lock = threading.Lock()

    def push(self, item: Item) -> None:
        """Enqueue an item. Never blocks."""
        self._items.put(item)

    def pop(self) -> Item:
        """Block until an item is available and return it."""
        return self._items.get()

    def pop_nowait(self) -> Item:
        """Return the next item or raise queue.Empty."""
        return self._items.get_nowait()

    def push_entry(self, entry: Any) -> None:
        self.push(EntryItem(entry))

    def push_shutdown(self) -> bool:
        """Enqueue the shutdown signal once.

        Returns False (and enqueues nothing) if it was already sent.
        """
        with self._shutdown_lock:
            if self._shutdown_sent:
                logger.warning("Shutdown already sent for HAR target %s", self.target)
                return False
            self._shutdown_sent = True
        self.push(Shutdown())
        return True

    @property
    def shutdown_sent(self) -> bool:
        return self._shutdown_sent

    def qsize(self) -> int:
        """Approximate number of queued items."""
        return self._items.qsize()

    def __repr__(self) -> str:
        return f"EntryQueue(target={self.target!r}, size={self.qsize()})"
