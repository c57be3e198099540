"""Target registry.

Maps each output file name to its entry queue and writer thread. The
first caller to ask for a target creates both; every later caller gets
the same queue. Producers then push entries, and the target's writer
thread dequeues them and writes them to the file.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

from har_logger.entry_queue import EntryQueue
from har_logger.errors import RegistryClosedError
from har_logger.settings import get_settings
from har_logger.writer import WriterThread

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Target:
    """The queue and writer serving one output file."""

    name: str
    queue: EntryQueue
    writer: WriterThread


class TargetRegistry:
    """Process-wide map of output targets with exactly-once creation."""

    def __init__(
        self,
        creator_name: Optional[str] = None,
        creator_version: Optional[str] = None,
    ):
        settings = get_settings()
        self.creator_name = creator_name or settings.creator_name
        self.creator_version = creator_version or settings.creator_version
        self._targets: dict[str, Target] = {}
        self._lock = threading.Lock()
        self._closing = False

    def get_or_create_queue(self, target: str) -> EntryQueue:
        """Return the entry queue for ``target``, creating it if needed.

        Raises:
            RegistryClosedError: ``target`` is new and shutdown has begun.
        """
        return self.get_or_create(target).queue

    def get_or_create(self, target: str) -> Target:
        with self._lock:
            existing = self._targets.get(target)
            if existing is not None:
                return existing
            if self._closing:
                raise RegistryClosedError(target)

            entry_queue = EntryQueue(target)
            created = Target(
                name=target,
                queue=entry_queue,
                writer=WriterThread(
                    target,
                    entry_queue,
                    creator_name=self.creator_name,
                    creator_version=self.creator_version,
                ),
            )
            self._targets[target] = created

        # Only the inserting caller gets here, so the writer starts once.
        created.writer.start()
        logger.debug("Registered HAR target %s", target)
        return created

    def submit(self, target: str, entry: Any) -> bool:
        """Enqueue one entry for ``target``.

        Returns True if the entry was queued, False if it was dropped
        because shutdown has begun or the target's writer has stopped.
        True means queued, not guaranteed written: the checks run without
        the lock, so a writer that stops right after them leaves the entry
        unread in its queue.
        """
        if self._closing:
            logger.debug("Dropping HAR entry for %s: shutdown in progress", target)
            return False

        try:
            registered = self.get_or_create(target)
        except RegistryClosedError:
            logger.debug("Dropping HAR entry for %s: shutdown in progress", target)
            return False

        if registered.writer.finished:
            logger.debug("Dropping HAR entry for %s: writer has stopped", target)
            return False

        registered.queue.push_entry(entry)
        return True

    def get(self, target: str) -> Optional[Target]:
        with self._lock:
            return self._targets.get(target)

    def targets(self) -> list[Target]:
        """Snapshot of registered targets in registration order."""
        with self._lock:
            return list(self._targets.values())

    def close(self) -> list[Target]:
        """Stop accepting new targets and entries; return the live targets."""
        with self._lock:
            self._closing = True
            return list(self._targets.values())

    @property
    def closing(self) -> bool:
        return self._closing

    def __len__(self) -> int:
        with self._lock:
            return len(self._targets)

    def __contains__(self, target: object) -> bool:
        with self._lock:
            return target in self._targets


_default_registry: Optional[TargetRegistry] = None
_default_registry_lock = threading.Lock()


def get_default_registry() -> TargetRegistry:
    """Return the process-wide registry, creating it on first use.

    Installs the atexit flush hook when settings.exit_hook is enabled.
    """
    global _default_registry
    with _default_registry_lock:
        if _default_registry is None:
            _default_registry = TargetRegistry()
            if get_settings().exit_hook:
                from har_logger.coordinator import install_exit_hook

                install_exit_hook(_default_registry)
        return _default_registry


def get_queue(target: Optional[str] = None) -> EntryQueue:
    """Return the default registry's queue for ``target``.

    Uses the configured default output file when ``target`` is None.
    """
    if target is None:
        target = get_settings().default_output_file
    return get_default_registry().get_or_create_queue(target)


def submit(target: Optional[str], entry: Any) -> bool:
    """Submit one entry to the default registry."""
    if target is None:
        target = get_settings().default_output_file
    return get_default_registry().submit(target, entry)
