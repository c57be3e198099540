"""HAR writer thread.

One WriterThread owns the output file of one target. It drains the
target's EntryQueue in FIFO order and streams each entry into the HAR
document until it receives the Shutdown item, then writes the epilogue
and closes the file. The completion event is set on every exit path so
shutdown() never waits on a writer that failed to start.
"""

import logging
import queue
import threading
from enum import Enum
from pathlib import Path
from typing import Optional, TextIO

from har_logger.entry_queue import EntryItem, EntryQueue, Shutdown
from har_logger.serializer import HarDocumentWriter, serialize_entry

logger = logging.getLogger(__name__)


class WriterState(str, Enum):
    """Lifecycle states of a writer."""

    NOT_STARTED = "not_started"
    OPEN = "open"
    DRAINING = "draining"
    CLOSED = "closed"
    FAILED = "failed"


class WriterThread:
    """Consumes entries from a queue and writes them to a HAR file.

    Attributes:
        target: Path of the HAR file to produce. Existing content is
            overwritten.
        entry_queue: The queue this writer is the only consumer of.
        state: Current WriterState.
        error: The exception that moved the writer to FAILED, if any.
    """

    def __init__(
        self,
        target: str,
        entry_queue: EntryQueue,
        creator_name: str,
        creator_version: str,
    ):
        self.target = target
        self.entry_queue = entry_queue
        self.creator_name = creator_name
        self.creator_version = creator_version
        self.state = WriterState.NOT_STARTED
        self.error: Optional[BaseException] = None
        self.entries_written = 0
        self.entries_skipped = 0
        self.entries_dropped = 0
        self._done = threading.Event()
        # Daemon, so interpreter exit reaches the atexit hook that sends
        # Shutdown instead of blocking on this thread first.
        self._thread = threading.Thread(
            target=self._run,
            name=f"har-writer:{target}",
            daemon=True,
        )

    def start(self) -> None:
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait until the writer has closed or failed.

        Returns True once finished, False if the timeout expired first.
        """
        return self._done.wait(timeout)

    @property
    def finished(self) -> bool:
        return self._done.is_set()

    @property
    def failed(self) -> bool:
        return self.state == WriterState.FAILED

    def _run(self) -> None:
        try:
            stream = self._open()
        except OSError as e:
            logger.exception("Failed to open HAR file %s", self.target)
            self._fail(e)
        else:
            try:
                self._write_document(stream)
            except Exception as e:
                logger.exception("HAR writer for %s failed", self.target)
                self._fail(e)
        finally:
            self._discard_late_items()
            self._done.set()

    def _write_document(self, stream: TextIO) -> None:
        with stream:
            document = HarDocumentWriter(
                stream,
                creator_name=self.creator_name,
                creator_version=self.creator_version,
            )
            document.write_preamble()
            self.state = WriterState.OPEN
            logger.debug("Opened HAR file %s", self.target)

            self._drain(document)

            document.write_epilogue()
            stream.flush()
        self.state = WriterState.CLOSED
        logger.debug(
            "Closed HAR file %s (%d entries written, %d skipped)",
            self.target,
            self.entries_written,
            self.entries_skipped,
        )

    def _open(self) -> TextIO:
        path = Path(self.target)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path.open("w", encoding="utf-8")

    def _drain(self, document: HarDocumentWriter) -> None:
        self.state = WriterState.DRAINING
        first_entry = True

        while True:
            item = self.entry_queue.pop()
            if isinstance(item, Shutdown):
                break

            # Nothing has been written for this entry yet, so any failure
            # here (RecursionError from deep nesting included) only skips it.
            try:
                text = serialize_entry(item.entry)
            except Exception as e:
                self.entries_skipped += 1
                logger.warning(
                    "Skipping HAR entry for %s that could not be serialized: %s: %s",
                    self.target,
                    type(e).__name__,
                    e,
                )
                continue

            document.write_serialized_entry(text, is_first=first_entry)
            first_entry = False
            self.entries_written += 1

    def _fail(self, error: BaseException) -> None:
        self.error = error
        self.state = WriterState.FAILED

    def _discard_late_items(self) -> None:
        """Drop whatever is still queued once the file is closed."""
        while True:
            try:
                item = self.entry_queue.pop_nowait()
            except queue.Empty:
                break
            if isinstance(item, EntryItem):
                self.entries_dropped += 1

        if self.entries_dropped:
            logger.warning(
                "Dropped %d HAR entries submitted to %s after it stopped writing",
                self.entries_dropped,
                self.target,
            )

    def __repr__(self) -> str:
        return f"WriterThread(target={self.target!r}, state={self.state.value})"
