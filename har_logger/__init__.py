"""HAR logger: record HTTP exchanges to HAR files without blocking requests.

Entries are routed by output file name to a per-file queue; one writer
thread per file streams them into a HAR 1.2 document. Call shutdown()
(or rely on the atexit hook) to close every document.

Usage::

    import har_logger

    har_logger.submit("trace.har", {"request": ..., "response": ...})
    har_logger.shutdown()
"""

from .coordinator import install_exit_hook, shutdown
from .entry_queue import EntryItem, EntryQueue, Item, Shutdown
from .errors import HarLoggerError, RegistryClosedError, ShutdownError, WriterFailedError
from .registry import Target, TargetRegistry, get_default_registry, get_queue, submit
from .serializer import HarDocumentWriter, serialize_entry
from .settings import HarLoggerSettings, get_settings
from .version import __version__
from .writer import WriterState, WriterThread

__all__ = [
    "EntryItem",
    "EntryQueue",
    "HarDocumentWriter",
    "HarLoggerError",
    "HarLoggerSettings",
    "Item",
    "RegistryClosedError",
    "Shutdown",
    "ShutdownError",
    "Target",
    "TargetRegistry",
    "WriterFailedError",
    "WriterState",
    "WriterThread",
    "__version__",
    "get_default_registry",
    "get_queue",
    "get_settings",
    "install_exit_hook",
    "serialize_entry",
    "shutdown",
    "submit",
]
