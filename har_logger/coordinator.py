"""Shutdown coordination.

shutdown() is the explicit end-of-life routine for a registry: it stops
new submissions, sends Shutdown to every target's queue and waits for
each writer to finish its document. install_exit_hook() runs the same
routine from atexit for hosts that never call it themselves.
"""

import atexit
import logging
from typing import Optional

from har_logger.errors import ShutdownError, WriterFailedError
from har_logger.registry import TargetRegistry, get_default_registry
from har_logger.settings import get_settings

logger = logging.getLogger(__name__)

_hooked_registries: set[int] = set()


def shutdown(
    registry: Optional[TargetRegistry] = None,
    timeout: Optional[float] = None,
) -> list[str]:
    """Flush and close every target of ``registry``.

    Args:
        registry: Registry to shut down. Defaults to the process-wide one.
        timeout: Seconds to wait for each writer. Defaults to
            settings.shutdown_timeout (None waits until the writer closes).

    Returns:
        Names of the targets whose documents were closed cleanly.

    Raises:
        ShutdownError: after all targets were processed, if any writer
            failed or did not finish within ``timeout``.
    """
    if registry is None:
        registry = get_default_registry()
    if timeout is None:
        timeout = get_settings().shutdown_timeout

    closed: list[str] = []
    failures: dict[str, BaseException] = {}

    for target in registry.close():
        if target.queue.push_shutdown():
            logger.debug("Sent shutdown to HAR target %s", target.name)

        if not target.writer.join(timeout):
            logger.error(
                "Timed out after %ss waiting for HAR writer %s", timeout, target.name
            )
            failures[target.name] = TimeoutError(
                f"HAR writer for {target.name!r} did not finish within {timeout}s"
            )
            continue

        if target.writer.failed:
            failures[target.name] = WriterFailedError(target.name, target.writer.error)
            continue

        closed.append(target.name)

    if failures:
        raise ShutdownError(failures)

    logger.debug("HAR logger shut down %d target(s)", len(closed))
    return closed


def install_exit_hook(registry: Optional[TargetRegistry] = None) -> None:
    """Register an atexit callback that shuts ``registry`` down.

    Safe to call repeatedly; each registry is hooked once.
    """
    if registry is None:
        registry = get_default_registry()
    if id(registry) in _hooked_registries:
        return
    _hooked_registries.add(id(registry))
    atexit.register(_exit_hook, registry)


def _exit_hook(registry: TargetRegistry) -> None:
    if registry.closing:
        return
    try:
        shutdown(registry)
    except ShutdownError as e:
        for name, cause in e.failures.items():
            logger.error("HAR file %s was not written completely: %s", name, cause)
