"""Capture HTTP traffic from FastAPI apps into HAR files.

Usage::

    from fastapi import FastAPI
    from har_logger.capture import har_lifespan, instrument

    app = FastAPI(lifespan=har_lifespan)
    instrument(app, "trace.har")

Or capture a single router::

    router = APIRouter(route_class=har_route_class("orders.har"))
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Optional

from fastapi import FastAPI

from har_logger.coordinator import shutdown
from har_logger.errors import ShutdownError
from har_logger.registry import TargetRegistry
from har_logger.settings import get_settings

from .entry import HarEntry, build_entry
from .middleware import HarCaptureMiddleware, entry_from_exchange
from .route import har_route_class

logger = logging.getLogger(__name__)

__all__ = [
    "HarCaptureMiddleware",
    "HarEntry",
    "build_entry",
    "entry_from_exchange",
    "har_lifespan",
    "har_route_class",
    "instrument",
]


def instrument(
    app: FastAPI,
    output_file: Optional[str] = None,
    registry: Optional[TargetRegistry] = None,
    redact_headers: Optional[Iterable[str]] = None,
) -> Optional[str]:
    """Add HAR capture to ``app``.

    Returns the HAR file the app logs to, or None when capture is
    disabled by settings. An existing file is overwritten.
    """
    settings = get_settings()
    if not settings.enabled:
        logger.info("HAR capture disabled; not instrumenting %s", app.title)
        return None

    target = output_file or settings.default_output_file
    app.add_middleware(
        HarCaptureMiddleware,
        output_file=target,
        registry=registry,
        redact_headers=redact_headers,
    )
    logger.info("HAR capture middleware enabled → %s", target)
    return target


@asynccontextmanager
async def har_lifespan(
    app: Any,
    registry: Optional[TargetRegistry] = None,
) -> AsyncIterator[None]:
    """Lifespan that flushes and closes HAR files when the app stops.

    Use directly as ``FastAPI(lifespan=har_lifespan)`` or enter it from
    another lifespan to pass a specific registry.
    """
    try:
        yield
    finally:
        try:
            await asyncio.to_thread(shutdown, registry)
        except ShutdownError as e:
            for name, cause in e.failures.items():
                logger.error("HAR file %s was not written completely: %s", name, cause)
