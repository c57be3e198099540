"""Starlette/FastAPI middleware that logs every exchange to a HAR file.

Usage::

    from har_logger.capture import HarCaptureMiddleware

    app.add_middleware(HarCaptureMiddleware, output_file="trace.har")

The request body is read before the app runs and the response body is
buffered, so both are available to the entry builder. Entries are handed
to the target's writer thread; the request never waits on file I/O.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Iterable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response as StarletteResponse
from starlette.types import ASGIApp

from har_logger.errors import RegistryClosedError
from har_logger.registry import TargetRegistry, get_default_registry
from har_logger.settings import get_settings

from .entry import HarEntry, build_entry

logger = logging.getLogger(__name__)


class HarCaptureMiddleware(BaseHTTPMiddleware):
    """Middleware that records request/response pairs to a HAR file."""

    def __init__(
        self,
        app: ASGIApp,
        output_file: Optional[str] = None,
        registry: Optional[TargetRegistry] = None,
        redact_headers: Optional[Iterable[str]] = None,
    ) -> None:
        super().__init__(app)
        settings = get_settings()
        self.output_file = output_file or settings.default_output_file
        self.registry = registry if registry is not None else get_default_registry()
        self.redact_headers = (
            list(redact_headers)
            if redact_headers is not None
            else settings.redact_headers_list
        )
        # Register eagerly so the writer truncates the file at startup.
        try:
            self.registry.get_or_create_queue(self.output_file)
        except RegistryClosedError:
            logger.warning(
                "HAR logger already shut down; not capturing to %s", self.output_file
            )

    async def dispatch(self, request: Request, call_next) -> Response:
        started_at = datetime.now(timezone.utc)
        start = time.monotonic()

        request_body = await request.body()

        response: Response = await call_next(request)
        wait_time_ms = round((time.monotonic() - start) * 1000)

        # BaseHTTPMiddleware returns a streaming response; buffer its body
        response_body = b""
        async for chunk in response.body_iterator:
            response_body += chunk

        buffered = StarletteResponse(
            content=response_body,
            status_code=response.status_code,
            background=response.background,
        )
        # Keep repeated headers such as Set-Cookie intact
        buffered.raw_headers = list(response.raw_headers)
        response = buffered

        try:
            entry = entry_from_exchange(
                request,
                request_body,
                response,
                response_body,
                started_at=started_at,
                wait_time_ms=wait_time_ms,
                redact=self.redact_headers,
            )
            self.registry.submit(self.output_file, entry)
        except Exception:
            logger.exception(
                "Failed to capture HAR entry for %s %s", request.method, request.url.path
            )

        return response


def entry_from_exchange(
    request: Request,
    request_body: bytes,
    response: Response,
    response_body: bytes,
    *,
    started_at: datetime,
    wait_time_ms: int,
    redact: Iterable[str] = (),
) -> HarEntry:
    """Build a HarEntry from a Starlette request and response."""
    return build_entry(
        started_at=started_at,
        wait_time_ms=wait_time_ms,
        method=request.method,
        url=str(request.url),
        http_version=request.scope.get("http_version", "1.1"),
        request_headers=request.headers.items(),
        request_cookies=request.cookies,
        query=request.query_params.multi_items(),
        request_body=request_body,
        status=response.status_code,
        response_headers=response.headers.items(),
        response_body=response_body,
        redact=redact,
    )
