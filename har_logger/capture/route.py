"""Per-router HAR capture.

The middleware captures everything an app serves. To capture only the
endpoints of one router, give that router a HAR route class::

    router = APIRouter(route_class=har_route_class("orders.har"))
"""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from fastapi import Request, Response
from fastapi.routing import APIRoute

from har_logger.registry import TargetRegistry, get_default_registry
from har_logger.settings import get_settings

from .middleware import entry_from_exchange

logger = logging.getLogger(__name__)


def har_route_class(
    output_file: Optional[str] = None,
    registry: Optional[TargetRegistry] = None,
    redact_headers: Optional[Iterable[str]] = None,
) -> type[APIRoute]:
    """Return an APIRoute subclass that logs each handled request.

    Streaming responses are passed through without being captured.
    """
    settings = get_settings()
    target = output_file or settings.default_output_file
    redact = (
        list(redact_headers) if redact_headers is not None else settings.redact_headers_list
    )

    class HarLoggingRoute(APIRoute):
        def get_route_handler(self) -> Callable:
            original_route_handler = super().get_route_handler()

            async def har_route_handler(request: Request) -> Response:
                started_at = datetime.now(timezone.utc)
                start = time.monotonic()
                request_body = await request.body()

                response: Response = await original_route_handler(request)
                wait_time_ms = round((time.monotonic() - start) * 1000)

                body = getattr(response, "body", None)
                if body is None:
                    return response

                try:
                    entry = entry_from_exchange(
                        request,
                        request_body,
                        response,
                        body,
                        started_at=started_at,
                        wait_time_ms=wait_time_ms,
                        redact=redact,
                    )
                    active = registry if registry is not None else get_default_registry()
                    active.submit(target, entry)
                except Exception:
                    logger.exception(
                        "Failed to capture HAR entry for %s %s",
                        request.method,
                        request.url.path,
                    )
                return response

            return har_route_handler

    return HarLoggingRoute
