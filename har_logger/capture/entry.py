"""HAR entry models and the builder that fills them from HTTP exchanges.

The models mirror the HAR 1.2 ``entries`` objects. Field names are
snake_case in Python and camelCase on the wire (dump with
``by_alias=True``).
"""

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from http import HTTPStatus
from http.cookies import CookieError, SimpleCookie
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from .utils import (
    REDACTED,
    Pairs,
    all_values_are_strings,
    fix_encoding,
    hash_to_list,
    iter_pairs,
    redact_headers,
)


# =============================================================================
# Models
# =============================================================================


class NameValue(BaseModel):
    """A header or query-string parameter."""
    name: str
    value: str


class HarCookie(BaseModel):
    """A request or response cookie."""
    name: str
    value: str
    path: Optional[str] = None
    domain: Optional[str] = None
    expires: Optional[str] = None
    http_only: Optional[bool] = Field(None, alias="httpOnly")
    secure: Optional[bool] = None

    model_config = {"populate_by_name": True}


class HarPostData(BaseModel):
    """Request body."""
    mime_type: str = Field(..., alias="mimeType")
    text: str

    model_config = {"populate_by_name": True}


class HarContent(BaseModel):
    """Response body."""
    size: int
    mime_type: str = Field(..., alias="mimeType")
    text: Optional[str] = None

    model_config = {"populate_by_name": True}


class HarRequest(BaseModel):
    method: str
    url: str
    http_version: str = Field(..., alias="httpVersion")
    cookies: List[HarCookie] = Field(default_factory=list)
    headers: List[NameValue] = Field(default_factory=list)
    query_string: List[NameValue] = Field(default_factory=list, alias="queryString")
    post_data: Optional[HarPostData] = Field(None, alias="postData")
    headers_size: int = Field(-1, alias="headersSize")
    body_size: int = Field(-1, alias="bodySize")

    model_config = {"populate_by_name": True}


class HarResponse(BaseModel):
    status: int
    status_text: str = Field("", alias="statusText")
    http_version: str = Field(..., alias="httpVersion")
    cookies: List[HarCookie] = Field(default_factory=list)
    headers: List[NameValue] = Field(default_factory=list)
    content: HarContent
    redirect_url: str = Field("", alias="redirectURL")
    headers_size: int = Field(-1, alias="headersSize")
    body_size: int = Field(-1, alias="bodySize")

    model_config = {"populate_by_name": True}


class HarTimings(BaseModel):
    """Timings in milliseconds. Only ``wait`` is measured."""
    send: int = 0
    wait: int
    receive: int = 0


class HarEntry(BaseModel):
    """One request/response exchange."""
    started_date_time: str = Field(..., alias="startedDateTime")
    time: int
    request: HarRequest
    response: HarResponse
    cache: dict[str, Any] = Field(default_factory=dict)
    timings: HarTimings

    model_config = {"populate_by_name": True, "frozen": True}


# =============================================================================
# Builder
# =============================================================================


def build_entry(
    *,
    started_at: datetime,
    wait_time_ms: int,
    method: str,
    url: str,
    http_version: str,
    request_headers: Pairs,
    query: Pairs,
    request_body: Optional[bytes],
    status: int,
    response_headers: Pairs,
    response_body: Optional[bytes],
    request_cookies: Optional[Mapping[str, str]] = None,
    redact: Iterable[str] = (),
) -> HarEntry:
    """Build a HarEntry from the parts of a finished HTTP exchange.

    Args:
        started_at: When the request arrived. Naive datetimes are taken
            as UTC.
        wait_time_ms: Time spent in the application, in milliseconds.
        http_version: ASGI style (``"1.1"``) or full (``"HTTP/1.1"``).
        request_headers, response_headers: Header pairs; repeated names
            are preserved.
        redact: Header names whose values are replaced with ``***``.
    """
    if started_at.tzinfo is None:
        started_at = started_at.replace(tzinfo=timezone.utc)
    if not http_version.upper().startswith("HTTP/"):
        http_version = f"HTTP/{http_version}"

    redact = list(redact)
    req_headers = redact_headers(request_headers, redact)
    resp_headers = redact_headers(response_headers, redact)

    request = HarRequest(
        method=method,
        url=url,
        http_version=http_version,
        cookies=_request_cookies(request_cookies or {}, redact),
        headers=_name_values(req_headers),
        query_string=_name_values(query),
        post_data=_post_data(req_headers, request_body),
        body_size=len(request_body) if request_body is not None else 0,
    )

    body_text = fix_encoding(response_body)
    response = HarResponse(
        status=status,
        status_text=_status_text(status),
        http_version=http_version,
        cookies=_response_cookies(response_headers, redact),
        headers=_name_values(resp_headers),
        content=HarContent(
            size=len(response_body) if response_body is not None else 0,
            mime_type=_header_value(resp_headers, "content-type") or "",
            text=body_text,
        ),
        redirect_url=_header_value(resp_headers, "location") or "",
        body_size=len(response_body) if response_body is not None else 0,
    )

    return HarEntry(
        started_date_time=started_at.isoformat(timespec="milliseconds"),
        time=wait_time_ms,
        request=request,
        response=response,
        timings=HarTimings(wait=wait_time_ms),
    )


def _name_values(pairs: Pairs) -> list[NameValue]:
    items = hash_to_list(pairs)
    if not all_values_are_strings((item["name"], item["value"]) for item in items):
        # Bytes header values are decoded, None becomes "", anything else str().
        items = [
            {"name": item["name"], "value": _coerce_value(item["value"])}
            for item in items
        ]
    return [NameValue(**item) for item in items]


def _coerce_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, bytes):
        return fix_encoding(value) or ""
    return str(value)


def _header_value(pairs: list[tuple[str, Any]], name: str) -> Optional[str]:
    for key, value in pairs:
        if key.lower() == name:
            return value
    return None


def _status_text(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


def _post_data(
    headers: list[tuple[str, Any]],
    body: Optional[bytes],
) -> Optional[HarPostData]:
    if not body:
        return None
    return HarPostData(
        mime_type=_header_value(headers, "content-type") or "",
        text=fix_encoding(body) or "",
    )


def _request_cookies(cookies: Mapping[str, str], redact: list[str]) -> list[HarCookie]:
    mask = "cookie" in {name.lower() for name in redact}
    return [
        HarCookie(name=name, value=REDACTED if mask else value)
        for name, value in cookies.items()
    ]


def _response_cookies(headers: Pairs, redact: list[str]) -> list[HarCookie]:
    """Parse Set-Cookie headers into HAR cookies."""
    mask = "set-cookie" in {name.lower() for name in redact}
    cookies: list[HarCookie] = []
    for name, value in iter_pairs(headers):
        if name.lower() != "set-cookie":
            continue
        parsed = SimpleCookie()
        try:
            parsed.load(value)
        except CookieError:
            continue
        for morsel in parsed.values():
            cookies.append(
                HarCookie(
                    name=morsel.key,
                    value=REDACTED if mask else morsel.value,
                    path=morsel["path"] or None,
                    domain=morsel["domain"] or None,
                    expires=morsel["expires"] or None,
                    http_only=bool(morsel["httponly"]) or None,
                    secure=bool(morsel["secure"]) or None,
                )
            )
    return cookies
