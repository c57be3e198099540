"""Helpers for turning ASGI request/response data into HAR fields."""

from collections.abc import Iterable, Mapping
from typing import Any, Optional, Union

REDACTED = "***"

Pairs = Union[Mapping[str, Any], Iterable[tuple[str, Any]]]


def fix_encoding(value: Union[bytes, str, None]) -> Optional[str]:
    """Decode raw bytes as UTF-8, replacing undecodable sequences."""
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def iter_pairs(pairs: Pairs) -> Iterable[tuple[str, Any]]:
    if isinstance(pairs, Mapping):
        return pairs.items()
    return pairs


def hash_to_list(pairs: Pairs) -> list[dict[str, Any]]:
    """Convert a mapping (or list of pairs) into HAR name/value objects.

    Repeated keys, as in multi-valued headers and query strings, are kept
    as separate objects in their original order.
    """
    return [{"name": name, "value": value} for name, value in iter_pairs(pairs)]


def all_values_are_strings(pairs: Pairs) -> bool:
    """Check whether every value in a mapping (or list of pairs) is a str."""
    return all(isinstance(value, str) for _, value in iter_pairs(pairs))


def redact_headers(
    pairs: Pairs,
    sensitive: Iterable[str],
) -> list[tuple[str, Any]]:
    """Mask the values of sensitive headers (case-insensitive match)."""
    sensitive_names = {name.lower() for name in sensitive}
    return [
        (name, REDACTED if name.lower() in sensitive_names else value)
        for name, value in iter_pairs(pairs)
    ]
