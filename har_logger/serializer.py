"""Incremental HAR document writer.

Streams a HAR 1.2 document to a text stream one entry at a time, so the
document is never held in memory. The writer owns the separator
bookkeeping; callers only say whether an entry is the first one.

Layout::

    {
      "log": {
        "version": "1.2",
        "creator": {
          "name": "...",
          "version": "..."
        },
        "entries": [
    <entry>,
    <entry>
        ]
      }
    }
"""

import json
from dataclasses import asdict, is_dataclass
from typing import Any, TextIO

from pydantic import BaseModel
from pydantic_core import to_jsonable_python

HAR_VERSION = "1.2"

_EPILOGUE = "\n    ]\n  }\n}\n"


def serialize_entry(entry: Any) -> str:
    """Render one entry as a single compact JSON value.

    Pydantic models are dumped by alias without unset optionals; other
    values go through json.dumps with pydantic's encoder as fallback.

    Raises:
        TypeError, ValueError: the entry cannot be rendered as JSON.
    """
    if isinstance(entry, BaseModel):
        entry = entry.model_dump(mode="json", by_alias=True, exclude_none=True)
    elif is_dataclass(entry) and not isinstance(entry, type):
        entry = asdict(entry)
    return json.dumps(
        entry,
        default=to_jsonable_python,
        ensure_ascii=False,
        allow_nan=False,
        separators=(",", ":"),
    )


class HarDocumentWriter:
    """Writes the preamble, entries and epilogue of one HAR document."""

    def __init__(
        self,
        stream: TextIO,
        creator_name: str,
        creator_version: str,
    ):
        self.stream = stream
        self.creator_name = creator_name
        self.creator_version = creator_version

    def preamble(self) -> str:
        return (
            "{\n"
            '  "log": {\n'
            f'    "version": {json.dumps(HAR_VERSION)},\n'
            '    "creator": {\n'
            f'      "name": {json.dumps(self.creator_name)},\n'
            f'      "version": {json.dumps(self.creator_version)}\n'
            "    },\n"
            '    "entries": ['
        )

    def write_preamble(self) -> None:
        self.stream.write(self.preamble())

    def write_entry(self, value: Any, is_first: bool) -> None:
        """Append one entry, preceded by a separator unless it is the first.

        The entry is rendered before anything is written, so a value that
        fails to serialize leaves the stream untouched.
        """
        self.write_serialized_entry(serialize_entry(value), is_first)

    def write_serialized_entry(self, text: str, is_first: bool) -> None:
        """Append an entry already rendered by serialize_entry()."""
        self.stream.write(("\n" if is_first else ",\n") + text)

    def write_epilogue(self) -> None:
        self.stream.write(_EPILOGUE)
