"""Dual-channel wire format — newline-delimited JSON.

One record per line, UTF-8, no length prefix::

    {"type":"text","content":"<delta>"}\\n
    {"type":"reasoning","content":"<delta>"}\\n

``content`` is always present and always a string (possibly empty).
There is no error record: a failed generation ends the byte stream
abruptly and the transport reports it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

TEXT = "text"
REASONING = "reasoning"
CHANNELS = (TEXT, REASONING)

MEDIA_TYPE = "application/x-ndjson"


class RecordFormatError(ValueError):
    """A line is not a well-formed stream record."""


@dataclass(frozen=True)
class StreamRecord:
    channel: str
    content: str

    def to_line(self) -> str:
        return json.dumps({"type": self.channel, "content": self.content}, ensure_ascii=False) + "\n"

    def encode(self) -> bytes:
        return self.to_line().encode("utf-8")


def parse_record(line: str) -> StreamRecord:
    """Parse one line.  Raises RecordFormatError if it is not a record."""
    try:
        obj = json.loads(line)
    except ValueError as e:
        raise RecordFormatError(f"not JSON: {e}") from e
    if not isinstance(obj, dict):
        raise RecordFormatError("record is not an object")
    channel = obj.get("type")
    content = obj.get("content")
    if not isinstance(channel, str):
        raise RecordFormatError("missing 'type'")
    if not isinstance(content, str):
        raise RecordFormatError("missing or non-string 'content'")
    return StreamRecord(channel=channel, content=content)
