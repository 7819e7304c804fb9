"""Incremental decoder for the dual-channel generation stream.

Consumes raw byte chunks of any size and alignment — a chunk may end
mid-line, mid-record or mid UTF-8 sequence — and rebuilds two text
accumulators: the generated code and the model's reasoning.

Per chunk: decode, append to the pending-line buffer, split on newline,
keep the trailing fragment, parse each complete line as one record.
Unparseable lines are reported as :class:`~errors.DecodeWarning` and the
stream continues.

Code updates are published with markdown fences stripped, so callers
only ever see raw code.
"""

from __future__ import annotations

import codecs
import logging
import re
from typing import Callable

from errors import DecodeWarning
from stream_protocol import CHANNELS, TEXT, RecordFormatError, parse_record

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"\A```[\w+-]*\n")
_FENCE_CLOSE = re.compile(r"```\Z")


def strip_code_fences(code: str) -> str:
    """Remove a leading ```lang fence opener and a trailing ``` closer.

    Applied until nothing changes, so stripping twice equals stripping once.
    """
    while True:
        stripped = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", code, count=1), count=1)
        if stripped == code:
            return stripped
        code = stripped


class GenerationStreamDecoder:
    """Byte chunks in, code/reasoning state out via callbacks."""

    def __init__(
        self,
        on_code: Callable[[str], None] | None = None,
        on_reasoning: Callable[[str], None] | None = None,
        on_thinking: Callable[[bool], None] | None = None,
        *,
        legacy_text: bool = False,
    ):
        self.on_code = on_code
        self.on_reasoning = on_reasoning
        self.on_thinking = on_thinking
        # Append unparseable lines to the code channel instead of only reporting them.
        self.legacy_text = legacy_text

        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._carry = ""
        self._raw_code = ""
        self.code_text = ""
        self.reasoning_text = ""
        self.has_reasoning = False
        self.warnings: list[DecodeWarning] = []
        self.closed = False

    # ── Feeding ───────────────────────────────────────────────────

    def feed(self, chunk: bytes | str) -> None:
        if self.closed:
            raise RuntimeError("decoder is closed")
        text = chunk if isinstance(chunk, str) else self._utf8.decode(chunk)
        if not text:
            return
        lines = (self._carry + text).split("\n")
        self._carry = lines.pop()
        for line in lines:
            self._handle_line(line)

    def close(self) -> None:
        """End of stream: parse any remnant once, then stop thinking."""
        if self.closed:
            return
        self._carry += self._utf8.decode(b"", final=True)
        remnant, self._carry = self._carry, ""
        if remnant.strip():
            self._handle_line(remnant, terminated=False)
        self.closed = True
        if self.has_reasoning and self.on_thinking:
            self.on_thinking(False)

    # ── Records ───────────────────────────────────────────────────

    def _handle_line(self, line: str, terminated: bool = True) -> None:
        if not line.strip():
            return
        try:
            record = parse_record(line)
        except RecordFormatError as e:
            self._warn(f"Failed to parse stream part ({e}): {line[:120]!r}")
            if self.legacy_text:
                self._append_code(line + "\n" if terminated else line)
            return

        if record.channel not in CHANNELS:
            self._warn(f"Unknown stream record type {record.channel!r}; ignored")
            return
        if record.channel == TEXT:
            self._append_code(record.content)
        else:
            self._append_reasoning(record.content)

    def _append_code(self, content: str) -> None:
        self._raw_code += content
        self.code_text = strip_code_fences(self._raw_code)
        if self.on_code:
            self.on_code(self.code_text)

    def _append_reasoning(self, content: str) -> None:
        if not self.has_reasoning:
            self.has_reasoning = True
            if self.on_thinking:
                self.on_thinking(True)
        self.reasoning_text += content
        if self.on_reasoning:
            self.on_reasoning(self.reasoning_text)

    def _warn(self, message: str) -> None:
        self.warnings.append(DecodeWarning(message))
        logger.warning(message)
