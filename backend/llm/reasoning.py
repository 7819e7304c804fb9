"""Tag-based reasoning extraction.

Some backends have no separate reasoning channel: the model writes its
thinking inline, wrapped in ``<think>...</think>``, ahead of the answer.
:class:`ReasoningExtractor` is an incremental filter that splits such a
token stream back into text and reasoning as chunks arrive.

    extractor = ReasoningExtractor()
    extractor.feed("<think>abc")          # reasoning="abc", inside_block=True
    extractor.feed("def</think>ghi")      # reasoning="def", text="ghi"

A delimiter split across feeds (``"<thi"`` + ``"nk>"``) is held back in
``carry`` until it can be classified.  An unterminated block stays
"reasoning" — nothing here raises.
"""

from __future__ import annotations

from dataclasses import dataclass

OPEN_TAG = "<think>"
CLOSE_TAG = "</think>"


@dataclass(frozen=True)
class ExtractedDelta:
    """Result of one feed."""

    text: str = ""
    reasoning: str = ""
    inside_block: bool = False


def _partial_suffix(buffer: str, tag: str) -> int:
    """Length of the longest suffix of *buffer* that is a proper prefix of *tag*."""
    for n in range(min(len(tag) - 1, len(buffer)), 0, -1):
        if buffer.endswith(tag[:n]):
            return n
    return 0


class ReasoningExtractor:
    """Stateful ``<think>`` splitter.  One instance per generation call."""

    def __init__(self, open_tag: str = OPEN_TAG, close_tag: str = CLOSE_TAG):
        self.open_tag = open_tag
        self.close_tag = close_tag
        self.inside_block = False
        self.carry = ""

    def feed(self, chunk: str) -> ExtractedDelta:
        buffer = self.carry + chunk
        self.carry = ""
        text: list[str] = []
        reasoning: list[str] = []

        while buffer:
            tag = self.close_tag if self.inside_block else self.open_tag
            sink = reasoning if self.inside_block else text
            idx = buffer.find(tag)
            if idx >= 0:
                sink.append(buffer[:idx])
                buffer = buffer[idx + len(tag):]
                self.inside_block = not self.inside_block
                continue
            keep = _partial_suffix(buffer, tag)
            sink.append(buffer[: len(buffer) - keep])
            self.carry = buffer[len(buffer) - keep:]
            break

        return ExtractedDelta("".join(text), "".join(reasoning), self.inside_block)

    def flush(self) -> ExtractedDelta:
        """Release a held-back partial delimiter at end of stream."""
        rest, self.carry = self.carry, ""
        if self.inside_block:
            return ExtractedDelta(reasoning=rest, inside_block=True)
        return ExtractedDelta(text=rest, inside_block=False)
