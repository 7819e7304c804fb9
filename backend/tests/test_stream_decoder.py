"""Tests for the client-side stream decoder and fence stripping."""

import pytest

from errors import DecodeWarning
from llm.providers import Channel
from stream_decoder import GenerationStreamDecoder, strip_code_fences
from stream_protocol import CHANNELS, RecordFormatError, StreamRecord, parse_record


def _decode(chunks, **kwargs):
    decoder = GenerationStreamDecoder(**kwargs)
    for chunk in chunks:
        decoder.feed(chunk)
    decoder.close()
    return decoder


def _chunks(payload: bytes, size: int):
    return [payload[i:i + size] for i in range(0, len(payload), size)]


# ─── Fences ───────────────────────────────────────────────────────────────

class TestStripCodeFences:
    def test_html_fence(self):
        assert strip_code_fences("```html\n<p>hi</p>\n```") == "<p>hi</p>\n"

    def test_bare_fence(self):
        assert strip_code_fences("```\n<div></div>```") == "<div></div>"

    def test_open_fence_only_while_streaming(self):
        assert strip_code_fences("```html\n<!DOCTYPE html>") == "<!DOCTYPE html>"

    def test_no_fence_unchanged(self):
        assert strip_code_fences("<p>a ``` b</p>") == "<p>a ``` b</p>"

    @pytest.mark.parametrize("code", [
        "```html\n<p>hi</p>\n```",
        "```html\n```html\n<p>x</p>```",
        "```\n",
        "plain",
        "",
    ])
    def test_idempotent(self, code):
        once = strip_code_fences(code)
        assert strip_code_fences(once) == once


# ─── Wire records ─────────────────────────────────────────────────────────

class TestParseRecord:
    def test_text_record(self):
        record = parse_record('{"type":"text","content":"<p>"}')
        assert record == StreamRecord("text", "<p>")

    def test_wire_channels_match_delta_channels(self):
        assert CHANNELS == tuple(c.value for c in Channel)

    def test_non_ascii_is_written_raw(self):
        assert StreamRecord("text", "é").to_line() == '{"type": "text", "content": "é"}\n'

    @pytest.mark.parametrize("line", [
        "not json",
        "[1, 2]",
        '{"content":"x"}',
        '{"type":"text"}',
        '{"type":"text","content":3}',
    ])
    def test_malformed(self, line):
        with pytest.raises(RecordFormatError):
            parse_record(line)


# ─── Decoding ─────────────────────────────────────────────────────────────

class TestDecoder:
    def test_text_and_reasoning(self, wire):
        decoder = _decode([wire(("reasoning", "plan"), ("text", "<p>"), ("text", "hi</p>"))])
        assert decoder.code_text == "<p>hi</p>"
        assert decoder.reasoning_text == "plan"
        assert decoder.has_reasoning is True
        assert decoder.warnings == []

    def test_fenced_output_is_stripped(self, wire):
        decoder = _decode([wire(("text", "```html\n"), ("text", "<p>hi</p>\n"), ("text", "```"))])
        assert decoder.code_text == "<p>hi</p>\n"

    @pytest.mark.parametrize("size", [1, 2, 3, 7, 64, 10_000])
    def test_chunking_does_not_change_result(self, wire, size):
        payload = wire(
            ("reasoning", "Let me think…"),
            ("text", "<h1>Grüße 👋</h1>"),
            ("reasoning", " done"),
            ("text", "<p>fin</p>"),
        )
        decoder = _decode(_chunks(payload, size))
        assert decoder.code_text == "<h1>Grüße 👋</h1><p>fin</p>"
        assert decoder.reasoning_text == "Let me think… done"
        assert decoder.warnings == []

    def test_multibyte_char_split_across_chunks(self, wire):
        payload = wire(("text", "€"))
        cut = payload.index("€".encode("utf-8")) + 1
        decoder = _decode([payload[:cut], payload[cut:]])
        assert decoder.code_text == "€"

    def test_record_split_mid_line_is_not_applied_early(self, wire):
        payload = wire(("text", "abc"))
        decoder = GenerationStreamDecoder()
        decoder.feed(payload[:10])
        assert decoder.code_text == ""
        decoder.feed(payload[10:])
        assert decoder.code_text == "abc"

    def test_unterminated_last_record_is_parsed_on_close(self):
        decoder = GenerationStreamDecoder()
        decoder.feed(b'{"type":"text","content":"tail"}')
        assert decoder.code_text == ""
        decoder.close()
        assert decoder.code_text == "tail"

    def test_blank_lines_are_skipped(self, wire):
        decoder = _decode([b"\n\n" + wire(("text", "x")) + b"\n"])
        assert decoder.code_text == "x"
        assert decoder.warnings == []

    def test_str_chunks_are_accepted(self):
        decoder = _decode(['{"type":"text","content":"a"}\n'])
        assert decoder.code_text == "a"

    def test_feed_after_close_raises(self):
        decoder = _decode([])
        with pytest.raises(RuntimeError):
            decoder.feed(b"x")

    def test_close_twice_is_noop(self, wire):
        decoder = _decode([wire(("text", "a"))])
        decoder.close()
        assert decoder.code_text == "a"


# ─── Bad lines ────────────────────────────────────────────────────────────

class TestDecoderWarnings:
    def test_unparseable_line_is_reported_and_skipped(self, wire):
        decoder = _decode([b"garbage\n" + wire(("text", "ok"))])
        assert decoder.code_text == "ok"
        assert len(decoder.warnings) == 1
        assert isinstance(decoder.warnings[0], DecodeWarning)

    def test_unknown_type_is_reported(self, wire):
        decoder = _decode([wire(("metadata", "x"), ("text", "ok"))])
        assert decoder.code_text == "ok"
        assert "metadata" in str(decoder.warnings[0])
        assert decoder.reasoning_text == ""

    def test_legacy_text_appends_unparseable_lines(self):
        decoder = _decode([b"<html>\n<body>"], legacy_text=True)
        assert decoder.code_text == "<html>\n<body>"
        assert len(decoder.warnings) == 2

    def test_warnings_are_logged(self, caplog):
        with caplog.at_level("WARNING", logger="stream_decoder"):
            _decode([b"nope\n"])
        assert "Failed to parse stream part" in caplog.text


# ─── Callbacks ────────────────────────────────────────────────────────────

class TestDecoderCallbacks:
    def test_thinking_toggles_once(self, wire):
        events = []
        decoder = GenerationStreamDecoder(on_thinking=events.append)
        decoder.feed(wire(("reasoning", "a"), ("reasoning", "b"), ("text", "c")))
        assert events == [True]
        decoder.close()
        assert events == [True, False]

    def test_no_thinking_events_without_reasoning(self, wire):
        events = []
        _decode([wire(("text", "c"))], on_thinking=events.append)
        assert events == []

    def test_code_callback_receives_accumulated_stripped_code(self, wire):
        seen = []
        _decode([wire(("text", "```html\n"), ("text", "<a>"), ("text", "</a>"))], on_code=seen.append)
        assert seen == ["", "<a>", "<a></a>"]

    def test_reasoning_callback_receives_accumulated_text(self, wire):
        seen = []
        _decode([wire(("reasoning", "x"), ("reasoning", "y"))], on_reasoning=seen.append)
        assert seen == ["x", "xy"]
