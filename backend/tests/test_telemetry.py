"""Tests for generation telemetry records and the in-memory store."""

import json

from telemetry import GenerationTelemetry, TelemetryStore


def _record(outcome="complete", text=1, **kwargs):
    t = GenerationTelemetry(provider_id="ollama", model_id="qwen3:8b", **kwargs)
    t.mark("start")
    for _ in range(text):
        t.record_delta("text", 10)
    t.finalize(outcome)
    return t


class TestGenerationTelemetry:
    def test_counts_per_channel(self):
        t = GenerationTelemetry()
        t.mark("start")
        t.record_delta("reasoning", 5)
        t.record_delta("text", 7)
        t.record_delta("text", 3)
        t.finalize("complete")
        assert (t.reasoning_records, t.text_records, t.bytes_out) == (1, 2, 15)
        assert t.latency_total_ms >= t.latency_first_text_ms >= 0.0

    def test_finalize_only_once(self):
        t = _record("failed")
        t.finalize("complete")
        assert t.outcome == "failed"

    def test_no_text_means_zero_latency(self):
        assert _record(text=0).latency_first_text_ms == 0.0

    def test_json_excludes_marks(self):
        data = json.loads(_record().to_json())
        assert data["provider_id"] == "ollama"
        assert "_marks" not in data


class TestTelemetryStore:
    def test_ring_buffer_drops_oldest(self):
        TelemetryStore.configure(max_records=2)
        try:
            for mode in ("a", "b", "c"):
                TelemetryStore.append(_record(prompt_mode=mode))
            assert TelemetryStore.count() == 2
            assert [r["prompt_mode"] for r in TelemetryStore.recent()] == ["b", "c"]
        finally:
            TelemetryStore.configure(max_records=1000)

    def test_recent_limits(self):
        for _ in range(5):
            TelemetryStore.append(_record())
        assert len(TelemetryStore.recent(3)) == 3
        assert TelemetryStore.recent(0) == []

    def test_summary(self):
        TelemetryStore.append(_record("complete"))
        TelemetryStore.append(_record("failed"))
        TelemetryStore.append(_record("aborted"))
        summary = TelemetryStore.summary()
        assert summary["outcomes"] == {"complete": 1, "failed": 1, "aborted": 1}
        assert summary["mean_first_text_ms"] is not None

    def test_summary_empty(self):
        assert TelemetryStore.summary()["mean_first_text_ms"] is None

    def test_export_jsonl(self, tmp_path):
        TelemetryStore.append(_record())
        TelemetryStore.append(_record())
        path = tmp_path / "out" / "trace.jsonl"
        assert TelemetryStore.export_jsonl(path) == 2
        TelemetryStore.export_jsonl(path, append=True)
        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 4
        assert json.loads(lines[0])["model_id"] == "qwen3:8b"
