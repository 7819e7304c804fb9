"""Generation telemetry — one record per streamed generation.

Records per-request:
  - Provider, model, system prompt mode
  - Record counts per channel and bytes written to the wire
  - Time to first text record and to first reasoning record
  - Total latency and outcome (complete / failed / aborted)

Usage:
    from telemetry import GenerationTelemetry, TelemetryStore

    t = GenerationTelemetry(provider_id="ollama", model_id="qwen3:8b")
    t.mark("start")
    t.record_delta("text", nbytes)
    t.finalize("complete")
    TelemetryStore.append(t)
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from collections import Counter, deque
from dataclasses import asdict, dataclass, field
from pathlib import Path
from threading import Lock

logger = logging.getLogger(__name__)

OUTCOMES = ("pending", "complete", "failed", "aborted")


# ═══════════════════════════════════════════════════════════════════════════
#  GENERATION RECORD
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class GenerationTelemetry:
    """Single generation record."""

    # ── Identity ──────────────────────────────────────────────────────────
    trace_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    provider_id: str = ""
    model_id: str = ""
    prompt_mode: str = "default"
    prompt_chars: int = 0
    timestamp: float = field(default_factory=time.time)

    # ── Stream shape ──────────────────────────────────────────────────────
    text_records: int = 0
    reasoning_records: int = 0
    bytes_out: int = 0

    # ── Latencies (milliseconds since "start") ────────────────────────────
    latency_first_text_ms: float = 0.0
    latency_first_reasoning_ms: float = 0.0
    latency_total_ms: float = 0.0

    # ── Outcome ───────────────────────────────────────────────────────────
    outcome: str = "pending"
    error: str = ""

    _marks: dict[str, float] = field(default_factory=dict, repr=False)

    def mark(self, label: str) -> None:
        self._marks[label] = time.perf_counter()

    def _since_start(self, label: str) -> float:
        if "start" not in self._marks or label not in self._marks:
            return 0.0
        return round((self._marks[label] - self._marks["start"]) * 1000, 2)

    def record_delta(self, channel: str, nbytes: int) -> None:
        """Count one record written to the wire."""
        self.bytes_out += nbytes
        if channel == "reasoning":
            self.reasoning_records += 1
            self._marks.setdefault("first_reasoning", time.perf_counter())
        else:
            self.text_records += 1
            self._marks.setdefault("first_text", time.perf_counter())

    def finalize(self, outcome: str, error: str = "") -> None:
        """Close the record.  Only the first call counts."""
        if self.outcome != "pending":
            return
        self.mark("end")
        self.outcome = outcome
        self.error = error
        self.latency_first_text_ms = self._since_start("first_text")
        self.latency_first_reasoning_ms = self._since_start("first_reasoning")
        self.latency_total_ms = self._since_start("end")
        logger.info(
            f"Generation {self.trace_id} {outcome}: {self.provider_id}/{self.model_id} "
            f"text={self.text_records} reasoning={self.reasoning_records} "
            f"bytes={self.bytes_out} total={self.latency_total_ms}ms"
        )

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if not k.startswith("_")}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


# ═══════════════════════════════════════════════════════════════════════════
#  STORE — bounded in-memory history + JSONL export
# ═══════════════════════════════════════════════════════════════════════════

class TelemetryStore:
    """Process-wide history of finished generations, oldest dropped first."""

    _lock = Lock()
    _records: deque[GenerationTelemetry] = deque(maxlen=1000)

    @classmethod
    def configure(cls, max_records: int = 1000) -> None:
        with cls._lock:
            cls._records = deque(cls._records, maxlen=max(1, max_records))

    @classmethod
    def append(cls, record: GenerationTelemetry) -> None:
        with cls._lock:
            cls._records.append(record)

    @classmethod
    def count(cls) -> int:
        with cls._lock:
            return len(cls._records)

    @classmethod
    def recent(cls, n: int = 20) -> list[dict]:
        """Newest *n* records, oldest first."""
        with cls._lock:
            tail = list(cls._records)[-n:] if n > 0 else []
        return [r.to_dict() for r in tail]

    @classmethod
    def summary(cls) -> dict:
        """Outcome counts and mean time-to-first-text over completed runs."""
        with cls._lock:
            records = list(cls._records)
        outcomes = Counter(r.outcome for r in records)
        first_text = [r.latency_first_text_ms for r in records if r.outcome == "complete" and r.text_records]
        return {
            "outcomes": {name: outcomes.get(name, 0) for name in OUTCOMES if name != "pending"},
            "mean_first_text_ms": round(sum(first_text) / len(first_text), 2) if first_text else None,
        }

    @classmethod
    def clear(cls) -> None:
        with cls._lock:
            cls._records.clear()

    @classmethod
    def export_jsonl(cls, path: str | Path, *, append: bool = False) -> int:
        """Write records as JSON lines.  Returns how many were written."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with cls._lock:
            records = list(cls._records)
        with path.open("a" if append else "w", encoding="utf-8") as fh:
            fh.writelines(r.to_json() + "\n" for r in records)
        logger.info(f"Telemetry: wrote {len(records)} records to {path}")
        return len(records)
