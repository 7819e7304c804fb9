"""Pytest conftest — ensure backend/ is importable for flat module imports."""

import sys
from pathlib import Path

import pytest

# Add backend/ to sys.path so `import controller`, `from llm.providers import ...` etc. work
_backend_dir = str(Path(__file__).resolve().parent.parent)
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)


@pytest.fixture(autouse=True)
def _clear_telemetry():
    from telemetry import TelemetryStore

    TelemetryStore.clear()
    yield
    TelemetryStore.clear()


@pytest.fixture
def wire():
    """Build an NDJSON payload from (type, content) pairs."""
    from stream_protocol import StreamRecord

    def _wire(*records: tuple[str, str]) -> bytes:
        return b"".join(StreamRecord(channel, content).encode() for channel, content in records)

    return _wire
