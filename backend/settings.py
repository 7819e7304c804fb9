"""Service-level tunables, read once from the environment.

    from settings import settings

Values come from the process environment, then ``.env`` at the project
root (the environment wins).  Everything is frozen at import time, so a
change means editing .env and restarting.

Provider base URLs, API keys and DISABLED_PROVIDERS are not read here:
the provider registry snapshots those itself
(llm/providers/registry.py).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(PROJECT_ROOT / ".env")


# ── Parsing ───────────────────────────────────────────────────────────────

def _str(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _int(key: str, default: int) -> int:
    raw = _str(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from None


def _flag(key: str, default: bool = False) -> bool:
    raw = _str(key)
    return raw.lower() in ("true", "1", "yes") if raw else default


def _csv(key: str, default: str = "") -> tuple[str, ...]:
    return tuple(part.strip() for part in _str(key, default).split(",") if part.strip())


# ── Settings ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Settings:
    """Application settings.  Immutable after creation."""

    # ── Generation ────────────────────────────────────────────────
    # Provider used when a request names none.
    DEFAULT_PROVIDER: str = _str("DEFAULT_PROVIDER", "deepseek")
    # Largest maxTokens a request may ask for.
    MAX_TOKENS_LIMIT: int = _int("MAX_TOKENS_LIMIT", 32768)
    # Connect/listing timeout in seconds.  Generation reads never time out.
    REQUEST_TIMEOUT: int = _int("REQUEST_TIMEOUT", 10)

    # ── Client ────────────────────────────────────────────────────
    # Server the CLI posts to.  Empty → run the pipeline in-process.
    GENERATION_SERVER_URL: str = _str("GENERATION_SERVER_URL")

    # ── HTTP server ───────────────────────────────────────────────
    ALLOWED_ORIGINS: tuple[str, ...] = _csv("ALLOWED_ORIGINS", "*")
    HOST: str = _str("HOST", "0.0.0.0")
    PORT: int = _int("PORT", 8000)
    LOG_LEVEL: str = _str("LOG_LEVEL", "INFO").upper()
    DEBUG_MODE: bool = _flag("DEBUG_MODE")

    # ── Telemetry ─────────────────────────────────────────────────
    # Finished generations kept in memory for /api/telemetry.
    TELEMETRY_MAX_RECORDS: int = _int("TELEMETRY_MAX_RECORDS", 1000)


settings = Settings()
