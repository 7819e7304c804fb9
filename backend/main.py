"""FastAPI application — streamed web-page generation over pluggable LLM backends.

Architecture layers:
  1. Settings        (settings.py)         — centralized configuration
  2. Providers       (llm/providers/)      — catalog, registry, one client per transport
  3. Reasoning       (llm/reasoning.py)    — <think> extraction for tag-based backends
  4. Encoder         (llm/generators.py)   — deltas → NDJSON records
  5. HTTP surface    (this file)           — validation, status codes, streaming
  6. Client side     (controller.py)       — decoder + state machine, used by cli.py

Endpoints:
  GET  /api/providers       enabled providers
  GET  /api/models          models of one provider
  POST /api/generate-code   NDJSON stream of text/reasoning records
  GET  /api/telemetry       recent generation records
  GET  /health
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

import generation
from errors import GenerationError, ValidationError
from llm.providers import ProviderRegistry
from schemas import GenerationRequest
from settings import settings
from stream_protocol import MEDIA_TYPE
from telemetry import TelemetryStore


def _log_level() -> int:
    """DEBUG_MODE forces DEBUG; otherwise LOG_LEVEL decides."""
    if settings.DEBUG_MODE:
        return logging.DEBUG
    return getattr(logging, settings.LOG_LEVEL, logging.INFO)


logging.basicConfig(level=_log_level())
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
#  Application lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: D401
    """Build the provider registry once; yield to serve requests."""
    if getattr(app.state, "registry", None) is None:
        app.state.registry = ProviderRegistry.from_env()
    TelemetryStore.configure(settings.TELEMETRY_MAX_RECORDS)
    enabled = [d.name for d in app.state.registry.list_enabled()]
    if enabled:
        logger.info(f"Providers enabled: {', '.join(enabled)}")
    else:
        logger.warning("No providers enabled — set an API key or start a local server")

    yield  # ← application runs here


# ---------------------------------------------------------------------------
#  App
# ---------------------------------------------------------------------------

def create_app(registry: ProviderRegistry | None = None) -> FastAPI:
    """Build the app.  Tests pass their own registry."""
    app = FastAPI(
        title="Web Page Generator",
        version="1.0.0",
        debug=settings.DEBUG_MODE,
        lifespan=lifespan,
    )
    app.state.registry = registry
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.ALLOWED_ORIGINS) or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_routes(app)
    return app


def _registry(app: FastAPI) -> ProviderRegistry:
    if app.state.registry is None:
        app.state.registry = ProviderRegistry.from_env()
    return app.state.registry


def _error_response(error: GenerationError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


def _register_routes(app: FastAPI) -> None:

    # ═══════════════════════════════════════════════════════════════════════
    #  PROVIDERS & MODELS
    # ═══════════════════════════════════════════════════════════════════════

    @app.get("/api/providers")
    def list_providers():
        """Enabled providers, in catalog order."""
        return {
            "providers": [
                {
                    "id": d.id.value,
                    "name": d.name,
                    "description": d.description,
                    "isLocal": d.is_local,
                    "requiresApiKey": d.requires_credential,
                    "nativeReasoning": d.native_reasoning,
                    "examples": list(d.examples),
                }
                for d in _registry(app).list_enabled()
            ],
            "defaultProvider": settings.DEFAULT_PROVIDER,
        }

    @app.get("/api/models")
    def list_models(provider: str = Query("")):
        try:
            models = generation.list_models(_registry(app), provider)
        except GenerationError as exc:
            logger.error(f"Model listing failed for '{provider}': {exc}")
            return _error_response(exc)
        return [m.to_dict() for m in models]

    # ═══════════════════════════════════════════════════════════════════════
    #  GENERATION
    # ═══════════════════════════════════════════════════════════════════════

    @app.post("/api/generate-code")
    def generate_code(request: GenerationRequest):
        """Stream generated code as NDJSON records.

        Lines emitted::

            {"type":"reasoning","content":"..."}\\n
            {"type":"text","content":"..."}\\n

        Errors before the first record come back as JSON with a status
        code.  Errors after it abort the response body.
        """
        try:
            encoder = generation.start_generation(_registry(app), request)
        except ValidationError as exc:
            return _error_response(exc)
        except GenerationError as exc:
            logger.error(f"Error generating code: {exc}")
            return _error_response(exc)

        return StreamingResponse(
            iter(encoder),
            media_type=MEDIA_TYPE,
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    # ═══════════════════════════════════════════════════════════════════════
    #  TELEMETRY & HEALTH
    # ═══════════════════════════════════════════════════════════════════════

    @app.get("/api/telemetry")
    def recent_telemetry(n: Optional[int] = Query(20, ge=1, le=1000)):
        return {
            "count": TelemetryStore.count(),
            "summary": TelemetryStore.summary(),
            "records": TelemetryStore.recent(n),
        }

    @app.get("/health")
    def health_check():
        return {
            "status": "ok",
            "version": app.version,
            "providers": [d.id.value for d in _registry(app).list_enabled()],
        }


app = create_app()
