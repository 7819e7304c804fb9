"""Generation controller — client side of one generation request.

State machine::

    idle → generating → (thinking)* → complete
                      ↘ failed | cancelled

Every request starts by resetting the whole :class:`GenerationState`;
nothing from a previous request survives.  Byte chunks come from a
*transport* — any callable ``transport(request) -> Iterable[bytes]``:

  - :class:`HttpTransport`   POST to a running server (``main.py``)
  - :class:`LocalTransport`  drive the encoder in-process

Each chunk is handed to a :class:`~stream_decoder.GenerationStreamDecoder`
and every state change is republished synchronously to ``on_state``.
``is_generating`` is cleared on every exit path.

Usage:
    controller = GenerationController(HttpTransport("http://localhost:8000"))
    state = controller.generate(GenerationRequest(prompt=..., provider=..., model=...))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterable, Optional

import requests

from errors import (
    GenerationError,
    ModelListUnavailable,
    ProviderUnreachable,
    UpstreamGenerationFailure,
    ValidationError,
    error_from_payload,
)
from llm.providers import PROVIDER_DESCRIPTORS, ProviderDescriptor, ProviderId, ProviderRegistry
from schemas import MISSING_FIELDS_MESSAGE, GenerationRequest
from stream_decoder import GenerationStreamDecoder

logger = logging.getLogger(__name__)

Transport = Callable[[GenerationRequest], Iterable[bytes]]

GENERIC_FAILURE_MESSAGE = "Error generating code. Please try again later."
CREDENTIALS_HINT = "Make sure the Base URL and API Keys are correct in your .env file."


class GenerationPhase(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    THINKING = "thinking"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class GenerationState:
    code_text: str = ""
    reasoning_text: str = ""
    is_thinking: bool = False
    is_generating: bool = False
    is_complete: bool = False
    phase: GenerationPhase = GenerationPhase.IDLE
    error: Optional[str] = None  # user-facing message of the last failure


# ═══════════════════════════════════════════════════════════════════════════
#  ERROR CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════

def _descriptor(provider_id: str | None) -> ProviderDescriptor | None:
    try:
        return PROVIDER_DESCRIPTORS[ProviderId(provider_id)] if provider_id else None
    except ValueError:
        return None


def describe_error(error: BaseException, provider_id: str | None = None) -> str:
    """User-facing text for a failed request.

    Local backends get "is the server running?" guidance; credential-driven
    ones get a pointer at the .env file.  Anything else falls back to a
    generic retry message carrying the underlying text.
    """
    descriptor = _descriptor(getattr(error, "provider_id", None) or provider_id)

    if isinstance(error, ValidationError):
        return error.message or MISSING_FIELDS_MESSAGE

    if isinstance(error, ProviderUnreachable):
        if descriptor and descriptor.is_local:
            return f"Cannot connect to {descriptor.name}. Is the server running?"
        if descriptor and descriptor.requires_credential:
            return f"Cannot reach {descriptor.name}. {CREDENTIALS_HINT}"
        return error.message or GENERIC_FAILURE_MESSAGE

    if isinstance(error, ModelListUnavailable):
        if descriptor and descriptor.requires_credential:
            return f"Could not load {descriptor.name} models. {CREDENTIALS_HINT}"
        if descriptor and descriptor.is_local:
            return f"{descriptor.name} is running but did not return a model list: {error.message}"
        return error.message or GENERIC_FAILURE_MESSAGE

    message = str(error).strip()
    if message:
        return f"Error generating code: {message}. Please try again later."
    return GENERIC_FAILURE_MESSAGE


# ═══════════════════════════════════════════════════════════════════════════
#  TRANSPORTS
# ═══════════════════════════════════════════════════════════════════════════

class HttpTransport:
    """POST /api/generate-code and stream the response body."""

    def __init__(
        self,
        base_url: str,
        *,
        connect_timeout: float = 10.0,
        read_timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = (connect_timeout, read_timeout)
        self._session = session or requests.Session()

    def __call__(self, request: GenerationRequest) -> Iterable[bytes]:
        url = f"{self.base_url}/api/generate-code"
        try:
            response = self._session.post(url, json=request.to_body(), stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamGenerationFailure(
                f"Cannot connect to the generation server at {self.base_url}: {e}",
                provider_id=request.provider_id or None,
            ) from e
        return self._read(response, request)

    def _read(self, response: requests.Response, request: GenerationRequest) -> Iterable[bytes]:
        with response:
            if not response.ok:
                try:
                    payload = response.json()
                except ValueError:
                    payload = {}
                if not isinstance(payload, dict):
                    payload = {}
                raise error_from_payload(payload, response.status_code)
            try:
                for chunk in response.iter_content(chunk_size=None):
                    if chunk:
                        yield chunk
            except requests.RequestException as e:
                # Server aborted the body: the upstream call failed mid-stream.
                raise UpstreamGenerationFailure(
                    f"Stream terminated abnormally: {e}",
                    provider_id=request.provider_id or None,
                ) from e


class LocalTransport:
    """Run the server-side pipeline in this process."""

    def __init__(self, registry: ProviderRegistry):
        self.registry = registry

    def __call__(self, request: GenerationRequest) -> Iterable[bytes]:
        from generation import start_generation

        return iter(start_generation(self.registry, request))


# ═══════════════════════════════════════════════════════════════════════════
#  CONTROLLER
# ═══════════════════════════════════════════════════════════════════════════

class GenerationController:
    """Owns one :class:`GenerationState`.  One request at a time."""

    def __init__(
        self,
        transport: Transport,
        *,
        on_state: Callable[[GenerationState], None] | None = None,
        notify: Callable[[str], None] | None = None,
        legacy_text: bool = False,
    ):
        self.transport = transport
        self.on_state = on_state
        self.notify = notify
        self.legacy_text = legacy_text
        self.state = GenerationState()
        self.last_error: GenerationError | None = None
        self._cancelled = False

    # ── State publishing ──────────────────────────────────────────

    def snapshot(self) -> GenerationState:
        return replace(self.state)

    def _update(self, **changes) -> None:
        for key, value in changes.items():
            setattr(self.state, key, value)
        if self.on_state:
            self.on_state(self.snapshot())

    def _reset(self) -> None:
        self.state = GenerationState()
        self.last_error = None
        if self.on_state:
            self.on_state(self.snapshot())

    def _on_thinking(self, active: bool) -> None:
        if active:
            self._update(is_thinking=True, phase=GenerationPhase.THINKING)
        else:
            self._update(is_thinking=False)

    def _fail(self, error: GenerationError, provider_id: str | None) -> None:
        self.last_error = error
        message = describe_error(error, provider_id)
        logger.error(f"Generation failed ({error.kind}): {error}")
        self._update(
            is_generating=False,
            is_thinking=False,
            is_complete=False,
            phase=GenerationPhase.FAILED,
            error=message,
        )
        if self.notify:
            self.notify(message)

    # ── Public API ────────────────────────────────────────────────

    def cancel(self) -> None:
        """Stop reading after the current chunk.  Partial output stays visible."""
        self._cancelled = True

    def generate(self, request: GenerationRequest) -> GenerationState:
        """Run one request to a terminal state and return a snapshot of it."""
        self._cancelled = False
        self._reset()
        try:
            request.check()
            self._update(is_generating=True, phase=GenerationPhase.GENERATING)
            self._pump(request)
        except GenerationError as e:
            self._fail(e, request.provider_id)
        except Exception as e:
            # Transport errors during read count as a failed stream.
            self._fail(
                UpstreamGenerationFailure(str(e), provider_id=request.provider_id or None),
                request.provider_id,
            )
        finally:
            if self.state.phase in (GenerationPhase.GENERATING, GenerationPhase.THINKING):
                self.state.phase = GenerationPhase.CANCELLED
            if self.state.is_generating or self.state.is_thinking:
                self._update(is_generating=False, is_thinking=False)
        return self.snapshot()

    def _pump(self, request: GenerationRequest) -> None:
        decoder = GenerationStreamDecoder(
            on_code=lambda code: self._update(code_text=code),
            on_reasoning=lambda text: self._update(reasoning_text=text),
            on_thinking=self._on_thinking,
            legacy_text=self.legacy_text,
        )
        chunks = self.transport(request)
        try:
            for chunk in chunks:
                decoder.feed(chunk)
                if self._cancelled:
                    break
        finally:
            close = getattr(chunks, "close", None)
            if close is not None:
                close()

        if self._cancelled:
            logger.info("Generation cancelled; keeping partial output")
            self._update(
                is_generating=False,
                is_thinking=False,
                phase=GenerationPhase.CANCELLED,
            )
            return

        decoder.close()
        self._update(
            is_generating=False,
            is_thinking=False,
            is_complete=True,
            phase=GenerationPhase.COMPLETE,
        )
