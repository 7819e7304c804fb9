"""LLM provider client base class.

Every provider client implements two methods:
  - list_models()                    -> list[ModelSummary]
  - _stream_raw(model_id, prompt, system_prompt, max_tokens)
                                     (yields Delta objects)

and inherits ``resolve_model(model_id)``, which returns a
:class:`ModelHandle`.  The handle composes the delta pipeline once, at
resolution time:

    raw deltas → [ReasoningExtractor stage] → classified deltas

The extractor stage is only added when the descriptor says the backend
has no native reasoning channel.

To add a new provider:
  1. Create llm/providers/your_provider.py
  2. Subclass ProviderClient
  3. Register it in the factory table in llm/providers/__init__.py
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generator, Iterable, Iterator

from errors import GenerationError, ProviderUnreachable, UpstreamGenerationFailure

from ..reasoning import ReasoningExtractor
from .registry import ProviderDescriptor, ProviderRegistry

logger = logging.getLogger(__name__)


class Channel(str, Enum):
    TEXT = "text"
    REASONING = "reasoning"


@dataclass(frozen=True)
class Delta:
    """One incremental fragment attributed to one channel."""

    channel: Channel
    content: str


@dataclass(frozen=True)
class ModelSummary:
    id: str
    display_name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.display_name}


def _close(stream: object) -> None:
    """Close a generator (and the upstream response it holds) if it has close()."""
    close = getattr(stream, "close", None)
    if close is not None:
        close()


def extract_reasoning(deltas: Iterable[Delta]) -> Generator[Delta, None, None]:
    """Split ``<think>`` blocks out of text deltas.

    A fresh extractor is created per call, so state never leaks between
    generations.  Deltas already classified as reasoning pass through.
    """
    extractor = ReasoningExtractor()
    try:
        for delta in deltas:
            if delta.channel is Channel.REASONING:
                yield delta
                continue
            part = extractor.feed(delta.content)
            if part.reasoning:
                yield Delta(Channel.REASONING, part.reasoning)
            if part.text:
                yield Delta(Channel.TEXT, part.text)
    finally:
        _close(deltas)
    tail = extractor.flush()
    if tail.reasoning:
        yield Delta(Channel.REASONING, tail.reasoning)
    if tail.text:
        yield Delta(Channel.TEXT, tail.text)


RawStream = Callable[..., Iterable[Delta]]


class ModelHandle:
    """Callable handle for one model on one backend."""

    def __init__(
        self,
        provider_id: str,
        model_id: str,
        raw_stream: RawStream,
        *,
        extract_tags: bool,
        translate_error: Callable[[Exception], GenerationError],
    ):
        self.provider_id = provider_id
        self.model_id = model_id
        self.extract_tags = extract_tags
        self._raw_stream = raw_stream
        self._translate_error = translate_error

    def __repr__(self) -> str:
        return f"ModelHandle({self.provider_id}:{self.model_id}, extract_tags={self.extract_tags})"

    def _guarded(self, prompt: str, system_prompt: str, max_tokens: int | None) -> Generator[Delta, None, None]:
        raw = None
        try:
            raw = self._raw_stream(prompt, system_prompt, max_tokens)
            for delta in raw:
                if delta.content:
                    yield delta
        except GenerationError:
            raise
        except Exception as e:
            raise self._translate_error(e) from e
        finally:
            _close(raw)

    def stream(self, prompt: str, system_prompt: str, max_tokens: int | None = None) -> Iterator[Delta]:
        """Start the model call and yield classified deltas in emission order."""
        deltas: Iterator[Delta] = self._guarded(prompt, system_prompt, max_tokens)
        if self.extract_tags:
            deltas = extract_reasoning(deltas)
        return deltas

    __call__ = stream


class ProviderClient(ABC):
    """Abstract base for provider clients."""

    def __init__(self, descriptor: ProviderDescriptor, registry: ProviderRegistry):
        self.descriptor = descriptor
        self.registry = registry
        self.base_url = registry.resolve_location(descriptor.id)
        self.api_key = registry.resolve_credential(descriptor.id)

    @property
    def name(self) -> str:
        """Provider identifier (e.g. 'ollama', 'deepseek')."""
        return self.descriptor.id.value

    @abstractmethod
    def list_models(self) -> list[ModelSummary]:
        """Return the models this backend offers."""
        ...

    @abstractmethod
    def _stream_raw(
        self,
        model_id: str,
        prompt: str,
        system_prompt: str,
        max_tokens: int | None,
    ) -> Iterable[Delta]:
        """Call the backend and yield deltas as they arrive."""
        ...

    # ── Shared helpers ────────────────────────────────────────────

    def unreachable(self, exc: Exception | None = None) -> GenerationError:
        if self.descriptor.is_local:
            message = f"Cannot connect to {self.descriptor.name}. Is the server running?"
        else:
            message = (
                f"Cannot connect to {self.descriptor.name} at {self.base_url or '(no base URL)'}. "
                f"Check the base URL and your network connection."
            )
        if exc is not None:
            logger.error(f"{self.descriptor.name} unreachable: {exc}")
        return ProviderUnreachable(message, provider_id=self.name)

    def translate_generation_error(self, exc: Exception) -> GenerationError:
        """Map a transport/SDK exception raised while streaming."""
        return UpstreamGenerationFailure(
            f"{self.descriptor.name} generation failed: {exc}",
            provider_id=self.name,
        )

    def resolve_model(self, model_id: str) -> ModelHandle:
        def raw(prompt: str, system_prompt: str, max_tokens: int | None) -> Iterable[Delta]:
            return self._stream_raw(model_id, prompt, system_prompt, max_tokens)

        return ModelHandle(
            self.name,
            model_id,
            raw,
            extract_tags=not self.descriptor.native_reasoning,
            translate_error=self.translate_generation_error,
        )


def dedupe_models(ids: Iterable[str]) -> list[ModelSummary]:
    """Build summaries, dropping repeated ids while keeping first-seen order."""
    seen: dict[str, ModelSummary] = {}
    for model_id in ids:
        if model_id and model_id not in seen:
            seen[model_id] = ModelSummary(id=model_id, display_name=model_id)
    return list(seen.values())
