"""Anthropic provider client.

Handles Anthropic-specific API differences:
  - System prompt is a separate parameter (not a message)
  - ``max_tokens`` is mandatory
  - Reasoning arrives natively as ``thinking_delta`` events when
    extended thinking is enabled
  - Models come from a fixed catalog; listing makes no network call
"""

from __future__ import annotations

import logging
from typing import Generator

from errors import GenerationError

from .base import Channel, Delta, ModelSummary, ProviderClient
from .registry import ProviderDescriptor, ProviderRegistry

logger = logging.getLogger(__name__)

# (model id, display name, supports extended thinking)
ANTHROPIC_MODELS: tuple[tuple[str, str, bool], ...] = (
    ("claude-sonnet-4-20250514", "Claude Sonnet 4", True),
    ("claude-opus-4-20250514", "Claude Opus 4", True),
    ("claude-3-7-sonnet-20250219", "Claude 3.7 Sonnet", True),
    ("claude-3-5-haiku-20241022", "Claude 3.5 Haiku", False),
)

DEFAULT_MAX_TOKENS = 8192
THINKING_BUDGET_TOKENS = 2048


class AnthropicClient(ProviderClient):
    """Anthropic Messages API."""

    def __init__(self, descriptor: ProviderDescriptor, registry: ProviderRegistry):
        super().__init__(descriptor, registry)
        from anthropic import Anthropic  # type: ignore[import-untyped]

        kwargs: dict = {"api_key": self.api_key}
        if self.base_url:
            kwargs["base_url"] = self.base_url
        self._client = Anthropic(**kwargs)
        logger.info("Anthropic client ready")

    def list_models(self) -> list[ModelSummary]:
        return [ModelSummary(id=mid, display_name=name) for mid, name, _ in ANTHROPIC_MODELS]

    @staticmethod
    def _supports_thinking(model_id: str) -> bool:
        return any(mid == model_id and thinking for mid, _, thinking in ANTHROPIC_MODELS)

    def translate_generation_error(self, exc: Exception) -> GenerationError:
        import anthropic  # type: ignore[import-untyped]

        if isinstance(exc, anthropic.APIConnectionError):
            return self.unreachable(exc)
        return super().translate_generation_error(exc)

    def _stream_raw(
        self,
        model_id: str,
        prompt: str,
        system_prompt: str,
        max_tokens: int | None,
    ) -> Generator[Delta, None, None]:
        budget = max_tokens or DEFAULT_MAX_TOKENS
        kwargs: dict = dict(
            model=model_id,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=budget,
        )
        if system_prompt:
            kwargs["system"] = system_prompt
        # The API requires the thinking budget to stay below max_tokens.
        if self._supports_thinking(model_id) and budget > THINKING_BUDGET_TOKENS:
            kwargs["thinking"] = {"type": "enabled", "budget_tokens": THINKING_BUDGET_TOKENS}

        with self._client.messages.stream(**kwargs) as stream:
            for event in stream:
                if event.type != "content_block_delta":
                    continue
                if event.delta.type == "text_delta":
                    yield Delta(Channel.TEXT, event.delta.text)
                elif event.delta.type == "thinking_delta":
                    yield Delta(Channel.REASONING, event.delta.thinking)
