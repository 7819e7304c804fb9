"""OpenAI-compatible provider client.

Serves every backend that speaks the Chat Completions API: DeepSeek,
OpenRouter, Google AI (OpenAI endpoint), Mistral, LM Studio and the
fully custom "Custom API" provider.  Backends that stream reasoning as
a separate delta field (``reasoning_content`` on DeepSeek, ``reasoning``
on OpenRouter) are read natively; the rest are tag-parsed by the
handle's extractor stage.
"""

from __future__ import annotations

import logging
from typing import Generator

from errors import GenerationError, ModelListUnavailable
from settings import settings

from .base import Channel, Delta, ModelSummary, ProviderClient, dedupe_models
from .registry import ProviderDescriptor, ProviderRegistry

logger = logging.getLogger(__name__)

# Delta attributes that carry reasoning, in lookup order.
REASONING_FIELDS = ("reasoning_content", "reasoning")

# Local servers accept any key, but the SDK refuses to start without one.
PLACEHOLDER_API_KEY = "not-needed"


class OpenAICompatibleClient(ProviderClient):
    """Chat Completions API over the ``openai`` SDK."""

    def __init__(self, descriptor: ProviderDescriptor, registry: ProviderRegistry):
        super().__init__(descriptor, registry)
        self._client = self._connect()
        logger.info(
            f"{descriptor.name} client ready"
            f"{' (base_url=' + self.base_url + ')' if self.base_url else ''}"
        )

    def _connect(self):
        from openai import OpenAI  # type: ignore[import-untyped]

        kwargs: dict = {"api_key": self.api_key or PLACEHOLDER_API_KEY}
        if self.base_url:
            kwargs["base_url"] = self.base_url
        return OpenAI(**kwargs)

    def _sdk_errors(self) -> tuple[type[Exception], type[Exception]]:
        """(connection error, status error) classes of the SDK in use."""
        import openai  # type: ignore[import-untyped]

        return openai.APIConnectionError, openai.APIStatusError

    # ── Discovery ─────────────────────────────────────────────────

    def list_models(self) -> list[ModelSummary]:
        override = self.registry.resolve_model_override(self.descriptor.id)
        if override:
            # Some compatible services cannot list models at all.
            return [ModelSummary(id=override, display_name=override)]

        connection_error, status_error = self._sdk_errors()
        try:
            page = self._client.models.list(timeout=settings.REQUEST_TIMEOUT)
            return dedupe_models(model.id for model in page.data)
        except connection_error as e:
            raise self.unreachable(e) from e
        except status_error as e:
            logger.error(f"Error fetching {self.descriptor.name} models: {e}")
            raise ModelListUnavailable(
                f"Error fetching {self.descriptor.name} models: {e.status_code} {e.message}",
                provider_id=self.name,
                status=e.status_code,
                reason=str(e.message),
            ) from e
        except (AttributeError, TypeError, ValueError) as e:
            raise ModelListUnavailable(
                f"Malformed model list from {self.descriptor.name}: {e}",
                provider_id=self.name,
                reason="malformed response",
            ) from e

    # ── Generation ────────────────────────────────────────────────

    def translate_generation_error(self, exc: Exception) -> GenerationError:
        connection_error, _ = self._sdk_errors()
        if isinstance(exc, connection_error):
            return self.unreachable(exc)
        return super().translate_generation_error(exc)

    def _stream_raw(
        self,
        model_id: str,
        prompt: str,
        system_prompt: str,
        max_tokens: int | None,
    ) -> Generator[Delta, None, None]:
        kwargs: dict = dict(
            model=model_id,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            stream=True,
        )
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        # Leaving the block closes the HTTP response, including on early close().
        with self._client.chat.completions.create(**kwargs) as stream:
            for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta is None:
                    continue
                for field_name in REASONING_FIELDS:
                    reasoning = getattr(delta, field_name, None)
                    if reasoning:
                        yield Delta(Channel.REASONING, reasoning)
                        break
                if delta.content:
                    yield Delta(Channel.TEXT, delta.content)
