"""Ollama provider client.

Talks to the Ollama HTTP API directly:
  - GET  /api/tags      model discovery
  - POST /api/generate  newline-delimited JSON stream, one object per token
                        batch: {"response": "...", "done": false}

Ollama has no separate reasoning channel for most models (deepseek-r1,
qwen3 write ``<think>`` inline), so the handle's extractor stage splits
it.  A ``thinking`` field, when the server sends one, is passed through
as reasoning.
"""

from __future__ import annotations

import json
import logging
from typing import Generator

import requests

from errors import GenerationError, ModelListUnavailable, UpstreamGenerationFailure
from settings import settings

from .base import Channel, Delta, ModelSummary, ProviderClient, dedupe_models

logger = logging.getLogger(__name__)

# Failures that mean the request never reached a server.
CONNECT_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidURL,
)


class OllamaClient(ProviderClient):
    """Local Ollama server."""

    def list_models(self) -> list[ModelSummary]:
        url = f"{self.base_url.rstrip('/')}/api/tags"
        try:
            r = requests.get(url, timeout=settings.REQUEST_TIMEOUT)
        except requests.RequestException as e:
            # No response at all: refused, timed out or a malformed OLLAMA_API_BASE.
            raise self.unreachable(e) from e

        if not r.ok:
            logger.error(f"Error fetching Ollama models: {r.status_code} {r.reason}")
            raise ModelListUnavailable(
                f"Error fetching Ollama models: {r.status_code} {r.reason}",
                provider_id=self.name,
                status=r.status_code,
                reason=r.reason or "",
            )
        try:
            data = r.json()
            names = [m["name"] for m in data.get("models") or []]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ModelListUnavailable(
                f"Malformed model list from Ollama: {e}",
                provider_id=self.name,
                status=r.status_code,
                reason="malformed response",
            ) from e
        return dedupe_models(names)

    def translate_generation_error(self, exc: Exception) -> GenerationError:
        if isinstance(exc, CONNECT_ERRORS):
            return self.unreachable(exc)
        return super().translate_generation_error(exc)

    def _stream_raw(
        self,
        model_id: str,
        prompt: str,
        system_prompt: str,
        max_tokens: int | None,
    ) -> Generator[Delta, None, None]:
        url = f"{self.base_url.rstrip('/')}/api/generate"
        payload: dict = {
            "model": model_id,
            "prompt": prompt,
            "system": system_prompt,
            "stream": True,
        }
        if max_tokens:
            # Ollama calls the output budget num_predict
            payload["options"] = {"num_predict": max_tokens}

        # Connect timeout only; generation may legitimately stall between tokens.
        with requests.post(url, json=payload, stream=True, timeout=(settings.REQUEST_TIMEOUT, None)) as r:
            if not r.ok:
                raise UpstreamGenerationFailure(
                    f"Error generating code with Ollama: {r.status_code} {r.reason}",
                    provider_id=self.name,
                )
            for line in r.iter_lines(decode_unicode=True):
                if not line:
                    continue
                try:
                    obj = json.loads(line)
                except ValueError:
                    logger.warning(f"Non-JSON line from Ollama passed through as text: {line[:80]!r}")
                    yield Delta(Channel.TEXT, line)
                    continue
                if obj.get("error"):
                    raise UpstreamGenerationFailure(
                        f"Ollama error: {obj['error']}", provider_id=self.name
                    )
                if obj.get("thinking"):
                    yield Delta(Channel.REASONING, obj["thinking"])
                if obj.get("response"):
                    yield Delta(Channel.TEXT, obj["response"])
                if obj.get("done"):
                    break
