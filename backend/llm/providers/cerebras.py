"""Cerebras provider client.

Cerebras Cloud SDK is OpenAI-compatible, so only the client and its
exception classes differ from :class:`OpenAICompatibleClient`.
"""

from __future__ import annotations

from .openai import OpenAICompatibleClient


class CerebrasClient(OpenAICompatibleClient):
    """Cerebras Cloud SDK — fast inference, OpenAI-compatible API."""

    def _connect(self):
        from cerebras.cloud.sdk import Cerebras

        kwargs: dict = {"api_key": self.api_key}
        if self.base_url:
            kwargs["base_url"] = self.base_url
        return Cerebras(**kwargs)

    def _sdk_errors(self) -> tuple[type[Exception], type[Exception]]:
        from cerebras.cloud.sdk import APIConnectionError, APIStatusError

        return APIConnectionError, APIStatusError
