"""Request shape shared by the HTTP surface and the client controller.

Wire keys are camelCase (``maxTokens``, ``systemPromptType``); Python
attributes are snake_case.  Field-level checks live in :meth:`check` so
a blank prompt yields our own :class:`~errors.ValidationError` rather
than a framework 422.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from errors import ValidationError
from llm.prompts import SYSTEM_PROMPT_MODES, resolve_system_prompt

MISSING_FIELDS_MESSAGE = "Please enter a prompt and select a provider and model."


class GenerationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = ""
    provider_id: str = Field("", alias="provider")
    model_id: str = Field("", alias="model")
    max_tokens: Optional[int] = Field(None, alias="maxTokens")
    system_prompt_mode: str = Field("default", alias="systemPromptType")
    custom_system_prompt: Optional[str] = Field(None, alias="customSystemPrompt")

    def check(self, *, require_provider: bool = True, max_tokens_limit: int | None = None) -> "GenerationRequest":
        """Raise ValidationError unless the request can be sent as-is."""
        required = [self.prompt, self.model_id]
        if require_provider:
            required.append(self.provider_id)
        if any(not (value or "").strip() for value in required):
            raise ValidationError(MISSING_FIELDS_MESSAGE, provider_id=self.provider_id or None)
        if self.max_tokens is not None:
            if self.max_tokens <= 0:
                raise ValidationError("maxTokens must be a positive integer")
            if max_tokens_limit and self.max_tokens > max_tokens_limit:
                raise ValidationError(f"maxTokens must not exceed {max_tokens_limit}")
        if self.system_prompt_mode not in SYSTEM_PROMPT_MODES:
            raise ValidationError(
                f"Unknown systemPromptType '{self.system_prompt_mode}'. "
                f"Expected one of: {', '.join(SYSTEM_PROMPT_MODES)}"
            )
        return self

    @property
    def system_prompt(self) -> str:
        return resolve_system_prompt(self.system_prompt_mode, self.custom_system_prompt)

    def to_body(self) -> dict:
        """JSON body for POST /api/generate-code."""
        body = self.model_dump(by_alias=True, exclude_none=True)
        # Custom text is only meaningful in custom mode.
        if self.system_prompt_mode != "custom":
            body.pop("customSystemPrompt", None)
        return body
