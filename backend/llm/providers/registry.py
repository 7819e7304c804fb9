"""Provider catalog and configuration lookups.

The catalog is static: one :class:`ProviderDescriptor` per backend,
defined at import time.  Configuration (base URLs, API keys, the
deny-list) comes from an environment snapshot held by a
:class:`ProviderRegistry` value, built once at startup:

    registry = ProviderRegistry.from_env()
    registry.list_enabled()
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from errors import UnknownProvider

logger = logging.getLogger(__name__)


class ProviderId(str, Enum):
    DEEPSEEK = "deepseek"
    OPENROUTER = "openrouter"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    MISTRAL = "mistral"
    CEREBRAS = "cerebras"
    OPENAI_COMPATIBLE = "openai_compatible"
    OLLAMA = "ollama"
    LM_STUDIO = "lm_studio"


@dataclass(frozen=True)
class ProviderDescriptor:
    """Identity and configuration keys of one backend."""

    id: ProviderId
    name: str
    description: str
    base_url_env: str
    api_key_env: str | None  # None → no credential needed
    default_base_url: str
    is_local: bool = False
    # Backend delivers reasoning as separate typed events; no <think> parsing.
    native_reasoning: bool = False
    # Env var that pins a single model and skips discovery.
    model_override_env: str | None = None
    examples: tuple[str, ...] = field(default_factory=tuple)

    @property
    def requires_credential(self) -> bool:
        return self.api_key_env is not None


PROVIDER_DESCRIPTORS: dict[ProviderId, ProviderDescriptor] = {
    d.id: d
    for d in (
        ProviderDescriptor(
            id=ProviderId.DEEPSEEK,
            name="DeepSeek",
            description="AI models from DeepSeek",
            base_url_env="DEEPSEEK_API_BASE",
            api_key_env="DEEPSEEK_API_KEY",
            default_base_url="https://api.deepseek.com/v1",
            native_reasoning=True,
        ),
        ProviderDescriptor(
            id=ProviderId.OPENROUTER,
            name="OpenRouter",
            description="Access 400+ AI models via OpenRouter",
            base_url_env="OPENROUTER_API_BASE",
            api_key_env="OPENROUTER_API_KEY",
            default_base_url="https://openrouter.ai/api/v1",
            native_reasoning=True,
        ),
        ProviderDescriptor(
            id=ProviderId.ANTHROPIC,
            name="Anthropic",
            description="Claude models from Anthropic",
            base_url_env="ANTHROPIC_API_BASE",
            api_key_env="ANTHROPIC_API_KEY",
            default_base_url="https://api.anthropic.com",
            native_reasoning=True,
        ),
        ProviderDescriptor(
            id=ProviderId.GOOGLE,
            name="Google AI",
            description="Gemini models from Google",
            base_url_env="GOOGLE_API_BASE",
            api_key_env="GOOGLE_GENERATIVE_AI_API_KEY",
            default_base_url="https://generativelanguage.googleapis.com/v1beta/openai",
        ),
        ProviderDescriptor(
            id=ProviderId.MISTRAL,
            name="Mistral",
            description="AI models from Mistral AI",
            base_url_env="MISTRAL_API_BASE",
            api_key_env="MISTRAL_API_KEY",
            default_base_url="https://api.mistral.ai/v1",
        ),
        ProviderDescriptor(
            id=ProviderId.CEREBRAS,
            name="Cerebras",
            description="Fast inference with Cerebras",
            base_url_env="CEREBRAS_API_BASE",
            api_key_env="CEREBRAS_API_KEY",
            default_base_url="https://api.cerebras.ai",
        ),
        ProviderDescriptor(
            id=ProviderId.OPENAI_COMPATIBLE,
            name="Custom API",
            description="Configure your own OpenAI-compatible API",
            base_url_env="OPENAI_COMPATIBLE_API_BASE",
            api_key_env="OPENAI_COMPATIBLE_API_KEY",
            default_base_url="",
            model_override_env="OPENAI_COMPATIBLE_MODEL",
            examples=("OpenAI", "Together AI", "Anyscale", "Groq"),
        ),
        ProviderDescriptor(
            id=ProviderId.OLLAMA,
            name="Ollama",
            description="Local AI models with Ollama",
            base_url_env="OLLAMA_API_BASE",
            api_key_env=None,
            default_base_url="http://localhost:11434",
            is_local=True,
        ),
        ProviderDescriptor(
            id=ProviderId.LM_STUDIO,
            name="LM Studio",
            description="Local AI models with LM Studio",
            base_url_env="LM_STUDIO_API_BASE",
            api_key_env=None,
            default_base_url="http://localhost:1234/v1",
            is_local=True,
        ),
    )
}


def parse_provider_id(provider_id: str | ProviderId) -> ProviderId:
    """Normalize a provider id, raising UnknownProvider if not in the catalog."""
    if isinstance(provider_id, ProviderId):
        return provider_id
    try:
        return ProviderId(str(provider_id).strip().lower())
    except ValueError:
        raise UnknownProvider(str(provider_id)) from None


def describe(provider_id: str | ProviderId) -> ProviderDescriptor:
    """Catalog lookup that needs no configuration."""
    return PROVIDER_DESCRIPTORS[parse_provider_id(provider_id)]


class ProviderRegistry:
    """Catalog plus the configuration snapshot it is resolved against."""

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        disabled: list[str] | None = None,
    ) -> None:
        self._env = dict(os.environ if env is None else env)
        if disabled is None:
            raw = self._env.get("DISABLED_PROVIDERS", "")
            disabled = [p.strip().lower() for p in raw.split(",") if p.strip()]
        self._disabled = set()
        for name in disabled:
            try:
                self._disabled.add(ProviderId(name))
            except ValueError:
                logger.warning(f"Ignoring unknown provider in DISABLED_PROVIDERS: {name}")

    @classmethod
    def from_env(cls) -> "ProviderRegistry":
        return cls(env=os.environ)

    def _lookup(self, key: str | None) -> str:
        if not key:
            return ""
        return (self._env.get(key) or "").strip()

    # ── Descriptor access ─────────────────────────────────────────

    def describe(self, provider_id: str | ProviderId) -> ProviderDescriptor:
        return describe(provider_id)

    def resolve_location(self, provider_id: str | ProviderId) -> str:
        """Configured base URL, else the descriptor's default."""
        d = self.describe(provider_id)
        return self._lookup(d.base_url_env) or d.default_base_url

    def resolve_credential(self, provider_id: str | ProviderId) -> str | None:
        d = self.describe(provider_id)
        return self._lookup(d.api_key_env) or None

    def resolve_model_override(self, provider_id: str | ProviderId) -> str | None:
        d = self.describe(provider_id)
        return self._lookup(d.model_override_env) or None

    # ── Enablement ────────────────────────────────────────────────

    def is_enabled(self, provider_id: str | ProviderId) -> bool:
        d = self.describe(provider_id)
        if d.id in self._disabled:
            return False
        if d.is_local:
            return True
        if d.id is ProviderId.OPENAI_COMPATIBLE:
            # No implicit defaults: both must be set explicitly.
            return bool(self._lookup(d.base_url_env) and self._lookup(d.api_key_env))
        if not d.requires_credential:
            return False
        return bool(self._lookup(d.api_key_env))

    def list_enabled(self) -> list[ProviderDescriptor]:
        return [d for d in PROVIDER_DESCRIPTORS.values() if self.is_enabled(d.id)]
