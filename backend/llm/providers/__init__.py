"""Provider client factory.

One lookup keyed on provider id picks the client class for a backend.
Provider SDKs are imported lazily — only the selected provider's SDK
needs to be installed.

Usage:
    from llm.providers import ProviderRegistry, create_provider_client

    registry = ProviderRegistry.from_env()
    client = create_provider_client(registry, "ollama")
    handle = client.resolve_model("qwen3:8b")
"""

from __future__ import annotations

import logging
from typing import Callable

from .base import Channel, Delta, ModelHandle, ModelSummary, ProviderClient
from .registry import (
    PROVIDER_DESCRIPTORS,
    ProviderDescriptor,
    ProviderId,
    ProviderRegistry,
    describe,
    parse_provider_id,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ProviderDescriptor, ProviderRegistry], ProviderClient]


def _openai(descriptor: ProviderDescriptor, registry: ProviderRegistry) -> ProviderClient:
    from .openai import OpenAICompatibleClient

    return OpenAICompatibleClient(descriptor, registry)


def _cerebras(descriptor: ProviderDescriptor, registry: ProviderRegistry) -> ProviderClient:
    from .cerebras import CerebrasClient

    return CerebrasClient(descriptor, registry)


def _anthropic(descriptor: ProviderDescriptor, registry: ProviderRegistry) -> ProviderClient:
    from .anthropic import AnthropicClient

    return AnthropicClient(descriptor, registry)


def _ollama(descriptor: ProviderDescriptor, registry: ProviderRegistry) -> ProviderClient:
    from .ollama import OllamaClient

    return OllamaClient(descriptor, registry)


CLIENT_FACTORIES: dict[ProviderId, ClientFactory] = {
    ProviderId.DEEPSEEK: _openai,
    ProviderId.OPENROUTER: _openai,
    ProviderId.ANTHROPIC: _anthropic,
    ProviderId.GOOGLE: _openai,
    ProviderId.MISTRAL: _openai,
    ProviderId.CEREBRAS: _cerebras,
    ProviderId.OPENAI_COMPATIBLE: _openai,
    ProviderId.OLLAMA: _ollama,
    ProviderId.LM_STUDIO: _openai,
}


def create_provider_client(registry: ProviderRegistry, provider_id: str | ProviderId) -> ProviderClient:
    """Instantiate the client for *provider_id* against *registry*'s configuration."""
    descriptor = registry.describe(provider_id)
    return CLIENT_FACTORIES[descriptor.id](descriptor, registry)


__all__ = [
    "CLIENT_FACTORIES",
    "Channel",
    "Delta",
    "ModelHandle",
    "ModelSummary",
    "PROVIDER_DESCRIPTORS",
    "ProviderClient",
    "ProviderDescriptor",
    "ProviderId",
    "ProviderRegistry",
    "create_provider_client",
    "describe",
    "parse_provider_id",
]
