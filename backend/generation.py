"""Server-side request handling — shared by the HTTP app and the CLI.

Turns a :class:`~schemas.GenerationRequest` into a started
:class:`~llm.generators.GenerationStreamEncoder`, and answers model
listings, enforcing provider enablement in both cases.  Nothing here
touches the network until the request has passed validation.
"""

from __future__ import annotations

import logging

from errors import ValidationError
from llm.generators import GenerationStreamEncoder
from llm.providers import (
    ModelSummary,
    ProviderDescriptor,
    ProviderRegistry,
    create_provider_client,
    parse_provider_id,
)
from schemas import GenerationRequest
from settings import settings
from telemetry import GenerationTelemetry

logger = logging.getLogger(__name__)


def _enabled_descriptor(registry: ProviderRegistry, provider_id: str) -> ProviderDescriptor:
    descriptor = registry.describe(parse_provider_id(provider_id))
    if not registry.is_enabled(descriptor.id):
        raise ValidationError(
            f"Provider '{descriptor.name}' is not configured or has been disabled.",
            provider_id=descriptor.id.value,
        )
    return descriptor


def list_models(registry: ProviderRegistry, provider_id: str) -> list[ModelSummary]:
    """Models offered by an enabled provider."""
    if not (provider_id or "").strip():
        raise ValidationError("Provider is required")
    descriptor = _enabled_descriptor(registry, provider_id)
    client = create_provider_client(registry, descriptor.id)
    return client.list_models()


def start_generation(
    registry: ProviderRegistry,
    request: GenerationRequest,
    *,
    default_provider: str | None = None,
    max_tokens_limit: int | None = None,
) -> GenerationStreamEncoder:
    """Validate, resolve the model and start the call.

    A request without a provider falls back to ``DEFAULT_PROVIDER``.
    The returned encoder has already received its first delta.
    """
    request.check(
        require_provider=False,
        max_tokens_limit=max_tokens_limit or settings.MAX_TOKENS_LIMIT,
    )
    provider_id = request.provider_id.strip() or default_provider or settings.DEFAULT_PROVIDER
    descriptor = _enabled_descriptor(registry, provider_id)

    client = create_provider_client(registry, descriptor.id)
    handle = client.resolve_model(request.model_id.strip())
    logger.info(
        f"Generating with {descriptor.name}/{handle.model_id} "
        f"(mode={request.system_prompt_mode}, max_tokens={request.max_tokens or 'provider default'})"
    )
    telemetry = GenerationTelemetry(
        provider_id=descriptor.id.value,
        model_id=handle.model_id,
        prompt_mode=request.system_prompt_mode,
        prompt_chars=len(request.prompt),
    )
    encoder = GenerationStreamEncoder(
        handle,
        request.prompt,
        request.system_prompt,
        request.max_tokens,
        telemetry=telemetry,
    )
    return encoder.start()
