"""Generation error taxonomy.

Every failure the pipeline reports inherits from :class:`GenerationError`
so callers can catch one type.  Each subclass carries a stable ``kind``
string and the HTTP status the server answers with; ``to_payload`` and
:func:`error_from_payload` carry an error across the HTTP boundary intact.

Decode problems are not errors: :class:`DecodeWarning` is logged and the
stream keeps going.
"""

from __future__ import annotations


class GenerationError(Exception):
    """Base exception for all generation pipeline errors."""

    kind = "generation_error"
    status_code = 500

    def __init__(self, message: str = "", *, provider_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider_id = provider_id

    def to_payload(self) -> dict:
        payload = {"error": self.message, "kind": self.kind}
        if self.provider_id:
            payload["provider"] = self.provider_id
        return payload


class ValidationError(GenerationError):
    """Request is missing a prompt, model or provider.  No call was made."""

    kind = "validation_error"
    status_code = 400


class UnknownProvider(ValidationError):
    """Provider id is not in the catalog."""

    kind = "unknown_provider"

    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Unknown provider: '{provider_id}'", provider_id=provider_id)


class ProviderUnreachable(GenerationError):
    """The backend could not be reached at the network level."""

    kind = "provider_unreachable"
    status_code = 503


class ModelListUnavailable(GenerationError):
    """The backend answered, but model discovery failed."""

    kind = "model_list_unavailable"
    status_code = 502

    def __init__(
        self,
        message: str = "",
        *,
        provider_id: str | None = None,
        status: int | None = None,
        reason: str = "",
    ) -> None:
        super().__init__(message, provider_id=provider_id)
        self.status = status
        self.reason = reason

    def to_payload(self) -> dict:
        payload = super().to_payload()
        if self.status is not None:
            payload["status"] = self.status
        if self.reason:
            payload["reason"] = self.reason
        return payload


class UpstreamGenerationFailure(GenerationError):
    """The model call failed or its stream ended abnormally."""

    kind = "upstream_generation_failure"
    status_code = 502


class DecodeWarning(UserWarning):
    """A wire line could not be parsed as a stream record."""


_KINDS: dict[str, type[GenerationError]] = {
    cls.kind: cls
    for cls in (
        GenerationError,
        ValidationError,
        ProviderUnreachable,
        UpstreamGenerationFailure,
    )
}


def error_from_payload(payload: dict, status_code: int | None = None) -> GenerationError:
    """Rebuild a taxonomy error from an HTTP error body."""
    kind = payload.get("kind", "")
    message = payload.get("error") or (
        f"HTTP error! status: {status_code}" if status_code else "Error generating code"
    )
    provider_id = payload.get("provider")

    if kind == UnknownProvider.kind and provider_id:
        return UnknownProvider(provider_id)
    if kind == ModelListUnavailable.kind:
        return ModelListUnavailable(
            message,
            provider_id=provider_id,
            status=payload.get("status"),
            reason=payload.get("reason", ""),
        )
    cls = _KINDS.get(kind)
    if cls is None:
        cls = ValidationError if status_code == 400 else UpstreamGenerationFailure
    return cls(message, provider_id=provider_id)
