"""Tests for the provider catalog and registry — lookups and enablement policy.

Every registry is built from an explicit env dict, so nothing here depends
on the real environment or a .env file.
"""

import pytest

from errors import UnknownProvider, ValidationError
from llm.providers.registry import (
    PROVIDER_DESCRIPTORS,
    ProviderId,
    ProviderRegistry,
    describe,
)


class TestDescribe:
    def test_known_provider(self):
        d = describe("ollama")
        assert d.id is ProviderId.OLLAMA
        assert d.name == "Ollama"
        assert d.is_local is True
        assert d.requires_credential is False

    def test_accepts_enum(self):
        assert describe(ProviderId.DEEPSEEK).name == "DeepSeek"

    def test_unknown_provider_raises(self):
        with pytest.raises(UnknownProvider) as exc:
            ProviderRegistry(env={}).describe("skynet")
        assert "skynet" in str(exc.value)

    def test_unknown_provider_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            describe("")

    def test_catalog_order(self):
        ids = [d.id.value for d in PROVIDER_DESCRIPTORS.values()]
        assert ids == [
            "deepseek", "openrouter", "anthropic", "google", "mistral",
            "cerebras", "openai_compatible", "ollama", "lm_studio",
        ]

    def test_descriptors_are_immutable(self):
        with pytest.raises((TypeError, AttributeError)):
            describe("ollama").name = "Other"  # type: ignore[misc]


class TestResolve:
    def test_location_default(self):
        reg = ProviderRegistry(env={})
        assert reg.resolve_location("ollama") == "http://localhost:11434"
        assert reg.resolve_location("lm_studio") == "http://localhost:1234/v1"

    def test_location_override(self):
        reg = ProviderRegistry(env={"OLLAMA_API_BASE": "http://gpu-box:11434"})
        assert reg.resolve_location("ollama") == "http://gpu-box:11434"

    def test_blank_override_falls_back_to_default(self):
        reg = ProviderRegistry(env={"DEEPSEEK_API_BASE": "   "})
        assert reg.resolve_location("deepseek") == "https://api.deepseek.com/v1"

    def test_custom_api_has_no_default_location(self):
        assert ProviderRegistry(env={}).resolve_location("openai_compatible") == ""

    def test_credential(self):
        reg = ProviderRegistry(env={"DEEPSEEK_API_KEY": " sk-123 "})
        assert reg.resolve_credential("deepseek") == "sk-123"
        assert reg.resolve_credential("openrouter") is None

    def test_local_provider_has_no_credential(self):
        reg = ProviderRegistry(env={"OLLAMA_API_KEY": "ignored"})
        assert reg.resolve_credential("ollama") is None

    def test_model_override(self):
        reg = ProviderRegistry(env={"OPENAI_COMPATIBLE_MODEL": "llama-3-70b"})
        assert reg.resolve_model_override("openai_compatible") == "llama-3-70b"
        assert reg.resolve_model_override("deepseek") is None


class TestIsEnabled:
    def test_local_providers_always_enabled(self):
        reg = ProviderRegistry(env={})
        assert reg.is_enabled("ollama") is True
        assert reg.is_enabled("lm_studio") is True

    def test_remote_needs_credential(self):
        assert ProviderRegistry(env={}).is_enabled("deepseek") is False
        assert ProviderRegistry(env={"DEEPSEEK_API_KEY": "sk"}).is_enabled("deepseek") is True

    def test_remote_with_blank_credential_is_disabled(self):
        assert ProviderRegistry(env={"MISTRAL_API_KEY": "  "}).is_enabled("mistral") is False

    def test_custom_api_needs_both_settings(self):
        key_only = ProviderRegistry(env={"OPENAI_COMPATIBLE_API_KEY": "k"})
        url_only = ProviderRegistry(env={"OPENAI_COMPATIBLE_API_BASE": "https://x/v1"})
        both = ProviderRegistry(env={
            "OPENAI_COMPATIBLE_API_KEY": "k",
            "OPENAI_COMPATIBLE_API_BASE": "https://x/v1",
        })
        assert key_only.is_enabled("openai_compatible") is False
        assert url_only.is_enabled("openai_compatible") is False
        assert both.is_enabled("openai_compatible") is True

    def test_deny_list_from_env(self):
        reg = ProviderRegistry(env={
            "DISABLED_PROVIDERS": "ollama, deepseek",
            "DEEPSEEK_API_KEY": "sk",
        })
        assert reg.is_enabled("ollama") is False
        assert reg.is_enabled("deepseek") is False
        assert reg.is_enabled("lm_studio") is True

    def test_explicit_deny_list_wins_over_env(self):
        reg = ProviderRegistry(env={"DISABLED_PROVIDERS": "ollama"}, disabled=["lm_studio"])
        assert reg.is_enabled("ollama") is True
        assert reg.is_enabled("lm_studio") is False

    def test_unknown_ids_in_deny_list_are_ignored(self):
        reg = ProviderRegistry(env={"DISABLED_PROVIDERS": "nope,ollama"})
        assert reg.is_enabled("ollama") is False

    def test_unknown_provider_raises(self):
        with pytest.raises(UnknownProvider):
            ProviderRegistry(env={}).is_enabled("nope")


class TestListEnabled:
    def test_only_local_without_configuration(self):
        ids = [d.id.value for d in ProviderRegistry(env={}).list_enabled()]
        assert ids == ["ollama", "lm_studio"]

    def test_keeps_catalog_order(self):
        reg = ProviderRegistry(env={
            "CEREBRAS_API_KEY": "c",
            "DEEPSEEK_API_KEY": "d",
            "DISABLED_PROVIDERS": "lm_studio",
        })
        ids = [d.id.value for d in reg.list_enabled()]
        assert ids == ["deepseek", "cerebras", "ollama"]
