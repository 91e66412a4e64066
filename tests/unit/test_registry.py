"""Unit tests for provider resolution."""

from __future__ import annotations

import pytest

from copilot_relay.chunking import FixedSizeChunking
from copilot_relay.errors import ConfigurationError
from copilot_relay.providers import NO_PROVIDER_MESSAGE, ProviderRegistry
from copilot_relay.providers.gemini import GeminiProvider
from copilot_relay.providers.github import GitHubModelsProvider


@pytest.fixture
def both(provider_config):
    return {
        "gemini": provider_config("gemini"),
        "github": provider_config("github"),
    }


class TestResolve:
    """Tests for ProviderRegistry.resolve."""

    def test_default_order_prefers_gemini(self, both) -> None:
        assert ProviderRegistry(both).resolve().id == "gemini"

    def test_falls_through_to_github(self, provider_config) -> None:
        registry = ProviderRegistry(
            {
                "gemini": provider_config("gemini", api_key=""),
                "github": provider_config("github"),
            }
        )

        assert registry.resolve().id == "github"

    def test_requested_provider_wins(self, both) -> None:
        assert ProviderRegistry(both).resolve("github").id == "github"

    def test_unconfigured_request_uses_default(self, provider_config) -> None:
        registry = ProviderRegistry(
            {
                "gemini": provider_config("gemini"),
                "github": provider_config("github", api_key=""),
            }
        )

        assert registry.resolve("github").id == "gemini"

    def test_unknown_request_uses_default(self, both) -> None:
        assert ProviderRegistry(both).resolve("openai").id == "gemini"

    def test_nothing_configured(self, provider_config) -> None:
        registry = ProviderRegistry(
            {
                "gemini": provider_config("gemini", api_key=""),
                "github": provider_config("github", api_key=""),
            }
        )

        with pytest.raises(ConfigurationError) as exc_info:
            registry.resolve()

        assert exc_info.value.message == NO_PROVIDER_MESSAGE
        assert exc_info.value.status_code == 500

    def test_available_lists_configured_only(self, provider_config) -> None:
        registry = ProviderRegistry(
            {
                "gemini": provider_config("gemini", api_key=""),
                "github": provider_config("github"),
            }
        )

        assert [c.id for c in registry.available()] == ["github"]


class TestGet:
    """Tests for provider instance creation."""

    @pytest.mark.asyncio
    async def test_builds_default_providers(self, both) -> None:
        registry = ProviderRegistry(both, chunk_size=8)

        gemini = registry.get(both["gemini"])
        github = registry.get(both["github"])

        assert isinstance(gemini, GeminiProvider)
        assert isinstance(github, GitHubModelsProvider)
        assert isinstance(github.chunking, FixedSizeChunking)
        assert github.chunking.size == 8
        await registry.aclose()

    def test_instances_are_cached(self, both, scripted_provider) -> None:
        built = []

        def factory(config, registry):
            built.append(config.id)
            return scripted_provider([], config=config)

        registry = ProviderRegistry(both, factories={"gemini": factory})

        first = registry.get(both["gemini"])
        second = registry.get(both["gemini"])

        assert first is second
        assert built == ["gemini"]

    def test_missing_factory(self, both) -> None:
        registry = ProviderRegistry(both, factories={"github": lambda c, r: None})

        with pytest.raises(ConfigurationError, match="No implementation"):
            registry.get(both["gemini"])

    @pytest.mark.asyncio
    async def test_shared_http_client(self, both) -> None:
        registry = ProviderRegistry(both)

        client = registry.http_client

        assert registry.http_client is client
        await registry.aclose()
        assert client.is_closed

    def test_invalid_chunk_size_is_configuration_error(self, both) -> None:
        registry = ProviderRegistry(both, chunk_size=0)

        with pytest.raises(ConfigurationError, match="misconfigured"):
            registry.get(both["gemini"])
