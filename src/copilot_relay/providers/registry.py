"""Provider registry.

Resolves which provider serves a request and builds provider instances
from the static configuration loaded at startup.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

import httpx

from ..chunking import FixedSizeChunking
from ..config import DEFAULT_PROVIDER_ORDER, GEMINI, GITHUB, ProviderConfig
from ..errors import ConfigurationError
from .base import LLMProvider

logger = logging.getLogger(__name__)

NO_PROVIDER_MESSAGE = (
    "No AI provider configured. Add GITHUB_TOKEN or GEMINI_API_KEY to your .env file."
)

ProviderFactory = Callable[[ProviderConfig, "ProviderRegistry"], LLMProvider]


def _gemini_factory(config: ProviderConfig, registry: ProviderRegistry) -> LLMProvider:
    from .gemini import GeminiProvider

    return GeminiProvider(config, chunking=FixedSizeChunking(registry.chunk_size))


def _github_factory(config: ProviderConfig, registry: ProviderRegistry) -> LLMProvider:
    from .github import GitHubModelsProvider

    return GitHubModelsProvider(
        config,
        client=registry.http_client,
        chunking=FixedSizeChunking(registry.chunk_size),
    )


DEFAULT_FACTORIES: dict[str, ProviderFactory] = {
    GEMINI: _gemini_factory,
    GITHUB: _github_factory,
}


class ProviderRegistry:
    """Read-only view over the configured providers.

    Provider instances are created on first use and shared between
    requests; they hold no per-request state.
    """

    def __init__(
        self,
        providers: Mapping[str, ProviderConfig],
        factories: Mapping[str, ProviderFactory] | None = None,
        chunk_size: int = 20,
    ) -> None:
        self._configs = dict(providers)
        self._factories = dict(factories or DEFAULT_FACTORIES)
        self._instances: dict[str, LLMProvider] = {}
        self._http_client: httpx.AsyncClient | None = None
        self.chunk_size = chunk_size

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Shared HTTP client for providers that talk plain HTTP."""
        if self._http_client is None:
            # No read timeout: streams stay open while tokens arrive
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(30.0, read=None))
        return self._http_client

    def available(self) -> list[ProviderConfig]:
        """Providers that have a credential configured."""
        return [c for c in self._configs.values() if c.configured]

    def resolve(self, provider_id: str | None = None) -> ProviderConfig:
        """Pick the provider for a request.

        A requested provider wins when it has a key; otherwise the first
        configured provider in the default order is used.

        Raises:
            ConfigurationError: No provider has a credential
        """
        if provider_id:
            requested = self._configs.get(provider_id)
            if requested and requested.configured:
                return requested
            logger.info(f"Provider '{provider_id}' not configured, using default order")

        for candidate in DEFAULT_PROVIDER_ORDER:
            config = self._configs.get(candidate)
            if config and config.configured:
                return config

        raise ConfigurationError(NO_PROVIDER_MESSAGE)

    def get(self, config: ProviderConfig) -> LLMProvider:
        """Return the provider instance for a resolved configuration."""
        instance = self._instances.get(config.id)
        if instance is None:
            factory = self._factories.get(config.id)
            if factory is None:
                raise ConfigurationError(f"No implementation for provider '{config.id}'")
            try:
                instance = factory(config, self)
            except ValueError as e:
                raise ConfigurationError(f"Provider '{config.id}' is misconfigured: {e}") from e
            self._instances[config.id] = instance
            logger.info(f"Created provider {instance!r}")
        return instance

    async def aclose(self) -> None:
        """Close provider instances and the shared HTTP client."""
        for instance in self._instances.values():
            await instance.aclose()
        self._instances.clear()
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
