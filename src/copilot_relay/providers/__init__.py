"""LLM providers.

- gemini: Google Gemini via google-genai
- github: GitHub Models chat completions via httpx
"""

from .base import LLMProvider
from .registry import DEFAULT_FACTORIES, NO_PROVIDER_MESSAGE, ProviderFactory, ProviderRegistry

# Note: concrete providers are imported lazily by the registry factories
# Use: from copilot_relay.providers.gemini import GeminiProvider

__all__ = [
    "DEFAULT_FACTORIES",
    "LLMProvider",
    "NO_PROVIDER_MESSAGE",
    "ProviderFactory",
    "ProviderRegistry",
]
