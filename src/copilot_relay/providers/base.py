"""LLM provider abstraction.

Each provider turns a prompt into either a live stream of text fragments
or one complete answer, and translates its native failures into the
relay's error taxonomy:

- RateLimitError: throttled, safe to retry
- ProviderError: anything else the provider rejected
- TransportError: the connection failed or the payload was unreadable
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from ..chunking import ChunkingStrategy, FixedSizeChunking
from ..commands import CommandKind
from ..config import FIX_TEMPERATURE, GenerationParams, ProviderConfig
from ..prompts import Prompt


class LLMProvider(ABC):
    """Base class for LLM providers.

    Implementations:
    - GeminiProvider: Google Gemini via the google-genai SDK
    - GitHubModelsProvider: GitHub Models chat completions over HTTP
    """

    def __init__(
        self,
        config: ProviderConfig,
        chunking: ChunkingStrategy | None = None,
    ) -> None:
        self.config = config
        self.chunking = chunking or FixedSizeChunking()

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def model(self) -> str:
        return self.config.default_model

    @property
    def supports_streaming(self) -> bool:
        """Whether ``stream()`` should be used instead of ``complete()``."""
        return self.config.streaming

    def generation_params(self, command: CommandKind) -> GenerationParams:
        """Sampling parameters for a command.

        ``fix`` is pinned to a low temperature; everything else uses the
        provider default.
        """
        if command is CommandKind.FIX:
            return self.config.generation.with_temperature(FIX_TEMPERATURE)
        return self.config.generation

    @abstractmethod
    def stream(self, prompt: Prompt, params: GenerationParams) -> AsyncIterator[str]:
        """Yield text fragments as the provider produces them."""
        ...

    @abstractmethod
    async def complete(self, prompt: Prompt, params: GenerationParams) -> str:
        """Return the provider's full answer in one piece."""
        ...

    async def aclose(self) -> None:
        """Release provider resources."""
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, model={self.model!r})"
