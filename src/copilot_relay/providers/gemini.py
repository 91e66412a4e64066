"""Google Gemini provider using the native google-genai SDK."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

import httpx
from google import genai
from google.genai import errors, types

from ..chunking import ChunkingStrategy
from ..config import GenerationParams, ProviderConfig
from ..errors import ProviderError, RateLimitError, TransportError
from ..prompts import Prompt
from .base import LLMProvider

logger = logging.getLogger(__name__)


def translate_api_error(error: errors.APIError) -> Exception:
    """Map a google-genai API error onto the relay taxonomy."""
    code = error.code
    message = error.message or str(error)

    if code == 429:
        return RateLimitError(f"Gemini rate limit exceeded: {message}")
    if code in (401, 403):
        return ProviderError(
            f"Gemini rejected the API key ({code}). Check GEMINI_API_KEY.",
            provider_status=code,
        )
    return ProviderError(f"Gemini API error ({code}): {message}", provider_status=code)


class GeminiProvider(LLMProvider):
    """Gemini models through ``client.aio.models``.

    The system prompt is passed as ``system_instruction`` and the user
    prompt as the contents.
    """

    def __init__(
        self,
        config: ProviderConfig,
        client: genai.Client | None = None,
        chunking: ChunkingStrategy | None = None,
    ) -> None:
        super().__init__(config, chunking)
        self._owns_client = client is None
        self._client = client or genai.Client(api_key=config.api_key)

    def _generate_config(
        self, prompt: Prompt, params: GenerationParams
    ) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=prompt.system,
            temperature=params.temperature,
            top_p=params.top_p,
            top_k=params.top_k,
            max_output_tokens=params.max_output_tokens,
        )

    async def stream(self, prompt: Prompt, params: GenerationParams) -> AsyncIterator[str]:
        try:
            response = await self._client.aio.models.generate_content_stream(
                model=self.config.default_model,
                contents=prompt.user,
                config=self._generate_config(prompt, params),
            )
            async for chunk in response:
                if chunk.text:
                    yield chunk.text
        except errors.APIError as e:
            logger.error(f"Gemini stream error: {e.code} {e.message}")
            raise translate_api_error(e) from e
        except httpx.TimeoutException as e:
            raise TransportError("Gemini request timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Stream interrupted: {e}") from e

    async def complete(self, prompt: Prompt, params: GenerationParams) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self.config.default_model,
                contents=prompt.user,
                config=self._generate_config(prompt, params),
            )
        except errors.APIError as e:
            logger.error(f"Gemini error: {e.code} {e.message}")
            raise translate_api_error(e) from e
        except httpx.TimeoutException as e:
            raise TransportError("Gemini request timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Gemini request failed: {e}") from e

        return response.text or ""

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aio.aclose()
