"""GitHub Models provider.

Talks to the OpenAI-compatible chat completions endpoint of GitHub Models
(Codestral and Mistral models) with a system/user message split.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from ..chunking import ChunkingStrategy
from ..config import GenerationParams, ProviderConfig
from ..errors import ProviderError, RateLimitError, TransportError
from ..prompts import Prompt
from .base import LLMProvider

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


def parse_stream_line(line: str) -> str | None:
    """Extract the content delta from one line of the provider's SSE stream.

    Returns None for blank lines, the ``[DONE]`` sentinel, chunks without
    content and malformed JSON.
    """
    line = line.strip()
    if not line.startswith("data:"):
        return None

    data = line[5:].strip()
    if not data or data == DONE_SENTINEL:
        return None

    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        logger.debug(f"Skipping malformed stream chunk: {data[:200]}")
        return None

    try:
        content = payload["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
    return content or None


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class GitHubModelsProvider(LLMProvider):
    """Chat completions against ``{endpoint}/chat/completions``."""

    def __init__(
        self,
        config: ProviderConfig,
        client: httpx.AsyncClient | None = None,
        chunking: ChunkingStrategy | None = None,
    ) -> None:
        super().__init__(config, chunking)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(30.0, read=None))

    @property
    def url(self) -> str:
        endpoint = (self.config.endpoint or "").rstrip("/")
        return f"{endpoint}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }

    def _payload(self, prompt: Prompt, params: GenerationParams, stream: bool) -> dict[str, Any]:
        return {
            "model": self.config.default_model,
            "messages": [
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
            "temperature": params.temperature,
            "top_p": params.top_p,
            "max_tokens": params.max_output_tokens,
            "stream": stream,
        }

    def _error_for(self, response: httpx.Response, body: bytes) -> Exception:
        status = response.status_code
        logger.error(f"GitHub Models error: {status} {body[:500]!r}")

        if status == 429:
            return RateLimitError(
                "GitHub Models rate limit exceeded", retry_after=_retry_after(response)
            )
        if status in (401, 403):
            return ProviderError(
                f"GitHub Models rejected the credential ({status}). Check GITHUB_TOKEN.",
                provider_status=status,
            )
        return ProviderError(f"AI API error ({status})", provider_status=status)

    async def stream(self, prompt: Prompt, params: GenerationParams) -> AsyncIterator[str]:
        payload = self._payload(prompt, params, stream=True)
        try:
            async with self._client.stream(
                "POST", self.url, json=payload, headers=self._headers()
            ) as response:
                if response.status_code != 200:
                    body = await response.aread()
                    raise self._error_for(response, body)

                async for line in response.aiter_lines():
                    content = parse_stream_line(line)
                    if content:
                        yield content
        except httpx.TimeoutException as e:
            raise TransportError("GitHub Models request timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Stream interrupted: {e}") from e

    async def complete(self, prompt: Prompt, params: GenerationParams) -> str:
        payload = self._payload(prompt, params, stream=False)
        try:
            response = await self._client.post(self.url, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            raise TransportError("GitHub Models request timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"GitHub Models request failed: {e}") from e

        if response.status_code != 200:
            raise self._error_for(response, response.content)

        try:
            data = response.json()
            return data["choices"][0]["message"].get("content") or ""
        except (json.JSONDecodeError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise TransportError("Could not decode GitHub Models response") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
