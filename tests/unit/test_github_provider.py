"""Unit tests for the GitHub Models provider.

Uses httpx.MockTransport so no request leaves the process.
"""

from __future__ import annotations

import json

import httpx
import pytest

from copilot_relay.config import GenerationParams, ProviderConfig
from copilot_relay.errors import ProviderError, RateLimitError, TransportError
from copilot_relay.prompts import Prompt
from copilot_relay.providers.github import GitHubModelsProvider, parse_stream_line

PROMPT = Prompt(system="You are an expert debugging assistant.", user="Fix: a.b")
PARAMS = GenerationParams(temperature=0.2, max_output_tokens=4096, top_p=1.0)


def github_config(streaming: bool = True) -> ProviderConfig:
    return ProviderConfig(
        id="github",
        name="GitHub Models (Codestral)",
        api_key="gh-token",
        endpoint="https://models.example.test/inference/",
        default_model="mistral-ai/Codestral-2501",
        generation=GenerationParams(temperature=0.4, max_output_tokens=4096),
        streaming=streaming,
    )


def sse_body(*chunks: str | dict) -> bytes:
    lines = []
    for chunk in chunks:
        data = chunk if isinstance(chunk, str) else json.dumps(chunk)
        lines.append(f"data: {data}\n\n")
    return "".join(lines).encode()


def delta(content: str) -> dict:
    return {"choices": [{"delta": {"content": content}}]}


def make_provider(handler, streaming: bool = True) -> GitHubModelsProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GitHubModelsProvider(github_config(streaming), client=client)


# =============================================================================
# Stream Line Parsing
# =============================================================================


class TestParseStreamLine:
    """Tests for parse_stream_line."""

    def test_content_delta(self) -> None:
        assert parse_stream_line(f"data: {json.dumps(delta('Hi'))}") == "Hi"

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "data: [DONE]",
            "data: {broken",
            ": ping",
            'data: {"choices": []}',
            'data: {"choices": [{"delta": {}}]}',
            'data: {"choices": [{"delta": {"role": "assistant"}}]}',
            'data: {"choices": [{"delta": {"content": null}}]}',
        ],
    )
    def test_skipped_lines(self, line: str) -> None:
        assert parse_stream_line(line) is None


# =============================================================================
# Streaming
# =============================================================================


class TestStream:
    """Tests for GitHubModelsProvider.stream."""

    @pytest.mark.asyncio
    async def test_streams_deltas(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            body = sse_body(delta("Fix"), delta("ed."), "{garbage", "[DONE]")
            return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

        provider = make_provider(handler)

        fragments = [f async for f in provider.stream(PROMPT, PARAMS)]

        assert fragments == ["Fix", "ed."]
        request = seen[0]
        assert str(request.url) == "https://models.example.test/inference/chat/completions"
        assert request.headers["authorization"] == "Bearer gh-token"
        payload = json.loads(request.content)
        assert payload["stream"] is True
        assert payload["model"] == "mistral-ai/Codestral-2501"
        assert payload["temperature"] == 0.2
        assert payload["max_tokens"] == 4096
        assert payload["messages"] == [
            {"role": "system", "content": PROMPT.system},
            {"role": "user", "content": PROMPT.user},
        ]

    @pytest.mark.asyncio
    async def test_rate_limited(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"error": "slow down"}, headers={"Retry-After": "7"})

        provider = make_provider(handler)

        with pytest.raises(RateLimitError) as exc_info:
            [f async for f in provider.stream(PROMPT, PARAMS)]

        assert exc_info.value.retry_after == 7.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_bad_credential(self, status: int) -> None:
        provider = make_provider(lambda request: httpx.Response(status, text="nope"))

        with pytest.raises(ProviderError, match="GITHUB_TOKEN") as exc_info:
            [f async for f in provider.stream(PROMPT, PARAMS)]

        assert exc_info.value.provider_status == status

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        provider = make_provider(lambda request: httpx.Response(500, text="oops"))

        with pytest.raises(ProviderError, match=r"AI API error \(500\)"):
            [f async for f in provider.stream(PROMPT, PARAMS)]

    @pytest.mark.asyncio
    async def test_connection_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        provider = make_provider(handler)

        with pytest.raises(TransportError, match="Stream interrupted"):
            [f async for f in provider.stream(PROMPT, PARAMS)]

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        provider = make_provider(handler)

        with pytest.raises(TransportError, match="timed out"):
            [f async for f in provider.stream(PROMPT, PARAMS)]


# =============================================================================
# Complete
# =============================================================================


class TestComplete:
    """Tests for GitHubModelsProvider.complete."""

    @pytest.mark.asyncio
    async def test_returns_message_content(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert json.loads(request.content)["stream"] is False
            return httpx.Response(200, json={"choices": [{"message": {"content": "Fixed."}}]})

        provider = make_provider(handler, streaming=False)

        assert await provider.complete(PROMPT, PARAMS) == "Fixed."

    @pytest.mark.asyncio
    async def test_rate_limited(self) -> None:
        provider = make_provider(lambda request: httpx.Response(429), streaming=False)

        with pytest.raises(RateLimitError):
            await provider.complete(PROMPT, PARAMS)

    @pytest.mark.asyncio
    async def test_undecodable_response(self) -> None:
        provider = make_provider(
            lambda request: httpx.Response(200, json={"unexpected": True}), streaming=False
        )

        with pytest.raises(TransportError, match="decode"):
            await provider.complete(PROMPT, PARAMS)

    @pytest.mark.asyncio
    async def test_empty_content(self) -> None:
        provider = make_provider(
            lambda request: httpx.Response(200, json={"choices": [{"message": {"content": None}}]}),
            streaming=False,
        )

        assert await provider.complete(PROMPT, PARAMS) == ""


class TestClientOwnership:
    """Tests for client lifecycle."""

    @pytest.mark.asyncio
    async def test_shared_client_left_open(self) -> None:
        client = httpx.AsyncClient()
        provider = GitHubModelsProvider(github_config(), client=client)

        await provider.aclose()

        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_own_client_closed(self) -> None:
        provider = GitHubModelsProvider(github_config())

        await provider.aclose()

        assert provider._client.is_closed
