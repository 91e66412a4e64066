"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
import time
from collections.abc import AsyncIterator, Callable
from typing import Any
from urllib.parse import quote

import pytest

from copilot_relay.chunking import ChunkingStrategy
from copilot_relay.config import GenerationParams, ProviderConfig, RetryPolicy, Settings
from copilot_relay.prompts import Prompt
from copilot_relay.providers.base import LLMProvider


def make_config(
    provider_id: str = "gemini",
    *,
    api_key: str = "test-key",
    streaming: bool = True,
    temperature: float = 0.7,
) -> ProviderConfig:
    return ProviderConfig(
        id=provider_id,
        name=provider_id.title(),
        api_key=api_key,
        default_model=f"{provider_id}-model",
        models=(f"{provider_id}-model",),
        generation=GenerationParams(temperature=temperature, max_output_tokens=1024),
        streaming=streaming,
    )


class ScriptedProvider(LLMProvider):
    """Provider whose attempts follow a script.

    Each script entry is one attempt:
    - Exception: raised before anything is produced
    - list: fragments to stream; an Exception inside the list is raised
      at that point of the stream
    - str: the complete answer (non-streaming providers)
    """

    def __init__(
        self,
        script: list[Any],
        *,
        streaming: bool = True,
        chunking: ChunkingStrategy | None = None,
        config: ProviderConfig | None = None,
    ) -> None:
        super().__init__(config or make_config(streaming=streaming), chunking)
        self.script = list(script)
        self.calls: list[tuple[Prompt, GenerationParams]] = []
        self.closed_streams = 0

    def _next(self, prompt: Prompt, params: GenerationParams) -> Any:
        self.calls.append((prompt, params))
        if not self.script:
            raise AssertionError("Provider called more times than scripted")
        step = self.script.pop(0)
        if isinstance(step, BaseException):
            raise step
        return step

    async def stream(self, prompt: Prompt, params: GenerationParams) -> AsyncIterator[str]:
        step = self._next(prompt, params)
        try:
            for item in step:
                if isinstance(item, BaseException):
                    raise item
                yield item
        finally:
            self.closed_streams += 1

    async def complete(self, prompt: Prompt, params: GenerationParams) -> str:
        return self._next(prompt, params)


@pytest.fixture
def scripted_provider() -> Callable[..., ScriptedProvider]:
    """Factory for scripted providers."""
    return ScriptedProvider


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def retry_policy() -> RetryPolicy:
    return RetryPolicy(max_retries=3, initial_delay=2.0, backoff_multiplier=2.0)


@pytest.fixture
def settings() -> Settings:
    """Settings with both providers configured and instant retries."""
    return Settings(
        providers={
            "gemini": make_config("gemini"),
            "github": make_config("github", temperature=0.4),
        },
        retry=RetryPolicy(max_retries=2, initial_delay=0.0, backoff_multiplier=2.0),
        rate_limit_per_minute=5,
    )


def session_cookie(
    user_id: str = "42",
    login: str = "octocat",
    expires_in_ms: int = 60 * 60 * 1000,
) -> str:
    """Session cookie value as the dashboard stores it (percent-encoded JSON)."""
    session = {
        "user": {
            "id": user_id,
            "login": login,
            "name": "The Octocat",
            "email": "octocat@example.com",
            "avatarUrl": "https://avatars.example.com/u/42",
        },
        "accessToken": "gho_secret",
        "expiresAt": int(time.time() * 1000) + expires_in_ms,
    }
    return quote(json.dumps(session, separators=(",", ":")), safe="")


@pytest.fixture
def provider_config() -> Callable[..., ProviderConfig]:
    """Factory for provider configurations."""
    return make_config


@pytest.fixture
def make_session_cookie() -> Callable[..., str]:
    """Factory for session cookie values."""
    return session_cookie
