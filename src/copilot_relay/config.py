"""Process-wide configuration.

Settings are read once from the environment into immutable objects and
passed explicitly into the application factory.
"""

from __future__ import annotations

import logging
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

GEMINI = "gemini"
GITHUB = "github"

# Resolution order when the caller does not ask for a specific provider
DEFAULT_PROVIDER_ORDER: tuple[str, ...] = (GEMINI, GITHUB)

# Mapping of provider ids to the environment variable holding their key
PROVIDER_ENV_VARS: dict[str, str] = {
    GEMINI: "GEMINI_API_KEY",
    GITHUB: "GITHUB_TOKEN",
}

FIX_TEMPERATURE = 0.2


@dataclass(frozen=True)
class GenerationParams:
    """Sampling parameters sent with every provider call."""

    temperature: float
    max_output_tokens: int
    top_p: float = 1.0
    top_k: int | None = None

    def with_temperature(self, temperature: float) -> GenerationParams:
        return GenerationParams(
            temperature=temperature,
            max_output_tokens=self.max_output_tokens,
            top_p=self.top_p,
            top_k=self.top_k,
        )


@dataclass(frozen=True)
class ProviderConfig:
    """Static configuration for one LLM provider."""

    id: str
    name: str
    api_key: str
    default_model: str
    generation: GenerationParams
    models: tuple[str, ...] = ()
    endpoint: str | None = None
    streaming: bool = True

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def to_dict(self) -> dict:
        """Public description, without the credential."""
        return {
            "id": self.id,
            "name": self.name,
            "defaultModel": self.default_model,
            "models": list(self.models),
        }


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff for provider rate limits. No jitter."""

    max_retries: int = 3
    initial_delay: float = 2.0
    backoff_multiplier: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (zero-based) failed attempt."""
        return self.initial_delay * self.backoff_multiplier**attempt


@dataclass(frozen=True)
class Settings:
    """Everything the application needs, loaded once at startup."""

    providers: Mapping[str, ProviderConfig] = field(default_factory=dict)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    chunk_size: int = 20
    attempt_timeout: float = 60.0
    rate_limit_per_minute: int = 20
    session_cookie: str = "session"
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables."""
        env = os.environ if environ is None else environ

        gemini = ProviderConfig(
            id=GEMINI,
            name="Google Gemini",
            api_key=env.get("GEMINI_API_KEY", ""),
            default_model=env.get("GEMINI_MODEL", "gemini-3-flash-preview"),
            models=(
                "gemini-3-flash-preview",
                "gemini-2.0-flash",
                "gemini-1.5-flash",
                "gemini-1.5-pro",
            ),
            generation=GenerationParams(
                temperature=0.7, max_output_tokens=8192, top_p=0.95, top_k=64
            ),
            streaming=_env_bool(env, "GEMINI_STREAMING", True),
        )
        github = ProviderConfig(
            id=GITHUB,
            name="GitHub Models (Codestral)",
            api_key=env.get("GITHUB_TOKEN", ""),
            endpoint=env.get("GITHUB_MODELS_ENDPOINT", "https://models.github.ai/inference"),
            default_model=env.get("GITHUB_MODELS_MODEL", "mistral-ai/Codestral-2501"),
            models=(
                "mistral-ai/Codestral-2501",
                "mistral-ai/Mistral-Large-2411",
                "mistral-ai/Mistral-Small-24B-Instruct-2501",
            ),
            generation=GenerationParams(temperature=0.4, max_output_tokens=4096, top_p=1.0),
            streaming=_env_bool(env, "GITHUB_MODELS_STREAMING", True),
        )

        origins = env.get("COPILOT_CORS_ORIGINS", "http://localhost:3000")

        return cls(
            providers={GEMINI: gemini, GITHUB: github},
            retry=RetryPolicy(
                max_retries=_env_int(env, "COPILOT_MAX_RETRIES", 3, minimum=0),
                initial_delay=_env_float(env, "COPILOT_RETRY_INITIAL_DELAY", 2.0, minimum=0.0),
                backoff_multiplier=_env_float(env, "COPILOT_RETRY_BACKOFF", 2.0, minimum=1.0),
            ),
            chunk_size=_env_int(env, "COPILOT_CHUNK_SIZE", 20, minimum=1),
            attempt_timeout=_env_float(env, "COPILOT_ATTEMPT_TIMEOUT", 60.0, positive=True),
            rate_limit_per_minute=_env_int(env, "COPILOT_RATE_LIMIT_PER_MINUTE", 20, minimum=1),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        )


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(
    env: Mapping[str, str], name: str, default: int, minimum: int | None = None
) -> int:
    value = env.get(name)
    if not value:
        return default
    try:
        number = int(value)
    except ValueError:
        logger.warning(f"Ignoring invalid integer for {name}: {value!r}")
        return default
    if minimum is not None and number < minimum:
        logger.warning(f"Ignoring {name}={number}: must be at least {minimum}")
        return default
    return number


def _env_float(
    env: Mapping[str, str],
    name: str,
    default: float,
    minimum: float | None = None,
    positive: bool = False,
) -> float:
    value = env.get(name)
    if not value:
        return default
    try:
        number = float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid number for {name}: {value!r}")
        return default
    if not math.isfinite(number):
        logger.warning(f"Ignoring non-finite value for {name}: {value!r}")
        return default
    if positive and number <= 0:
        logger.warning(f"Ignoring {name}={number:g}: must be positive")
        return default
    if minimum is not None and number < minimum:
        logger.warning(f"Ignoring {name}={number:g}: must be at least {minimum:g}")
        return default
    return number
