"""Copilot Relay - streams AI command output from LLM providers to the dashboard."""

from .commands import CommandKind, CommandRequest
from .config import RetryPolicy, Settings
from .errors import (
    AuthenticationError,
    ConfigurationError,
    ProviderError,
    RateLimitError,
    RelayError,
    TransportError,
    ValidationError,
)
from .relay import StreamingRelay

__version__ = "0.1.0"

__all__ = [
    "AuthenticationError",
    "CommandKind",
    "CommandRequest",
    "ConfigurationError",
    "ProviderError",
    "RateLimitError",
    "RelayError",
    "RetryPolicy",
    "Settings",
    "StreamingRelay",
    "TransportError",
    "ValidationError",
]
