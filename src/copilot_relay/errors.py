"""Error taxonomy for the command relay.

Errors raised before a stream is opened are turned into plain JSON
responses using ``status_code``. Once a stream is open they are reported
through a terminal ``end`` event instead.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for all relay errors."""

    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthenticationError(RelayError):
    """No session, or the session has expired."""

    status_code = 401


class ConfigurationError(RelayError):
    """No provider has a usable credential configured."""

    status_code = 500


class ValidationError(RelayError):
    """Unknown command, malformed body or missing input."""

    status_code = 400


class RateLimitError(RelayError):
    """The provider is throttling requests.

    Args:
        message: Provider message
        retry_after: Seconds suggested by the provider, if it sent one
    """

    status_code = 429
    retryable = True

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ProviderError(RelayError):
    """Any other provider-side failure (bad request, server error, bad key)."""

    status_code = 502

    def __init__(self, message: str, provider_status: int | None = None) -> None:
        super().__init__(message)
        self.provider_status = provider_status


class TransportError(RelayError):
    """Connection dropped, timed out, or the payload could not be decoded."""

    status_code = 502
