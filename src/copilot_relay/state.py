"""Application-wide collaborators shared by the route handlers."""

from __future__ import annotations

from dataclasses import dataclass

from starlette.requests import Request

from .config import Settings
from .providers import ProviderRegistry
from .rate_limit import RateLimiter
from .session import SessionValidator


@dataclass(frozen=True)
class AppState:
    """Read-only dependencies injected into the application at startup."""

    settings: Settings
    registry: ProviderRegistry
    sessions: SessionValidator
    rate_limiter: RateLimiter


def get_state(request: Request) -> AppState:
    return request.app.state.relay
