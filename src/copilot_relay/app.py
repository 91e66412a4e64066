"""Copilot Relay Application.

Creates the Starlette ASGI application with all routes.

Route organization:
- /health - Health check
- /api/copilot/stream - Run a command, stream the answer (SSE)
- /api/copilot/providers - Configured providers
- /api/auth/session - Inspect or clear the session cookie
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Route

from .config import Settings
from .providers import ProviderRegistry
from .rate_limit import InMemoryRateLimiter, RateLimiter
from .routes import auth_routes, copilot_routes, health_routes
from .session import SessionValidator
from .state import AppState

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    registry: ProviderRegistry | None = None,
    sessions: SessionValidator | None = None,
    rate_limiter: RateLimiter | None = None,
) -> Starlette:
    """Create the relay application.

    Args:
        settings: Configuration; read from the environment when omitted
        registry: Provider registry; built from settings when omitted
        sessions: Session cookie validator
        rate_limiter: Per-user quota store

    Returns:
        Configured Starlette application
    """
    settings = settings or Settings.from_env()
    registry = registry or ProviderRegistry(settings.providers, chunk_size=settings.chunk_size)

    state = AppState(
        settings=settings,
        registry=registry,
        sessions=sessions or SessionValidator(),
        rate_limiter=rate_limiter or InMemoryRateLimiter(limit=settings.rate_limit_per_minute),
    )

    configured = [c.id for c in registry.available()]
    if configured:
        logger.info(f"Providers configured: {', '.join(configured)}")
    else:
        logger.warning("No AI provider configured; set GEMINI_API_KEY or GITHUB_TOKEN")

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        try:
            yield
        finally:
            await registry.aclose()

    # Combine all routes
    routes: list[Route] = []
    routes.extend(health_routes)
    routes.extend(copilot_routes)
    routes.extend(auth_routes)

    # The dashboard sends the session cookie cross-origin in development
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        ),
    ]

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.relay = state
    return app
