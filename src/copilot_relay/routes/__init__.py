"""HTTP routes."""

from .auth import auth_routes
from .copilot import copilot_routes
from .health import health_routes

__all__ = [
    "auth_routes",
    "copilot_routes",
    "health_routes",
]
