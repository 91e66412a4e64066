"""Session endpoints.

The OAuth flow that creates the session cookie lives in the dashboard
frontend; these endpoints only inspect and clear it.
"""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..state import get_state

logger = logging.getLogger(__name__)


async def get_session(request: Request) -> JSONResponse:
    """Return the signed-in user without exposing the access token."""
    state = get_state(request)
    session = state.sessions.validate(request.cookies.get(state.settings.session_cookie))

    if session is None:
        return JSONResponse({"success": False, "error": "Not authenticated"}, status_code=401)

    return JSONResponse({"success": True, "data": session.public_dict()})


async def delete_session(request: Request) -> JSONResponse:
    """Log out by clearing the session cookie."""
    state = get_state(request)
    response = JSONResponse({"success": True, "message": "Logged out successfully"})
    response.delete_cookie(state.settings.session_cookie, path="/")
    return response


auth_routes = [
    Route("/api/auth/session", get_session, methods=["GET"]),
    Route("/api/auth/session", delete_session, methods=["DELETE"]),
]
