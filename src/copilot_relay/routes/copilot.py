"""Copilot command endpoints.

- POST /api/copilot/stream     run a command, stream the answer as SSE
- GET  /api/copilot/providers  list providers that have a key configured
"""

from __future__ import annotations

import json
import logging
from contextlib import aclosing

from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route

from ..commands import parse_command_request
from ..errors import RelayError, ValidationError
from ..events import SSE_HEADERS, encode_sse
from ..prompts import build_prompt
from ..relay import StreamingRelay
from ..state import get_state

logger = logging.getLogger(__name__)


def error_response(error: RelayError, headers: dict[str, str] | None = None) -> JSONResponse:
    """JSON response for errors raised before a stream is opened."""
    return JSONResponse({"error": error.message}, status_code=error.status_code, headers=headers)


async def stream_command(request: Request) -> Response:
    """Run a command and stream the provider's answer.

    Uses Server-Sent Events (SSE) format for streaming:
    - Each event is formatted as: data: {json}\\n\\n
    - Stream starts with {"type": "start", "command": ...}
    - Answer fragments arrive as {"type": "data", "content": ...}
    - Stream ends with {"type": "end", "success": ...}

    Authentication, quota, validation and configuration errors are returned
    as plain JSON before any stream is opened.
    """
    state = get_state(request)

    try:
        session = state.sessions.require(request.cookies.get(state.settings.session_cookie))

        decision = await state.rate_limiter.try_acquire(session.user.id)
        if not decision.allowed:
            logger.info(f"Quota exceeded for user {session.user.id}")
            return JSONResponse(
                {"error": f"Rate limit exceeded. Try again in {decision.reset_in} seconds."},
                status_code=429,
                headers=decision.headers(),
            )

        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError("Request body must be valid JSON") from e

        command_request = parse_command_request(body)
        config = state.registry.resolve(command_request.provider)
        provider = state.registry.get(config)

    except RelayError as e:
        return error_response(e)

    prompt = build_prompt(command_request)
    relay = StreamingRelay(
        provider,
        state.settings.retry,
        attempt_timeout=state.settings.attempt_timeout,
    )

    logger.info(
        f"User {session.user.id} running '{command_request.command.value}' "
        f"on {config.id} ({config.default_model})"
    )

    async def event_stream():
        """Generate SSE event stream."""
        events = relay.relay(command_request, prompt, is_disconnected=request.is_disconnected)
        async with aclosing(events) as stream:
            async for event in stream:
                yield encode_sse(event)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={**SSE_HEADERS, **decision.headers()},
    )


async def list_providers(request: Request) -> JSONResponse:
    """List providers that have an API key configured."""
    state = get_state(request)
    providers = [config.to_dict() for config in state.registry.available()]
    return JSONResponse({"success": True, "data": providers})


copilot_routes = [
    Route("/api/copilot/stream", stream_command, methods=["POST"]),
    Route("/api/copilot/providers", list_providers, methods=["GET"]),
]
