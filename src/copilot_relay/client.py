"""Client for a running relay.

Posts a command and yields the stream events as they arrive. Used by the
``ask`` CLI command and handy for scripting against a deployed relay.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from .commands import CommandKind
from .events import DataEvent, EndEvent, StartEvent, decode_sse_line

logger = logging.getLogger(__name__)


@dataclass
class ClientConfig:
    """Client configuration."""

    base_url: str = "http://localhost:4096"
    timeout: float = 30.0
    session_cookie: str = "session"


class RelayClientError(Exception):
    """The relay refused the command before opening a stream."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


def encode_session_cookie(session: dict[str, Any]) -> str:
    """Encode a session the way the dashboard stores it in its cookie."""
    return quote(json.dumps(session, separators=(",", ":")), safe="")


class RelayClient:
    """Async client for ``POST /api/copilot/stream``."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        session: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Connection settings
            session: Raw session cookie value
            transport: Custom httpx transport (tests)
        """
        self.config = config or ClientConfig()
        self._session = session
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.timeout, read=None),  # No read timeout for SSE
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        if not self._session:
            return {}
        return {"Cookie": f"{self.config.session_cookie}={self._session}"}

    async def stream_command(
        self,
        command: CommandKind | str,
        input: str,
        *,
        provider: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> AsyncIterator[StartEvent | DataEvent | EndEvent]:
        """Run a command and yield its events.

        Raises:
            RelayClientError: The relay answered with a JSON error instead
                of a stream
        """
        body: dict[str, Any] = {"command": CommandKind(command).value, "input": input}
        if provider:
            body["provider"] = provider
        if context:
            body["context"] = context

        async with self._client.stream(
            "POST", "/api/copilot/stream", json=body, headers=self._headers()
        ) as response:
            if response.status_code != 200:
                await response.aread()
                try:
                    payload = response.json()
                except json.JSONDecodeError:
                    payload = None
                message = response.text
                if isinstance(payload, dict):
                    message = payload.get("error", message)
                raise RelayClientError(response.status_code, message)

            async for line in response.aiter_lines():
                event = decode_sse_line(line)
                if event is None:
                    continue
                yield event
                if isinstance(event, EndEvent):
                    return

    async def run_command(
        self,
        command: CommandKind | str,
        input: str,
        **kwargs: Any,
    ) -> tuple[str, EndEvent | None]:
        """Run a command and collect the full answer."""
        parts: list[str] = []
        end: EndEvent | None = None
        async for event in self.stream_command(command, input, **kwargs):
            if isinstance(event, DataEvent):
                parts.append(event.content)
            elif isinstance(event, EndEvent):
                end = event
        return "".join(parts), end

    async def providers(self) -> list[dict[str, Any]]:
        response = await self._client.get("/api/copilot/providers")
        response.raise_for_status()
        return response.json()["data"]

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> RelayClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
