"""Session cookie validation.

The session is created by the dashboard's GitHub OAuth callback and stored
as JSON in an HTTP-only cookie:

    {
        "user": {"id": "123", "login": "octocat", "name": "...", "email": "", "avatarUrl": "..."},
        "accessToken": "gho_...",
        "expiresAt": 1760000000000
    }

``expiresAt`` is in epoch milliseconds. The relay only reads sessions; it
never creates or refreshes them.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from urllib.parse import unquote

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import AuthenticationError

logger = logging.getLogger(__name__)


class SessionUser(BaseModel):
    """GitHub user attached to a session."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    login: str
    name: str | None = None
    email: str | None = None
    avatar_url: str | None = Field(default=None, alias="avatarUrl")


class Session(BaseModel):
    """A signed-in dashboard session."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user: SessionUser
    access_token: str = Field(alias="accessToken", repr=False)
    expires_at: int = Field(alias="expiresAt")

    def is_expired(self, now_ms: int) -> bool:
        return now_ms > self.expires_at

    def public_dict(self) -> dict:
        """Session data safe to return to the browser (no access token)."""
        return {
            "user": self.user.model_dump(by_alias=True),
            "expiresAt": self.expires_at,
        }


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionValidator:
    """Parses and checks the session cookie."""

    def __init__(self, clock: Callable[[], int] = _now_ms) -> None:
        """Initialize the validator.

        Args:
            clock: Returns the current time in epoch milliseconds
        """
        self._clock = clock

    def validate(self, raw: str | None) -> Session | None:
        """Return the session if the cookie holds a valid, unexpired one."""
        if not raw:
            return None

        try:
            data = json.loads(unquote(raw))
            session = Session.model_validate(data)
        except (json.JSONDecodeError, PydanticValidationError, TypeError) as e:
            logger.warning(f"Rejected malformed session cookie: {type(e).__name__}")
            return None

        if session.is_expired(self._clock()):
            logger.info(f"Session for user {session.user.id} has expired")
            return None

        return session

    def require(self, raw: str | None) -> Session:
        """Like ``validate`` but raises when there is no usable session.

        Raises:
            AuthenticationError: Missing, malformed or expired session
        """
        session = self.validate(raw)
        if session is None:
            raise AuthenticationError("Not authenticated")
        return session
