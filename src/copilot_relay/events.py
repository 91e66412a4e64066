"""Stream events sent to the browser.

Every relayed command produces exactly one ``start`` event, zero or more
``data`` events and exactly one ``end`` event, in that order.

Wire format (one JSON object per SSE frame):
    data: {"type":"start","command":"fix"}

    data: {"type":"data","content":"Fixed."}

    data: {"type":"end","success":true}
"""

from __future__ import annotations

import json
import logging
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


class StartEvent(BaseModel):
    """The relay accepted the command and is about to call the provider."""

    model_config = ConfigDict(frozen=True)

    type: Literal["start"] = "start"
    command: str


class DataEvent(BaseModel):
    """A fragment of the provider's answer."""

    model_config = ConfigDict(frozen=True)

    type: Literal["data"] = "data"
    content: str


class EndEvent(BaseModel):
    """Terminal event. Nothing follows it on the same stream."""

    model_config = ConfigDict(frozen=True)

    type: Literal["end"] = "end"
    success: bool
    error: str | None = None


StreamEvent = Annotated[StartEvent | DataEvent | EndEvent, Field(discriminator="type")]

_event_adapter: TypeAdapter[StartEvent | DataEvent | EndEvent] = TypeAdapter(StreamEvent)


def encode_sse(event: StartEvent | DataEvent | EndEvent) -> str:
    """Format an event as a single SSE frame."""
    return f"data: {event.model_dump_json(exclude_none=True)}\n\n"


def decode_sse_line(line: str) -> StartEvent | DataEvent | EndEvent | None:
    """Parse one SSE line into an event.

    Returns None for blank lines, comments, non-data fields and payloads
    that are not valid stream events.
    """
    line = line.strip()
    if not line.startswith("data:"):
        return None

    data = line[5:].strip()
    try:
        return _event_adapter.validate_python(json.loads(data))
    except (json.JSONDecodeError, PydanticValidationError):
        logger.warning(f"Failed to parse SSE data: {data}")
        return None
