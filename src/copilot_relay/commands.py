"""Command definitions.

A command is one of a fixed set of AI operations the dashboard can run
against the selected file. Each command has a prompt template with
``{code}``, ``{prompt}`` and ``{error}`` placeholders.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError


class CommandKind(str, Enum):
    """All supported AI commands."""

    EXPLAIN = "explain"
    GENERATE = "generate"
    FIX = "fix"
    REFACTOR = "refactor"
    TEST = "test"
    DOCS = "docs"


@dataclass(frozen=True)
class CommandSpec:
    """Display name and prompt template for a command."""

    id: CommandKind
    name: str
    template: str


COMMANDS: dict[CommandKind, CommandSpec] = {
    CommandKind.EXPLAIN: CommandSpec(
        CommandKind.EXPLAIN, "Explain", "Explain the following code:\n\n{code}"
    ),
    CommandKind.GENERATE: CommandSpec(
        CommandKind.GENERATE, "Generate", "Generate code for: {prompt}"
    ),
    CommandKind.FIX: CommandSpec(
        CommandKind.FIX, "Fix", "Fix the following code:\n\n{code}\n\nError: {error}"
    ),
    CommandKind.REFACTOR: CommandSpec(
        CommandKind.REFACTOR,
        "Refactor",
        "Refactor the following code to be more efficient:\n\n{code}",
    ),
    CommandKind.TEST: CommandSpec(
        CommandKind.TEST, "Test", "Generate unit tests for:\n\n{code}"
    ),
    CommandKind.DOCS: CommandSpec(
        CommandKind.DOCS, "Document", "Generate documentation for:\n\n{code}"
    ),
}


class CommandContext(BaseModel):
    """What the user is looking at when running the command."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    file_name: str | None = Field(default=None, alias="fileName")
    language: str | None = None
    file_content: str | None = Field(default=None, alias="fileContent")
    error: str | None = None


class CommandRequest(BaseModel):
    """Request body for ``POST /api/copilot/stream``.

    Example:
        {
            "command": "fix",
            "input": "null ref bug",
            "provider": "gemini",
            "context": {"fileName": "app.py", "language": "python", "fileContent": "..."}
        }
    """

    model_config = ConfigDict(frozen=True)

    command: CommandKind
    input: str = ""
    provider: str | None = None
    context: CommandContext = Field(default_factory=CommandContext)


def parse_command_request(body: Any) -> CommandRequest:
    """Validate a decoded JSON body.

    Raises:
        ValidationError: Unknown command, wrong field types, or nothing to
            work on (no input and no file content)
    """
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    command = body.get("command")
    if not isinstance(command, str) or command not in CommandKind._value2member_map_:
        raise ValidationError("Invalid command")

    # Browsers send explicit nulls for unset optional fields
    body = {key: value for key, value in body.items() if value is not None}

    try:
        request = CommandRequest.model_validate(body)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"Invalid field '{location}': {first['msg']}") from e

    if not request.input.strip() and not request.context.file_content:
        raise ValidationError("Input is required")

    return request
