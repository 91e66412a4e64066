"""Prompt assembly.

Turns a command request into the text sent to the provider. Assembly is
deterministic: the same request always yields the same prompt.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .commands import COMMANDS, CommandContext, CommandKind, CommandRequest

DEFAULT_LANGUAGE = "typescript"

_PLACEHOLDER = re.compile(r"\{(code|prompt|error)\}")

_SYSTEM_PROMPTS: dict[CommandKind, str] = {
    CommandKind.EXPLAIN: (
        "You are an expert code explainer. {context} Provide a clear, structured markdown "
        "explanation of the actual code provided. Be specific, not generic."
    ),
    CommandKind.GENERATE: (
        "You are an expert code generator. {context} Generate clean, production-ready code "
        "that matches exactly what the user asked for. Wrap code in a markdown code block."
    ),
    CommandKind.FIX: (
        "You are an expert debugging assistant. {context} Find and fix actual bugs in the "
        "provided code. Return the full corrected code in a markdown code block with "
        "explanations."
    ),
    CommandKind.REFACTOR: (
        "You are an expert refactoring assistant. {context} Refactor the provided code for "
        "better readability, performance, and modern patterns. Return the full refactored "
        "code in a markdown code block."
    ),
    CommandKind.TEST: (
        "You are an expert test writer. {context} Generate comprehensive unit tests for the "
        "provided code. Return test code in a markdown code block."
    ),
    CommandKind.DOCS: (
        "You are an expert documentation writer. {context} Add thorough documentation to the "
        "provided code. Return the documented code in a markdown code block."
    ),
}


@dataclass(frozen=True)
class Prompt:
    """A system/user message pair, sent to providers as separate messages."""

    system: str
    user: str


def render_template(
    command: CommandKind,
    *,
    code: str = "",
    prompt: str = "",
    error: str = "",
) -> str:
    """Fill a command template in a single pass.

    Placeholder-looking text inside the substituted values is left alone.
    """
    values = {"code": code, "prompt": prompt, "error": error}
    return _PLACEHOLDER.sub(lambda m: values[m.group(1)], COMMANDS[command].template)


def system_prompt(command: CommandKind, context: CommandContext) -> str:
    language = context.language or DEFAULT_LANGUAGE
    if context.file_name:
        description = f'The user is working on "{context.file_name}" ({language}).'
    else:
        description = f"The user is working with {language} code."
    return _SYSTEM_PROMPTS[command].format(context=description)


def build_prompt(request: CommandRequest) -> Prompt:
    """Assemble the provider prompt for a command request.

    The file being edited is appended as a fenced block unless the rendered
    template already contains it verbatim.
    """
    context = request.context
    text = render_template(
        request.command,
        code=request.input,
        prompt=request.input,
        error=context.error or "",
    )

    if context.file_content and context.file_content not in text:
        language = context.language or DEFAULT_LANGUAGE
        text = (
            f"{text}\n\nFile: {context.file_name or ''}\n"
            f"```{language}\n{context.file_content}\n```"
        )

    return Prompt(system=system_prompt(request.command, context), user=text)
