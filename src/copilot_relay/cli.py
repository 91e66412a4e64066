"""Copilot Relay CLI.

Usage:
    copilot-relay                         # HTTP server on 127.0.0.1:4096
    copilot-relay --port 8080 --reload    # Custom port, auto-reload
    copilot-relay --health                # Check a running server

    copilot-relay provider list           # List providers
    copilot-relay provider check <id>     # Check provider status

    copilot-relay config                  # Show configuration
    copilot-relay ask fix "null ref bug"  # Stream a command from a running server
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import time
from contextlib import aclosing

import click
import httpx
from dotenv import load_dotenv

from .commands import CommandKind
from .config import PROVIDER_ENV_VARS, Settings

# Output format options
FORMAT_TABLE = "table"
FORMAT_JSON = "json"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str) -> None:
    """Send log records to stderr."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stderr)


@click.group(invoke_without_command=True)
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=4096, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Log level",
)
@click.option("--env-file", default=".env", help="Environment file to load before starting")
@click.option("--health", "health_check", is_flag=True, help="Check server health and exit")
@click.option("--health-url", default="http://localhost:4096", help="Server URL for health check")
@click.pass_context
def main(
    ctx: click.Context,
    host: str,
    port: int,
    reload: bool,
    log_level: str,
    env_file: str,
    health_check: bool,
    health_url: str,
) -> None:
    """Copilot Relay - streams AI command output to the dashboard."""
    load_dotenv(env_file)
    configure_logging(log_level)

    # If a subcommand is invoked, let it handle everything
    if ctx.invoked_subcommand is not None:
        return

    if health_check:
        _do_health_check(health_url)
        return

    _run_http_server(host, port, reload, log_level)


def _do_health_check(url: str) -> None:
    """Check a running server and exit non-zero when it is unhealthy."""
    try:
        response = httpx.get(f"{url.rstrip('/')}/health", timeout=5.0)
        response.raise_for_status()
    except httpx.HTTPError as e:
        click.echo(f"Server at {url}: " + click.style("unhealthy", fg="red"), err=True)
        click.echo(str(e), err=True)
        sys.exit(1)

    click.echo(f"Server at {url}: " + click.style("ok", fg="green"))


def _run_http_server(host: str, port: int, reload: bool, log_level: str) -> None:
    """Run HTTP server mode."""
    import uvicorn

    click.echo(f"Starting Copilot relay on http://{host}:{port}", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    uvicorn.run(
        "copilot_relay.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# =============================================================================
# Provider Commands
# =============================================================================


@main.group()
def provider() -> None:
    """Manage providers."""


@provider.command("list")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)
def provider_list(output_format: str) -> None:
    """List providers and whether they are configured.

    Examples:

        copilot-relay provider list
    """
    settings = Settings.from_env()

    providers = [
        {
            "id": config.id,
            "name": config.name,
            "model": config.default_model,
            "env_var": PROVIDER_ENV_VARS[config.id],
            "status": "configured" if config.configured else "not configured",
        }
        for config in settings.providers.values()
    ]

    if output_format == FORMAT_JSON:
        click.echo(json.dumps(providers, indent=2))
        return

    click.echo(f"{'Provider':<10} {'Status':<15} {'Env Var':<16} {'Model':<30}")
    click.echo("-" * 72)
    for p in providers:
        status_color = "green" if p["status"] == "configured" else "red"
        status_display = click.style(p["status"], fg=status_color)
        click.echo(f"{p['id']:<10} {status_display:<24} {p['env_var']:<16} {p['model']:<30}")


@provider.command("check")
@click.argument("provider_id")
def provider_check(provider_id: str) -> None:
    """Check if a provider is configured.

    Examples:

        copilot-relay provider check gemini
        copilot-relay provider check github
    """
    settings = Settings.from_env()

    config = settings.providers.get(provider_id.lower())
    if config is None:
        click.echo(f"Unknown provider: {provider_id}", err=True)
        click.echo(f"Available providers: {', '.join(settings.providers)}")
        sys.exit(1)

    env_var = PROVIDER_ENV_VARS[config.id]
    if config.configured:
        click.echo(f"{config.id}: " + click.style("configured", fg="green"))
        click.echo(f"Environment variable {env_var} is set")
    else:
        click.echo(f"{config.id}: " + click.style("not configured", fg="red"))
        click.echo(f"Set environment variable {env_var} to enable this provider")
        sys.exit(1)


# =============================================================================
# Config Command
# =============================================================================


@main.command("config")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def show_config(output_json: bool) -> None:
    """Show current configuration.

    Examples:

        copilot-relay config
        copilot-relay config --json
    """
    settings = Settings.from_env()
    configured = [c.id for c in settings.providers.values() if c.configured]

    config = {
        "default_provider": configured[0] if configured else None,
        "providers_configured": configured,
        "max_retries": settings.retry.max_retries,
        "retry_initial_delay": settings.retry.initial_delay,
        "retry_backoff": settings.retry.backoff_multiplier,
        "chunk_size": settings.chunk_size,
        "attempt_timeout": settings.attempt_timeout,
        "rate_limit_per_minute": settings.rate_limit_per_minute,
        "cors_origins": list(settings.cors_origins),
    }

    if output_json:
        click.echo(json.dumps(config, indent=2))
        return

    click.echo("Copilot Relay Configuration")
    click.echo("-" * 40)
    click.echo(f"Default provider:   {config['default_provider'] or 'none'}")
    click.echo(f"Providers ready:    {', '.join(configured) or 'none'}")
    click.echo(
        f"Retries:            {settings.retry.max_retries} "
        f"({settings.retry.initial_delay:g}s, x{settings.retry.backoff_multiplier:g})"
    )
    click.echo(f"Chunk size:         {settings.chunk_size}")
    click.echo(f"Attempt timeout:    {settings.attempt_timeout:g}s")
    click.echo(f"Quota per minute:   {settings.rate_limit_per_minute}")


# =============================================================================
# Ask Command
# =============================================================================


@main.command("ask")
@click.argument("command", type=click.Choice([c.value for c in CommandKind]))
@click.argument("input_text")
@click.option("--file", "file_path", type=click.Path(exists=True), help="File to send as context")
@click.option("--language", help="Language of the file")
@click.option("--error", "error_text", help="Error message (for fix)")
@click.option("--provider", "provider_id", help="Provider override")
@click.option("--url", default="http://localhost:4096", help="Relay server URL")
@click.option("--login", default="cli", help="User login for the local session")
def ask(
    command: str,
    input_text: str,
    file_path: str | None,
    language: str | None,
    error_text: str | None,
    provider_id: str | None,
    url: str,
    login: str,
) -> None:
    """Run a command against a running relay and print the answer as it streams.

    Examples:

        copilot-relay ask explain "what does this do?" --file app.py
        copilot-relay ask fix "null ref bug" --file app.py --error "TypeError"
    """
    from pathlib import Path

    from .client import ClientConfig, RelayClient, RelayClientError, encode_session_cookie
    from .events import DataEvent, EndEvent

    context: dict[str, str] = {}
    if file_path:
        path = Path(file_path)
        context["fileName"] = path.name
        context["fileContent"] = path.read_text()
    if language:
        context["language"] = language
    if error_text:
        context["error"] = error_text

    # Local session for development servers; expires in an hour
    session = encode_session_cookie(
        {
            "user": {"id": login, "login": login},
            "accessToken": "",
            "expiresAt": int(time.time() * 1000) + 60 * 60 * 1000,
        }
    )

    async def run() -> bool:
        async with RelayClient(ClientConfig(base_url=url), session=session) as client:
            events = client.stream_command(
                command, input_text, provider=provider_id, context=context or None
            )
            async with aclosing(events):
                async for event in events:
                    if isinstance(event, DataEvent):
                        click.echo(event.content, nl=False)
                    elif isinstance(event, EndEvent):
                        click.echo()
                        if not event.success:
                            click.echo(click.style(f"Error: {event.error}", fg="red"), err=True)
                        return event.success
        return False

    try:
        ok = asyncio.run(run())
    except RelayClientError as e:
        click.echo(click.style(f"Error {e.status_code}: {e.message}", fg="red"), err=True)
        sys.exit(1)
    except httpx.HTTPError as e:
        click.echo(f"Could not reach relay at {url}: {e}", err=True)
        sys.exit(1)

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
