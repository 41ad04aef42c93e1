"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import httpx
import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from core.config import AppSettings, write_user_env_vars
from core.errors import PipelineError

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and credential setup.")

_console = Console()


async def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except httpx.HTTPError as exc:
        return False, str(exc) or type(exc).__name__


async def _check_session(settings: AppSettings) -> tuple[bool, str]:
    """Llama a `limits` a través del pipeline (incluye refresh si hace falta)."""

    # Import diferido: cli.main importa este módulo.
    from cli.main import client_factory  # noqa: PLC0415

    try:
        async with client_factory(settings) as client:
            result = await client.limits()
        return True, f"{len(result)} limits visible"
    except (PipelineError, httpx.HTTPError) as exc:
        return False, f"{type(exc).__name__}: {exc}"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="forcepipe Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("API version", "OK", settings.api_version)
    if settings.instance_url:
        table.add_row("Instance URL", "OK", settings.instance_url)
    else:
        table.add_row("Instance URL", "MISSING", "Set FORCEPIPE_INSTANCE_URL or run `doctor setup`")
    table.add_row(
        "Access token",
        "OK" if settings.access_token else "MISSING",
        "Set" if settings.access_token else "Requests will fail with AuthenticationRequired",
    )
    if settings.refresh_token and settings.client_id:
        table.add_row("Token refresh", "OK", f"refresh_token grant via {settings.login_url}")
    else:
        table.add_row("Token refresh", "OPTIONAL", "No refresh token/client id -> expired sessions are terminal")

    # Connectivity (best-effort)
    ok_http, detail_http = asyncio.run(_check_http(settings.login_url, settings))
    table.add_row("HTTP connectivity", "OK" if ok_http else "FAIL", detail_http)

    session_ok = False
    if settings.instance_url and settings.access_token:
        session_ok, detail_session = asyncio.run(_check_session(settings))
        table.add_row("API session", "OK" if session_ok else "FAIL", detail_session)

    _console.print(table)

    if not session_ok:
        _console.print(
            "\n[yellow]Note:[/yellow] Obtain a session with your OAuth tooling, then run `forcepipe doctor setup`."
        )


@app.command(name="setup")
def setup() -> None:
    """Interactive credential setup (stores config in the user config .env)."""

    instance_url = typer.prompt("Instance URL (e.g. https://na1.salesforce.com)").strip()
    access_token = typer.prompt("Access token", hide_input=True).strip()
    refresh_token = typer.prompt("Refresh token (optional)", default="", hide_input=True, show_default=False).strip()
    client_id = typer.prompt("Client id (optional)", default="", show_default=False).strip()

    if not instance_url or not access_token:
        raise typer.BadParameter("instance URL and access token are required")

    env_path = write_user_env_vars(
        {
            "FORCEPIPE_INSTANCE_URL": instance_url.rstrip("/"),
            "FORCEPIPE_ACCESS_TOKEN": access_token,
            "FORCEPIPE_REFRESH_TOKEN": refresh_token or None,
            "FORCEPIPE_CLIENT_ID": client_id or None,
        }
    )

    _console.print(f"[green]Saved credentials to:[/green] {env_path}")
