"""CLI principal (Typer + Rich).

Los comandos son una capa fina: construyen el cliente REST, ejecutan una
operación y pintan el resultado. Toda la lógica de reintento/errores vive en
el pipeline del Core.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, TypeVar

import httpx
import typer
from rich.console import Console
from rich.logging import RichHandler

from adapters.rest_api import RestApiClient, build_rest_client
from cli.doctor import app as doctor_app
from cli.ui_components import (
    build_limits_table,
    build_records_table,
    build_user_panel,
    describe_error,
)
from core.config import AppSettings
from core.errors import PipelineError

T = TypeVar("T")

app = typer.Typer(no_args_is_help=True, help="REST API client with transparent credential refresh.")
app.add_typer(doctor_app, name="doctor")

_console = Console()

# Punto de inyección para tests (y para quien quiera otro cableado).
client_factory: Callable[[AppSettings], RestApiClient] = build_rest_client


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )
    # httpx/httpcore son muy ruidosos en DEBUG.
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _run(operation: Callable[[RestApiClient], Awaitable[T]]) -> T:
    async def runner() -> T:
        async with client_factory(AppSettings()) as client:
            return await operation(client)

    try:
        return asyncio.run(runner())
    except PipelineError as exc:
        _console.print(f"[red]Error:[/red] {describe_error(exc)}")
        raise typer.Exit(code=1) from exc
    except httpx.HTTPError as exc:
        _console.print(f"[red]Transport error:[/red] {exc}")
        raise typer.Exit(code=1) from exc


def _parse_pairs(values: list[str] | None, *, option: str) -> dict[str, Any]:
    """`k=v` -> dict; el valor se interpreta como JSON si se puede (números, bools, null)."""

    out: dict[str, Any] = {}
    for item in values or []:
        if "=" not in item:
            raise typer.BadParameter(f"Expected key=value, got {item!r}", param_hint=option)
        key, raw = item.split("=", 1)
        key = key.strip()
        if not key:
            raise typer.BadParameter(f"Empty key in {item!r}", param_hint=option)
        try:
            out[key] = json.loads(raw)
        except ValueError:
            out[key] = raw
    return out


def _print_json(value: Any) -> None:
    _console.print_json(json.dumps(value, ensure_ascii=False, default=str))


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging (requests, refresh)."),
) -> None:
    configure_logging(verbose)


@app.command()
def identity(as_json: bool = typer.Option(False, "--json", help="Raw JSON output.")) -> None:
    """Show the authenticated user."""

    user = _run(lambda client: client.identity())
    if as_json:
        _print_json(user.model_dump(mode="json"))
    else:
        _console.print(build_user_panel(user))


@app.command()
def limits(as_json: bool = typer.Option(False, "--json", help="Raw JSON output.")) -> None:
    """Show org limits."""

    result = _run(lambda client: client.limits())
    if as_json:
        _print_json([limit.model_dump(mode="json") for limit in result])
    else:
        _console.print(build_limits_table(result))


@app.command()
def query(
    soql: str = typer.Argument(..., help="SOQL query."),
    fetch_all: bool = typer.Option(False, "--all", help="Follow nextRecordsUrl until done."),
    as_json: bool = typer.Option(False, "--json", help="Raw JSON output."),
) -> None:
    """Run a SOQL query."""

    async def operation(client: RestApiClient) -> tuple[int, list[dict[str, Any]], str | None]:
        page = await client.query(soql)
        total = page.total_size
        records = list(page.records)
        while fetch_all and not page.is_done and page.next_records_path:
            page = await client.query_next(page.next_records_path)
            records.extend(page.records)
        return total, records, page.next_records_path

    total, records, next_path = _run(operation)
    if as_json:
        _print_json({"totalSize": total, "records": records, "nextRecordsUrl": next_path})
        return
    _console.print(build_records_table(records, title=f"{len(records)} of {total} records"))
    if next_path:
        _console.print(f"[dim]More records: {next_path}[/dim]")


@app.command()
def retrieve(
    sobject: str = typer.Argument(..., help="Record type, e.g. Account."),
    record_id: str = typer.Argument(..., help="Record ID."),
    fields: list[str] = typer.Option(None, "--field", "-f", help="Field to retrieve (repeatable)."),
) -> None:
    """Retrieve a single record."""

    record = _run(lambda client: client.retrieve(sobject, record_id, fields=fields or None))
    _print_json(record)


@app.command()
def insert(
    sobject: str = typer.Argument(..., help="Record type, e.g. Account."),
    values: list[str] = typer.Option(None, "--set", "-s", help="Field value as key=value (repeatable)."),
) -> None:
    """Insert a record and print its ID."""

    fields = _parse_pairs(values, option="--set")
    new_id = _run(lambda client: client.insert(sobject, fields))
    _console.print(new_id)


@app.command()
def update(
    sobject: str = typer.Argument(..., help="Record type, e.g. Account."),
    record_id: str = typer.Argument(..., help="Record ID."),
    values: list[str] = typer.Option(None, "--set", "-s", help="Field value as key=value (repeatable)."),
) -> None:
    """Update a record."""

    fields = _parse_pairs(values, option="--set")
    _run(lambda client: client.update(sobject, record_id, fields))
    _console.print(f"[green]Updated[/green] {sobject} {record_id}")


@app.command()
def delete(
    sobject: str = typer.Argument(..., help="Record type, e.g. Account."),
    record_id: str = typer.Argument(..., help="Record ID."),
) -> None:
    """Delete a record."""

    _run(lambda client: client.delete(sobject, record_id))
    _console.print(f"[green]Deleted[/green] {sobject} {record_id}")


@app.command()
def apex(
    method: str = typer.Argument(..., help="HTTP method."),
    path: str = typer.Argument(..., help="Path under /services/apexrest, starting with '/'."),
    params: list[str] = typer.Option(None, "--param", "-p", help="Parameter as key=value (repeatable)."),
) -> None:
    """Call an Apex REST endpoint."""

    parameters = _parse_pairs(params, option="--param") or None
    result = _run(lambda client: client.apex_rest(path, method=method, parameters=parameters))
    _print_json(result)


def run() -> None:
    app()
