"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import Limit, UserInfo
from core.errors import (
    AuthenticationRequired,
    DeserializationFailure,
    PipelineError,
    RefreshFailure,
    ResponseFailure,
    UnclassifiedHTTPFailure,
)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def build_records_table(records: list[dict[str, Any]], *, title: str = "Records") -> Table:
    """Tabla con una columna por campo (se omite `attributes`)."""

    columns: list[str] = []
    for record in records:
        for key in record:
            if key != "attributes" and key not in columns:
                columns.append(key)

    table = Table(title=title)
    for column in columns:
        table.add_column(column, style="white")
    for record in records:
        table.add_row(*(_cell(record.get(column)) for column in columns))
    return table


def build_limits_table(limits: Iterable[Limit]) -> Table:
    table = Table(title="Org Limits")
    table.add_column("Limit", style="cyan", no_wrap=True)
    table.add_column("Remaining", style="green", justify="right")
    table.add_column("Max", style="white", justify="right")
    for limit in sorted(limits, key=lambda item: item.name):
        table.add_row(limit.name, str(limit.remaining), str(limit.maximum))
    return table


def build_user_panel(user: UserInfo) -> Panel:
    """Panel para presentar el usuario autenticado."""

    body = Text()
    body.append(f"{user.display_name or user.username}\n", style="bold")
    body.append(f"Username: {user.username}\n")
    if user.email:
        body.append(f"Email: {user.email}\n")
    body.append(f"User ID: {user.user_id}\n", style="dim")
    body.append(f"Org ID: {user.organization_id}", style="dim")
    return Panel(body, title=Text("Identity", style="bold cyan"), border_style="cyan")


def describe_error(exc: PipelineError) -> str:
    """Mensaje legible para el usuario a partir de un error del pipeline."""

    if isinstance(exc, AuthenticationRequired):
        return "Authentication required. Run `forcepipe doctor setup` or refresh your session."
    if isinstance(exc, ResponseFailure):
        text = f"{exc.code}: {exc.message}"
        if exc.fields:
            text += f" (fields: {', '.join(exc.fields)})"
        return text
    if isinstance(exc, DeserializationFailure) and exc.element_name:
        return f"Unexpected response: missing or invalid '{exc.element_name}'."
    if isinstance(exc, UnclassifiedHTTPFailure):
        return f"Unexpected HTTP status {exc.status_code}."
    if isinstance(exc, RefreshFailure):
        return f"Could not refresh credentials: {exc}"
    return str(exc)
