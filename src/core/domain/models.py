"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- Los decoders de respuestas reutilizan esa validación: un payload con forma
  inesperada se convierte en `DeserializationFailure` en vez de un cast ciego.

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class Credentials(BaseModel):
    """Credenciales vigentes para hablar con la instancia.

    Por qué inmutable:
    - El store es su único dueño; el pipeline recibe una copia por intento
      y nunca la modifica.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(
        ...,
        min_length=1,
        description="Bearer token opaco.",
    )
    instance_url: str = Field(
        ...,
        min_length=8,
        description="URL base de la instancia (sin '/' final).",
    )
    identity_url: str | None = Field(
        default=None,
        description="URL del servicio de identidad del usuario autenticado.",
    )

    def __repr__(self) -> str:
        # El token no debe acabar en logs ni tracebacks.
        return f"Credentials(instance_url={self.instance_url!r}, identity_url={self.identity_url!r})"

    __str__ = __repr__


class RequestDescriptor(BaseModel):
    """Petición HTTP lista para enviar.

    Se crea nueva en cada intento (builder) y el transporte la consume una vez.
    """

    model_config = ConfigDict(frozen=True)

    method: str = Field(
        ...,
        min_length=1,
        description="Verbo HTTP en mayúsculas.",
    )
    url: str = Field(
        ...,
        min_length=1,
        description="URL absoluta, query string incluida.",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Headers HTTP (incluye Authorization).",
    )
    body: bytes | None = Field(
        default=None,
        description="Cuerpo ya serializado, si aplica.",
    )


class TransportResponse(BaseModel):
    """Respuesta cruda del transporte: status + bytes."""

    status_code: int = Field(..., ge=100, le=999)
    body: bytes = Field(default=b"")


class UserInfo(BaseModel):
    """Usuario actual según el servicio de identidad."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    user_id: str = Field(..., description="ID del usuario.")
    organization_id: str = Field(..., description="ID de la organización.")
    username: str = Field(..., description="Username de login.")
    display_name: str | None = Field(default=None)
    email: str | None = Field(default=None)
    first_name: str | None = Field(default=None)
    last_name: str | None = Field(default=None)
    user_type: str | None = Field(default=None)
    language: str | None = Field(default=None)
    locale: str | None = Field(default=None)
    utc_offset: int | None = Field(default=None, alias="utcOffset")
    photos: dict[str, str] = Field(default_factory=dict)
    urls: dict[str, str] = Field(default_factory=dict)


class Limit(BaseModel):
    """Límite de organización (API requests, storage, etc.)."""

    name: str = Field(..., min_length=1)
    maximum: int = Field(..., description="Valor 'Max'.")
    remaining: int = Field(..., description="Valor 'Remaining'.")


class QueryResult(BaseModel):
    """Página de resultados de una consulta SOQL.

    `next_records_path` es el passthrough de paginación: se pasa tal cual a
    `query_next`.
    """

    model_config = ConfigDict(populate_by_name=True)

    total_size: int = Field(..., alias="totalSize", ge=0)
    is_done: bool = Field(..., alias="done")
    records: list[dict[str, Any]] = Field(default_factory=list)
    next_records_path: str | None = Field(default=None, alias="nextRecordsUrl")
