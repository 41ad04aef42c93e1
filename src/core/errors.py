"""Errores tipados del pipeline de requests.

Por qué una jerarquía propia:
- El caller distingue qué hacer (re-login, mostrar `message`, reintentar más
  tarde) sin inspeccionar status codes ni cuerpos crudos.
- Los errores del transporte (timeouts, DNS, TLS) NO se envuelven: llegan tal
  cual desde httpx.
"""

from __future__ import annotations

from typing import Any


class PipelineError(Exception):
    """Base de todos los errores que surgen del pipeline."""


class AuthenticationRequired(PipelineError):
    """No hay credenciales utilizables, o el reintento tras refresh sigue sin autorización."""

    def __init__(self, message: str = "User authentication required.") -> None:
        super().__init__(message)


class RequestConstructionFailure(PipelineError):
    """El builder no pudo construir una petición válida con los parámetros dados."""


class ResponseFailure(PipelineError):
    """Error estructurado devuelto por la API (`[{"errorCode": ..., "message": ...}]`)."""

    def __init__(self, code: str, message: str, fields: list[str] | None = None) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.fields = fields


class ServerFailure(PipelineError):
    """El servidor respondió HTTP 500."""

    def __init__(self, message: str = "Server failure (HTTP 500).") -> None:
        super().__init__(message)


class DeserializationFailure(PipelineError):
    """El payload no tiene la forma que espera el decoder."""

    def __init__(self, element_name: str | None = None, payload: Any = None) -> None:
        if element_name:
            message = f"Unable to deserialize element '{element_name}' from response."
        else:
            message = "Unable to deserialize response payload."
        super().__init__(message)
        self.element_name = element_name
        self.payload = payload


class UnclassifiedHTTPFailure(PipelineError):
    """Status no-2xx sin tratamiento específico (p.ej. 409, 429, 502, 503)."""

    def __init__(self, status_code: int, body: bytes = b"") -> None:
        super().__init__(f"Unexpected HTTP status: {status_code}")
        self.status_code = status_code
        self.body = body


class RefreshFailure(PipelineError):
    """El refresh de credenciales falló; el pipeline lo propaga sin reintentar."""

    def __init__(self, detail: str, *, status_code: int | None = None) -> None:
        super().__init__(detail if status_code is None else f"{detail} (HTTP {status_code})")
        self.detail = detail
        self.status_code = status_code
