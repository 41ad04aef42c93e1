"""Clasificación de respuestas HTTP en resultados tipados.

Reglas (en orden de prioridad):
- 401/403 -> `AuthenticationRequired` (el cuerpo se ignora).
- 400/404/405/415 -> `ResponseFailure` a partir del primer objeto del array
  de errores; si no se puede leer, `UNKNOWN_ERROR`.
- 500 -> `ServerFailure`.
- 2xx -> `Success` con el cuerpo crudo (el parseo JSON es parte del decode).
- Cualquier otro status -> `UnclassifiedHTTPFailure`.
"""

from __future__ import annotations

import json

from core.domain.models import TransportResponse
from core.domain.outcome import Failure, ResponseOutcome, Success
from core.errors import (
    AuthenticationRequired,
    ResponseFailure,
    ServerFailure,
    UnclassifiedHTTPFailure,
)

AUTH_STATUSES = frozenset({401, 403})
STRUCTURED_ERROR_STATUSES = frozenset({400, 404, 405, 415})
UNKNOWN_ERROR_CODE = "UNKNOWN_ERROR"


def parse_error_body(status_code: int, body: bytes) -> ResponseFailure:
    """Construye `ResponseFailure` desde `[{"errorCode": ..., "message": ..., "fields": [...]}]`."""

    try:
        data = json.loads(body) if body else None
    except (ValueError, UnicodeDecodeError, RecursionError):
        data = None

    first = data[0] if isinstance(data, list) and data else None
    if isinstance(first, dict):
        code = first.get("errorCode")
        message = first.get("message")
        if isinstance(code, str) and isinstance(message, str):
            fields = first.get("fields")
            if not (isinstance(fields, list) and all(isinstance(f, str) for f in fields)):
                fields = None
            return ResponseFailure(code=code, message=message, fields=fields)

    return ResponseFailure(
        code=UNKNOWN_ERROR_CODE,
        message=f"Unknown error. HTTP status: {status_code}",
        fields=None,
    )


def classify(status_code: int, body: bytes) -> ResponseOutcome:
    if status_code in AUTH_STATUSES:
        return Failure(AuthenticationRequired())
    if status_code in STRUCTURED_ERROR_STATUSES:
        return Failure(parse_error_body(status_code, body))
    if status_code == 500:
        return Failure(ServerFailure())
    if 200 <= status_code < 300:
        return Success(body)
    return Failure(UnclassifiedHTTPFailure(status_code, body))


def classify_response(response: TransportResponse) -> ResponseOutcome:
    return classify(response.status_code, response.body)
