"""Decoders de payloads JSON a modelos del dominio.

Cada decoder es una función explícita `payload -> T` que lanza
`DeserializationFailure` si la forma no encaja (sin casts a ciegas).
Los errores de validación de Pydantic los traduce el pipeline.
"""

from __future__ import annotations

from typing import Any

from core.domain.models import Limit, QueryResult, UserInfo
from core.errors import DeserializationFailure


def _require_object(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise DeserializationFailure(payload=payload)
    return payload


def user_info(payload: Any) -> UserInfo:
    return UserInfo.model_validate(_require_object(payload))


def limits(payload: Any) -> list[Limit]:
    out: list[Limit] = []
    for name, value in _require_object(payload).items():
        remaining = value.get("Remaining") if isinstance(value, dict) else None
        maximum = value.get("Max") if isinstance(value, dict) else None
        if not isinstance(remaining, int) or not isinstance(maximum, int):
            raise DeserializationFailure(element_name=name, payload=value)
        out.append(Limit(name=name, maximum=maximum, remaining=remaining))
    return out


def query_result(payload: Any) -> QueryResult:
    return QueryResult.model_validate(_require_object(payload))


def record(payload: Any) -> dict[str, Any]:
    return _require_object(payload)


def inserted_id(payload: Any) -> str:
    record_id = _require_object(payload).get("id")
    if not isinstance(record_id, str):
        raise DeserializationFailure(element_name="id", payload=payload)
    return record_id


def nothing(payload: Any) -> None:
    return None


def passthrough(payload: Any) -> Any:
    return payload
