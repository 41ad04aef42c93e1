"""Builders de peticiones para la API REST.

Cada función recibe los parámetros de la operación + las credenciales vigentes
y devuelve un `RequestDescriptor` nuevo. Son puras: no hacen I/O ni guardan
estado, así que el pipeline puede re-invocarlas tras un refresh.

Parámetros inválidos -> `RequestConstructionFailure`.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Sequence
from urllib.parse import quote, urlencode

from core.domain.models import Credentials, RequestDescriptor
from core.errors import RequestConstructionFailure

ALLOWED_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"})
# Métodos cuyos parámetros viajan en la query string en lugar del cuerpo.
QUERY_METHODS = frozenset({"GET", "DELETE", "HEAD"})


def _require(value: str | None, name: str) -> str:
    if value is None or not str(value).strip():
        raise RequestConstructionFailure(f"'{name}' must not be empty")
    return str(value).strip()


def _require_path(path: str | None) -> str:
    path = _require(path, "path")
    if not path.startswith("/"):
        raise RequestConstructionFailure(f"'path' must start with '/': {path!r}")
    return path


def _normalize_method(method: str) -> str:
    normalized = (method or "").strip().upper()
    if normalized not in ALLOWED_METHODS:
        raise RequestConstructionFailure(f"Unsupported HTTP method: {method!r}")
    return normalized


def _segment(value: str, name: str) -> str:
    return quote(_require(value, name), safe="")


def _headers(
    credentials: Credentials,
    extra: Mapping[str, str] | None = None,
    *,
    has_body: bool = False,
) -> dict[str, str]:
    headers = {
        "Authorization": f"Bearer {credentials.access_token}",
        "Accept": "application/json",
    }
    if has_body:
        headers["Content-Type"] = "application/json"
    if extra:
        headers.update(extra)
    return headers


def _require_mapping(value: Any, name: str) -> dict[str, Any]:
    if not isinstance(value, Mapping):
        raise RequestConstructionFailure(f"'{name}' must be a mapping, got {type(value).__name__}")
    return dict(value)


def _field_list(fields: Sequence[str]) -> str:
    # Un str suelto también es Sequence: se partiría en caracteres.
    if isinstance(fields, str) or not isinstance(fields, Sequence) or not all(isinstance(f, str) and f.strip() for f in fields):
        raise RequestConstructionFailure(f"'fields' must be a list of field names, got {fields!r}")
    return ",".join(f.strip() for f in fields)


def _json_body(payload: Any) -> bytes:
    try:
        return json.dumps(payload, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise RequestConstructionFailure(f"Request body is not JSON serializable: {exc}") from exc


def _with_query(url: str, params: Mapping[str, Any] | None) -> str:
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params, doseq=True)}"


def data_url(credentials: Credentials, version: str, path: str) -> str:
    return f"{credentials.instance_url.rstrip('/')}/services/data/v{version}{path}"


def _free_form(
    *,
    method: str,
    url: str,
    parameters: Mapping[str, Any] | None,
    headers: Mapping[str, str] | None,
    credentials: Credentials,
) -> RequestDescriptor:
    method = _normalize_method(method)
    if parameters is not None:
        parameters = _require_mapping(parameters, "parameters")
    if headers is not None:
        headers = _require_mapping(headers, "headers")
    if method in QUERY_METHODS:
        return RequestDescriptor(
            method=method,
            url=_with_query(url, parameters),
            headers=_headers(credentials, headers),
        )
    body = _json_body(parameters) if parameters is not None else None
    return RequestDescriptor(
        method=method,
        url=url,
        headers=_headers(credentials, headers, has_body=body is not None),
        body=body,
    )


def identity(credentials: Credentials) -> RequestDescriptor:
    if not credentials.identity_url:
        raise RequestConstructionFailure("Credentials have no identity URL")
    return RequestDescriptor(method="GET", url=credentials.identity_url, headers=_headers(credentials))


def limits(credentials: Credentials, *, version: str) -> RequestDescriptor:
    return RequestDescriptor(
        method="GET",
        url=data_url(credentials, version, "/limits/"),
        headers=_headers(credentials),
    )


def query(soql: str, credentials: Credentials, *, version: str) -> RequestDescriptor:
    soql = _require(soql, "soql")
    return RequestDescriptor(
        method="GET",
        url=_with_query(data_url(credentials, version, "/query/"), {"q": soql}),
        headers=_headers(credentials),
    )


def query_next(path: str, credentials: Credentials) -> RequestDescriptor:
    """`path` es el `nextRecordsUrl` de la página anterior, tal cual."""

    path = _require_path(path)
    return RequestDescriptor(
        method="GET",
        url=f"{credentials.instance_url.rstrip('/')}{path}",
        headers=_headers(credentials),
    )


def retrieve(
    type: str,
    id: str,
    credentials: Credentials,
    *,
    version: str,
    fields: Sequence[str] | None = None,
) -> RequestDescriptor:
    url = data_url(credentials, version, f"/sobjects/{_segment(type, 'type')}/{_segment(id, 'id')}")
    if fields:
        url = _with_query(url, {"fields": _field_list(fields)})
    return RequestDescriptor(method="GET", url=url, headers=_headers(credentials))


def insert(
    type: str,
    fields: Mapping[str, Any],
    credentials: Credentials,
    *,
    version: str,
) -> RequestDescriptor:
    return RequestDescriptor(
        method="POST",
        url=data_url(credentials, version, f"/sobjects/{_segment(type, 'type')}/"),
        headers=_headers(credentials, has_body=True),
        body=_json_body(_require_mapping(fields, "fields")),
    )


def update(
    type: str,
    id: str,
    fields: Mapping[str, Any],
    credentials: Credentials,
    *,
    version: str,
) -> RequestDescriptor:
    return RequestDescriptor(
        method="PATCH",
        url=data_url(credentials, version, f"/sobjects/{_segment(type, 'type')}/{_segment(id, 'id')}"),
        headers=_headers(credentials, has_body=True),
        body=_json_body(_require_mapping(fields, "fields")),
    )


def delete(type: str, id: str, credentials: Credentials, *, version: str) -> RequestDescriptor:
    return RequestDescriptor(
        method="DELETE",
        url=data_url(credentials, version, f"/sobjects/{_segment(type, 'type')}/{_segment(id, 'id')}"),
        headers=_headers(credentials),
    )


def apex_rest(
    credentials: Credentials,
    *,
    path: str,
    method: str = "GET",
    parameters: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> RequestDescriptor:
    url = f"{credentials.instance_url.rstrip('/')}/services/apexrest{_require_path(path)}"
    return _free_form(method=method, url=url, parameters=parameters, headers=headers, credentials=credentials)


def custom(
    credentials: Credentials,
    *,
    path: str,
    method: str = "GET",
    parameters: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> RequestDescriptor:
    url = f"{credentials.instance_url.rstrip('/')}{_require_path(path)}"
    return _free_form(method=method, url=url, parameters=parameters, headers=headers, credentials=credentials)
