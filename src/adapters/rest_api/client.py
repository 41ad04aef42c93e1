"""Fachada de la API REST sobre el pipeline.

Cada operación es solo un par builder/decoder que se entrega a
`RequestPipeline.execute`; el refresh-and-retry y la clasificación de errores
viven en el pipeline, no aquí.

No hay instancia global: el caller construye el cliente (o usa
`build_rest_client`) y decide su ciclo de vida.
"""

from __future__ import annotations

from types import TracebackType
from typing import Any, Mapping, Sequence

from adapters.credential_store import build_credential_store
from adapters.http_client import HttpxTransport, build_async_client
from adapters.rest_api import decoders, routes
from core.config import DEFAULT_API_VERSION, AppSettings
from core.domain.models import Limit, QueryResult, UserInfo
from core.services.request_pipeline import RequestPipeline


class RestApiClient:
    """Operaciones REST (identity, limits, query, CRUD, Apex REST)."""

    def __init__(
        self,
        pipeline: RequestPipeline,
        *,
        version: str | None = None,
        transport: HttpxTransport | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.version = version or DEFAULT_API_VERSION
        self._transport = transport

    async def identity(self) -> UserInfo:
        return await self.pipeline.execute(routes.identity, decoders.user_info)

    async def limits(self) -> list[Limit]:
        return await self.pipeline.execute(
            lambda credentials: routes.limits(credentials, version=self.version),
            decoders.limits,
        )

    async def query(self, soql: str) -> QueryResult:
        return await self.pipeline.execute(
            lambda credentials: routes.query(soql, credentials, version=self.version),
            decoders.query_result,
        )

    async def query_next(self, path: str) -> QueryResult:
        return await self.pipeline.execute(
            lambda credentials: routes.query_next(path, credentials),
            decoders.query_result,
        )

    async def retrieve(
        self,
        type: str,
        id: str,
        fields: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        return await self.pipeline.execute(
            lambda credentials: routes.retrieve(type, id, credentials, version=self.version, fields=fields),
            decoders.record,
        )

    async def insert(self, type: str, fields: Mapping[str, Any]) -> str:
        """Inserta un registro y devuelve su ID."""

        return await self.pipeline.execute(
            lambda credentials: routes.insert(type, fields, credentials, version=self.version),
            decoders.inserted_id,
        )

    async def update(self, type: str, id: str, fields: Mapping[str, Any]) -> None:
        await self.pipeline.execute(
            lambda credentials: routes.update(type, id, fields, credentials, version=self.version),
            decoders.nothing,
        )

    async def delete(self, type: str, id: str) -> None:
        await self.pipeline.execute(
            lambda credentials: routes.delete(type, id, credentials, version=self.version),
            decoders.nothing,
        )

    async def apex_rest(
        self,
        path: str,
        *,
        method: str = "GET",
        parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Llama a un endpoint Apex REST (`/services/apexrest<path>`); espera JSON."""

        return await self.pipeline.execute(
            lambda credentials: routes.apex_rest(
                credentials, path=path, method=method, parameters=parameters, headers=headers
            ),
            decoders.passthrough,
        )

    async def custom(
        self,
        path: str,
        *,
        method: str = "GET",
        parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        return await self.pipeline.execute(
            lambda credentials: routes.custom(
                credentials, path=path, method=method, parameters=parameters, headers=headers
            ),
            decoders.passthrough,
        )

    async def aclose(self) -> None:
        if self._transport is not None:
            await self._transport.aclose()

    async def __aenter__(self) -> RestApiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def build_rest_client(settings: AppSettings | None = None, **client_kwargs: Any) -> RestApiClient:
    """Cablea cliente httpx + store + pipeline desde la configuración.

    El mismo `httpx.AsyncClient` sirve al transporte y al refresh del token.
    `client_kwargs` se pasa a `build_async_client` (p.ej. `transport=` en tests).
    """

    settings = settings or AppSettings()
    http = build_async_client(settings, **client_kwargs)
    transport = HttpxTransport(http, owns_client=True)
    store = build_credential_store(settings, client=http)
    pipeline = RequestPipeline(store=store, transport=transport)
    return RestApiClient(pipeline, version=settings.api_version, transport=transport)
