"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers y logging de todas las peticiones.
- Facilita testeo: se puede sustituir por un stub o un `httpx.MockTransport`.
"""

from __future__ import annotations

import logging
from types import TracebackType

import httpx

from core.config import AppSettings
from core.domain.models import RequestDescriptor, TransportResponse

logger = logging.getLogger(__name__)


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    Por qué un builder:
    - Centraliza timeouts/headers para que todas las operaciones se comporten igual.
    - `transport` permite inyectar `httpx.MockTransport` en tests.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=False,
        headers=headers,
        transport=transport,
    )


class HttpxTransport:
    """Implementa `core.interfaces.transport.Transport` sobre `httpx.AsyncClient`.

    - Los errores de red (`httpx.TransportError`) se propagan sin envolver.
    - Cancelar la tarea que espera `send` cancela la petición en vuelo.
    - Si el cliente se creó aquí (o `owns_client=True`), `aclose()` lo cierra;
      si vino de fuera, es del caller.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        settings: AppSettings | None = None,
        owns_client: bool | None = None,
    ) -> None:
        self._owns_client = client is None if owns_client is None else owns_client
        self._client = client or build_async_client(settings)

    async def send(self, request: RequestDescriptor) -> TransportResponse:
        http_request = self._client.build_request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.body,
        )
        response = await self._client.send(http_request)
        logger.debug("%s %s -> HTTP %s", request.method, request.url, response.status_code)
        return TransportResponse(status_code=response.status_code, body=response.content)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
