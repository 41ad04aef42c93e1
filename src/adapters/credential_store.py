"""Store de credenciales en memoria con refresh single-flight.

Responsabilidad:
- Guardar las credenciales vigentes (las obtiene un gestor OAuth externo).
- Serializar `refresh()`: si varios pipelines reciben 401 a la vez, solo se
  lanza UN refresh y todos esperan su resultado (valor o excepción).
- `RefreshTokenGrant` renueva el bearer token con el refresh token guardado.
  No implementa el flujo de autorización (login/consentimiento).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.models import Credentials
from core.errors import RefreshFailure

logger = logging.getLogger(__name__)

Refresher = Callable[[], Awaitable[Credentials]]


class SingleFlightCredentialStore:
    """Implementa `core.interfaces.credentials.CredentialStore`."""

    def __init__(
        self,
        credentials: Credentials | None = None,
        *,
        refresher: Refresher,
    ) -> None:
        self._credentials = credentials
        self._refresher = refresher
        self._inflight: asyncio.Task[Credentials] | None = None

    def current_credentials(self) -> Credentials | None:
        return self._credentials

    def set_credentials(self, credentials: Credentials | None) -> None:
        self._credentials = credentials

    @property
    def refreshing(self) -> bool:
        return self._inflight is not None

    async def refresh(self) -> Credentials:
        # Entre la comprobación y la asignación no hay `await`: en un único
        # event loop nadie puede colarse y lanzar un segundo refresh.
        task = self._inflight
        if task is None:
            task = asyncio.ensure_future(self._run_refresh())
            self._inflight = task
        else:
            logger.debug("Joining in-flight credential refresh")
        # shield: si un caller se cancela, el refresh sigue para el resto.
        return await asyncio.shield(task)

    async def _run_refresh(self) -> Credentials:
        logger.info("Refreshing credentials")
        try:
            credentials = await self._refresher()
        except Exception as exc:
            logger.warning("Credential refresh failed: %s", exc)
            raise
        finally:
            self._inflight = None
        self._credentials = credentials
        logger.info("Credentials refreshed for %s", credentials.instance_url)
        return credentials


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        for key in ("error_description", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return "Token refresh rejected"


class RefreshTokenGrant:
    """Refresher OAuth `grant_type=refresh_token`.

    Reglas:
    - Sin refresh token o client id -> `RefreshFailure` (no se hace la petición).
    - Respuesta no-2xx o sin `access_token`/`instance_url` -> `RefreshFailure`.
    - Errores de red -> se propagan tal cual (`httpx.TransportError`).
    - Si el servidor rota el refresh token, se usa el nuevo a partir de ahí.
    """

    token_path = "/services/oauth2/token"

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._client = client
        self._refresh_token = self._settings.refresh_token

    @property
    def token_url(self) -> str:
        return f"{self._settings.login_url.rstrip('/')}{self.token_path}"

    async def __call__(self) -> Credentials:
        if not self._refresh_token or not self._settings.client_id:
            raise RefreshFailure("Refresh token and client id are required to refresh credentials")

        data: dict[str, str] = {
            "grant_type": "refresh_token",
            "client_id": self._settings.client_id,
            "refresh_token": self._refresh_token,
        }
        if self._settings.client_secret:
            data["client_secret"] = self._settings.client_secret

        if self._client is not None:
            response = await self._client.post(self.token_url, data=data)
        else:
            async with build_async_client(self._settings) as client:
                response = await client.post(self.token_url, data=data)

        if not response.is_success:
            raise RefreshFailure(_error_detail(response), status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise RefreshFailure("Token endpoint returned a non-JSON response") from exc

        if not isinstance(payload, dict):
            raise RefreshFailure("Token endpoint returned an unexpected payload")
        access_token = payload.get("access_token")
        instance_url = payload.get("instance_url")
        if not isinstance(access_token, str) or not access_token:
            raise RefreshFailure("Token response is missing 'access_token'")
        if not isinstance(instance_url, str) or not instance_url:
            raise RefreshFailure("Token response is missing 'instance_url'")

        rotated = payload.get("refresh_token")
        if isinstance(rotated, str) and rotated:
            self._refresh_token = rotated

        identity_url = payload.get("id")
        return Credentials(
            access_token=access_token,
            instance_url=instance_url.rstrip("/"),
            identity_url=identity_url if isinstance(identity_url, str) else None,
        )


def credentials_from_settings(settings: AppSettings) -> Credentials | None:
    if not settings.access_token or not settings.instance_url:
        return None
    return Credentials(
        access_token=settings.access_token,
        instance_url=settings.instance_url.rstrip("/"),
        identity_url=settings.identity_url,
    )


def build_credential_store(
    settings: AppSettings,
    *,
    client: httpx.AsyncClient | None = None,
) -> SingleFlightCredentialStore:
    """Store inicializado desde la configuración, con refresh vía refresh token."""

    return SingleFlightCredentialStore(
        credentials_from_settings(settings),
        refresher=RefreshTokenGrant(settings, client=client),
    )
