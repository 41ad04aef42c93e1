"""Contrato del store de credenciales.

Por qué Protocol:
- El flujo OAuth (login, consentimiento) vive fuera del Core; cualquier gestor
  externo puede cumplir este contrato sin heredar de nada.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import Credentials


@runtime_checkable
class CredentialStore(Protocol):
    """Contrato mínimo que consume el pipeline.

    Reglas de diseño:
    - `current_credentials` es síncrono y no bloquea (lectura en memoria).
    - `refresh` es asíncrono y DEBE serializarse: varios pipelines que reciben
      401 a la vez comparten un único refresh en vuelo y todos observan su
      resultado.
    - Si el refresh no puede completarse, lanza un error distinguible
      (`RefreshFailure` o el error de red del transporte).
    """

    def current_credentials(self) -> Credentials | None:
        """Devuelve las credenciales vigentes o `None` si no hay sesión."""

        ...

    async def refresh(self) -> Credentials:
        """Renueva las credenciales y devuelve las nuevas."""

        ...
