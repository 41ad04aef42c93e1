"""Contrato del transporte HTTP."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import RequestDescriptor, TransportResponse


@runtime_checkable
class Transport(Protocol):
    """Envía un `RequestDescriptor` y devuelve status + cuerpo.

    - Es cancelable: cancelar la tarea que espera `send` aborta la petición.
    - Los errores de red se propagan con su tipo original.
    - El timeout es configuración del transporte, no del pipeline.
    """

    async def send(self, request: RequestDescriptor) -> TransportResponse:
        ...
