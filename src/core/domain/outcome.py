"""Resultado de clasificar una respuesta del transporte.

`ResponseOutcome` es un variant etiquetado: `Success` lleva el cuerpo crudo
(el parseo JSON lo hace el paso de decode) y `Failure` lleva el error tipado.
Ninguno se retiene más allá del intento que lo produjo.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from core.errors import PipelineError


@dataclass(frozen=True)
class Success:
    body: bytes


@dataclass(frozen=True)
class Failure:
    error: PipelineError


ResponseOutcome = Union[Success, Failure]
