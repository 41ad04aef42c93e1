"""Pipeline genérico de requests autenticados.

Orquesta: credenciales -> builder -> transporte -> clasificador -> decoder.
Ante un `AuthenticationRequired` en el primer intento pide un refresh al store
y repite el envío UNA sola vez con las credenciales nuevas. Cualquier otro
error es terminal y llega al caller sin envolver.

El pipeline no guarda estado mutable compartido: el único efecto lateral
posible es el que produce `store.refresh()`.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Callable, TypeVar

from pydantic import ValidationError

from core.domain.models import Credentials, RequestDescriptor
from core.domain.outcome import Success
from core.errors import AuthenticationRequired, DeserializationFailure, PipelineError
from core.interfaces.credentials import CredentialStore
from core.interfaces.transport import Transport
from core.services.response_classifier import classify_response

logger = logging.getLogger(__name__)

T = TypeVar("T")

RequestBuilder = Callable[[Credentials], RequestDescriptor]
Decoder = Callable[[Any], T]


class Attempt(str, Enum):
    """Estados del pipeline antes de alcanzar un resultado terminal."""

    FIRST = "first"
    RETRY_AFTER_REFRESH = "retry_after_refresh"


def _element_from_validation_error(exc: ValidationError) -> str | None:
    errors = exc.errors()
    if not errors:
        return None
    loc = errors[0].get("loc") or ()
    return ".".join(str(part) for part in loc) or None


def decode_payload(body: bytes, decode: Decoder[T]) -> T:
    """Parsea el cuerpo como JSON y aplica el decoder.

    - Cuerpo vacío (p.ej. 204 No Content) -> el decoder recibe `None`.
    - JSON inválido o decoder que no encuentra lo que espera -> `DeserializationFailure`.
    """

    if body.strip():
        try:
            payload: Any = json.loads(body)
        except (ValueError, RecursionError) as exc:
            raise DeserializationFailure(payload=body) from exc
    else:
        payload = None

    try:
        return decode(payload)
    except PipelineError:
        raise
    except KeyError as exc:
        element = str(exc.args[0]) if exc.args else None
        raise DeserializationFailure(element_name=element, payload=payload) from exc
    except ValidationError as exc:
        raise DeserializationFailure(
            element_name=_element_from_validation_error(exc),
            payload=payload,
        ) from exc
    except (TypeError, ValueError, AttributeError, IndexError) as exc:
        raise DeserializationFailure(payload=payload) from exc


class RequestPipeline:
    """Ejecuta operaciones REST con refresh-and-retry de credenciales.

    Por qué un objeto (y no un singleton global):
    - El caller decide qué store y qué transporte usar; los tests inyectan fakes.
    - Varias instancias pueden compartir el mismo store sin estado implícito.
    """

    def __init__(self, *, store: CredentialStore, transport: Transport) -> None:
        self._store = store
        self._transport = transport

    @property
    def store(self) -> CredentialStore:
        return self._store

    async def execute(self, build: RequestBuilder, decode: Decoder[T]) -> T:
        credentials = self._store.current_credentials()
        if credentials is None:
            logger.warning("No credentials available; authentication required")
            raise AuthenticationRequired()

        attempt = Attempt.FIRST
        while True:
            request = build(credentials)
            logger.debug("Sending %s %s (attempt=%s)", request.method, request.url, attempt.value)
            response = await self._transport.send(request)
            outcome = classify_response(response)

            if isinstance(outcome, Success):
                return decode_payload(outcome.body, decode)

            error = outcome.error
            if isinstance(error, AuthenticationRequired) and attempt is Attempt.FIRST:
                logger.info(
                    "HTTP %s for %s %s; refreshing credentials and retrying once",
                    response.status_code,
                    request.method,
                    request.url,
                )
                credentials = await self._store.refresh()
                attempt = Attempt.RETRY_AFTER_REFRESH
                continue

            logger.warning(
                "%s %s failed with %s (attempt=%s)",
                request.method,
                request.url,
                type(error).__name__,
                attempt.value,
            )
            raise error
