"""Operaciones concretas de la API REST.

Por qué un paquete:
- Agrupa builders (`routes`), decoders y la fachada (`client`).
- El pipeline del Core los trata como funciones opacas.
"""

from adapters.rest_api.client import RestApiClient, build_rest_client

__all__ = [
	"RestApiClient",
	"build_rest_client",
]
