"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (HTTP/credenciales) lean config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_VERSION = "38.0"


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "forcepipe"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "forcepipe"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "forcepipe"
    return Path.home() / ".config" / "forcepipe"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str | None], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario.

    Los valores `None` se ignoran (no borran lo que ya hubiera).
    """

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# forcepipe user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="FORCEPIPE_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout por request (segundos). Se delega al transporte httpx.",
    )
    user_agent: str = Field(
        default="forcepipe/0.1",
        min_length=1,
        description="User-Agent para las peticiones a la API REST.",
    )
    api_version: str = Field(
        default=DEFAULT_API_VERSION,
        pattern=r"^\d+\.\d+$",
        description="Versión de la API REST (p.ej. '38.0').",
    )

    # Credenciales iniciales (las obtiene un gestor OAuth externo).
    instance_url: str | None = Field(
        default=None,
        description="URL de la instancia (p.ej. https://na1.salesforce.com).",
    )
    access_token: str | None = Field(
        default=None,
        description="Bearer token actual.",
    )
    identity_url: str | None = Field(
        default=None,
        description="URL del servicio de identidad (campo 'id' de la respuesta OAuth).",
    )

    # Renovación vía refresh token.
    refresh_token: str | None = Field(
        default=None,
        description="Refresh token de larga duración para renovar el bearer token.",
    )
    client_id: str | None = Field(
        default=None,
        description="Consumer key de la connected app.",
    )
    client_secret: str | None = Field(
        default=None,
        description="Consumer secret (solo si la connected app lo exige).",
    )
    login_url: str = Field(
        default="https://login.salesforce.com",
        min_length=8,
        description="Host de autenticación usado para el refresh.",
    )
