"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (HTTP/proveedores) y servicios (poller, reintentos)
  lean límites y timeouts de forma consistente.

Los backends IA (endpoint, key, modelo) NO viven aquí: los sirve el almacén de
configuración (`core.interfaces.config_store`) y se resuelven por petición.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.language import Language


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "cardforge"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "cardforge"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "cardforge"
    return Path.home() / ".config" / "cardforge"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if key:
            data[key] = value.strip().strip('"').strip("'")
    return data


def write_user_env_vars(values: dict[str, str | None], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# cardforge user config (.env)"]
    for key in sorted(existing):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


def mask_secret(value: str | None) -> str:
    """Enmascara una API key para logs/tablas: primeros 4 + ... + últimos 4."""

    if not value:
        return ""
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}...{value[-4:]}"


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters/servicios.
    """

    model_config = SettingsConfigDict(
        env_prefix="CARDFORGE_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    http_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout por request de texto/scraping (segundos).",
    )
    image_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Timeout por request de envío/sondeo de imagen (segundos).",
    )
    user_agent: str = Field(
        default="cardforge/0.1",
        min_length=1,
        description="User-Agent para scraping.",
    )

    poll_interval_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Intervalo fijo entre sondeos de tareas asíncronas.",
    )
    poll_max_attempts: int = Field(
        default=60,
        ge=1,
        le=1000,
        description="Número máximo de sondeos antes de declarar timeout.",
    )
    error_body_max_chars: int = Field(
        default=200,
        ge=20,
        le=10_000,
        description="Recorte del cuerpo de error del proveedor en mensajes.",
    )

    outline_max_attempts: int = Field(
        default=2,
        ge=1,
        le=10,
        description="Intentos totales (llamada + parseo) para el esquema.",
    )
    quick_prompts_max_attempts: int = Field(
        default=2,
        ge=1,
        le=10,
        description="Intentos totales (llamada + parseo) para el modo rápido.",
    )

    image_size: str = Field(default="1024x1024", description="Tamaño para APIs OpenAI-compatibles.")
    dashscope_image_size: str = Field(default="1024*1024", description="`parameters.size` de DashScope.")
    inference_steps: int = Field(default=25, ge=1, le=200, description="`num_inference_steps` (SiliconFlow).")

    store_path: Path | None = Field(
        default=None,
        description="Ruta al JSON del almacén de configuración (profiles/prompts/styles).",
    )

    default_language: Language = Field(
        default=Language.CHINESE,
        description="Idioma por defecto para mensajes de usuario (zh/en).",
    )
    log_level: str = Field(default="INFO", description="Nivel de log raíz usado por la CLI.")

    def resolve_store_path(self) -> Path:
        """Ruta efectiva del almacén: la configurada o `<user config>/store.json`."""

        return self.store_path or (get_user_config_dir() / "store.json")
