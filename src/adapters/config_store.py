"""Almacenes de configuración (perfiles, plantillas, estilos).

Soporta:
- Memoria: `InMemoryConfigStore` (tests y llamadores embebidos).
- JSON:    `{"profiles": [...], "prompts": [...], "styles": [...]}` con claves
  camelCase o snake_case, leído una vez por instancia.

Solo lectura desde el Core; la escritura es del CRUD admin.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Sequence

from pydantic import BaseModel, Field

from core.domain.models import BackendProfile, Capability, ImageStyle, PromptKind, PromptTemplate


class ConfigStoreFile(BaseModel):
    profiles: list[BackendProfile] = Field(default_factory=list)
    prompts: list[PromptTemplate] = Field(default_factory=list)
    styles: list[ImageStyle] = Field(default_factory=list)


def _newest_first(records: Iterable[PromptTemplate]) -> list[PromptTemplate]:
    ordered = sorted(records, key=lambda r: r.id)
    ordered.sort(key=lambda r: r.created_at, reverse=True)
    return ordered


class InMemoryConfigStore:
    """Implementación de `core.interfaces.config_store.ConfigStore` en memoria."""

    def __init__(
        self,
        profiles: Sequence[BackendProfile] = (),
        prompts: Sequence[PromptTemplate] = (),
        styles: Sequence[ImageStyle] = (),
    ) -> None:
        self._profiles = list(profiles)
        self._prompts = list(prompts)
        self._styles = list(styles)

    def get_profile(self, profile_id: str) -> BackendProfile | None:
        return next((p for p in self._profiles if p.id == profile_id), None)

    def get_default_profile(self, capability: Capability) -> BackendProfile | None:
        defaults = [p for p in self.list_enabled_profiles(capability) if p.is_default]
        # Si hubiera varios marcados, gana el de capacidad exacta y luego el más reciente.
        defaults.sort(key=lambda p: p.created_at, reverse=True)
        defaults.sort(key=lambda p: p.capability is not capability)
        return defaults[0] if defaults else None

    def list_enabled_profiles(self, capability: Capability) -> list[BackendProfile]:
        return [p for p in self._profiles if p.enabled and p.capability.serves(capability)]

    def list_profiles(self) -> list[BackendProfile]:
        """Orden de listado: defaults primero, luego más recientes."""

        ordered = sorted(self._profiles, key=lambda p: p.created_at, reverse=True)
        ordered.sort(key=lambda p: not p.is_default)
        return ordered

    def get_prompt_template(self, kind: PromptKind, template_id: str | None = None) -> PromptTemplate | None:
        enabled = [t for t in self._prompts if t.enabled and t.kind is kind]
        if template_id:
            explicit = next((t for t in enabled if t.id == template_id), None)
            if explicit is not None:
                return explicit
        defaults = _newest_first(t for t in enabled if t.is_default)
        if defaults:
            return defaults[0]
        remaining = _newest_first(enabled)
        return remaining[0] if remaining else None

    def list_styles(self, style_ids: Sequence[str]) -> list[ImageStyle]:
        by_id = {s.id: s for s in self._styles if s.enabled}
        return [by_id[i] for i in style_ids if i in by_id]


class JsonConfigStore(InMemoryConfigStore):
    """Almacén respaldado por un archivo JSON local."""

    def __init__(self, path: Path) -> None:
        self.path = path
        data = load_config_file(path)
        super().__init__(data.profiles, data.prompts, data.styles)


def load_config_file(path: Path) -> ConfigStoreFile:
    if not path.exists():
        return ConfigStoreFile()
    raw = path.read_text(encoding="utf-8")
    data = json.loads(raw) if raw.strip() else {}
    return ConfigStoreFile.model_validate(data)
