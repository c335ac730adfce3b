"""Contrato del almacén de configuración.

Por qué Protocol:
- El Core solo lee: perfiles de backend, plantillas de prompt y estilos.
- La escritura (CRUD admin) es de otro colaborador; aquí no existe.
- Permite sustituir el almacén (JSON, memoria, base de datos) sin tocar servicios.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from core.domain.models import BackendProfile, Capability, ImageStyle, PromptKind, PromptTemplate


@runtime_checkable
class ConfigStore(Protocol):
    """Lecturas que necesitan el resolver y el orquestador."""

    def get_profile(self, profile_id: str) -> BackendProfile | None:
        """Perfil por id, sin filtrar por estado ni capacidad."""

        ...

    def get_default_profile(self, capability: Capability) -> BackendProfile | None:
        """Perfil por defecto, habilitado y compatible con `capability`."""

        ...

    def list_enabled_profiles(self, capability: Capability) -> list[BackendProfile]:
        """Perfiles habilitados compatibles con `capability`."""

        ...

    def list_profiles(self) -> list[BackendProfile]:
        """Todos los perfiles (para listados en la CLI)."""

        ...

    def get_prompt_template(self, kind: PromptKind, template_id: str | None = None) -> PromptTemplate | None:
        """Plantilla con la misma cadena de respaldo que los perfiles."""

        ...

    def list_styles(self, style_ids: Sequence[str]) -> list[ImageStyle]:
        """Estilos habilitados entre `style_ids`, en el orden pedido."""

        ...
