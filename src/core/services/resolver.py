"""Resolución de backend por petición (cadena de respaldo de tres niveles).

Orden (gana la primera coincidencia):
1. `explicit_id`: solo si está habilitado y su capacidad sirve la pedida.
   Si no, se continúa (no es un error inmediato).
2. El perfil por defecto, habilitado y compatible.
3. Cualquier perfil habilitado y compatible, de forma determinista: primero los
   de capacidad exacta, luego el más reciente, empates por id.

Sin reintentos: la falta de configuración no es transitoria.
"""

from __future__ import annotations

import logging

from core.domain.errors import ConfigurationUnavailable
from core.domain.models import BackendConfig, BackendProfile, Capability, ProviderFamily
from core.interfaces.config_store import ConfigStore

logger = logging.getLogger(__name__)

# Vendor -> familia de protocolo. Lo que no aparece aquí habla OpenAI-compatible.
PROVIDER_ALIASES: dict[str, ProviderFamily] = {
    "qwen": ProviderFamily.DASHSCOPE,
    "dashscope": ProviderFamily.DASHSCOPE,
    "aliyun": ProviderFamily.DASHSCOPE,
    "modelscope": ProviderFamily.MODELSCOPE,
}


def provider_family_for(provider: str, base_url: str) -> ProviderFamily:
    family = PROVIDER_ALIASES.get((provider or "").strip().lower())
    if family is not None:
        return family
    if "modelscope.cn" in (base_url or "").lower():
        return ProviderFamily.MODELSCOPE
    return ProviderFamily.OPENAI_COMPATIBLE


def to_backend_config(profile: BackendProfile) -> BackendConfig:
    """Snapshot inmutable de un perfil para una operación."""

    return BackendConfig(
        endpoint_base_url=profile.base_url,
        api_key=profile.api_key,
        model_id=profile.model,
        provider_family=provider_family_for(profile.provider, profile.base_url),
        capability=profile.capability,
        provider=profile.provider,
        config_id=profile.id,
        config_name=profile.name,
        system_prompt=profile.system_prompt,
    )


def _usable(profile: BackendProfile | None, capability: Capability) -> bool:
    return profile is not None and profile.enabled and profile.capability.serves(capability)


def _pick_any(profiles: list[BackendProfile], capability: Capability) -> BackendProfile | None:
    candidates = [p for p in profiles if _usable(p, capability)]
    if not candidates:
        return None
    # Ordenación estable en dos pasadas: id asc, luego más reciente, luego capacidad exacta.
    candidates.sort(key=lambda p: p.id)
    candidates.sort(key=lambda p: p.created_at, reverse=True)
    candidates.sort(key=lambda p: p.capability is not capability)
    return candidates[0]


class ConfigResolver:
    """Elige el backend que servirá una petición."""

    def __init__(self, store: ConfigStore) -> None:
        self._store = store

    def resolve_profile(self, capability: Capability, explicit_id: str | None = None) -> BackendProfile:
        if explicit_id:
            profile = self._store.get_profile(explicit_id)
            if _usable(profile, capability):
                return profile  # type: ignore[return-value]
            logger.warning(
                "Config %s is missing, disabled or cannot serve %s; falling back",
                explicit_id,
                capability.value,
            )

        default = self._store.get_default_profile(capability)
        if _usable(default, capability) and default is not None and default.is_default:
            return default

        chosen = _pick_any(self._store.list_enabled_profiles(capability), capability)
        if chosen is not None:
            return chosen

        raise ConfigurationUnavailable(capability.value)

    def resolve(self, capability: Capability, explicit_id: str | None = None) -> BackendConfig:
        """`Resolve(capability, explicitId?) -> BackendConfig | ConfigurationUnavailable`."""

        profile = self.resolve_profile(capability, explicit_id)
        cfg = to_backend_config(profile)
        logger.info(
            "Resolved %s backend: %s (model=%s, family=%s)",
            capability.value,
            cfg.label,
            cfg.model_id,
            cfg.provider_family.value,
        )
        return cfg
