"""Adaptadores de proveedor IA (uno por familia de protocolo).

Por qué un registro:
- El orquestador elige adaptador por `BackendConfig.provider_family`.
- Añadir un proveedor es añadir una clase y una entrada, no otra rama `if`.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings
from core.domain.models import ProviderFamily
from core.services.poller import JobPoller

from adapters.providers.base import BaseProvider
from adapters.providers.dashscope import DashScopeProvider
from adapters.providers.modelscope import ModelScopeProvider
from adapters.providers.openai_compatible import OpenAICompatibleProvider

PROVIDER_REGISTRY: dict[ProviderFamily, type[BaseProvider]] = {
    ProviderFamily.OPENAI_COMPATIBLE: OpenAICompatibleProvider,
    ProviderFamily.DASHSCOPE: DashScopeProvider,
    ProviderFamily.MODELSCOPE: ModelScopeProvider,
}


def get_provider(
    family: ProviderFamily,
    *,
    client: httpx.AsyncClient,
    settings: AppSettings | None = None,
    poller: JobPoller | None = None,
) -> BaseProvider:
    provider_cls = PROVIDER_REGISTRY.get(family, OpenAICompatibleProvider)
    return provider_cls(client=client, settings=settings, poller=poller)


__all__ = [
    "PROVIDER_REGISTRY",
    "BaseProvider",
    "DashScopeProvider",
    "ModelScopeProvider",
    "OpenAICompatibleProvider",
    "get_provider",
]
