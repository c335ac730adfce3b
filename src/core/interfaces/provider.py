"""Contrato de adaptadores de proveedor IA.

Reglas de diseño:
- Un adaptador por familia de protocolo (OpenAI-compatible, DashScope, ModelScope).
- `generate_image` = `submit_image` + sondeo; la prueba de conexión usa solo el envío.
- Los errores se lanzan tipados (`core.domain.errors`); nunca se devuelven strings.
"""

from __future__ import annotations

import asyncio
from typing import Protocol, Sequence, runtime_checkable

from core.domain.models import AsyncJob, BackendConfig, ChatMessage, ImageSubmission


@runtime_checkable
class ProviderAdapter(Protocol):
    async def complete_text(
        self,
        cfg: BackendConfig,
        messages: Sequence[ChatMessage],
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Devuelve el texto del asistente (`choices[0].message.content`)."""

        ...

    async def submit_image(self, cfg: BackendConfig, prompt: str, *, size: str | None = None) -> ImageSubmission:
        """Envía el trabajo: URL inmediata o `AsyncJob` a sondear."""

        ...

    async def generate_image(
        self,
        cfg: BackendConfig,
        prompt: str,
        *,
        size: str | None = None,
        cancel_event: asyncio.Event | None = None,
        job: AsyncJob | None = None,
    ) -> str:
        """Devuelve la URL final de la imagen (http(s) o `data:`)."""

        ...
