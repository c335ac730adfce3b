"""Adaptador OpenAI-compatible (chat + `/images/generations` síncrono).

El cuerpo de la petición de imagen varía por vendor; en lugar de ramas `if`
por nombre hay un registro de builders. Añadir un vendor = añadir una entrada.
"""

from __future__ import annotations

from typing import Any, Callable

from core.config import AppSettings
from core.domain.errors import ProviderResponseFormatError
from core.domain.models import BackendConfig, ImageSubmission

from adapters.providers.base import BaseProvider, dig

ImageBodyBuilder = Callable[[BackendConfig, str, str, AppSettings], dict[str, Any]]


def _openai_body(cfg: BackendConfig, prompt: str, size: str, settings: AppSettings) -> dict[str, Any]:
    return {"model": cfg.model_id, "prompt": prompt, "n": 1, "size": size, "response_format": "url"}


def _siliconflow_body(cfg: BackendConfig, prompt: str, size: str, settings: AppSettings) -> dict[str, Any]:
    return {
        "model": cfg.model_id,
        "prompt": prompt,
        "n": 1,
        "image_size": size,
        "num_inference_steps": settings.inference_steps,
    }


def _zhipu_body(cfg: BackendConfig, prompt: str, size: str, settings: AppSettings) -> dict[str, Any]:
    return {"model": cfg.model_id, "prompt": prompt, "n": 1, "size": size}


IMAGE_BODY_BUILDERS: dict[str, ImageBodyBuilder] = {
    "openai": _openai_body,
    "azure": _openai_body,
    "siliconflow": _siliconflow_body,
    "zhipu": _zhipu_body,
}


def build_image_body(cfg: BackendConfig, prompt: str, size: str, settings: AppSettings) -> dict[str, Any]:
    builder = IMAGE_BODY_BUILDERS.get(cfg.provider, _openai_body)
    return builder(cfg, prompt, size, settings)


def extract_image_url(data: dict[str, Any]) -> str | None:
    """URL de imagen en el primer campo conocido que la tenga.

    Orden: `data[0].url`, `images[0].url`, `data[0].b64_json` (como `data:` URL),
    `output.url`.
    """

    url = dig(data, "data", 0, "url")
    if isinstance(url, str) and url:
        return url
    url = dig(data, "images", 0, "url")
    if isinstance(url, str) and url:
        return url
    b64 = dig(data, "data", 0, "b64_json")
    if isinstance(b64, str) and b64:
        return f"data:image/png;base64,{b64}"
    url = dig(data, "output", "url")
    if isinstance(url, str) and url:
        return url
    return None


class OpenAICompatibleProvider(BaseProvider):
    family_label = "openai-compatible"

    async def submit_image(self, cfg: BackendConfig, prompt: str, *, size: str | None = None) -> ImageSubmission:
        body = build_image_body(cfg, prompt, size or self._settings.image_size, self._settings)
        data = await self._request_json(
            "POST",
            cfg.endpoint("images/generations"),
            cfg,
            body=body,
            action="image generation",
        )
        url = extract_image_url(data)
        if not url:
            raise ProviderResponseFormatError(
                "image response has no url/b64_json in any known field",
                detail=str(sorted(data.keys()))[: self._settings.error_body_max_chars],
            )
        return ImageSubmission(image_url=url)
