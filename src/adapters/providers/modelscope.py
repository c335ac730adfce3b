"""Adaptador ModelScope: `/v1/images/generations` en modo asíncrono.

El proveedor a veces responde de forma síncrona con la URL ya lista; en ese
caso no hay tarea que sondear.
"""

from __future__ import annotations

from typing import Any

from core.domain.errors import ProviderResponseFormatError
from core.domain.models import AsyncJob, BackendConfig, ImageSubmission, JobStatus, TaskSnapshot

from adapters.providers.base import BaseProvider, dig

_STATUS_MAP: dict[str, JobStatus] = {
    "PENDING": JobStatus.PENDING,
    "RUNNING": JobStatus.RUNNING,
    "PROCESSING": JobStatus.RUNNING,
    "SUCCEED": JobStatus.SUCCEEDED,
    "FAILED": JobStatus.FAILED,
}


def _modelscope_url(data: dict[str, Any], *, prefer_output_images: bool) -> str | None:
    first = dig(data, "output_images", 0)
    second = dig(data, "data", 0, "url")
    ordered = (first, second) if prefer_output_images else (second, first)
    for candidate in ordered:
        if isinstance(candidate, str) and candidate:
            return candidate
    return None


class ModelScopeProvider(BaseProvider):
    family_label = "modelscope"

    def _api_base(self, cfg: BackendConfig) -> str:
        base = cfg.endpoint_base_url.rstrip("/")
        return base[: -len("/v1")] if base.endswith("/v1") else base

    def chat_base_url(self, cfg: BackendConfig) -> str:
        return f"{self._api_base(cfg)}/v1"

    async def submit_image(self, cfg: BackendConfig, prompt: str, *, size: str | None = None) -> ImageSubmission:
        base = self._api_base(cfg)
        data = await self._request_json(
            "POST",
            f"{base}/v1/images/generations",
            cfg,
            body={"model": cfg.model_id, "prompt": prompt},
            headers={"X-ModelScope-Async-Mode": "true"},
            action="image submit",
        )
        task_id = data.get("task_id")
        if task_id:
            return ImageSubmission(job=AsyncJob(job_id=str(task_id), poll_url=f"{base}/v1/tasks/{task_id}"))

        url = _modelscope_url(data, prefer_output_images=False)
        if url:
            return ImageSubmission(image_url=url)
        raise ProviderResponseFormatError(
            "modelscope submit returned neither task_id nor image URL",
            detail=str(data)[: self._settings.error_body_max_chars],
        )

    async def fetch_status(self, cfg: BackendConfig, job: AsyncJob) -> TaskSnapshot:
        data = await self._request_json(
            "GET",
            job.poll_url,
            cfg,
            headers={"X-ModelScope-Task-Type": "image_generation"},
            action="task status",
        )
        raw_status = str(data.get("task_status") or "").upper()
        message = data.get("message")
        return TaskSnapshot(
            status=_STATUS_MAP.get(raw_status, JobStatus.RUNNING),
            image_url=_modelscope_url(data, prefer_output_images=True),
            message=message if isinstance(message, str) else None,
            raw=data,
        )
