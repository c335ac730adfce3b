"""Adaptador DashScope (Alibaba Cloud): text2image asíncrono.

- Envío con `X-DashScope-Async: enable` a `services/aigc/text2image/image-synthesis`.
- Sondeo de `tasks/{task_id}` hasta `SUCCEEDED` / `FAILED`.
- Los modelos `image-edit` requieren imagen de entrada: se rechazan sin enviar.
"""

from __future__ import annotations

from typing import Any

from core.domain.errors import InvalidRequest, ProviderResponseFormatError
from core.domain.models import AsyncJob, BackendConfig, ImageSubmission, JobStatus, TaskSnapshot

from adapters.providers.base import BaseProvider, dig

_STATUS_MAP: dict[str, JobStatus] = {
    "PENDING": JobStatus.PENDING,
    "RUNNING": JobStatus.RUNNING,
    "SUCCEEDED": JobStatus.SUCCEEDED,
    "FAILED": JobStatus.FAILED,
    "CANCELED": JobStatus.FAILED,
}


def reject_image_edit_model(cfg: BackendConfig) -> None:
    if "image-edit" in cfg.model_id:
        raise InvalidRequest(
            f"model {cfg.model_id} is an image-edit model and needs an input image",
            message_key="image_edit_unsupported",
            model=cfg.model_id,
        )


class DashScopeProvider(BaseProvider):
    family_label = "dashscope"

    def chat_base_url(self, cfg: BackendConfig) -> str:
        # La API nativa vive en /api/v1; el chat compatible en /compatible-mode/v1.
        return cfg.endpoint_base_url.replace("/api/v1", "/compatible-mode/v1")

    def build_submit_body(self, cfg: BackendConfig, prompt: str, size: str | None = None) -> dict[str, Any]:
        return {
            "model": cfg.model_id,
            "input": {"prompt": prompt},
            "parameters": {"size": size or self._settings.dashscope_image_size, "n": 1},
        }

    async def submit_image(self, cfg: BackendConfig, prompt: str, *, size: str | None = None) -> ImageSubmission:
        reject_image_edit_model(cfg)
        data = await self._request_json(
            "POST",
            cfg.endpoint("services/aigc/text2image/image-synthesis"),
            cfg,
            body=self.build_submit_body(cfg, prompt, size),
            headers={"X-DashScope-Async": "enable"},
            action="image submit",
        )
        task_id = dig(data, "output", "task_id")
        if not task_id:
            raise ProviderResponseFormatError(
                "dashscope submit returned no output.task_id",
                detail=str(data)[: self._settings.error_body_max_chars],
            )
        return ImageSubmission(job=AsyncJob(job_id=str(task_id), poll_url=cfg.endpoint(f"tasks/{task_id}")))

    async def fetch_status(self, cfg: BackendConfig, job: AsyncJob) -> TaskSnapshot:
        data = await self._request_json("GET", job.poll_url, cfg, action="task status")
        raw_status = str(dig(data, "output", "task_status") or "").upper()
        status = _STATUS_MAP.get(raw_status, JobStatus.RUNNING)
        url = dig(data, "output", "results", 0, "url")
        return TaskSnapshot(
            status=status,
            image_url=url if isinstance(url, str) and url else None,
            message=dig(data, "output", "message"),
            raw=data,
        )
