"""Base común de los adaptadores de proveedor.

Responsabilidad:
- `complete_text` vía SDK OpenAI (todas las familias exponen un endpoint
  `/chat/completions` compatible).
- Helpers HTTP crudos (httpx) para envío y sondeo de imágenes, con errores
  tipados por status + cuerpo recortado.
- `generate_image` = `submit_image` + sondeo con `JobPoller` cuando el
  proveedor responde con una tarea en lugar de una URL.
"""

from __future__ import annotations

import abc
import asyncio
import logging
from typing import Any, Sequence

import httpx
from openai import APIConnectionError, APIError, APIStatusError, APITimeoutError, AsyncOpenAI

from core.config import AppSettings
from core.domain.errors import (
    AsyncTaskFailed,
    ProviderRequestError,
    ProviderResponseFormatError,
    truncate_body,
)
from core.domain.models import (
    AsyncJob,
    BackendConfig,
    ChatMessage,
    ImageSubmission,
    JobStatus,
    TaskSnapshot,
)
from core.services.poller import JobPoller

logger = logging.getLogger(__name__)


def dig(data: Any, *path: str | int) -> Any:
    """Acceso tolerante a `data[a][b][0]...`; `None` si algo no existe."""

    current = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or len(current) <= key:
                return None
            current = current[key]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(key)
        if current is None:
            return None
    return current


class BaseProvider(abc.ABC):
    """Comportamiento compartido; las subclases definen el dialecto de imagen."""

    family_label = "provider"

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        settings: AppSettings | None = None,
        poller: JobPoller | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or AppSettings()
        self._poller = poller or JobPoller.from_settings(self._settings)

    # ------------------------------------------------------------------
    # Texto
    # ------------------------------------------------------------------

    def chat_base_url(self, cfg: BackendConfig) -> str:
        """Base del endpoint OpenAI-compatible de chat para este proveedor."""

        return cfg.endpoint_base_url

    def _openai_client(self, cfg: BackendConfig) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=cfg.api_key or "none",
            base_url=self.chat_base_url(cfg),
            http_client=self._client,
            timeout=self._settings.http_timeout_seconds,
            max_retries=0,
        )

    async def complete_text(
        self,
        cfg: BackendConfig,
        messages: Sequence[ChatMessage],
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        params: dict[str, Any] = {}
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        if temperature is not None:
            params["temperature"] = temperature

        max_chars = self._settings.error_body_max_chars
        try:
            response = await self._openai_client(cfg).chat.completions.create(
                model=cfg.model_id,
                messages=[m.model_dump() for m in messages],  # type: ignore[misc]
                **params,
            )
        except APIStatusError as exc:
            raise ProviderRequestError(
                f"chat completion failed ({exc.status_code})",
                status_code=exc.status_code,
                body=truncate_body(exc.response.text, max_chars),
            ) from exc
        except (APITimeoutError, APIConnectionError) as exc:
            raise ProviderRequestError(
                "chat completion transport error",
                body=truncate_body(str(exc), max_chars),
            ) from exc
        except APIError as exc:
            raise ProviderResponseFormatError(
                "chat completion returned an unreadable body",
                detail=truncate_body(str(exc), max_chars),
            ) from exc

        # El SDK construye la respuesta sin validación estricta: se lee con cuidado.
        choices = getattr(response, "choices", None) or []
        message = getattr(choices[0], "message", None) if choices else None
        content = getattr(message, "content", None)
        if not isinstance(content, str):
            raise ProviderResponseFormatError("chat completion without choices[0].message.content")
        return content

    # ------------------------------------------------------------------
    # HTTP crudo (imágenes)
    # ------------------------------------------------------------------

    def _auth_headers(self, cfg: BackendConfig, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {cfg.api_key}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request_json(
        self,
        method: str,
        url: str,
        cfg: BackendConfig,
        *,
        body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        action: str = "request",
    ) -> dict[str, Any]:
        max_chars = self._settings.error_body_max_chars
        try:
            response = await self._client.request(
                method,
                url,
                json=body,
                headers=self._auth_headers(cfg, headers),
                timeout=self._settings.image_timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise ProviderRequestError(
                f"{self.family_label} {action} transport error",
                body=truncate_body(str(exc) or type(exc).__name__, max_chars),
            ) from exc

        if not response.is_success:
            raise ProviderRequestError(
                f"{self.family_label} {action} failed ({response.status_code})",
                status_code=response.status_code,
                body=truncate_body(response.text, max_chars),
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderResponseFormatError(
                f"{self.family_label} {action} returned non-JSON",
                detail=truncate_body(response.text, max_chars),
            ) from exc
        if not isinstance(data, dict):
            raise ProviderResponseFormatError(f"{self.family_label} {action} returned a non-object body")
        return data

    # ------------------------------------------------------------------
    # Imagen
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def submit_image(self, cfg: BackendConfig, prompt: str, *, size: str | None = None) -> ImageSubmission:
        """Envía la generación: URL síncrona o tarea a sondear."""

    async def fetch_status(self, cfg: BackendConfig, job: AsyncJob) -> TaskSnapshot:
        """Solo los dialectos asíncronos consultan el estado de una tarea."""

        raise NotImplementedError(f"{self.family_label} has no async task endpoint")

    async def generate_image(
        self,
        cfg: BackendConfig,
        prompt: str,
        *,
        size: str | None = None,
        cancel_event: asyncio.Event | None = None,
        job: AsyncJob | None = None,
    ) -> str:
        submission = await self.submit_image(cfg, prompt, size=size)
        if submission.image_url:
            return submission.image_url
        if submission.job is None:
            raise ProviderResponseFormatError(f"{self.family_label} submit returned neither URL nor task")

        task = submission.job
        if job is not None:
            # El llamador observa el estado a través de su propio objeto.
            job.job_id = task.job_id
            job.poll_url = task.poll_url
            task = job
        logger.info("%s task %s submitted; polling", self.family_label, task.job_id)

        snapshot = await self._poller.poll(
            lambda: self.fetch_status(cfg, task),
            lambda s: s.status.is_terminal,
            cancel_event=cancel_event,
            job=task,
        )
        if snapshot.status is JobStatus.SUCCEEDED:
            if snapshot.image_url:
                return snapshot.image_url
            raise ProviderResponseFormatError(f"{self.family_label} task {task.job_id} succeeded without image URL")
        raise AsyncTaskFailed(task.job_id, snapshot.message or "unknown error")
