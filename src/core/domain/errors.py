"""Jerarquía de errores del Core.

Por qué una jerarquía propia:
- Adaptadores y poller nunca devuelven strings de error: lanzan tipos concretos
  que el orquestador sabe clasificar (reintentar, sustituir o propagar).
- `error_kind` viaja tal cual al sobre de resultado (`errorKind`), así que los
  valores son parte del contrato con la UI y no deben renombrarse.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from core.domain.models import RecoveryAttempt


def truncate_body(text: str | None, max_chars: int = 200) -> str:
    """Recorta un cuerpo de error del proveedor para mensajes de usuario."""

    if not text:
        return ""
    text = text.strip()
    if len(text) <= max_chars:
        return text
    return text[:max_chars]


class CardForgeError(Exception):
    """Raíz de todos los errores esperables del sistema."""

    error_kind: ClassVar[str] = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        detail: str | None = None,
        message_key: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        # Clave de la tabla de mensajes localizados (core.messages).
        self.message_key = message_key or self.error_kind
        self.params: dict[str, Any] = dict(params or {})

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class ConfigurationUnavailable(CardForgeError):
    """No hay ningún backend habilitado que sirva la capacidad pedida."""

    error_kind = "configuration_unavailable"

    def __init__(self, capability: str) -> None:
        super().__init__(
            f"no backend configured for capability '{capability}'",
            params={"capability": capability},
        )
        self.capability = capability


class ProviderRequestError(CardForgeError):
    """Respuesta no-2xx (o fallo de transporte) de un proveedor."""

    error_kind = "provider_request_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(
            message,
            detail=body or None,
            params={"status": status_code if status_code is not None else "-"},
        )
        self.status_code = status_code
        self.body = body or ""


class ProviderResponseFormatError(CardForgeError):
    """Respuesta 2xx sin los campos esperados."""

    error_kind = "provider_response_format_error"


class AsyncTaskFailed(CardForgeError):
    """El proveedor reportó explícitamente el fallo de una tarea asíncrona."""

    error_kind = "async_task_failed"

    def __init__(self, job_id: str, reason: str) -> None:
        super().__init__(
            f"task {job_id} failed",
            detail=reason,
            params={"job_id": job_id, "reason": reason},
        )
        self.job_id = job_id
        self.reason = reason


class AsyncTaskTimeout(CardForgeError):
    """El sondeo agotó su cota sin alcanzar un estado terminal."""

    error_kind = "async_task_timeout"

    def __init__(self, job_id: str, attempts: int) -> None:
        super().__init__(
            f"task {job_id} still not finished after {attempts} polls",
            params={"job_id": job_id, "attempts": attempts},
        )
        self.job_id = job_id
        self.attempts = attempts


class RecoveryParseError(CardForgeError):
    """Todas las etapas de reparación fallaron."""

    error_kind = "recovery_parse_error"

    def __init__(self, message: str, attempts: list[RecoveryAttempt] | None = None) -> None:
        attempts = list(attempts or [])
        last = attempts[-1].parse_error if attempts else None
        super().__init__(message, detail=last or message)
        self.attempts = attempts


class InvalidRequest(CardForgeError):
    """Payload del llamador inválido (contenido vacío, dirección desconocida...)."""

    error_kind = "invalid_request"

    def __init__(self, reason: str, *, message_key: str | None = None, **params: Any) -> None:
        super().__init__(reason, message_key=message_key, params={"reason": reason, **params})
        self.reason = reason


class OperationCancelled(CardForgeError):
    """Cancelación cooperativa pedida por el llamador."""

    error_kind = "cancelled"

    def __init__(self, message: str = "operation cancelled") -> None:
        super().__init__(message)
