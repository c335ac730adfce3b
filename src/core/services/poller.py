"""Bucle genérico de sondeo para tareas asíncronas de proveedor.

Reglas:
- Intervalo fijo (sin backoff exponencial): los proveedores resuelven en una
  ventana pequeña y la cota solo limita recursos.
- Una llamada de estado por intento. Un error en esa llamada aborta el bucle
  (no consume presupuesto de reintentos).
- Agotar `max_attempts` es `AsyncTaskTimeout`, distinto de `AsyncTaskFailed`.
- Cancelación cooperativa vía `asyncio.Event`; la cancelación de la tarea
  (`CancelledError`) se propaga sola a través del sleep y del HTTP.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from core.config import AppSettings
from core.domain.errors import AsyncTaskTimeout, OperationCancelled
from core.domain.models import AsyncJob, JobStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _wait(interval: float, cancel_event: asyncio.Event | None) -> None:
    if cancel_event is None:
        await asyncio.sleep(interval)
        return
    if cancel_event.is_set():
        raise OperationCancelled()
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=interval)
    except asyncio.TimeoutError:
        return
    raise OperationCancelled()


class JobPoller:
    """`Poll(pollFn, isTerminal, interval, maxAttempts) -> TerminalResult | Timeout`."""

    def __init__(self, *, interval: float = 2.0, max_attempts: int = 60) -> None:
        self.interval = interval
        self.max_attempts = max_attempts

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "JobPoller":
        return cls(interval=settings.poll_interval_seconds, max_attempts=settings.poll_max_attempts)

    async def poll(
        self,
        poll_fn: Callable[[], Awaitable[T]],
        is_terminal: Callable[[T], bool],
        *,
        interval: float | None = None,
        max_attempts: int | None = None,
        cancel_event: asyncio.Event | None = None,
        job: AsyncJob | None = None,
    ) -> T:
        interval = self.interval if interval is None else interval
        max_attempts = self.max_attempts if max_attempts is None else max_attempts
        job_id = job.job_id if job else "-"

        for attempt in range(1, max_attempts + 1):
            # Los proveedores nunca terminan al instante: se espera antes de cada consulta.
            await _wait(interval, cancel_event)
            value = await poll_fn()

            status = getattr(value, "status", None)
            if job is not None and isinstance(status, JobStatus):
                job.status = status
            logger.debug(
                "Poll %s attempt %d/%d -> %s",
                job_id,
                attempt,
                max_attempts,
                status.value if isinstance(status, JobStatus) else "snapshot",
            )

            if is_terminal(value):
                return value

        if job is not None:
            job.status = JobStatus.TIMED_OUT
        raise AsyncTaskTimeout(job_id, max_attempts)
