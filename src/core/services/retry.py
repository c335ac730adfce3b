"""Combinador de reintento explícito.

Solo se usa donde el flujo lo pide (esquema y prompts rápidos): una salida mal
formada suele resolverse con una muestra nueva del modelo, no con más
reparación local. No es un wrapper genérico para todas las llamadas.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from core.domain.errors import CardForgeError, RecoveryParseError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    attempts: int,
    operation: Callable[[int], Awaitable[T]],
    *,
    retry_on: tuple[type[CardForgeError], ...] = (RecoveryParseError,),
    label: str = "operation",
) -> T:
    """Ejecuta `operation(attempt)` hasta `attempts` veces totales.

    Solo los errores de `retry_on` provocan otro intento; el último se relanza.
    """

    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    for attempt in range(1, attempts + 1):
        try:
            return await operation(attempt)
        except retry_on as exc:
            if attempt >= attempts:
                raise
            logger.warning("%s attempt %d/%d failed (%s); retrying", label, attempt, attempts, exc)
    raise AssertionError("unreachable")
