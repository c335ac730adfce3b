"""Exportación JSON de tarjetas.

Por qué JSON:
- Es lo que consume el renderizador de canvas del cliente.
- Permite reanudar el flujo (`image-prompts`) desde un esquema guardado.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from core.domain.models import CardRecord
from core.services.recovery import normalize_cards


def export_cards_json(*, cards: Sequence[CardRecord], output_path: Path) -> Path:
    """Exporta tarjetas a JSON UTF-8 (claves camelCase) con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"cards": [card.model_dump(mode="json", by_alias=True) for card in cards]}
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2) + "\n",
        encoding="utf-8",
    )
    return output_path


def load_cards_json(path: Path) -> list[CardRecord]:
    """Lee un archivo exportado (o un array plano / `{"outline": [...]}`)."""

    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("cards") or data.get("outline") or []
    if not isinstance(data, list):
        return []
    return normalize_cards(data)
