"""Recuperación de salida estructurada (arrays JSON de tarjetas) desde texto libre.

Etapas (cada una solo si la anterior no parsea):
1. Extracción: primer bloque ``` ```; si no hay, primera región `{...}`/`[...]`
   balanceada y, como último recurso, la región greedy por regex.
2. Limpieza de bytes de control (se conservan `\\n`, `\\r`, `\\t`).
3. `json.loads`; si falla, se re-escapan saltos de línea/tabs literales dentro
   de strings JSON (error típico de los modelos).
4. Reparación dirigida de `imagePrompt`: comillas internas -> apóstrofos y
   espacios re-escapados, con una regex acotada entre el campo y el siguiente
   campo conocido.
5. Si todo falla: `RecoveryParseError` con el historial de intentos. El
   reintento de la llamada completa lo decide el orquestador, no este módulo.

La forma del JSON se resuelve con una lista ordenada y explícita de matchers
(`Found | NotFound`), sin recorrer el objeto por reflexión.
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Sequence, Union

from core.domain.errors import RecoveryParseError
from core.domain.models import (
    CardPoint,
    CardRecord,
    QuickPrompt,
    RecoveryAttempt,
    RecoveryResult,
    RepairStage,
)
from core.services.card_templates import synthesize_image_prompt

logger = logging.getLogger(__name__)

DEFAULT_POINT_EMOJI = "🔹"

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_GREEDY_RE = re.compile(r"(\{[\s\S]*\}|\[[\s\S]*\])")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

# Campos que pueden seguir a un prompt dentro de un objeto tarjeta/prompt.
KNOWN_FIELDS = (
    "id",
    "pageNumber",
    "pageType",
    "title",
    "subtitle",
    "content",
    "points",
    "imagePrompt",
    "imagePromptExplain",
    "imagePromptAutoGenerated",
    "emoji",
    "label",
    "detail",
    "angle",
    "angleDescription",
    "prompt",
    "contentBasis",
    "edited",
)
_REPAIR_WINDOW = 4000


# ---------------------------------------------------------------------------
# Etapa 1: extracción
# ---------------------------------------------------------------------------


def _balanced_region(text: str) -> str | None:
    """Primera región `{...}` o `[...]` balanceada, respetando strings JSON."""

    start = -1
    for i, ch in enumerate(text):
        if ch in "{[":
            start = i
            break
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def extract_json_candidates(raw_text: str) -> list[str]:
    """Candidatos de texto JSON, en orden de preferencia y sin duplicados."""

    fenced = _FENCE_RE.search(raw_text)
    if fenced:
        return [fenced.group(1).strip()]

    candidates: list[str] = []
    balanced = _balanced_region(raw_text)
    if balanced:
        candidates.append(balanced.strip())
    greedy = _GREEDY_RE.search(raw_text)
    if greedy:
        candidates.append(greedy.group(1).strip())
    if not candidates:
        candidates.append(raw_text.strip())

    seen: set[str] = set()
    unique: list[str] = []
    for c in candidates:
        if c not in seen:
            seen.add(c)
            unique.append(c)
    return unique


# ---------------------------------------------------------------------------
# Etapas 2-4: limpieza y reparación
# ---------------------------------------------------------------------------


def strip_control_chars(text: str) -> str:
    return _CONTROL_RE.sub("", text)


def escape_newlines_in_strings(text: str) -> str:
    """Escapa `\\n`, `\\r`, `\\t` literales que aparezcan dentro de strings JSON."""

    out: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            elif ch == "\n":
                out.append("\\n")
                continue
            elif ch == "\r":
                out.append("\\r")
                continue
            elif ch == "\t":
                out.append("\\t")
                continue
        elif ch == '"':
            in_string = True
        out.append(ch)
    return "".join(out)


def _field_repair_re(field: str) -> re.Pattern[str]:
    followers = "|".join(re.escape(f) for f in KNOWN_FIELDS)
    return re.compile(
        rf'("{re.escape(field)}"\s*:\s*")(.{{0,{_REPAIR_WINDOW}}}?)("(?=\s*,\s*"(?:{followers})"\s*:|\s*\}}))',
        re.DOTALL,
    )


def repair_prompt_field(text: str, field: str = "imagePrompt") -> str:
    """Sanea el valor de `field`: comillas internas -> `'`, espacios re-escapados."""

    pattern = _field_repair_re(field)

    def _fix(match: re.Match[str]) -> str:
        inner = match.group(2)
        inner = inner.replace('\\"', "'")
        inner = inner.replace('"', "'")
        inner = inner.replace("\r", "\\r").replace("\n", "\\n").replace("\t", "\\t")
        return f"{match.group(1)}{inner}{match.group(3)}"

    return pattern.sub(_fix, text)


def parse_json_with_repairs(
    raw_text: str,
    *,
    repair_fields: Sequence[str] = ("imagePrompt",),
) -> tuple[Any, list[RecoveryAttempt]]:
    """Ejecuta las etapas de extracción/reparación hasta que una parsea."""

    attempts: list[RecoveryAttempt] = []

    for candidate in extract_json_candidates(raw_text):
        cleaned = strip_control_chars(candidate)

        stages: list[tuple[RepairStage, Callable[[str], str]]] = [
            (RepairStage.DIRECT, lambda s: s),
            (RepairStage.ESCAPE_NEWLINES, escape_newlines_in_strings),
        ]
        if any(f'"{field}"' in cleaned for field in repair_fields):

            def _repair(s: str) -> str:
                for field in repair_fields:
                    s = repair_prompt_field(s, field)
                return escape_newlines_in_strings(s)

            stages.append((RepairStage.IMAGE_PROMPT_REPAIR, _repair))

        for stage, transform in stages:
            text = transform(cleaned)
            try:
                value = json.loads(text)
            except json.JSONDecodeError as exc:
                attempts.append(
                    RecoveryAttempt(
                        raw_text=raw_text,
                        extracted_json_text=text,
                        repair_stage=stage,
                        parse_error=f"{stage.value}: {exc.msg} (line {exc.lineno}, col {exc.colno})",
                    )
                )
                logger.debug("Recovery stage %s failed: %s", stage.value, exc.msg)
                continue
            attempts.append(
                RecoveryAttempt(raw_text=raw_text, extracted_json_text=text, repair_stage=stage)
            )
            if stage is not RepairStage.DIRECT:
                logger.debug("Recovered JSON at stage %s", stage.value)
            return value, attempts

    raise RecoveryParseError("could not parse structured output", attempts)


# ---------------------------------------------------------------------------
# Forma: matchers explícitos y ordenados
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Found:
    path: str
    items: list[Any]


@dataclass(frozen=True)
class NotFound:
    reason: str


ShapeMatch = Union[Found, NotFound]
ShapeMatcher = Callable[[Any], ShapeMatch]


def top_level_array(value: Any) -> ShapeMatch:
    if isinstance(value, list):
        return Found("$", value)
    return NotFound("top level is not an array")


def array_at(key: str) -> ShapeMatcher:
    def _matcher(value: Any) -> ShapeMatch:
        if isinstance(value, dict) and isinstance(value.get(key), list):
            return Found(f"$.{key}", value[key])
        return NotFound(f"no array at '{key}'")

    _matcher.__name__ = f"array_at_{key}"
    return _matcher


def first_array_property(value: Any) -> ShapeMatch:
    if isinstance(value, dict):
        for key, item in value.items():
            if isinstance(item, list):
                return Found(f"$.{key}", item)
    return NotFound("no array-valued property")


CARD_SHAPES: tuple[ShapeMatcher, ...] = (
    top_level_array,
    array_at("cards"),
    array_at("outline"),
    array_at("pages"),
    array_at("data"),
    array_at("items"),
    first_array_property,
)

QUICK_PROMPT_SHAPES: tuple[ShapeMatcher, ...] = (
    top_level_array,
    array_at("prompts"),
    array_at("data"),
    array_at("items"),
    array_at("images"),
    first_array_property,
)


def match_shape(value: Any, matchers: Sequence[ShapeMatcher]) -> ShapeMatch:
    reasons: list[str] = []
    for matcher in matchers:
        result = matcher(value)
        if isinstance(result, Found):
            return result
        reasons.append(result.reason)
    return NotFound("; ".join(reasons))


def recover_array(
    raw_text: str,
    shapes: Sequence[ShapeMatcher] = CARD_SHAPES,
    *,
    repair_fields: Sequence[str] = ("imagePrompt",),
) -> RecoveryResult:
    """Texto libre -> lista de elementos JSON (aún sin normalizar)."""

    value, attempts = parse_json_with_repairs(raw_text, repair_fields=repair_fields)
    match = match_shape(value, shapes)
    if isinstance(match, NotFound):
        raise RecoveryParseError(f"no array found in structured output ({match.reason})", attempts)
    if not match.items:
        raise RecoveryParseError(f"empty array at {match.path}", attempts)
    return RecoveryResult(items=match.items, shape=match.path, attempts=attempts)


# ---------------------------------------------------------------------------
# Normalización de tarjetas
# ---------------------------------------------------------------------------


def _pick(item: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in item and item[key] is not None:
            return item[key]
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float) and value.is_integer():
        return int(value) if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
        return number if number > 0 else None
    return None


def _coerce_point(value: Any) -> CardPoint | None:
    if isinstance(value, str):
        label = value.strip()
        return CardPoint(emoji=DEFAULT_POINT_EMOJI, label=label) if label else None
    if not isinstance(value, dict):
        return None
    emoji = _text(_pick(value, "emoji", "icon")) or DEFAULT_POINT_EMOJI
    label = _text(_pick(value, "label", "title", "name", "text"))
    detail = _text(_pick(value, "detail", "description", "desc", "content"))
    return CardPoint(emoji=emoji, label=label, detail=detail)


def _as_dict(item: Any) -> dict[str, Any]:
    if isinstance(item, dict):
        return item
    if isinstance(item, str):
        return {"title": item}
    return {}


def _page_numbers(items: list[dict[str, Any]]) -> list[int]:
    explicit = [_positive_int(_pick(item, "pageNumber", "page_number", "page")) for item in items]
    valid = [n for n in explicit if n is not None]
    if len(valid) == len(items) and len(set(valid)) == len(valid):
        return valid  # type: ignore[return-value]
    # Faltan, son inválidos o se repiten: se numera por posición para garantizar unicidad.
    return list(range(1, len(items) + 1))


def normalize_cards(items: Sequence[Any]) -> list[CardRecord]:
    dicts = [_as_dict(item) for item in items]
    numbers = _page_numbers(dicts)

    cards: list[CardRecord] = []
    for item, page_number in zip(dicts, numbers):
        raw_points = _pick(item, "points", "bullets")
        points = [p for p in (_coerce_point(v) for v in raw_points) if p] if isinstance(raw_points, list) else []

        page_type = _text(_pick(item, "pageType", "page_type", "type")) or "concept"
        title = _text(item.get("title"))
        subtitle = _text(item.get("subtitle"))

        image_prompt = _text(_pick(item, "imagePrompt", "image_prompt"))
        synthesized = not image_prompt
        if synthesized:
            image_prompt = synthesize_image_prompt(page_type, title, subtitle, [p.label for p in points])

        raw_id = item.get("id")
        cards.append(
            CardRecord(
                id=_text(raw_id) or None,
                page_number=page_number,
                page_type=page_type,
                title=title,
                subtitle=subtitle,
                content=_text(item.get("content")),
                points=points,
                image_prompt=image_prompt,
                image_prompt_explain=_text(_pick(item, "imagePromptExplain", "image_prompt_explain")),
                image_prompt_auto_generated=bool(_pick(item, "imagePromptAutoGenerated")) or synthesized,
            )
        )
    return cards


def recover_cards(raw_text: str) -> list[CardRecord]:
    """`Recover(rawModelText) -> CardRecord[] | RecoveryParseError`."""

    result = recover_array(raw_text, CARD_SHAPES, repair_fields=("imagePrompt",))
    cards = normalize_cards(result.items)
    backfilled = sum(1 for c in cards if c.image_prompt_auto_generated)
    logger.debug("Recovered %d cards from %s (%d prompts synthesized)", len(cards), result.shape, backfilled)
    return cards


def normalize_quick_prompts(items: Sequence[Any], *, id_prefix: str | None = None) -> list[QuickPrompt]:
    prefix = id_prefix or f"quick-{int(time.time() * 1000)}"
    prompts: list[QuickPrompt] = []
    for index, item in enumerate(items):
        data = item if isinstance(item, dict) else {"prompt": item if isinstance(item, str) else ""}
        prompts.append(
            QuickPrompt(
                id=f"{prefix}-{index}",
                angle=_text(data.get("angle")) or f"知识点{index + 1}",
                angle_description=_text(_pick(data, "angleDescription", "angle_description")),
                prompt=_text(data.get("prompt")),
                content_basis=_text(_pick(data, "contentBasis", "content_basis")),
                edited=False,
            )
        )
    return prompts


def recover_quick_prompts(raw_text: str, *, id_prefix: str | None = None) -> list[QuickPrompt]:
    result = recover_array(raw_text, QUICK_PROMPT_SHAPES, repair_fields=("prompt", "imagePrompt"))
    return normalize_quick_prompts(result.items, id_prefix=id_prefix)
