"""Síntesis determinista de `imagePrompt` cuando el modelo lo omite.

Cada `pageType` tiene su plantilla de composición; se sustituyen título,
subtítulo y etiquetas de los puntos y se añaden sufijos fijos de tipografía,
color y calidad. Tipos desconocidos usan la plantilla `concept`.
"""

from __future__ import annotations

from typing import Sequence

PAGE_TYPE_TEMPLATES: dict[str, str] = {
    "cover": (
        "Eye-catching cover illustration for a knowledge card series about {subject}, "
        "bold central visual metaphor, generous negative space, decorative geometric shapes"
    ),
    "process": (
        "Step-by-step flowchart infographic about {subject}, numbered steps connected by arrows, "
        "rounded step boxes with cute icons"
    ),
    "comparison": (
        "Side-by-side comparison chart infographic about {subject}, two columns with a VS divider, "
        "contrasting icons on each side"
    ),
    "concept": (
        "Concept map infographic about {subject}, central concept node with radiating elements, "
        "connected bubbles with cute icons"
    ),
    "checklist": (
        "Checklist layout infographic about {subject}, vertical list of checkbox items with tick marks, "
        "neat rows with small icons"
    ),
    "timeline": (
        "Horizontal timeline infographic about {subject}, milestones marked along a flowing line, "
        "evenly spaced event markers with icons"
    ),
    "summary": (
        "Key takeaways summary infographic about {subject}, tidy grid of highlight cards, "
        "star and lightbulb icons"
    ),
}

DEFAULT_PAGE_TYPE = "concept"

TYPOGRAPHY_SUFFIX = "no text, no words, no letters, text-free"
COLOR_SUFFIX = "soft pastel palette, cream background with coral and teal accents"
QUALITY_SUFFIX = "high quality, clean flat design, 3:4 aspect ratio"

MAX_LABELS = 6


def normalize_page_type(page_type: str | None) -> str:
    value = (page_type or "").strip().lower()
    return value if value in PAGE_TYPE_TEMPLATES else DEFAULT_PAGE_TYPE


def synthesize_image_prompt(
    page_type: str | None,
    title: str,
    subtitle: str | None = None,
    labels: Sequence[str] = (),
) -> str:
    """Construye el prompt de imagen a partir del tipo de página y su contenido."""

    subject = f'"{title.strip() or "knowledge point"}"'
    if subtitle and subtitle.strip():
        subject += f" ({subtitle.strip()})"

    template = PAGE_TYPE_TEMPLATES[normalize_page_type(page_type)]
    parts = [template.format(subject=subject)]

    clean_labels = [label.strip() for label in labels if label and label.strip()]
    if clean_labels:
        parts[0] += ", featuring: " + ", ".join(clean_labels[:MAX_LABELS])

    parts.extend([TYPOGRAPHY_SUFFIX, COLOR_SUFFIX, QUALITY_SUFFIX])
    return ". ".join(parts)
