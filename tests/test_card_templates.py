from __future__ import annotations

from core.services.card_templates import (
    COLOR_SUFFIX,
    MAX_LABELS,
    PAGE_TYPE_TEMPLATES,
    QUALITY_SUFFIX,
    TYPOGRAPHY_SUFFIX,
    normalize_page_type,
    synthesize_image_prompt,
)


def test_every_page_type_has_a_template():
    assert set(PAGE_TYPE_TEMPLATES) == {
        "cover",
        "process",
        "comparison",
        "concept",
        "checklist",
        "timeline",
        "summary",
    }


def test_normalize_page_type():
    assert normalize_page_type(" Process ") == "process"
    assert normalize_page_type(None) == "concept"
    assert normalize_page_type("poster") == "concept"


def test_synthesized_prompt_structure():
    prompt = synthesize_image_prompt("process", "冲咖啡", "三步走", ["磨豆", "注水"])

    assert prompt.startswith('Step-by-step flowchart infographic about "冲咖啡" (三步走)')
    assert ", featuring: 磨豆, 注水" in prompt
    assert prompt.endswith(". ".join([TYPOGRAPHY_SUFFIX, COLOR_SUFFIX, QUALITY_SUFFIX]))


def test_labels_are_capped():
    labels = [f"l{i}" for i in range(MAX_LABELS + 3)]

    prompt = synthesize_image_prompt("concept", "X", labels=labels)

    assert f"l{MAX_LABELS - 1}" in prompt
    assert f"l{MAX_LABELS}," not in prompt and f"l{MAX_LABELS}." not in prompt


def test_empty_title_uses_placeholder():
    assert '"knowledge point"' in synthesize_image_prompt("cover", "  ")
