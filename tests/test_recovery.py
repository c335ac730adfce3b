from __future__ import annotations

import json

import pytest

from core.domain.errors import RecoveryParseError
from core.domain.models import CardPoint, CardRecord, RepairStage
from core.services.recovery import (
    CARD_SHAPES,
    extract_json_candidates,
    normalize_cards,
    normalize_quick_prompts,
    parse_json_with_repairs,
    recover_array,
    recover_cards,
    recover_quick_prompts,
    repair_prompt_field,
)


def test_fenced_block_with_literal_newlines_recovers_and_synthesizes_prompt():
    raw = (
        "好的，这是大纲：\n"
        "```json\n"
        '[{"pageNumber": 1, "pageType": "checklist", "title": "测试清单", '
        '"content": "第一行\n第二行", '
        '"points": [{"emoji": "✅", "label": "准备材料"}, {"label": "检查环境"}]}]\n'
        "```\n"
        "希望对你有帮助！"
    )

    cards = recover_cards(raw)

    assert len(cards) == 1
    card = cards[0]
    assert card.page_number == 1
    assert card.title == "测试清单"
    assert card.content == "第一行\n第二行"
    assert [p.label for p in card.points] == ["准备材料", "检查环境"]
    assert card.points[1].emoji == "🔹"
    assert card.image_prompt_auto_generated is True
    assert card.image_prompt.startswith("Checklist layout infographic about")
    assert "准备材料" in card.image_prompt


def test_unescaped_quotes_in_image_prompt_are_repaired():
    raw = (
        '[{"pageNumber": 1, "title": "海报", '
        '"imagePrompt": "a poster saying "hello" in pastel colors", '
        '"content": "内容"}]'
    )

    value, attempts = parse_json_with_repairs(raw)

    assert value[0]["imagePrompt"] == "a poster saying 'hello' in pastel colors"
    assert value[0]["content"] == "内容"
    assert attempts[-1].repair_stage is RepairStage.IMAGE_PROMPT_REPAIR
    assert attempts[-1].parse_error is None


def test_repair_only_touches_the_named_field():
    text = '{"imagePrompt": "say "hi"", "title": "keep "this""}'

    repaired = repair_prompt_field(text, "imagePrompt")

    assert repaired.startswith('{"imagePrompt": "say \'hi\'"')
    assert repaired.endswith('"title": "keep "this""}')


def test_supplied_prompt_keeps_flag_false():
    cards = recover_cards('[{"pageNumber": 1, "title": "A", "imagePrompt": "flat icon"}]')

    assert cards[0].image_prompt == "flat icon"
    assert cards[0].image_prompt_auto_generated is False


@pytest.mark.parametrize(
    ("payload", "shape"),
    [
        ([{"title": "A"}], "$"),
        ({"cards": [{"title": "A"}]}, "$.cards"),
        ({"outline": [{"title": "A"}]}, "$.outline"),
        ({"meta": {"n": 1}, "whatever": [{"title": "A"}]}, "$.whatever"),
    ],
)
def test_shape_matchers(payload, shape):
    result = recover_array(json.dumps(payload, ensure_ascii=False), CARD_SHAPES)

    assert result.shape == shape
    assert result.items == [{"title": "A"}]


def test_balanced_region_is_preferred_over_greedy_match():
    raw = 'Here: {"cards": [{"title": "A"}]} and a trailing {note}'

    candidates = extract_json_candidates(raw)

    assert candidates[0] == '{"cards": [{"title": "A"}]}'


def test_empty_array_is_a_parse_error():
    with pytest.raises(RecoveryParseError):
        recover_cards('{"cards": []}')


def test_garbage_raises_with_attempt_history():
    with pytest.raises(RecoveryParseError) as excinfo:
        recover_cards("抱歉，我无法完成这个请求。")

    err = excinfo.value
    assert err.error_kind == "recovery_parse_error"
    assert err.attempts
    assert err.detail


def test_duplicate_page_numbers_are_renumbered_by_position():
    cards = normalize_cards(
        [
            {"pageNumber": 2, "title": "A"},
            {"pageNumber": 2, "title": "B"},
            {"title": "C"},
        ]
    )

    assert [c.page_number for c in cards] == [1, 2, 3]
    assert [c.title for c in cards] == ["A", "B", "C"]


def test_valid_unique_page_numbers_are_kept():
    cards = normalize_cards([{"pageNumber": "3", "title": "A"}, {"pageNumber": 1, "title": "B"}])

    assert [c.page_number for c in cards] == [3, 1]


def test_unknown_page_type_uses_concept_template():
    cards = normalize_cards([{"title": "量子", "pageType": "mystery"}])

    assert cards[0].image_prompt.startswith("Concept map infographic about")


def test_quick_prompts_get_ids_and_default_angles():
    prompts = normalize_quick_prompts(
        [{"prompt": "infographic A"}, {"angle": "对比", "prompt": "infographic B"}],
        id_prefix="quick-1",
    )

    assert [p.id for p in prompts] == ["quick-1-0", "quick-1-1"]
    assert prompts[0].angle == "知识点1"
    assert prompts[1].angle == "对比"
    assert all(p.edited is False for p in prompts)


def test_quick_prompts_from_images_key_with_broken_quotes():
    raw = '{"images": [{"angle": "流程", "prompt": "a "cute" flowchart", "contentBasis": "第一段"}]}'

    prompts = recover_quick_prompts(raw, id_prefix="q")

    assert prompts[0].prompt == "a 'cute' flowchart"
    assert prompts[0].content_basis == "第一段"


def _sample_cards() -> list[CardRecord]:
    return [
        CardRecord(
            page_number=1,
            page_type="cover",
            title="时间管理的\"四象限\"",
            subtitle="从忙碌到高效",
            content="第一行\n第二行",
            points=[CardPoint(emoji="🔥", label="重要且紧急", detail="立即处理")],
            image_prompt='A cover with a "quadrant" chart, pastel colors',
            image_prompt_explain="四象限封面",
            image_prompt_auto_generated=False,
        ),
        CardRecord(
            page_number=2,
            page_type="checklist",
            title="每日清单",
            content="早上规划\n晚上复盘",
            points=[CardPoint(label="列出任务"), CardPoint(emoji="✅", label="标记完成", detail="勾选")],
            image_prompt="Checklist layout infographic about 每日清单",
            image_prompt_auto_generated=True,
        ),
    ]


@pytest.mark.parametrize("wrap", ["plain", "fenced", "literal_newlines"])
def test_valid_cards_survive_serialization_and_recovery(wrap):
    cards = _sample_cards()
    text = json.dumps([c.model_dump(by_alias=True) for c in cards], ensure_ascii=False)
    if wrap == "fenced":
        text = f"```json\n{text}\n```"
    elif wrap == "literal_newlines":
        text = text.replace("\\n", "\n")
        assert "第一行\n第二行" in text

    assert recover_cards(text) == cards


def test_recovered_text_fields_are_trimmed():
    card = CardRecord(page_number=1, title=" padded ", content="  body\n", image_prompt=" art ")
    text = json.dumps([card.model_dump(by_alias=True)], ensure_ascii=False)

    recovered = recover_cards(text)[0]

    assert recovered.title == "padded"
    assert recovered.content == "body"
    assert recovered.image_prompt == "art"
    assert recovered.image_prompt_auto_generated is False
