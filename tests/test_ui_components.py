from __future__ import annotations

import io

from rich.console import Console

from cli.ui_components import build_cards_table, build_profiles_table, build_result_panel
from conftest import make_profile
from core.domain.models import Capability, CardRecord, OperationResult, ServedBy


def _render(renderable) -> str:
    console = Console(file=io.StringIO(), width=240, color_system=None)
    console.print(renderable)
    return console.file.getvalue()


def test_profiles_table_masks_keys_and_marks_resolution():
    profiles = [make_profile("txt", is_default=True), make_profile("img", capability="image", model="flux")]

    out = _render(build_profiles_table(profiles, {Capability.TEXT: "txt", Capability.IMAGE: None}))

    assert "sk-t...cdef" in out
    assert "sk-test-0123456789abcdef" not in out
    assert "default" in out
    assert "text" in out


def test_cards_table_flags_synthesized_prompts():
    cards = [CardRecord(page_number=1, title="封面", image_prompt="auto art", image_prompt_auto_generated=True)]

    out = _render(build_cards_table(cards))

    assert "(auto) auto art" in out


def test_failure_panel_shows_message_and_detail():
    result = OperationResult(success=False, error_kind="provider_request_error", message="AI failed", detail="HTTP body")

    out = _render(build_result_panel(result, title="Chat"))

    assert "AI failed" in out
    assert "HTTP body" in out


def test_success_panel_shows_served_by():
    result = OperationResult(success=True, data="hello", served_by=ServedBy(config_name="Main", model="gpt-4o"))

    out = _render(build_result_panel(result, title="Chat"))

    assert "hello" in out
    assert "Main · gpt-4o" in out
