from __future__ import annotations

import json

from adapters.config_store import InMemoryConfigStore, JsonConfigStore, load_config_file
from conftest import make_profile
from core.domain.models import Capability, PromptKind, PromptTemplate


def test_json_store_accepts_camel_case_records(tmp_path):
    path = tmp_path / "store.json"
    path.write_text(
        json.dumps(
            {
                "profiles": [
                    {
                        "id": "qw",
                        "name": "Qwen",
                        "kind": "TEXT",
                        "provider": "Qwen",
                        "baseURL": "https://dashscope.aliyuncs.com/api/v1/",
                        "apiKey": "sk-abc",
                        "model": "qwen-plus",
                        "isDefault": True,
                        "createdAt": "2025-03-01T00:00:00Z",
                    }
                ],
                "prompts": [{"id": "t", "name": "T", "kind": "image", "content": "style", "isDefault": True}],
                "styles": [{"id": "s", "name": "S", "promptSnippet": "pastel"}],
            }
        ),
        encoding="utf-8",
    )

    store = JsonConfigStore(path)

    profile = store.get_profile("qw")
    assert profile is not None
    assert profile.capability is Capability.TEXT
    assert profile.provider == "qwen"
    assert profile.base_url == "https://dashscope.aliyuncs.com/api/v1"
    assert profile.is_default is True
    assert store.get_default_profile(Capability.TEXT).id == "qw"
    assert store.get_prompt_template(PromptKind.IMAGE).content == "style"
    assert [s.prompt_snippet for s in store.list_styles(["s"])] == ["pastel"]


def test_missing_file_is_an_empty_store(tmp_path):
    data = load_config_file(tmp_path / "nope.json")

    assert data.profiles == [] and data.prompts == [] and data.styles == []


def test_api_key_is_not_in_repr():
    assert "sk-test" not in repr(make_profile())


def test_prompt_template_fallback_order():
    store = InMemoryConfigStore(
        prompts=[
            PromptTemplate(id="old", name="old", kind=PromptKind.TEXT, content="old"),
            PromptTemplate(id="def", name="def", kind=PromptKind.TEXT, content="def", is_default=True),
            PromptTemplate(id="off", name="off", kind=PromptKind.TEXT, content="off", enabled=False),
            PromptTemplate(id="img", name="img", kind=PromptKind.IMAGE, content="img"),
        ]
    )

    assert store.get_prompt_template(PromptKind.TEXT, "old").id == "old"
    assert store.get_prompt_template(PromptKind.TEXT, "off").id == "def"
    assert store.get_prompt_template(PromptKind.TEXT, "img").id == "def"
    assert store.get_prompt_template(PromptKind.TEXT).id == "def"


def test_list_profiles_puts_defaults_first():
    store = InMemoryConfigStore(
        [
            make_profile("newest", age_minutes=0),
            make_profile("default", is_default=True, age_minutes=90),
            make_profile("older", age_minutes=30),
        ]
    )

    assert [p.id for p in store.list_profiles()] == ["default", "newest", "older"]


def test_styles_keep_request_order_and_skip_disabled():
    from core.domain.models import ImageStyle

    store = InMemoryConfigStore(
        styles=[
            ImageStyle(id="a", name="A", prompt_snippet="a"),
            ImageStyle(id="b", name="B", prompt_snippet="b"),
            ImageStyle(id="c", name="C", prompt_snippet="c", enabled=False),
        ]
    )

    assert [s.id for s in store.list_styles(["b", "c", "a", "zz"])] == ["b", "a"]
