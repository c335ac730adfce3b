from __future__ import annotations

import pytest

from adapters.config_store import InMemoryConfigStore
from conftest import make_profile
from core.domain.errors import ConfigurationUnavailable
from core.domain.models import Capability, ProviderFamily
from core.services.resolver import ConfigResolver, provider_family_for


def _resolver(*profiles):
    return ConfigResolver(InMemoryConfigStore(profiles))


def test_explicit_enabled_profile_wins_over_default():
    resolver = _resolver(
        make_profile("default", is_default=True),
        make_profile("explicit", model="deepseek-chat"),
    )

    cfg = resolver.resolve(Capability.TEXT, "explicit")

    assert cfg.config_id == "explicit"
    assert cfg.model_id == "deepseek-chat"


def test_disabled_explicit_profile_falls_through_to_default():
    resolver = _resolver(
        make_profile("default", is_default=True),
        make_profile("off", enabled=False),
    )

    assert resolver.resolve(Capability.TEXT, "off").config_id == "default"


def test_explicit_profile_with_wrong_capability_falls_through():
    resolver = _resolver(
        make_profile("text", is_default=True),
        make_profile("img", capability="image"),
    )

    assert resolver.resolve(Capability.TEXT, "img").config_id == "text"


def test_unknown_explicit_id_falls_through():
    resolver = _resolver(make_profile("only"))

    assert resolver.resolve(Capability.TEXT, "missing").config_id == "only"


def test_default_beats_newer_non_default():
    resolver = _resolver(
        make_profile("old-default", is_default=True, age_minutes=60),
        make_profile("newer"),
    )

    assert resolver.resolve(Capability.TEXT).config_id == "old-default"


def test_any_fallback_prefers_exact_capability_then_newest():
    resolver = _resolver(
        make_profile("universal-new", capability="universal", age_minutes=0),
        make_profile("text-old", age_minutes=30),
        make_profile("text-new", age_minutes=10),
    )

    assert resolver.resolve(Capability.TEXT).config_id == "text-new"


def test_any_fallback_ties_break_by_id():
    resolver = _resolver(make_profile("b"), make_profile("a"))

    assert resolver.resolve(Capability.TEXT).config_id == "a"


def test_universal_profile_serves_image_requests():
    resolver = _resolver(make_profile("u", capability="universal", model="qwen-vl"))

    cfg = resolver.resolve(Capability.IMAGE)

    assert cfg.config_id == "u"
    assert cfg.capability is Capability.UNIVERSAL


def test_no_usable_profile_raises_configuration_unavailable():
    resolver = _resolver(
        make_profile("img", capability="image"),
        make_profile("off", enabled=False),
    )

    with pytest.raises(ConfigurationUnavailable) as excinfo:
        resolver.resolve(Capability.TEXT)

    assert excinfo.value.error_kind == "configuration_unavailable"
    assert excinfo.value.params["capability"] == "text"


def test_backend_config_carries_label_and_system_prompt():
    resolver = _resolver(make_profile("p", name="Tutor", system_prompt="Be brief."))

    cfg = resolver.resolve(Capability.TEXT)

    assert cfg.label == "Tutor"
    assert cfg.system_prompt == "Be brief."
    assert cfg.endpoint("/chat/completions") == "https://api.example.com/v1/chat/completions"


@pytest.mark.parametrize(
    ("provider", "base_url", "family"),
    [
        ("qwen", "https://dashscope.aliyuncs.com/api/v1", ProviderFamily.DASHSCOPE),
        ("Aliyun", "https://dashscope.aliyuncs.com/api/v1", ProviderFamily.DASHSCOPE),
        ("modelscope", "https://api-inference.modelscope.cn/v1", ProviderFamily.MODELSCOPE),
        ("custom", "https://api-inference.modelscope.cn/v1", ProviderFamily.MODELSCOPE),
        ("siliconflow", "https://api.siliconflow.cn/v1", ProviderFamily.OPENAI_COMPATIBLE),
        ("deepseek", "https://api.deepseek.com", ProviderFamily.OPENAI_COMPATIBLE),
    ],
)
def test_provider_family_resolution(provider, base_url, family):
    assert provider_family_for(provider, base_url) is family
