from __future__ import annotations

from core.domain.errors import (
    AsyncTaskFailed,
    ConfigurationUnavailable,
    InvalidRequest,
    ProviderRequestError,
    RecoveryParseError,
    truncate_body,
)
from core.domain.language import Language
from core.domain.models import OperationResult
from core.messages import MESSAGES, describe_error, render


def test_every_message_has_both_languages():
    for key, variants in MESSAGES.items():
        assert set(variants) == {Language.CHINESE, Language.ENGLISH}, key


def test_missing_params_render_as_dash():
    assert render("provider_request_error", Language.ENGLISH) == "AI provider call failed (-)"


def test_unknown_key_uses_internal_error():
    assert render("nope", Language.CHINESE) == MESSAGES["internal_error"][Language.CHINESE]


def test_describe_errors():
    assert "image" in describe_error(ConfigurationUnavailable("image"), Language.ENGLISH)
    assert "(-)" in describe_error(ProviderRequestError("x"), Language.ENGLISH)
    assert "content moderation" in describe_error(AsyncTaskFailed("t", "content moderation"), Language.CHINESE)
    assert describe_error(InvalidRequest("x", message_key="empty_content"), Language.CHINESE) == "内容不能为空"


def test_error_str_includes_detail():
    err = ProviderRequestError("call failed", status_code=500, body="upstream down")

    assert str(err) == "call failed: upstream down"
    assert err.params == {"status": 500}


def test_recovery_error_without_attempts_uses_message_as_detail():
    err = RecoveryParseError("could not parse")

    assert err.detail == "could not parse"
    assert err.attempts == []


def test_truncate_body():
    assert truncate_body(None) == ""
    assert truncate_body("  short  ") == "short"
    assert truncate_body("a" * 300, 200) == "a" * 200


def test_http_status_mapping():
    assert OperationResult(success=False, error_kind="invalid_request").http_status == 400
    assert OperationResult(success=False, error_kind="async_task_timeout").http_status == 504
    assert OperationResult(success=False, error_kind="cancelled").http_status == 499
    assert OperationResult(success=False, error_kind="async_task_failed").http_status == 500
