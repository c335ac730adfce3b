from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx
import pytest

from adapters.config_store import InMemoryConfigStore
from core.config import AppSettings
from core.domain.language import Language
from core.domain.models import BackendProfile, ImageSubmission
from core.services.orchestrator import GenerationOrchestrator
from core.services.poller import JobPoller

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_profile(
    profile_id: str = "p1",
    *,
    capability: str = "text",
    provider: str = "openai",
    base_url: str = "https://api.example.com/v1",
    model: str = "gpt-4o",
    is_default: bool = False,
    enabled: bool = True,
    age_minutes: int = 0,
    **extra: Any,
) -> BackendProfile:
    return BackendProfile(
        id=profile_id,
        name=extra.pop("name", f"profile {profile_id}"),
        capability=capability,
        provider=provider,
        base_url=base_url,
        api_key="sk-test-0123456789abcdef",
        model=model,
        is_default=is_default,
        enabled=enabled,
        created_at=T0 - timedelta(minutes=age_minutes),
        **extra,
    )


def chat_completion(content: str, model: str = "gpt-4o") -> dict[str, Any]:
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2},
    }


class RecordingTransport:
    """Envuelve un handler y guarda cada request (método, URL, headers, JSON)."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.content]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class ScriptedProvider:
    """Adaptador falso: devuelve (o lanza) respuestas en orden."""

    def __init__(self, replies: list[Any] | None = None, *, image_url: str = "https://img.example.com/1.png") -> None:
        self.replies = list(replies or [])
        self.image_url = image_url
        self.calls: list[dict[str, Any]] = []
        self.image_calls: list[dict[str, Any]] = []

    async def complete_text(self, cfg, messages, *, max_tokens=None, temperature=None) -> str:
        self.calls.append(
            {"cfg": cfg, "messages": list(messages), "max_tokens": max_tokens, "temperature": temperature}
        )
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def submit_image(self, cfg, prompt, *, size=None) -> ImageSubmission:
        self.image_calls.append({"cfg": cfg, "prompt": prompt, "size": size})
        return ImageSubmission(image_url=self.image_url)

    async def generate_image(self, cfg, prompt, *, size=None, cancel_event=None, job=None) -> str:
        submission = await self.submit_image(cfg, prompt, size=size)
        return submission.image_url or ""


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        poll_interval_seconds=0,
        poll_max_attempts=5,
        default_language=Language.ENGLISH,
        store_path=None,
    )


@pytest.fixture
def poller() -> JobPoller:
    return JobPoller(interval=0, max_attempts=5)


@pytest.fixture
def text_profile() -> BackendProfile:
    return make_profile("text-main", is_default=True, name="Main text")


@pytest.fixture
def image_profile() -> BackendProfile:
    return make_profile(
        "image-main",
        capability="image",
        provider="dashscope",
        base_url="https://dashscope.aliyuncs.com/api/v1",
        model="wanx-v1",
        is_default=True,
        name="Wanx",
    )


@pytest.fixture
def build_orchestrator(settings: AppSettings):
    def _build(provider: Any, *profiles: BackendProfile, prompts=(), styles=()) -> GenerationOrchestrator:
        store = InMemoryConfigStore(profiles, prompts, styles)
        return GenerationOrchestrator(store, lambda family: provider, settings=settings, language=Language.ENGLISH)

    return _build
