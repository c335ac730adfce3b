"""Orquestador de generación: la fachada que usan los llamadores.

Cada operación pública sigue la misma plantilla:
resolver config -> llamar al adaptador (y al poller si es asíncrono) ->
recuperar salida estructurada si aplica -> sobre de resultado con qué
configuración/modelo la sirvió.

Política de errores:
- Solo se capturan `CardForgeError`; cualquier otra excepción es un bug y se
  propaga.
- Reintento de llamada completa únicamente en esquema y prompts rápidos.
- Sustitución silenciosa únicamente en prompts de imagen por tarjeta.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, Sequence

from core.config import AppSettings
from core.domain.errors import CardForgeError, InvalidRequest, ProviderResponseFormatError
from core.domain.language import Language
from core.domain.models import (
    AsyncJob,
    BackendConfig,
    BackendProfile,
    Capability,
    CardRecord,
    ChatMessage,
    ConnectionTestResult,
    CopywritingResult,
    GenerationRequest,
    ImagePrompt,
    ImagePromptBatch,
    ImagePromptResult,
    OperationResult,
    OutlineResult,
    PromptKind,
    ProviderFamily,
    QuickPromptBatch,
    ServedBy,
    TranslationResult,
)
from core.interfaces.config_store import ConfigStore
from core.interfaces.provider import ProviderAdapter
from core import messages, prompts
from core.services.recovery import recover_cards, recover_quick_prompts
from core.services.resolver import ConfigResolver, to_backend_config
from core.services.retry import with_retry

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[ProviderFamily], ProviderAdapter]
Work = Callable[[BackendConfig, ProviderAdapter], Awaitable[Any]]

QUICK_PROMPT_COUNTS = (1, 3, 6, 9)
QUICK_CONTENT_MAX_CHARS = 3000
COPYWRITING_ARTICLE_MAX_CHARS = 4000
COPY_TEXT_MAX_CHARS = 1000
VIBES = ("viral", "minimal", "pro")
COPYWRITING_MODES = ("standard", "quick")
TRANSLATE_DIRECTIONS = ("zh2en", "en2zh")


def _require(value: str | None, key: str = "empty_content") -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidRequest("content must not be empty", message_key=key)
    return text


class GenerationOrchestrator:
    """Fachada de operaciones: esquema, prompts, imagen, chat, traducción..."""

    def __init__(
        self,
        store: ConfigStore,
        providers: ProviderFactory,
        *,
        settings: AppSettings | None = None,
        language: Language | None = None,
    ) -> None:
        self._store = store
        self._providers = providers
        self._settings = settings or AppSettings()
        self._resolver = ConfigResolver(store)
        self.language = language or self._settings.default_language

    # ------------------------------------------------------------------
    # Plantilla común
    # ------------------------------------------------------------------

    def _failure(self, exc: CardForgeError, *, data: Any = None) -> OperationResult:
        return OperationResult(
            success=False,
            data=data,
            error_kind=exc.error_kind,
            message=messages.describe_error(exc, self.language),
            detail=exc.detail,
        )

    async def _run(
        self,
        operation: str,
        capability: Capability,
        explicit_id: str | None,
        work: Work,
        *,
        precheck: Callable[[], None] | None = None,
    ) -> OperationResult:
        try:
            if precheck is not None:
                precheck()
            cfg = self._resolver.resolve(capability, explicit_id)
            provider = self._providers(cfg.provider_family)
            data = await work(cfg, provider)
        except CardForgeError as exc:
            logger.warning("%s failed [%s]: %s", operation, exc.error_kind, exc)
            return self._failure(exc)

        logger.info("%s served by %s (model=%s)", operation, cfg.label, cfg.model_id)
        return OperationResult(
            success=True,
            data=data,
            served_by=ServedBy(config_name=cfg.config_name, model=cfg.model_id),
        )

    @staticmethod
    async def _complete(
        provider: ProviderAdapter,
        cfg: BackendConfig,
        system_prompt: str | None,
        user_content: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        chat: list[ChatMessage] = []
        if system_prompt:
            chat.append(ChatMessage(role="system", content=system_prompt))
        chat.append(ChatMessage(role="user", content=user_content))
        return await provider.complete_text(cfg, chat, max_tokens=max_tokens, temperature=temperature)

    def _template(self, kind: PromptKind, template_id: str | None) -> str | None:
        template = self._store.get_prompt_template(kind, template_id)
        return template.content if template else None

    # ------------------------------------------------------------------
    # Superficie genérica
    # ------------------------------------------------------------------

    async def generate(self, request: GenerationRequest, *, cancel_event: asyncio.Event | None = None) -> OperationResult:
        """`{capability, explicitConfigId?, payload}` -> sobre de resultado."""

        payload = request.prompt_payload
        options = request.call_options

        async def work(cfg: BackendConfig, provider: ProviderAdapter) -> str:
            if isinstance(payload, ImagePrompt):
                return await provider.generate_image(cfg, payload.prompt, size=payload.size, cancel_event=cancel_event)
            return await provider.complete_text(
                cfg, payload, max_tokens=options.max_tokens, temperature=options.temperature
            )

        def precheck() -> None:
            if isinstance(payload, ImagePrompt) and request.capability is Capability.TEXT:
                raise InvalidRequest("image payload sent with text capability")
            if isinstance(payload, list):
                if request.capability is Capability.IMAGE:
                    raise InvalidRequest("chat payload sent with image capability")
                if not payload:
                    raise InvalidRequest("empty message list", message_key="empty_content")

        return await self._run("generate", request.capability, request.explicit_config_id, work, precheck=precheck)

    # ------------------------------------------------------------------
    # Texto
    # ------------------------------------------------------------------

    async def chat(self, message: str, *, profile_id: str | None = None) -> OperationResult:
        async def work(cfg: BackendConfig, provider: ProviderAdapter) -> str:
            return await self._complete(
                provider, cfg, cfg.system_prompt, message.strip(), temperature=0.7, max_tokens=1000
            )

        return await self._run("chat", Capability.TEXT, profile_id, work, precheck=lambda: _require(message))

    async def generate_outline(
        self,
        content: str,
        *,
        title: str | None = None,
        profile_id: str | None = None,
        prompt_id: str | None = None,
    ) -> OperationResult:
        """Esquema de tarjetas con reintento completo (llamada + parseo)."""

        async def work(cfg: BackendConfig, provider: ProviderAdapter) -> OutlineResult:
            system_prompt = prompts.with_json_instruction(
                self._template(PromptKind.TEXT, prompt_id) or prompts.DEFAULT_TEXT_PROMPT
            )
            user_content = prompts.build_outline_user_message(content.strip(), title)

            async def attempt(n: int) -> list[CardRecord]:
                raw = await self._complete(
                    provider, cfg, system_prompt, user_content, temperature=0.7, max_tokens=4000
                )
                return recover_cards(raw)

            cards = await with_retry(self._settings.outline_max_attempts, attempt, label="outline")
            stamp = int(time.time() * 1000)
            cards = [
                card if card.id else card.model_copy(update={"id": f"outline-{stamp}-{i}"})
                for i, card in enumerate(cards)
            ]
            backfilled = sum(1 for c in cards if c.image_prompt_auto_generated)
            if backfilled:
                logger.warning("Outline: %d/%d image prompts were synthesized", backfilled, len(cards))
            return OutlineResult(cards=cards, backfilled_prompts=backfilled)

        return await self._run(
            "outline", Capability.TEXT, profile_id, work, precheck=lambda: _require(content)
        )

    async def iter_image_prompts(
        self,
        cards: Sequence[CardRecord],
        *,
        cfg: BackendConfig,
        provider: ProviderAdapter,
        system_prompt: str,
        style_snippets: Sequence[str] = (),
        custom_style: str = "",
        adjustments: Mapping[str, str] | None = None,
    ) -> AsyncIterator[ImagePromptResult]:
        """Genera prompts tarjeta a tarjeta, en serie y en el orden recibido.

        Un fallo en una tarjeta produce el prompt de respaldo y el lote sigue.
        """

        adjustments = adjustments or {}
        total = len(cards)
        for card in cards:
            adjustment = adjustments.get(card.id or "") or adjustments.get(str(card.page_number), "")
            user_content = prompts.build_card_prompt_user_message(
                card,
                total_pages=total,
                style_snippets=style_snippets,
                custom_style=custom_style,
                adjustment=adjustment,
            )
            try:
                raw = await self._complete(
                    provider, cfg, system_prompt, user_content, temperature=0.7, max_tokens=500
                )
                image_prompt = prompts.clean_single_line(raw)
                if not image_prompt:
                    raise ProviderResponseFormatError("empty image prompt")
            except CardForgeError as exc:
                logger.warning("Image prompt for page %d failed (%s); using fallback", card.page_number, exc)
                yield ImagePromptResult(
                    card_id=card.id,
                    page_number=card.page_number,
                    image_prompt=prompts.fallback_image_prompt(card.title, style_snippets),
                    fallback_used=True,
                    error=str(exc),
                )
                continue
            yield ImagePromptResult(card_id=card.id, page_number=card.page_number, image_prompt=image_prompt)

    async def generate_image_prompts(
        self,
        cards: Sequence[CardRecord],
        *,
        profile_id: str | None = None,
        prompt_id: str | None = None,
        style_ids: Sequence[str] = (),
        custom_style: str = "",
        adjustments: Mapping[str, str] | None = None,
    ) -> OperationResult:
        def precheck() -> None:
            if not cards:
                raise InvalidRequest("outline must not be empty", message_key="empty_outline")

        async def work(cfg: BackendConfig, provider: ProviderAdapter) -> ImagePromptBatch:
            system_prompt = self._template(PromptKind.IMAGE, prompt_id) or prompts.DEFAULT_IMAGE_PROMPT
            snippets = [s.prompt_snippet for s in self._store.list_styles(style_ids) if s.prompt_snippet]
            results = [
                result
                async for result in self.iter_image_prompts(
                    cards,
                    cfg=cfg,
                    provider=provider,
                    system_prompt=system_prompt,
                    style_snippets=snippets,
                    custom_style=custom_style,
                    adjustments=adjustments,
                )
            ]
            return ImagePromptBatch(prompts=results, styles_applied=len(snippets))

        return await self._run("image_prompts", Capability.TEXT, profile_id, work, precheck=precheck)

    async def generate_quick_prompts(
        self,
        content: str,
        *,
        title: str | None = None,
        count: int = 3,
        profile_id: str | None = None,
        image_prompt_id: str | None = None,
    ) -> OperationResult:
        image_count = count if count in QUICK_PROMPT_COUNTS else 3

        async def work(cfg: BackendConfig, provider: ProviderAdapter) -> QuickPromptBatch:
            addition = self._template(PromptKind.IMAGE, image_prompt_id)
            system_prompt = prompts.QUICK_MODE_SYSTEM_PROMPT
            if addition:
                system_prompt = f"{system_prompt}\n\n{prompts.QUICK_CUSTOM_STYLE_HEADING}\n{addition}"
            user_content = prompts.build_quick_prompts_user_message(
                prompts.truncate_text(content.strip(), QUICK_CONTENT_MAX_CHARS), title, image_count
            )

            async def attempt(n: int) -> QuickPromptBatch:
                raw = await self._complete(
                    provider, cfg, system_prompt, user_content, temperature=0.7, max_tokens=4000
                )
                return QuickPromptBatch(prompts=recover_quick_prompts(raw), count=image_count)

            return await with_retry(self._settings.quick_prompts_max_attempts, attempt, label="quick_prompts")

        return await self._run(
            "quick_prompts", Capability.TEXT, profile_id, work, precheck=lambda: _require(content)
        )

    async def generate_copywriting(
        self,
        *,
        cards: Sequence[CardRecord] | None = None,
        article: str | None = None,
        title: str | None = None,
        vibe: str = "viral",
        mode: str = "standard",
        profile_id: str | None = None,
    ) -> OperationResult:
        def precheck() -> None:
            if mode not in COPYWRITING_MODES:
                raise InvalidRequest(f"unknown mode {mode!r}")
            if mode == "quick":
                _require(article)
            elif not cards:
                raise InvalidRequest("outline must not be empty", message_key="empty_outline")
            if vibe not in VIBES:
                raise InvalidRequest(f"unknown vibe {vibe!r}", message_key="invalid_vibe")

        async def work(cfg: BackendConfig, provider: ProviderAdapter) -> CopywritingResult:
            if mode == "quick":
                system_prompt = prompts.QUICK_VIBE_PROMPTS[vibe]
                text = prompts.truncate_text((article or "").strip(), COPYWRITING_ARTICLE_MAX_CHARS)
                user_content = prompts.build_copywriting_from_article(text, title)
            else:
                system_prompt = prompts.VIBE_PROMPTS[vibe]
                user_content = prompts.build_copywriting_from_outline(cards or [])
            raw = await self._complete(provider, cfg, system_prompt, user_content, temperature=0.8, max_tokens=4000)
            return CopywritingResult(copy_text=raw.strip(), vibe=vibe, mode=mode)

        return await self._run("copywriting", Capability.TEXT, profile_id, work, precheck=precheck)

    async def generate_copy_image_prompt(self, copy_text: str, *, profile_id: str | None = None) -> OperationResult:
        async def work(cfg: BackendConfig, provider: ProviderAdapter) -> str:
            user_content = prompts.build_copy_image_prompt_user_message(
                prompts.truncate_text(copy_text.strip(), COPY_TEXT_MAX_CHARS)
            )
            raw = await self._complete(
                provider, cfg, prompts.COPY_IMAGE_PROMPT_SYSTEM, user_content, temperature=0.7, max_tokens=500
            )
            return prompts.clean_single_line(raw)

        return await self._run(
            "copy_image_prompt", Capability.TEXT, profile_id, work, precheck=lambda: _require(copy_text)
        )

    async def translate(self, text: str, direction: str, *, profile_id: str | None = None) -> OperationResult:
        def precheck() -> None:
            _require(text)
            if direction not in TRANSLATE_DIRECTIONS:
                raise InvalidRequest(f"unsupported direction {direction!r}", message_key="invalid_direction")

        async def work(cfg: BackendConfig, provider: ProviderAdapter) -> TranslationResult:
            source = text.strip()
            if direction == "zh2en":
                raw = await self._complete(
                    provider,
                    cfg,
                    prompts.TRANSLATE_TO_ENGLISH_PROMPT,
                    f"请将以下中文图像描述翻译成英文Prompt：\n\n{source}",
                    temperature=0.7,
                    max_tokens=500,
                )
                translated = prompts.ensure_prompt_suffix(raw)
            else:
                raw = await self._complete(
                    provider,
                    cfg,
                    prompts.TRANSLATE_TO_CHINESE_PROMPT,
                    f"请解释这个图像Prompt的含义：\n\n{source}",
                    temperature=0.7,
                    max_tokens=300,
                )
                translated = raw.strip()
            return TranslationResult(original=text, translated=translated, direction=direction)

        return await self._run("translate", Capability.TEXT, profile_id, work, precheck=precheck)

    # ------------------------------------------------------------------
    # Imagen
    # ------------------------------------------------------------------

    async def generate_image(
        self,
        prompt: str,
        *,
        profile_id: str | None = None,
        size: str | None = None,
        cancel_event: asyncio.Event | None = None,
        job: AsyncJob | None = None,
    ) -> OperationResult:
        """Una sola llamada; sin reintento automático (generar imágenes cuesta)."""

        async def work(cfg: BackendConfig, provider: ProviderAdapter) -> str:
            return await provider.generate_image(
                cfg, prompt.strip(), size=size, cancel_event=cancel_event, job=job
            )

        return await self._run("image", Capability.IMAGE, profile_id, work, precheck=lambda: _require(prompt))

    # ------------------------------------------------------------------
    # Prueba de conexión (admin)
    # ------------------------------------------------------------------

    async def test_connection(
        self,
        profile_id: str | None = None,
        *,
        profile: BackendProfile | None = None,
    ) -> OperationResult:
        """Prueba un perfil concreto (guardado o en línea), sin cadena de respaldo."""

        try:
            if profile is None:
                profile = self._store.get_profile(profile_id) if profile_id else None
            if profile is None:
                raise InvalidRequest(f"profile {profile_id!r} not found", message_key="profile_not_found")

            cfg = to_backend_config(profile)
            provider = self._providers(cfg.provider_family)
            if cfg.capability is Capability.IMAGE:
                submission = await provider.submit_image(cfg, prompts.CONNECTION_TEST_IMAGE_PROMPT)
                if not submission.image_url and submission.job is None:
                    raise ProviderResponseFormatError("image submit returned neither URL nor task")
                key = "connection_ok_image"
            else:
                await provider.complete_text(cfg, [ChatMessage(role="user", content="Hi")], max_tokens=5)
                key = "connection_ok_text"
        except CardForgeError as exc:
            logger.warning("Connection test for %s failed [%s]", profile_id or "inline profile", exc.error_kind)
            failure = self._failure(exc)
            return failure.model_copy(
                update={"data": ConnectionTestResult(success=False, message=failure.message or "")}
            )

        message = messages.render(key, self.language, model=cfg.model_id)
        logger.info("Connection test for %s succeeded", cfg.label)
        return OperationResult(
            success=True,
            data=ConnectionTestResult(success=True, message=message),
            served_by=ServedBy(config_name=cfg.config_name, model=cfg.model_id),
        )
