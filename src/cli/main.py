"""CLI de CardForge (Typer).

Por qué aquí vive el cableado:
- La CLI es la raíz de composición: construye el cliente HTTP compartido,
  el poller, el almacén y la fábrica de adaptadores, y se los pasa al Core.
- El Core nunca importa `adapters`; solo recibe callables y protocolos.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from adapters.config_store import JsonConfigStore
from adapters.http_client import build_async_client
from adapters.json_exporter import export_cards_json, load_cards_json
from adapters.providers import get_provider
from adapters.scraper import HtmlSourceScraper
from cli import doctor
from cli.ui_components import (
    build_cards_table,
    build_image_prompts_table,
    build_profiles_table,
    build_quick_prompts_table,
    build_result_panel,
    print_banner,
)
from core.config import AppSettings
from core.domain.errors import CardForgeError, ConfigurationUnavailable
from core.domain.language import Language
from core.domain.models import Capability, OperationResult, ProviderFamily
from core.messages import describe_error
from core.services.orchestrator import GenerationOrchestrator
from core.services.poller import JobPoller
from core.services.resolver import ConfigResolver

logger = logging.getLogger(__name__)

app = typer.Typer(
    no_args_is_help=True,
    help="Article → card outline → image prompts → images, across OpenAI-compatible, DashScope and ModelScope backends.",
)
app.add_typer(doctor.app, name="doctor")

_console = Console()


class _State:
    settings: AppSettings
    language: Language


_state = _State()


def configure_logging(level_name: str) -> None:
    """Handler Rich en el logger raíz; los módulos solo usan `getLogger(__name__)`."""

    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_time=False, show_path=False)],
        force=True,
    )
    # httpx registra cada request a INFO; demasiado ruido para la CLI.
    logging.getLogger("httpx").setLevel(logging.WARNING)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging (poll iterations, recovery stages)."),
    english: bool = typer.Option(False, "--english", "--en", help="User-facing messages in English."),
    store: Optional[Path] = typer.Option(None, "--store", help="Config store JSON (overrides CARDFORGE_STORE_PATH)."),
    no_banner: bool = typer.Option(False, "--no-banner", help="Skip the banner."),
) -> None:
    settings = AppSettings()
    if store is not None:
        settings = settings.model_copy(update={"store_path": store})
    _state.settings = settings
    _state.language = Language.ENGLISH if english else settings.default_language
    configure_logging("DEBUG" if verbose else settings.log_level)
    if not no_banner:
        print_banner(_console)


@asynccontextmanager
async def _orchestrator() -> AsyncIterator[GenerationOrchestrator]:
    """Un cliente httpx compartido por comando (texto, imagen y sondeo)."""

    settings = _state.settings
    store = JsonConfigStore(settings.resolve_store_path())
    poller = JobPoller.from_settings(settings)
    async with build_async_client(settings) as client:

        def providers(family: ProviderFamily):
            return get_provider(family, client=client, settings=settings, poller=poller)

        yield GenerationOrchestrator(store, providers, settings=settings, language=_state.language)


def _finish(result: OperationResult, *, title: str, body: str | None = None) -> None:
    """Muestra el sobre; en fallo sale con código 1."""

    if not result.success:
        _console.print(build_result_panel(result, title=title))
        raise typer.Exit(code=1)
    if body is not None or result.data is not None:
        _console.print(build_result_panel(result, title=title, body=body))


def _fail(exc: CardForgeError) -> NoReturn:
    _console.print(f"[red]{describe_error(exc, _state.language)}[/red]")
    if exc.detail:
        _console.print(f"[dim]{exc.detail}[/dim]")
    raise typer.Exit(code=1)


def _read_source(file: Optional[Path], url: Optional[str], text: Optional[str]) -> tuple[str, str | None]:
    if sum(x is not None for x in (file, url, text)) != 1:
        raise typer.BadParameter("use exactly one of --file, --url or --text")
    if file is not None:
        return file.read_text(encoding="utf-8"), None
    if url is not None:
        try:
            source = asyncio.run(HtmlSourceScraper(_state.settings).scrape(url))
        except CardForgeError as exc:
            _fail(exc)
        return source.content, source.title or None
    return text or "", None


@app.command()
def outline(
    file: Optional[Path] = typer.Option(None, "--file", "-f", exists=True, dir_okay=False, help="Article text file."),
    url: Optional[str] = typer.Option(None, "--url", "-u", help="Article URL (scraped)."),
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Article text."),
    title: Optional[str] = typer.Option(None, "--title", help="Article title."),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Text profile id."),
    prompt: Optional[str] = typer.Option(None, "--prompt", help="Text prompt template id."),
    json_out: Optional[Path] = typer.Option(None, "--json-out", "-o", help="Write cards to JSON."),
) -> None:
    """Generate a card outline from an article."""

    content, scraped_title = _read_source(file, url, text)

    async def _go() -> OperationResult:
        async with _orchestrator() as orchestrator:
            return await orchestrator.generate_outline(
                content, title=title or scraped_title, profile_id=profile, prompt_id=prompt
            )

    result = asyncio.run(_go())
    _finish(result, title="Outline", body="")
    _console.print(build_cards_table(result.data.cards))
    if result.data.backfilled_prompts:
        _console.print(f"[yellow]{result.data.backfilled_prompts} image prompt(s) synthesized from templates[/yellow]")
    if json_out is not None:
        path = export_cards_json(cards=result.data.cards, output_path=json_out)
        _console.print(f"[green]Cards written to:[/green] {path}")


@app.command(name="image-prompts")
def image_prompts(
    cards_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Cards JSON (from `outline --json-out`)."),
    style: list[str] = typer.Option([], "--style", "-s", help="Image style id (repeatable)."),
    custom: str = typer.Option("", "--custom", help="Custom style note."),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Text profile id."),
    prompt: Optional[str] = typer.Option(None, "--prompt", help="Image prompt template id."),
    json_out: Optional[Path] = typer.Option(None, "--json-out", "-o", help="Write cards (with prompts) to JSON."),
) -> None:
    """Generate one image prompt per card (failed cards get a fallback prompt)."""

    cards = load_cards_json(cards_file)

    async def _go() -> OperationResult:
        async with _orchestrator() as orchestrator:
            return await orchestrator.generate_image_prompts(
                cards, profile_id=profile, prompt_id=prompt, style_ids=style, custom_style=custom
            )

    result = asyncio.run(_go())
    _finish(result, title="Image prompts", body="")
    batch = result.data
    _console.print(build_image_prompts_table(batch.prompts))
    if batch.fallback_count:
        _console.print(f"[yellow]{batch.fallback_count} card(s) used the fallback prompt[/yellow]")
    if json_out is not None:
        by_page = {p.page_number: p.image_prompt for p in batch.prompts}
        updated = [c.model_copy(update={"image_prompt": by_page.get(c.page_number, c.image_prompt)}) for c in cards]
        path = export_cards_json(cards=updated, output_path=json_out)
        _console.print(f"[green]Cards written to:[/green] {path}")


@app.command(name="quick-prompts")
def quick_prompts(
    file: Optional[Path] = typer.Option(None, "--file", "-f", exists=True, dir_okay=False),
    url: Optional[str] = typer.Option(None, "--url", "-u"),
    text: Optional[str] = typer.Option(None, "--text", "-t"),
    title: Optional[str] = typer.Option(None, "--title"),
    count: int = typer.Option(3, "--count", "-n", help="1, 3, 6 or 9 (anything else means 3)."),
    profile: Optional[str] = typer.Option(None, "--profile", "-p"),
    prompt: Optional[str] = typer.Option(None, "--prompt", help="Image prompt template id appended as custom style."),
) -> None:
    """Quick mode: image prompts straight from the article."""

    content, scraped_title = _read_source(file, url, text)

    async def _go() -> OperationResult:
        async with _orchestrator() as orchestrator:
            return await orchestrator.generate_quick_prompts(
                content, title=title or scraped_title, count=count, profile_id=profile, image_prompt_id=prompt
            )

    result = asyncio.run(_go())
    _finish(result, title="Quick prompts", body="")
    _console.print(build_quick_prompts_table(result.data.prompts))


@app.command()
def image(
    prompt: str = typer.Argument(..., help="Image prompt."),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Image profile id."),
    size: Optional[str] = typer.Option(None, "--size", help="Override the image size."),
) -> None:
    """Generate one image and print its URL."""

    async def _go() -> OperationResult:
        async with _orchestrator() as orchestrator:
            return await orchestrator.generate_image(prompt, profile_id=profile, size=size)

    result = asyncio.run(_go())
    _finish(result, title="Image")


@app.command()
def chat(
    message: str = typer.Argument(..., help="User message."),
    profile: Optional[str] = typer.Option(None, "--profile", "-p"),
) -> None:
    """Single-turn chat with the resolved text backend."""

    async def _go() -> OperationResult:
        async with _orchestrator() as orchestrator:
            return await orchestrator.chat(message, profile_id=profile)

    _finish(asyncio.run(_go()), title="Chat")


@app.command()
def translate(
    text: str = typer.Argument(...),
    direction: str = typer.Option("zh2en", "--direction", "-d", help="zh2en or en2zh."),
    profile: Optional[str] = typer.Option(None, "--profile", "-p"),
) -> None:
    """Translate an image prompt (zh2en) or explain one in Chinese (en2zh)."""

    async def _go() -> OperationResult:
        async with _orchestrator() as orchestrator:
            return await orchestrator.translate(text, direction, profile_id=profile)

    result = asyncio.run(_go())
    _finish(result, title="Translation", body=result.data.translated if result.success else None)


@app.command()
def copywriting(
    cards_file: Optional[Path] = typer.Option(None, "--cards", exists=True, dir_okay=False, help="Cards JSON."),
    file: Optional[Path] = typer.Option(None, "--file", "-f", exists=True, dir_okay=False, help="Article file (quick mode)."),
    title: Optional[str] = typer.Option(None, "--title"),
    vibe: str = typer.Option("viral", "--vibe", help="viral, minimal or pro."),
    profile: Optional[str] = typer.Option(None, "--profile", "-p"),
    with_image_prompt: bool = typer.Option(False, "--image-prompt", help="Also produce a cover image prompt."),
) -> None:
    """Write the post text from an outline (or straight from an article)."""

    if (cards_file is None) == (file is None):
        raise typer.BadParameter("use exactly one of --cards or --file")

    async def _go() -> tuple[OperationResult, OperationResult | None]:
        async with _orchestrator() as orchestrator:
            if cards_file is not None:
                copy = await orchestrator.generate_copywriting(
                    cards=load_cards_json(cards_file), title=title, vibe=vibe, profile_id=profile
                )
            else:
                copy = await orchestrator.generate_copywriting(
                    article=file.read_text(encoding="utf-8"), title=title, vibe=vibe, mode="quick", profile_id=profile
                )
            if not (copy.success and with_image_prompt):
                return copy, None
            return copy, await orchestrator.generate_copy_image_prompt(copy.data.copy_text, profile_id=profile)

    copy, cover = asyncio.run(_go())
    _finish(copy, title="Copywriting", body=copy.data.copy_text if copy.success else None)
    if cover is not None:
        _finish(cover, title="Cover image prompt")


@app.command()
def profiles() -> None:
    """List stored profiles (masked keys) and what each capability resolves to."""

    store = JsonConfigStore(_state.settings.resolve_store_path())
    resolver = ConfigResolver(store)
    resolved: dict[Capability, str | None] = {}
    for capability in (Capability.TEXT, Capability.IMAGE):
        try:
            resolved[capability] = resolver.resolve_profile(capability).id
        except ConfigurationUnavailable:
            resolved[capability] = None
    _console.print(build_profiles_table(store.list_profiles(), resolved))


@app.command(name="test-connection")
def test_connection(profile_id: str = typer.Argument(..., help="Stored profile id.")) -> None:
    """Test one stored profile (no fallback)."""

    async def _go() -> OperationResult:
        async with _orchestrator() as orchestrator:
            return await orchestrator.test_connection(profile_id)

    result = asyncio.run(_go())
    _finish(result, title="Connection test", body=result.data.message if result.success else None)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
