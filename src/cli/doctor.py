"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.config_store import JsonConfigStore
from adapters.http_client import build_async_client
from core.config import AppSettings, get_user_env_file, write_user_env_vars
from core.domain.errors import ConfigurationUnavailable
from core.domain.language import Language
from core.domain.models import Capability
from core.services.resolver import ConfigResolver

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc)


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()
    store_path = settings.resolve_store_path()

    table = Table(title="CardForge Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Almacén
    store = None
    if store_path.exists():
        try:
            store = JsonConfigStore(store_path)
            table.add_row("Config store", "OK", str(store_path))
        except ValueError as exc:
            table.add_row("Config store", "FAIL", f"{store_path}: {exc}")
    else:
        table.add_row("Config store", "MISSING", f"{store_path} (run `cardforge doctor setup`)")

    # Resolución por capacidad
    if store is not None:
        resolver = ConfigResolver(store)
        for capability in (Capability.TEXT, Capability.IMAGE):
            try:
                cfg = resolver.resolve(capability)
                table.add_row(f"{capability.value} backend", "OK", f"{cfg.label} ({cfg.model_id})")
            except ConfigurationUnavailable:
                table.add_row(f"{capability.value} backend", "FAIL", "no enabled profile serves this capability")

    table.add_row("Language", "OK", settings.default_language.label())
    table.add_row("Poller", "OK", f"{settings.poll_interval_seconds}s x {settings.poll_max_attempts}")

    # Connectivity (best-effort)
    ok_http, detail_http = asyncio.run(_check_http("https://dashscope.aliyuncs.com", settings))
    table.add_row("HTTP connectivity", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if store is None:
        _console.print(
            "\n[yellow]Note:[/yellow] Without a config store every operation fails with configuration_unavailable."
        )


@app.command()
def setup() -> None:
    """Interactive setup (stores config in the user config .env).

    Designed for non-Python users: no manual .env editing.
    """

    settings = AppSettings()

    store_path = typer.prompt(
        "Config store path (JSON)",
        default=str(settings.resolve_store_path()),
        show_default=True,
    ).strip()
    language = Language.parse(typer.prompt("Language (zh/en)", default=settings.default_language.value))
    log_level = typer.prompt("Log level", default=settings.log_level).strip().upper()

    env_path = write_user_env_vars(
        {
            "CARDFORGE_STORE_PATH": store_path,
            "CARDFORGE_DEFAULT_LANGUAGE": language.value,
            "CARDFORGE_LOG_LEVEL": log_level,
        },
        env_path=get_user_env_file(),
    )

    _console.print(f"[green]Saved config to:[/green] {env_path}")
