"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from typing import Sequence

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import mask_secret
from core.domain.models import (
    BackendProfile,
    CardRecord,
    Capability,
    ImagePromptResult,
    OperationResult,
    QuickPrompt,
)


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida.

    Por qué aquí:
    - Evita dependencias circulares (main <-> doctor).
    - Permite desactivar banner en modos no interactivos (JSON/pipelines).
    """

    title = Text("CardForge", style="bold magenta")
    subtitle = Text("Artículo → tarjetas • Prompts de imagen • Multi-proveedor", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="magenta", padding=(1, 4)))


def build_cards_table(cards: Sequence[CardRecord]) -> Table:
    table = Table(title="Cards")
    table.add_column("#", style="cyan", no_wrap=True)
    table.add_column("Type", style="magenta")
    table.add_column("Title", style="bold white")
    table.add_column("Points", style="white")
    table.add_column("Image prompt", style="dim")
    for card in cards:
        points = "\n".join(f"{p.emoji} {p.label}" for p in card.points)
        prompt = card.image_prompt
        if card.image_prompt_auto_generated:
            prompt = f"[yellow](auto)[/yellow] {prompt}"
        table.add_row(str(card.page_number), card.page_type, card.title, points, prompt)
    return table


def build_image_prompts_table(results: Sequence[ImagePromptResult]) -> Table:
    table = Table(title="Image prompts")
    table.add_column("#", style="cyan", no_wrap=True)
    table.add_column("Prompt", style="white")
    table.add_column("Fallback", style="yellow")
    for result in results:
        table.add_row(str(result.page_number), result.image_prompt, "yes" if result.fallback_used else "")
    return table


def build_quick_prompts_table(prompts: Sequence[QuickPrompt]) -> Table:
    table = Table(title="Quick prompts")
    table.add_column("Angle", style="cyan")
    table.add_column("Prompt", style="white")
    table.add_column("Basis", style="dim")
    for item in prompts:
        table.add_row(item.angle, item.prompt, item.content_basis)
    return table


def build_profiles_table(
    profiles: Sequence[BackendProfile],
    resolved: dict[Capability, str | None],
) -> Table:
    """Perfiles guardados (key enmascarada) y qué perfil resuelve cada capacidad."""

    table = Table(title="Backend profiles")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Capability", style="magenta")
    table.add_column("Provider", style="white")
    table.add_column("Model", style="bright_green")
    table.add_column("API key", style="dim")
    table.add_column("Flags", style="yellow")
    table.add_column("Serves", style="green")
    for profile in profiles:
        flags = []
        if profile.is_default:
            flags.append("default")
        if not profile.enabled:
            flags.append("disabled")
        serves = [cap.value for cap, pid in resolved.items() if pid == profile.id]
        table.add_row(
            profile.id,
            profile.name,
            profile.capability.value,
            profile.provider,
            profile.model,
            mask_secret(profile.api_key),
            ", ".join(flags),
            ", ".join(serves),
        )
    return table


def build_result_panel(result: OperationResult, *, title: str, body: str | None = None) -> Panel:
    """Panel para un sobre de resultado (éxito o fallo)."""

    if not result.success:
        text = Text()
        text.append(result.message or "", style="bold red")
        if result.detail:
            text.append(f"\n\n{result.detail}", style="dim")
        text.append(f"\n\nerrorKind: {result.error_kind}", style="dim")
        return Panel(text, title=Text(title, style="bold red"), border_style="red")

    text = Text()
    text.append(body if body is not None else str(result.data or ""))
    if result.served_by is not None:
        served = result.served_by
        text.append(f"\n\n{served.config_name or '-'} · {served.model}", style="dim")
    return Panel(text, title=Text(title, style="bold yellow"), border_style="yellow")
