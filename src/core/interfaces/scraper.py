"""Contrato del scraper de fuentes (URL -> texto plano)."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import ScrapedSource


@runtime_checkable
class SourceScraper(Protocol):
    async def scrape(self, url: str) -> ScrapedSource:
        """Descarga `url` y devuelve título + texto limpio."""

        ...
