"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts y headers para proveedores IA y scraping.
- Facilita testeo: se puede inyectar un `httpx.MockTransport`.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    Por qué un builder:
    - Centraliza timeouts/headers para que todos los adaptadores se comporten igual.
    - Un único cliente compartido por operación (texto, imagen y sondeo).
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json, text/html;q=0.9, */*;q=0.8",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout or settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def extract_html_metadata(*, html: str, base_url: str | None = None) -> dict[str, Any]:
    """Extrae metadata ligera de HTML.

    Devuelve keys opcionales:
    - title
    - meta_description
    - og_title
    - og_image
    """

    if not html:
        return {}

    soup = BeautifulSoup(html, "html.parser")

    out: dict[str, Any] = {}
    if soup.title and soup.title.string:
        out["title"] = soup.title.string.strip()

    tag = soup.find("meta", attrs={"name": "description"})
    if tag and tag.get("content"):
        out["meta_description"] = str(tag.get("content")).strip()

    og_title = soup.find("meta", attrs={"property": "og:title"})
    if og_title and og_title.get("content"):
        out["og_title"] = str(og_title.get("content")).strip()

    og = soup.find("meta", attrs={"property": "og:image"})
    if og and og.get("content"):
        og_image = str(og.get("content")).strip()
        out["og_image"] = urljoin(base_url, og_image) if base_url else og_image
    return out
