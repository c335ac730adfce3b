"""Scraper de artículos (URL -> título + texto plano) con BeautifulSoup.

Selectores por sitio (WeChat, Zhihu, Jianshu, Juejin) y un extractor genérico
de respaldo. Implementa `core.interfaces.scraper.SourceScraper`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

import httpx
from bs4 import BeautifulSoup

from core.config import AppSettings
from core.domain.errors import ProviderRequestError
from core.domain.models import ScrapedSource

from adapters.http_client import build_async_client, extract_html_metadata

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
}

_GENERIC_CONTAINERS = (
    ".article-content",
    ".post-content",
    ".entry-content",
    ".content",
    "main",
    "#content",
    ".main-content",
)
_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class SiteSelectors:
    title: tuple[str, ...]
    content: tuple[str, ...]
    images: str
    image_attrs: tuple[str, ...] = ("src",)
    skip_image_substrings: tuple[str, ...] = field(default=())


SITE_SELECTORS: dict[str, SiteSelectors] = {
    "wechat": SiteSelectors(
        title=("#activity-name", "h1"),
        content=("#js_content",),
        images="#js_content img",
        image_attrs=("data-src", "src"),
    ),
    "zhihu": SiteSelectors(
        title=("h1.Post-Title", "h1"),
        content=(".Post-RichTextContainer", ".RichContent-inner"),
        images=".Post-RichTextContainer img, .RichContent-inner img",
        image_attrs=("data-original", "src"),
        skip_image_substrings=("equation",),
    ),
    "jianshu": SiteSelectors(
        title=("h1.title", "h1"),
        content=("article",),
        images="article img",
        image_attrs=("data-original-src", "src"),
    ),
    "juejin": SiteSelectors(
        title=("h1.article-title", "h1"),
        content=(".markdown-body", "article"),
        images=".markdown-body img, article img",
    ),
}


def detect_source(url: str) -> str:
    if "mp.weixin.qq.com" in url:
        return "wechat"
    if "zhihu.com" in url:
        return "zhihu"
    if "jianshu.com" in url:
        return "jianshu"
    if "juejin.cn" in url:
        return "juejin"
    if "csdn.net" in url:
        return "csdn"
    if "toutiao.com" in url or "toutiaocdn.com" in url:
        return "toutiao"
    return "generic"


def clean_text(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def _first_text(soup: BeautifulSoup, selectors: tuple[str, ...]) -> str:
    for selector in selectors:
        node = soup.select_one(selector)
        if node is not None:
            text = node.get_text(" ", strip=True)
            if text:
                return text
    return ""


def _images(soup: BeautifulSoup, selector: str, attrs: tuple[str, ...], skip: tuple[str, ...]) -> list[str]:
    out: list[str] = []
    for img in soup.select(selector):
        src = next((img.get(a) for a in attrs if img.get(a)), None)
        if not src:
            continue
        src = str(src)
        if any(s in src for s in skip):
            continue
        out.append(src)
    return out


def _parse_generic(soup: BeautifulSoup, url: str) -> tuple[str, str, list[str]]:
    meta = extract_html_metadata(html=str(soup), base_url=url)
    title = _first_text(soup, ("h1",)) or meta.get("title") or meta.get("og_title") or ""

    content = _first_text(soup, ("article",))
    if not content:
        for selector in _GENERIC_CONTAINERS:
            content = _first_text(soup, (selector,))
            if len(content) > 100:
                break

    if len(content) < 100:
        for tag in soup(["script", "style", "nav", "header", "footer", "aside"]):
            tag.decompose()
        body = soup.body or soup
        content = body.get_text(" ", strip=True)

    images = _images(soup, "article img, .content img, main img", ("src",), ("logo", "icon"))
    return title, content, images


def parse_html(html: str, url: str) -> ScrapedSource:
    """HTML -> `ScrapedSource` según el sitio detectado."""

    source = detect_source(url)
    soup = BeautifulSoup(html, "html.parser")

    selectors = SITE_SELECTORS.get(source)
    if selectors is None:
        title, content, images = _parse_generic(soup, url)
    else:
        title = _first_text(soup, selectors.title)
        content = _first_text(soup, selectors.content)
        images = _images(soup, selectors.images, selectors.image_attrs, selectors.skip_image_substrings)

    return ScrapedSource(
        title=clean_text(title),
        content=clean_text(content),
        images=images,
        source=source,
        url=url,
    )


class HtmlSourceScraper:
    """Implementación httpx + BeautifulSoup de `SourceScraper`."""

    def __init__(self, settings: AppSettings | None = None, *, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings or AppSettings()
        self._client = client

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> str:
        try:
            response = await client.get(url, headers=BROWSER_HEADERS)
        except httpx.HTTPError as exc:
            raise ProviderRequestError("scrape transport error", body=str(exc)) from exc
        if not response.is_success:
            raise ProviderRequestError(
                f"scrape failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response.text

    async def scrape(self, url: str) -> ScrapedSource:
        if self._client is not None:
            html = await self._fetch(self._client, url)
        else:
            async with build_async_client(self._settings) as client:
                html = await self._fetch(client, url)
        result = parse_html(html, url)
        logger.info("Scraped %s (%s): %d chars", url, result.source, len(result.content))
        return result
