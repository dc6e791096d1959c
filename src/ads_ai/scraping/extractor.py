from __future__ import annotations

import html
import logging
import re
from typing import Any, Protocol

import httpx

from ads_ai.config import settings
from ads_ai.errors import FetchError, RenderError
from ads_ai.models import ScrapedContent

logger = logging.getLogger(__name__)

# Caps on what is passed on to the analysis prompt.
MAX_HEADINGS = 10
MAX_PARAGRAPHS = 20
MAX_IMAGES = 10
MAX_TEXT_CHARS = 10_000
MIN_PARAGRAPH_CHARS = 20

_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
_META_DESC_RE = re.compile(
    r"<meta[^>]*name=[\"']description[\"'][^>]*content=[\"']([^\"']+)[\"']",
    re.IGNORECASE,
)
_TAG_RE = re.compile(r"<[^>]+>")


def _heading_re(level: int) -> re.Pattern[str]:
    return re.compile(rf"<h{level}[^>]*>([^<]+)</h{level}>", re.IGNORECASE)


_HEADING_RES = [_heading_re(level) for level in (1, 2, 3)]
_PARAGRAPH_RE = re.compile(r"<p[^>]*>([^<]+)</p>", re.IGNORECASE)


def _clean(fragment: str) -> str:
    return html.unescape(_TAG_RE.sub("", fragment)).strip()


class ContentExtractor(Protocol):
    name: str

    async def extract(self, url: str, capture_screenshot: bool = False) -> ScrapedContent: ...


def parse_html(url: str, raw_html: str) -> ScrapedContent:
    """Regex extraction used where a browser is not available."""
    title_m = _TITLE_RE.search(raw_html)
    meta_m = _META_DESC_RE.search(raw_html)

    headings: list[str] = []
    for pattern in _HEADING_RES:
        headings.extend(t for t in (_clean(m) for m in pattern.findall(raw_html)) if t)

    paragraphs = [t for t in (_clean(m) for m in _PARAGRAPH_RE.findall(raw_html)) if len(t) > MIN_PARAGRAPH_CHARS]

    return ScrapedContent(
        url=url,
        title=_clean(title_m.group(1)) if title_m else "",
        meta_description=html.unescape(meta_m.group(1)).strip() if meta_m else "",
        headings=headings[:MAX_HEADINGS],
        paragraphs=paragraphs[:MAX_PARAGRAPHS],
    )


class LightweightExtractor:
    name = "lightweight"

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float | None = None) -> None:
        self._client = client
        self._timeout = timeout or settings.scrape_timeout_seconds

    async def _get(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        return await client.get(url, headers={"User-Agent": settings.scrape_user_agent})

    async def extract(self, url: str, capture_screenshot: bool = False) -> ScrapedContent:
        try:
            if self._client is not None:
                resp = await self._get(self._client, url)
            else:
                async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                    resp = await self._get(client, url)
        except httpx.HTTPError as exc:
            raise FetchError(f"Failed to scrape website: {exc}", detail={"url": url}) from exc

        if resp.status_code < 200 or resp.status_code >= 300:
            raise FetchError(
                f"Failed to scrape website: Failed to fetch: {resp.status_code}",
                detail={"url": url, "status": resp.status_code},
            )

        content = parse_html(url, resp.text)
        logger.info(
            "Scraped %s: title=%r headings=%d paragraphs=%d",
            url,
            content.title,
            len(content.headings),
            len(content.paragraphs),
        )
        return content


# Runs inside the page; mirrors what a reader sees after scripts have rendered.
_EXTRACT_JS = """
() => {
    const metaTags = {};
    document.querySelectorAll('meta').forEach(meta => {
        const name = meta.getAttribute('name') || meta.getAttribute('property');
        const content = meta.getAttribute('content');
        if (name && content) metaTags[name] = content;
    });
    const headings = [];
    ['h1', 'h2', 'h3'].forEach(tag => {
        document.querySelectorAll(tag).forEach(el => {
            const text = (el.textContent || '').trim();
            if (text) headings.push(text);
        });
    });
    const paragraphs = [];
    document.querySelectorAll('p').forEach(el => {
        const text = (el.textContent || '').trim();
        if (text) paragraphs.push(text);
    });
    const buttons = [];
    document.querySelectorAll('button, a.btn, a[class*="button"]').forEach(el => {
        const text = (el.textContent || '').trim();
        if (text) buttons.push({text: text, href: el.href || ''});
    });
    const images = [];
    document.querySelectorAll('img').forEach(img => {
        if (img.src) images.push({src: img.src, alt: img.alt || ''});
    });
    return {
        url: window.location.href,
        title: document.title,
        metaTags: metaTags,
        headings: headings,
        paragraphs: paragraphs,
        buttons: buttons,
        images: images,
        allText: document.body ? document.body.innerText : '',
    };
}
"""


def content_from_dom(url: str, data: dict[str, Any], screenshot: bytes | None = None) -> ScrapedContent:
    meta_tags = {str(k): str(v) for k, v in (data.get("metaTags") or {}).items()}
    paragraphs = [p for p in data.get("paragraphs") or [] if len(p) > MIN_PARAGRAPH_CHARS]
    return ScrapedContent(
        url=data.get("url") or url,
        title=data.get("title") or "",
        meta_description=meta_tags.get("description", ""),
        meta_tags=meta_tags,
        headings=list(data.get("headings") or [])[:MAX_HEADINGS],
        paragraphs=paragraphs[:MAX_PARAGRAPHS],
        buttons=list(data.get("buttons") or []),
        images=list(data.get("images") or [])[:MAX_IMAGES],
        all_text=(data.get("allText") or "")[:MAX_TEXT_CHARS],
        screenshot=screenshot,
    )


class BrowserExtractor:
    """
    Full render in headless Chromium. Every call launches its own browser and
    closes it on all exit paths.
    """

    name = "browser"

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout_ms = int((timeout or settings.scrape_timeout_seconds) * 1000)

    async def extract(self, url: str, capture_screenshot: bool = False) -> ScrapedContent:
        # Imported lazily so the app can start without browsers installed.
        from playwright.async_api import Error as PlaywrightError  # type: ignore
        from playwright.async_api import async_playwright  # type: ignore

        async with async_playwright() as pw:
            try:
                browser = await pw.chromium.launch(headless=True, args=["--no-sandbox", "--disable-setuid-sandbox"])
            except PlaywrightError as exc:
                raise RenderError("Failed to start headless browser", detail=str(exc)) from exc
            try:
                page = await browser.new_page(viewport={"width": 1920, "height": 1080})
                try:
                    await page.goto(url, wait_until="networkidle", timeout=self._timeout_ms)
                except PlaywrightError as exc:
                    raise RenderError(
                        "Failed to access website. Please check the URL.",
                        detail={"url": url, "error": str(exc)},
                    ) from exc

                try:
                    screenshot = await page.screenshot(full_page=True, type="png") if capture_screenshot else None
                    data = await page.evaluate(_EXTRACT_JS)
                except PlaywrightError as exc:
                    raise RenderError("Failed to render website content", detail={"url": url, "error": str(exc)}) from exc
            finally:
                await browser.close()

        content = content_from_dom(url, data or {}, screenshot)
        logger.info(
            "Rendered %s: title=%r headings=%d screenshot_bytes=%d",
            url,
            content.title,
            len(content.headings),
            len(screenshot or b""),
        )
        return content
