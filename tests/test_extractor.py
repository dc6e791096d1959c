"""
Tests for the HTML extractors and DOM payload normalization.

Run with: pytest tests/test_extractor.py -v
"""

import sys
import types
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from ads_ai.errors import FetchError, RenderError
from ads_ai.scraping.extractor import (
    BrowserExtractor,
    MAX_HEADINGS,
    MAX_IMAGES,
    MAX_PARAGRAPHS,
    MAX_TEXT_CHARS,
    LightweightExtractor,
    content_from_dom,
    parse_html,
)

PAGE = """
<html><head>
<title>Acme Widgets</title>
<meta name="description" content="Premium widgets &amp; more">
</head><body>
<h2>Why us</h2>
<h1>Widgets for pros</h1>
<h3>Pricing</h3>
<p>Short one.</p>
<p>We sell premium widgets for professionals</p>
</body></html>
"""


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestParseHtml:
    def test_basic_fields(self):
        content = parse_html("https://acme.example", PAGE)
        assert content.title == "Acme Widgets"
        assert content.meta_description == "Premium widgets & more"
        # h1 first, then h2, then h3
        assert content.headings == ["Widgets for pros", "Why us", "Pricing"]
        assert content.paragraphs == ["We sell premium widgets for professionals"]

    def test_caps(self):
        html = "".join(f"<h2>Heading {i}</h2>" for i in range(25))
        html += "".join(f"<p>Paragraph number {i} with enough text</p>" for i in range(40))
        content = parse_html("https://x.example", html)
        assert len(content.headings) == MAX_HEADINGS
        assert len(content.paragraphs) == MAX_PARAGRAPHS
        assert all(len(p) > 20 for p in content.paragraphs)

    def test_paragraph_of_exactly_twenty_chars_dropped(self):
        content = parse_html("https://x.example", "<p>" + "a" * 20 + "</p><p>" + "b" * 21 + "</p>")
        assert content.paragraphs == ["b" * 21]

    def test_empty_page(self):
        content = parse_html("https://x.example", "")
        assert content.title == ""
        assert content.headings == []


class TestLightweightExtractor:
    @pytest.mark.asyncio
    async def test_fetches_with_user_agent(self):
        seen = {}

        def handler(request):
            seen["ua"] = request.headers.get("user-agent")
            return httpx.Response(200, text=PAGE)

        async with _client(handler) as client:
            content = await LightweightExtractor(client=client).extract("https://acme.example")

        assert content.url == "https://acme.example"
        assert content.title == "Acme Widgets"
        assert seen["ua"] and "AdsAI" in seen["ua"]

    @pytest.mark.asyncio
    async def test_non_2xx_raises_fetch_error(self):
        async with _client(lambda request: httpx.Response(404, text="nope")) as client:
            with pytest.raises(FetchError) as exc_info:
                await LightweightExtractor(client=client).extract("https://acme.example/missing")

        assert "404" in exc_info.value.message
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_network_error_raises_fetch_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(FetchError):
                await LightweightExtractor(client=client).extract("https://down.example")


class TestContentFromDom:
    def test_caps_applied(self):
        data = {
            "title": "T",
            "metaTags": {"description": "D"},
            "headings": [f"h{i}" for i in range(30)],
            "paragraphs": [f"paragraph {i}" for i in range(50)],
            "images": [{"src": f"/{i}.png", "alt": ""} for i in range(30)],
            "buttons": [{"text": "Buy", "href": "/buy"}],
            "allText": "x" * (MAX_TEXT_CHARS + 500),
        }
        content = content_from_dom("https://x.example", data, screenshot=b"png")
        assert len(content.headings) <= MAX_HEADINGS
        assert len(content.paragraphs) <= MAX_PARAGRAPHS
        assert len(content.images) <= MAX_IMAGES
        assert len(content.all_text) == MAX_TEXT_CHARS
        assert content.screenshot == b"png"

    def test_context_block_lists_ctas(self):
        content = content_from_dom(
            "https://x.example",
            {"title": "T", "buttons": [{"text": "Buy now", "href": "/buy"}]},
        )
        context = content.to_context()
        assert "WEBSITE URL: https://x.example" in context
        assert '"Buy now" → /buy' in context


# ============================================================================
# Browser extractor, with playwright replaced by an in-memory module
# ============================================================================


class FakePlaywrightError(Exception):
    pass


class _FakePlaywright:
    def __init__(self, browser):
        self.chromium = MagicMock()
        self.chromium.launch = AsyncMock(return_value=browser)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


@pytest.fixture
def page():
    page = MagicMock()
    page.goto = AsyncMock()
    page.screenshot = AsyncMock(return_value=b"png-bytes")
    page.evaluate = AsyncMock(
        return_value={"title": "Acme Widgets", "metaTags": {"description": "Premium"}, "headings": ["Widgets"]}
    )
    return page


@pytest.fixture
def browser(page, monkeypatch):
    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=page)
    browser.close = AsyncMock()

    module = types.ModuleType("playwright.async_api")
    module.Error = FakePlaywrightError
    module.async_playwright = lambda: _FakePlaywright(browser)
    monkeypatch.setitem(sys.modules, "playwright", types.ModuleType("playwright"))
    monkeypatch.setitem(sys.modules, "playwright.async_api", module)
    return browser


class TestBrowserExtractor:
    @pytest.mark.asyncio
    async def test_renders_page_and_closes_browser(self, browser, page):
        content = await BrowserExtractor(timeout=5).extract("https://acme.example", capture_screenshot=True)

        assert content.title == "Acme Widgets"
        assert content.meta_description == "Premium"
        assert content.screenshot == b"png-bytes"
        page.goto.assert_awaited_once_with("https://acme.example", wait_until="networkidle", timeout=5000)
        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_screenshot_unless_asked(self, browser, page):
        content = await BrowserExtractor().extract("https://acme.example")

        assert content.screenshot is None
        page.screenshot.assert_not_awaited()
        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_navigation_failure_closes_browser(self, browser, page):
        page.goto.side_effect = FakePlaywrightError("net::ERR_NAME_NOT_RESOLVED")

        with pytest.raises(RenderError) as exc_info:
            await BrowserExtractor().extract("https://nowhere.example")

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail["url"] == "https://nowhere.example"
        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_screenshot_failure_becomes_render_error(self, browser, page):
        page.screenshot.side_effect = FakePlaywrightError("Target closed")

        with pytest.raises(RenderError) as exc_info:
            await BrowserExtractor().extract("https://acme.example", capture_screenshot=True)

        assert "Target closed" in exc_info.value.detail["error"]
        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unexpected_error_after_navigation_closes_browser(self, browser, page):
        page.evaluate.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await BrowserExtractor().extract("https://acme.example")

        browser.close.assert_awaited_once()
