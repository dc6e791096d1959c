"""
Tests for the per-language analysis prompt templates.

Run with: pytest tests/test_analysis_prompt.py -v
"""

import pytest

from ads_ai.models import ScrapedContent
from ads_ai.prompts.analysis import (
    ANALYSIS_FIELDS,
    SEGMENT_FIELDS,
    build_description_analysis_prompt,
    build_project_analysis_prompt,
    build_screenshot_analysis_prompt,
    build_subproject_analysis_prompt,
    build_website_analysis_prompt,
)

LANGUAGES = ["uk", "ru", "en"]


@pytest.fixture
def content():
    return ScrapedContent(
        url="https://acme.example",
        title="Acme Widgets",
        meta_description="Premium widgets",
        headings=["Widgets for pros"],
        paragraphs=["We sell premium widgets for professionals"],
    )


class TestFieldNames:
    @pytest.mark.parametrize("language", LANGUAGES)
    def test_project_prompt_requests_every_field(self, content, language):
        text = build_project_analysis_prompt(content, language).text
        for name in ANALYSIS_FIELDS + SEGMENT_FIELDS:
            assert f'"{name}"' in text
        for key in ("age", "gender", "location", "income"):
            assert f'"{key}"' in text

    @pytest.mark.parametrize("language", LANGUAGES)
    def test_subproject_prompt_requests_every_field(self, content, language):
        text = build_subproject_analysis_prompt(content, "webinar", "Spring webinar", language).text
        for name in ANALYSIS_FIELDS + SEGMENT_FIELDS:
            assert f'"{name}"' in text

    def test_templates_differ_between_languages(self, content):
        texts = {lang: build_project_analysis_prompt(content, lang).text for lang in LANGUAGES}
        assert len(set(texts.values())) == 3


class TestProjectPrompt:
    def test_english_prompt_mentions_content_and_language(self, content):
        prompt = build_project_analysis_prompt(content, "en")
        assert prompt.language == "en"
        assert "Acme Widgets" in prompt.text
        assert "English" in prompt.text
        assert prompt.images == []

    def test_unknown_language_falls_back_to_ukrainian(self, content):
        prompt = build_project_analysis_prompt(content, "fr")
        assert prompt.language == "uk"
        assert "ФОРМАТ ВІДПОВІДІ" in prompt.text

    def test_segment_bounds(self, content):
        assert build_project_analysis_prompt(content).segment_bounds == (3, 5)
        assert build_subproject_analysis_prompt(content, "landing", "Promo").segment_bounds == (2, 4)


class TestSubprojectPrompt:
    def test_states_type_and_name(self, content):
        text = build_subproject_analysis_prompt(content, "landing", "Summer promo", "en").text
        assert 'type "landing" - Summer promo' in text
        assert "this specific landing page" in text

    def test_localized_type(self, content):
        text = build_subproject_analysis_prompt(content, "campaign", "Black Friday", "uk").text
        assert "кампанія" in text

    def test_unknown_type_is_passed_through(self, content):
        text = build_subproject_analysis_prompt(content, "podcast", "Ep. 1", "en").text
        assert "this specific podcast" in text


class TestVisualPrompts:
    def test_website_prompt_attaches_screenshot(self, content, png_bytes):
        content.screenshot = png_bytes
        prompt = build_website_analysis_prompt(content, "en")
        assert prompt.images == [png_bytes]
        assert "https://acme.example" in prompt.text

    def test_website_prompt_without_screenshot(self, content):
        assert build_website_analysis_prompt(content).images == []

    def test_screenshot_prompt(self, png_bytes):
        prompt = build_screenshot_analysis_prompt(png_bytes, "ru")
        assert prompt.images == [png_bytes]
        assert prompt.segment_bounds == (3, 5)

    def test_description_prompt(self):
        prompt = build_description_analysis_prompt("Handmade leather wallets", "en")
        assert "Handmade leather wallets" in prompt.text
        assert prompt.images == []
