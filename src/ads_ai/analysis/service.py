from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

from ads_ai.config import settings
from ads_ai.errors import InvalidRequestError
from ads_ai.models import AnalysisResult, normalize_language
from ads_ai.prompts.analysis import (
    AnalysisPrompt,
    build_description_analysis_prompt,
    build_project_analysis_prompt,
    build_screenshot_analysis_prompt,
    build_subproject_analysis_prompt,
    build_website_analysis_prompt,
)
from ads_ai.prompts.parsing import parse_analysis
from ads_ai.providers.base import TextProvider
from ads_ai.scraping.extractor import BrowserExtractor, ContentExtractor, LightweightExtractor
from ads_ai.storage import SupabaseStore

logger = logging.getLogger(__name__)


@dataclass
class AnalysisOutcome:
    owner: dict[str, Any]
    analysis: AnalysisResult
    # Persisted audience rows; ids here are the database ids.
    audiences: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "analysis": self.analysis.to_dict(),
            "audiences": self.audiences,
        }


def _project_name(url: str, title: str) -> str:
    if title:
        return title[:120]
    return urlparse(url).netloc or url


class AnalysisService:
    """
    Turns a URL, screenshot or description into an AnalysisResult and stores
    it against a project or subproject.

    `browser` does the full render used for ad-hoc URL analysis; `fetcher`
    is the lightweight scrape used when re-analyzing saved projects.
    """

    def __init__(
        self,
        store: SupabaseStore,
        text_provider: TextProvider,
        browser: ContentExtractor | None = None,
        fetcher: ContentExtractor | None = None,
    ) -> None:
        self.store = store
        self.text = text_provider
        self.browser = browser or BrowserExtractor()
        self.fetcher = fetcher or LightweightExtractor()

    async def _run_prompt(self, prompt: AnalysisPrompt) -> AnalysisResult:
        logger.info("Running %s analysis (%s) with %s", prompt.kind, prompt.language, self.text.name)
        raw = await self.text.generate_text(prompt.text, prompt.images or None)
        return parse_analysis(raw, prompt.segment_bounds)

    def _create_project(
        self,
        session_id: str,
        result: AnalysisResult,
        name: str,
        language: str,
        url: str | None = None,
        description: str | None = None,
    ) -> AnalysisOutcome:
        project = self.store.create_project(
            session_id=session_id,
            name=name,
            url=url,
            description=description,
            language=language,
            analysis_result=result.to_dict(),
        )
        audiences = self.store.replace_audiences(project["id"], result.target_audiences)
        logger.info("Saved project %s with %d audiences", project["id"], len(audiences))
        return AnalysisOutcome(owner=project, analysis=result, audiences=audiences)

    async def analyze_url(self, url: str, session_id: str, language: str | None = None) -> AnalysisOutcome:
        if not url:
            raise InvalidRequestError("URL is required")
        lang = normalize_language(language, settings.default_language)
        content = await self.browser.extract(url, capture_screenshot=True)
        result = await self._run_prompt(build_website_analysis_prompt(content, lang))
        return self._create_project(session_id, result, _project_name(url, content.title), lang, url=url)

    async def analyze_screenshot(
        self,
        image: bytes,
        session_id: str,
        language: str | None = None,
        name: str | None = None,
    ) -> AnalysisOutcome:
        if not image:
            raise InvalidRequestError("Image data is required")
        lang = normalize_language(language, settings.default_language)
        result = await self._run_prompt(build_screenshot_analysis_prompt(image, lang))
        return self._create_project(session_id, result, name or result.summary[:60] or "Screenshot", lang)

    async def analyze_description(
        self,
        description: str,
        session_id: str,
        language: str | None = None,
        name: str | None = None,
    ) -> AnalysisOutcome:
        if not (description or "").strip():
            raise InvalidRequestError("Description is required")
        lang = normalize_language(language, settings.default_language)
        result = await self._run_prompt(build_description_analysis_prompt(description, lang))
        return self._create_project(
            session_id,
            result,
            name or description.strip()[:60],
            lang,
            description=description,
        )

    async def analyze_project(self, project_id: str) -> AnalysisOutcome:
        project = self.store.get_project(project_id)
        url = project.get("url")
        if not url:
            raise InvalidRequestError("Project URL is required for analysis")

        lang = normalize_language(project.get("language"), settings.default_language)
        content = await self.fetcher.extract(url)
        result = await self._run_prompt(build_project_analysis_prompt(content, lang))

        audiences = self.store.save_analysis(project_id, result)
        project = project | {"analysis_result": result.to_dict()}
        return AnalysisOutcome(owner=project, analysis=result, audiences=audiences)

    async def analyze_subproject(self, subproject_id: str) -> AnalysisOutcome:
        sub = self.store.get_subproject(subproject_id)
        url = sub.get("url")
        if not url:
            raise InvalidRequestError("Subproject URL is required for analysis")

        lang = normalize_language(sub.get("language"), settings.default_language)
        content = await self.fetcher.extract(url)
        prompt = build_subproject_analysis_prompt(
            content,
            subproject_type=sub.get("type") or "webinar",
            subproject_name=sub.get("name") or "",
            language=lang,
        )
        result = await self._run_prompt(prompt)

        audiences = self.store.save_analysis(subproject_id, result, subproject=True)
        sub = sub | {"analysis_result": result.to_dict()}
        return AnalysisOutcome(owner=sub, analysis=result, audiences=audiences)
