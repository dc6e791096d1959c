from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

# Canonical reference roles, in the order they are layered into a request.
REFERENCE_ROLES = ("template", "logo", "person")

_ROLE_ALIASES = {
    "template": "template",
    "background": "template",
    "style": "template",
    "logo": "logo",
    "brand": "logo",
    "person": "person",
    "product": "person",
    "subject": "person",
    "personproduct": "person",
}

# Keys recognized when demographics arrive as a map instead of free text.
DEMOGRAPHIC_KEYS = ("age", "gender", "location", "income")

SUPPORTED_LANGUAGES = ("uk", "ru", "en")


def normalize_role(role: str) -> str:
    key = (role or "").strip().lower().replace("-", "").replace("_", "").replace("/", "")
    try:
        return _ROLE_ALIASES[key]
    except KeyError:
        raise ValueError(f"unknown reference image role: {role!r}") from None


def normalize_language(language: str | None, default: str = "uk") -> str:
    lang = (language or "").strip().lower()
    return lang if lang in SUPPORTED_LANGUAGES else default


@dataclass(frozen=True)
class AudienceSegment:
    id: str
    name: str
    description: str
    pain_points: list[str]
    needs: list[str]
    demographics: str | dict[str, Any] | None = None

    def demographics_text(self) -> str:
        """Render demographics whether they came back as text or as a field map."""
        d = self.demographics
        if not d:
            return "Not specified"
        if isinstance(d, dict):
            ordered = [k for k in DEMOGRAPHIC_KEYS if d.get(k)]
            ordered += [k for k in d if k not in DEMOGRAPHIC_KEYS and d.get(k)]
            return ", ".join(f"{k}: {d[k]}" for k in ordered) or "Not specified"
        return str(d)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "pain_points": list(self.pain_points),
            "needs": list(self.needs),
            "demographics": self.demographics,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "AudienceSegment":
        def _as_list(value: Any) -> list[str]:
            if isinstance(value, list):
                return [str(v) for v in value]
            return [str(value)] if value else []

        return cls(
            id=str(row.get("id") or ""),
            name=str(row.get("name") or ""),
            description=str(row.get("description") or ""),
            pain_points=_as_list(row.get("pain_points")),
            needs=_as_list(row.get("needs")),
            demographics=row.get("demographics"),
        )


@dataclass(frozen=True)
class AnalysisResult:
    summary: str
    key_features: list[str]
    brand_voice: str
    target_audiences: list[AudienceSegment]

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "key_features": list(self.key_features),
            "brand_voice": self.brand_voice,
            "target_audiences": [a.to_dict() for a in self.target_audiences],
        }


@dataclass
class ScrapedContent:
    url: str
    title: str = ""
    meta_description: str = ""
    meta_tags: dict[str, str] = field(default_factory=dict)
    headings: list[str] = field(default_factory=list)
    paragraphs: list[str] = field(default_factory=list)
    buttons: list[dict[str, str]] = field(default_factory=list)
    images: list[dict[str, str]] = field(default_factory=list)
    all_text: str = ""
    screenshot: bytes | None = None

    def to_json(self) -> str:
        # Compact form used by the page-level analysis templates.
        return json.dumps(
            {
                "title": self.title,
                "metaDescription": self.meta_description,
                "headings": self.headings,
                "paragraphs": self.paragraphs,
            },
            ensure_ascii=False,
        )

    def to_context(self) -> str:
        """Long-form context block for the visual website analysis."""
        lines = [
            f"WEBSITE URL: {self.url}",
            "",
            f"TITLE: {self.title}",
            "",
            "META TAGS:",
            json.dumps(self.meta_tags or {"description": self.meta_description}, ensure_ascii=False, indent=2),
            "",
            "HEADINGS:",
            *self.headings,
            "",
            "PARAGRAPHS:",
            *self.paragraphs,
            "",
            "BUTTONS AND CTAS:",
            *[f'"{b.get("text", "")}" → {b.get("href", "")}' for b in self.buttons],
            "",
            "IMAGES (alt text):",
            *[f'{img.get("alt") or "no description"} ({img.get("src", "")})' for img in self.images],
        ]
        if self.all_text:
            lines += ["", "FULL TEXT (first 10000 chars):", self.all_text]
        return "\n".join(lines)


@dataclass(frozen=True)
class ReferenceImage:
    data: bytes
    role: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", normalize_role(self.role))


@dataclass(frozen=True)
class CreativePromptContext:
    project_summary: str
    key_features: list[str]
    brand_voice: str
    audience: AudienceSegment
    size: str
    format: str | None = None
    # Canonical roles of the reference images that will accompany the prompt.
    reference_roles: frozenset[str] = frozenset()
    style_notes: str | None = None
    language: str = "uk"


@dataclass(frozen=True)
class GeneratedCreative:
    id: str
    session_id: str
    target_audience: str
    format: str
    size: str
    image_url: str
    prompt_used: str
    reference_images: dict[str, bool]
    created_at: str
    project_id: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "GeneratedCreative":
        refs = row.get("reference_images") or {}
        return cls(
            id=str(row.get("id") or ""),
            session_id=str(row.get("session_id") or ""),
            target_audience=str(row.get("target_audience") or ""),
            format=str(row.get("format") or ""),
            size=str(row.get("size") or ""),
            image_url=str(row.get("image_url") or ""),
            prompt_used=str(row.get("prompt_used") or ""),
            reference_images={r: bool(refs.get(r)) for r in REFERENCE_ROLES} if isinstance(refs, dict) else {},
            created_at=str(row.get("created_at") or ""),
            project_id=row.get("project_id"),
        )


@dataclass
class ChatState:
    # URL the assistant offered to analyze on the previous turn, if any.
    awaiting_confirmation_for: str | None = None
