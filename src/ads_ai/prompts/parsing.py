from __future__ import annotations

import json
import logging
from typing import Any

from ads_ai.errors import ParseError
from ads_ai.models import AnalysisResult, AudienceSegment

logger = logging.getLogger(__name__)


def extract_json_object(text: str) -> str:
    """
    Return the first balanced `{...}` region of `text`.

    Braces inside JSON string literals are ignored, so prose before the payload
    and braces inside values do not truncate or over-capture the object.
    """
    if not text:
        raise ParseError("Failed to parse analysis result", detail="empty model response")

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    candidate = text[start : i + 1]
                    try:
                        json.loads(candidate)
                    except json.JSONDecodeError:
                        # A stray brace in prose; retry from the next opening brace.
                        break
                    return candidate
        start = text.find("{", start + 1)

    raise ParseError("Failed to parse analysis result", detail=text[:500])


def _string_list(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    if isinstance(value, str) and value.strip():
        return [value.strip()]
    return []


def _segment(raw: Any, index: int) -> AudienceSegment:
    if not isinstance(raw, dict):
        raise ParseError(f"target_audiences[{index}] is not an object", detail=raw)
    name = str(raw.get("name") or "").strip()
    if not name:
        raise ParseError(f"target_audiences[{index}] has no name", detail=raw)
    pain_points = _string_list(raw.get("pain_points"))
    needs = _string_list(raw.get("needs"))
    if not pain_points or not needs:
        raise ParseError(f"segment '{name}' needs at least one pain point and one need", detail=raw)

    demographics = raw.get("demographics")
    if not isinstance(demographics, (dict, str)):
        demographics = None if demographics is None else str(demographics)

    return AudienceSegment(
        id=str(raw.get("id") or f"segment_{index + 1}"),
        name=name,
        description=str(raw.get("description") or "").strip(),
        pain_points=pain_points,
        needs=needs,
        demographics=demographics,
    )


def parse_analysis(text: str, segment_bounds: tuple[int, int] | None = None) -> AnalysisResult:
    candidate = extract_json_object(text)
    data = json.loads(candidate)
    if not isinstance(data, dict):
        raise ParseError("Failed to parse analysis result", detail=candidate[:500])

    audiences = data.get("target_audiences")
    if not isinstance(audiences, list) or not audiences:
        raise ParseError("Analysis result has no target_audiences", detail=candidate[:500])

    segments = [_segment(raw, i) for i, raw in enumerate(audiences)]
    if segment_bounds is not None:
        lo, hi = segment_bounds
        if not lo <= len(segments) <= hi:
            logger.warning("Model returned %d segments, expected %d-%d", len(segments), lo, hi)

    return AnalysisResult(
        summary=str(data.get("summary") or "").strip(),
        key_features=_string_list(data.get("key_features")),
        brand_voice=str(data.get("brand_voice") or "").strip(),
        target_audiences=segments,
    )
