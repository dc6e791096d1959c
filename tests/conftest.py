"""
Shared fakes for the ads_ai test suite.

FakeStore keeps rows in memory with the same method surface as
SupabaseStore; the stub backends record every call they receive.
"""

import base64
import io
import uuid
from typing import Any

import pytest
from PIL import Image

from ads_ai.errors import GenerationError, NotFoundError, PersistenceError
from ads_ai.models import AnalysisResult, AudienceSegment


def make_png(width: int = 8, height: int = 8, color: str = "red") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=color).save(buf, format="PNG")
    return buf.getvalue()


def image_response(data: bytes, shape: str = "inlineData") -> dict[str, Any]:
    b64 = base64.b64encode(data).decode("ascii")
    if shape == "image":
        part = {"image": {"imageBytes": b64}}
    elif shape == "inline_data":
        part = {"inline_data": {"mime_type": "image/png", "data": b64}}
    else:
        part = {"inlineData": {"mimeType": "image/png", "data": b64}}
    return {"candidates": [{"content": {"role": "model", "parts": [part]}}]}


ANALYSIS_JSON = """{
  "summary": "Acme Widgets sells modular desk widgets.",
  "key_features": ["Modular", "Durable"],
  "brand_voice": "Friendly and practical",
  "target_audiences": [
    {
      "id": "segment_1",
      "name": "Remote workers",
      "description": "People working from home offices",
      "pain_points": ["Cluttered desks"],
      "needs": ["Organization"],
      "demographics": {"age": "25-40", "location": "Urban"}
    }
  ]
}"""


class FakeStore:
    def __init__(self) -> None:
        self.projects: dict[str, dict[str, Any]] = {}
        self.subprojects: dict[str, dict[str, Any]] = {}
        self.audiences: dict[str, list[dict[str, Any]]] = {}
        self.creatives: list[dict[str, Any]] = []
        self.messages: list[dict[str, Any]] = []
        self.uploads: list[bytes] = []
        self.fail_uploads = False
        self.fail_inserts = False
        self.fail_messages = False

    def _id(self) -> str:
        return uuid.uuid4().hex[:12]

    def create_project(self, session_id, name, url=None, description=None, screenshot_url=None,
                       language=None, analysis_result=None):
        row = {
            "id": self._id(),
            "session_id": session_id,
            "name": name,
            "url": url,
            "description": description,
            "screenshot_url": screenshot_url,
            "language": language or "uk",
            "analysis_result": analysis_result,
        }
        self.projects[row["id"]] = row
        return dict(row)

    def list_projects(self, session_id):
        return [dict(p) for p in self.projects.values() if p["session_id"] == session_id]

    def get_project(self, project_id):
        if project_id not in self.projects:
            raise NotFoundError("Project not found")
        return dict(self.projects[project_id])

    def update_project(self, project_id, updates):
        if project_id not in self.projects:
            raise NotFoundError("Project not found")
        self.projects[project_id].update(updates)
        return dict(self.projects[project_id])

    def delete_project(self, project_id):
        self.projects.pop(project_id, None)
        self.audiences.pop(project_id, None)

    def create_subproject(self, project_id, name, url, description=None, type="webinar", language="uk"):
        row = {
            "id": self._id(),
            "project_id": project_id,
            "name": name,
            "url": url,
            "description": description,
            "type": type,
            "language": language,
            "analysis_result": None,
        }
        self.subprojects[row["id"]] = row
        return dict(row)

    def list_subprojects(self, project_id):
        return [dict(s) for s in self.subprojects.values() if s["project_id"] == project_id]

    def get_subproject(self, subproject_id):
        if subproject_id not in self.subprojects:
            raise NotFoundError("Subproject not found")
        return dict(self.subprojects[subproject_id])

    def update_subproject(self, subproject_id, updates):
        if subproject_id not in self.subprojects:
            raise NotFoundError("Subproject not found")
        self.subprojects[subproject_id].update(updates)
        return dict(self.subprojects[subproject_id])

    def delete_subproject(self, subproject_id):
        self.subprojects.pop(subproject_id, None)
        self.audiences.pop(subproject_id, None)

    def save_analysis(self, owner_id, result: AnalysisResult, subproject=False):
        owners = self.subprojects if subproject else self.projects
        owners[owner_id]["analysis_result"] = result.to_dict()
        return self.replace_audiences(owner_id, result.target_audiences, subproject=subproject)

    def replace_audiences(self, owner_id, segments, subproject=False):
        rows = []
        for seg in segments:
            row = seg.to_dict() | {"id": self._id()}
            rows.append(row)
        self.audiences[owner_id] = rows
        return [dict(r) for r in rows]

    def list_audiences(self, owner_id, subproject=False):
        return [AudienceSegment.from_row(r) for r in self.audiences.get(owner_id, [])]

    def get_audience(self, audience_id):
        for rows in self.audiences.values():
            for row in rows:
                if row["id"] == audience_id:
                    return AudienceSegment.from_row(row)
        raise NotFoundError("Target audience not found")

    def upload_image(self, data, mime_type="image/png"):
        if self.fail_uploads:
            raise PersistenceError("Failed to upload image: bucket unavailable")
        self.uploads.append(data)
        return f"https://storage.example/creatives/generated/{len(self.uploads)}.png"

    def insert_creative(self, session_id, target_audience, format, size, image_url, prompt_used,
                        reference_roles=frozenset(), project_id=None):
        if self.fail_inserts:
            raise PersistenceError("Failed to save creative")
        row = {
            "id": self._id(),
            "project_id": project_id,
            "session_id": session_id,
            "target_audience": target_audience,
            "format": format,
            "size": size,
            "image_url": image_url,
            "prompt_used": prompt_used,
            "reference_images": {r: r in reference_roles for r in ("template", "logo", "person")},
        }
        self.creatives.append(row)
        return dict(row)

    def list_creatives(self, format=None, size=None, search=None, limit=50, offset=0):
        rows = [
            c for c in self.creatives
            if (not format or c["format"] == format)
            and (not size or c["size"] == size)
            and (not search or search.lower() in (c["target_audience"] + c["prompt_used"]).lower())
        ]
        return rows[offset:offset + limit], len(rows)

    def add_chat_message(self, session_id, role, content, metadata=None):
        if self.fail_messages:
            raise PersistenceError("Failed to save chat message")
        row = {"id": self._id(), "session_id": session_id, "role": role, "content": content, "metadata": metadata}
        self.messages.append(row)
        return row

    def list_chat_messages(self, session_id):
        return [m for m in self.messages if m["session_id"] == session_id]


class StubImageBackend:
    """Returns queued responses in order; an exception in the queue is raised instead."""

    name = "stub"
    model = "stub-image-model"

    def __init__(self, responses=None) -> None:
        self.responses = list(responses or [])
        self.calls: list[dict[str, Any]] = []

    async def generate_content(self, parts, aspect_ratio):
        self.calls.append({"parts": parts, "aspect_ratio": aspect_ratio})
        item = self.responses.pop(0) if self.responses else image_response(make_png())
        if isinstance(item, Exception):
            raise item
        return item


class StubTextProvider:
    name = "stub"
    model = "stub-text-model"

    def __init__(self, text: str = ANALYSIS_JSON, chat_text: str = "Привіт! Чим можу допомогти?") -> None:
        self.text = text
        self.chat_text = chat_text
        self.prompts: list[tuple[str, list[bytes] | None]] = []
        self.chats: list[tuple[list, str, str]] = []

    async def generate_text(self, prompt, images=None):
        self.prompts.append((prompt, images))
        return self.text

    async def chat(self, history, message, system_instruction):
        self.chats.append((history, message, system_instruction))
        return self.chat_text


class StubExtractor:
    name = "stub"

    def __init__(self, content) -> None:
        self.content = content
        self.calls: list[tuple[str, bool]] = []

    async def extract(self, url, capture_screenshot=False):
        self.calls.append((url, capture_screenshot))
        return self.content


async def no_sleep(seconds: float) -> None:
    return None


def backend_failure(message: str = "API returned 500") -> GenerationError:
    return GenerationError(message, detail='{"error": {"code": 500}}')


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def segment():
    return AudienceSegment(
        id="segment_1",
        name="Remote workers",
        description="People working from home offices",
        pain_points=["Cluttered desks", "Back pain"],
        needs=["Organization", "Comfort"],
        demographics={"age": "25-40", "location": "Urban"},
    )


@pytest.fixture
def project(store):
    proj = store.create_project(
        session_id="sess-1",
        name="Acme Widgets",
        url="https://acme.example",
        language="uk",
        analysis_result={
            "summary": "Acme Widgets sells modular desk widgets.",
            "key_features": ["Modular", "Durable"],
            "brand_voice": "Friendly",
        },
    )
    store.replace_audiences(
        proj["id"],
        [
            AudienceSegment(
                id="",
                name="Remote workers",
                description="People working from home offices",
                pain_points=["Cluttered desks"],
                needs=["Organization"],
                demographics="25-40, urban",
            )
        ],
    )
    return proj
