from __future__ import annotations

import logging
import random
import string
import time
from typing import Any

from ads_ai.config import settings
from ads_ai.errors import ConfigurationError, NotFoundError, PersistenceError
from ads_ai.models import AnalysisResult, AudienceSegment, REFERENCE_ROLES

logger = logging.getLogger(__name__)

_supabase_client: Any = None

PROJECT_LIST_COLUMNS = "id, name, url, description, language, screenshot_url, created_at"

_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp"}


def get_supabase_client() -> Any:
    """Get or create the shared Supabase client."""
    global _supabase_client

    if _supabase_client is None:
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        from supabase import create_client

        _supabase_client = create_client(settings.supabase_url, settings.supabase_service_role_key)
    return _supabase_client


def reset_supabase_client() -> None:
    global _supabase_client
    _supabase_client = None


def _storage_filename(mime_type: str) -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"generated/{int(time.time() * 1000)}-{suffix}.{_EXTENSIONS.get(mime_type, 'png')}"


class SupabaseStore:
    """
    Repository over the Supabase tables and the creatives storage bucket.

    Every call goes through `_run` so driver failures surface as
    PersistenceError with the action that failed.
    """

    def __init__(self, client: Any = None, bucket: str | None = None) -> None:
        self._client = client
        self.bucket = bucket or settings.storage_bucket

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    def _run(self, query: Any, action: str) -> Any:
        try:
            return query.execute()
        except Exception as exc:
            logger.error("Database error while trying to %s: %s", action, exc)
            raise PersistenceError(f"Failed to {action}", detail=str(exc)) from exc

    def _one(self, table: str, row_id: str, label: str) -> dict[str, Any]:
        result = self._run(self.client.table(table).select("*").eq("id", row_id).limit(1), f"fetch {label}")
        if not result.data:
            raise NotFoundError(f"{label.capitalize()} not found")
        return result.data[0]

    # Projects

    def create_project(
        self,
        session_id: str,
        name: str,
        url: str | None = None,
        description: str | None = None,
        screenshot_url: str | None = None,
        language: str | None = None,
        analysis_result: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        row: dict[str, Any] = {
            "session_id": session_id,
            "name": name,
            "url": url or None,
            "description": description,
            "screenshot_url": screenshot_url,
            "analysis_result": analysis_result,
        }
        if language:
            row["language"] = language
        result = self._run(self.client.table("projects").insert(row), "create project")
        return result.data[0]

    def list_projects(self, session_id: str) -> list[dict[str, Any]]:
        query = (
            self.client.table("projects")
            .select(PROJECT_LIST_COLUMNS)
            .eq("session_id", session_id)
            .order("created_at", desc=True)
        )
        return self._run(query, "fetch projects").data or []

    def get_project(self, project_id: str) -> dict[str, Any]:
        return self._one("projects", project_id, "project")

    def update_project(self, project_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        result = self._run(
            self.client.table("projects").update(updates).eq("id", project_id),
            "update project",
        )
        if not result.data:
            raise NotFoundError("Project not found")
        return result.data[0]

    def delete_project(self, project_id: str) -> None:
        # Audience rows cascade in the schema.
        self._run(self.client.table("projects").delete().eq("id", project_id), "delete project")

    # Subprojects

    def create_subproject(
        self,
        project_id: str,
        name: str,
        url: str,
        description: str | None = None,
        type: str = "webinar",
        language: str = "uk",
    ) -> dict[str, Any]:
        row = {
            "project_id": project_id,
            "name": name,
            "url": url,
            "description": description,
            "type": type,
            "language": language,
        }
        result = self._run(self.client.table("subprojects").insert(row), "create subproject")
        return result.data[0]

    def list_subprojects(self, project_id: str) -> list[dict[str, Any]]:
        query = (
            self.client.table("subprojects")
            .select("*")
            .eq("project_id", project_id)
            .order("created_at", desc=True)
        )
        return self._run(query, "fetch subprojects").data or []

    def get_subproject(self, subproject_id: str) -> dict[str, Any]:
        return self._one("subprojects", subproject_id, "subproject")

    def update_subproject(self, subproject_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        result = self._run(
            self.client.table("subprojects").update(updates).eq("id", subproject_id),
            "update subproject",
        )
        if not result.data:
            raise NotFoundError("Subproject not found")
        return result.data[0]

    def delete_subproject(self, subproject_id: str) -> None:
        self._run(self.client.table("subprojects").delete().eq("id", subproject_id), "delete subproject")

    # Analysis and audiences

    @staticmethod
    def _audience_table(subproject: bool) -> tuple[str, str]:
        if subproject:
            return "subproject_target_audiences", "subproject_id"
        return "target_audiences", "project_id"

    def save_analysis(self, owner_id: str, result: AnalysisResult, subproject: bool = False) -> list[dict[str, Any]]:
        """
        Replace the owner's current analysis and its audience rows.

        New audience rows are written before anything is removed, and the
        owner's analysis_result is updated last, so a failed step leaves the
        previous analysis and its segments in place.

        Returns the inserted audience rows, which carry database ids.
        """
        audiences = self.replace_audiences(owner_id, result.target_audiences, subproject=subproject)
        owner_table = "subprojects" if subproject else "projects"
        self._run(
            self.client.table(owner_table).update({"analysis_result": result.to_dict()}).eq("id", owner_id),
            "save analysis",
        )
        return audiences

    def replace_audiences(
        self,
        owner_id: str,
        segments: list[AudienceSegment],
        subproject: bool = False,
    ) -> list[dict[str, Any]]:
        table, fk = self._audience_table(subproject)
        if not segments:
            self._run(self.client.table(table).delete().eq(fk, owner_id), "clear previous audiences")
            return []

        rows = [
            {
                fk: owner_id,
                "name": seg.name,
                "description": seg.description,
                "pain_points": seg.pain_points,
                "needs": seg.needs,
                "demographics": seg.demographics,
            }
            for seg in segments
        ]
        inserted = self._run(self.client.table(table).insert(rows), "save target audiences").data or []
        new_ids = [row["id"] for row in inserted if row.get("id")]
        if new_ids:
            self._run(
                self.client.table(table).delete().eq(fk, owner_id).not_.in_("id", new_ids),
                "clear previous audiences",
            )
        return inserted

    def list_audiences(self, owner_id: str, subproject: bool = False) -> list[AudienceSegment]:
        table, fk = self._audience_table(subproject)
        query = self.client.table(table).select("*").eq(fk, owner_id).order("created_at")
        rows = self._run(query, "fetch target audiences").data or []
        return [AudienceSegment.from_row(r) for r in rows]

    def get_audience(self, audience_id: str) -> AudienceSegment:
        return AudienceSegment.from_row(self._one("target_audiences", audience_id, "target audience"))

    # Creatives

    def upload_image(self, data: bytes, mime_type: str = "image/png") -> str:
        """Upload generated image bytes to the bucket and return the public URL."""
        filename = _storage_filename(mime_type)
        bucket = self.client.storage.from_(self.bucket)
        try:
            bucket.upload(filename, data, {"content-type": mime_type, "upsert": "false"})
        except Exception as exc:
            logger.error("Storage upload error: %s", exc)
            raise PersistenceError(f"Failed to upload image: {exc}") from exc
        return bucket.get_public_url(filename)

    def insert_creative(
        self,
        session_id: str,
        target_audience: str,
        format: str,
        size: str,
        image_url: str,
        prompt_used: str,
        reference_roles: frozenset[str] = frozenset(),
        project_id: str | None = None,
    ) -> dict[str, Any]:
        row = {
            "project_id": project_id,
            "session_id": session_id,
            "target_audience": target_audience,
            "format": format,
            "size": size,
            "image_url": image_url,
            "prompt_used": prompt_used,
            "reference_images": {role: role in reference_roles for role in REFERENCE_ROLES},
        }
        result = self._run(self.client.table("generated_creatives").insert(row), "save creative")
        return result.data[0]

    def list_creatives(
        self,
        format: str | None = None,
        size: str | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        query = (
            self.client.table("generated_creatives")
            .select("*", count="exact")
            .order("created_at", desc=True)
        )
        if format:
            query = query.eq("format", format)
        if size:
            query = query.eq("size", size)
        if search:
            query = query.or_(f"target_audience.ilike.%{search}%,prompt_used.ilike.%{search}%")
        query = query.range(offset, offset + limit - 1)

        result = self._run(query, "fetch creatives")
        rows = result.data or []
        total = result.count if result.count is not None else len(rows)
        return rows, total

    # Chat

    def add_chat_message(
        self,
        session_id: str,
        role: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        row: dict[str, Any] = {"session_id": session_id, "role": role, "content": content}
        if metadata is not None:
            row["metadata"] = metadata
        result = self._run(self.client.table("chat_messages").insert(row), "save chat message")
        return (result.data or [row])[0]

    def list_chat_messages(self, session_id: str) -> list[dict[str, Any]]:
        query = (
            self.client.table("chat_messages")
            .select("*")
            .eq("session_id", session_id)
            .order("created_at")
        )
        return self._run(query, "fetch messages").data or []
