from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from ads_ai.config import settings
from ads_ai.errors import ConfigurationError, GenerationError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


class VertexImageBackend:
    """
    `generateContent` on a Vertex AI image-preview model over REST.

    The model returns at most one image per call. A fresh access token is
    fetched for every call.
    """

    name = "vertex"

    def __init__(
        self,
        project_id: str | None,
        credentials_path: str | None,
        location: str | None = None,
        model: str | None = None,
        image_size: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not project_id:
            raise ConfigurationError("VERTEX_AI_PROJECT_ID is not configured in environment variables")
        if not credentials_path:
            raise ConfigurationError("GOOGLE_APPLICATION_CREDENTIALS is not configured in environment variables")

        self.project_id = project_id
        self.credentials_path = credentials_path
        self.location = location or settings.vertex_ai_location
        self.model = model or settings.vertex_image_model
        self.image_size = image_size or settings.vertex_image_size
        self._timeout = timeout or settings.image_request_timeout_seconds
        self._client = client

    @property
    def endpoint(self) -> str:
        host = "aiplatform.googleapis.com" if self.location == "global" else f"{self.location}-aiplatform.googleapis.com"
        return (
            f"https://{host}/v1/projects/{self.project_id}/locations/{self.location}"
            f"/publishers/google/models/{self.model}:generateContent"
        )

    def _access_token(self) -> str:
        from google.auth.exceptions import GoogleAuthError  # type: ignore
        from google.auth.transport.requests import Request  # type: ignore
        from google.oauth2 import service_account  # type: ignore

        try:
            creds = service_account.Credentials.from_service_account_file(self.credentials_path, scopes=SCOPES)
        except (OSError, ValueError) as exc:
            raise ConfigurationError("Failed to load service account credentials", detail=str(exc)) from exc
        try:
            creds.refresh(Request())
        except GoogleAuthError as exc:
            raise GenerationError("Failed to get access token", detail=str(exc)) from exc
        if not creds.token:
            raise GenerationError("Failed to get access token")
        return creds.token

    def build_body(self, parts: list[dict[str, Any]], aspect_ratio: str) -> dict[str, Any]:
        return {
            "contents": {"role": "user", "parts": parts},
            "generation_config": {
                "response_modalities": ["IMAGE"],
                "image_config": {"aspect_ratio": aspect_ratio, "image_size": self.image_size},
            },
        }

    async def _post(self, client: httpx.AsyncClient, token: str, body: dict[str, Any]) -> httpx.Response:
        return await client.post(
            self.endpoint,
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            json=body,
        )

    async def generate_content(self, parts: list[dict[str, Any]], aspect_ratio: str) -> dict[str, Any]:
        # google-auth refresh is blocking.
        token = await asyncio.to_thread(self._access_token)
        body = self.build_body(parts, aspect_ratio)

        try:
            if self._client is not None:
                resp = await self._post(self._client, token, body)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await self._post(client, token, body)
        except httpx.HTTPError as exc:
            raise GenerationError(f"Failed to generate image: {exc}") from exc

        if resp.status_code >= 400:
            logger.error("Image API error response: %s", resp.text[:2000])
            raise GenerationError(f"API returned {resp.status_code}", detail=resp.text[:2000])

        try:
            return resp.json()
        except ValueError as exc:
            raise GenerationError("Image API returned a non-JSON body", detail=resp.text[:500]) from exc
