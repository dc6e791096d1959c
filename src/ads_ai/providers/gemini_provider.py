from __future__ import annotations

import logging
from typing import Any

from ads_ai.config import settings
from ads_ai.imaging import sniff_mime_type
from ads_ai.providers.base import ChatTurn

logger = logging.getLogger(__name__)


class GeminiTextProvider:
    name = "gemini"

    def __init__(self, api_key: str, model: str | None = None, chat_model: str | None = None) -> None:
        # Imported lazily so the app can start without the dependency installed.
        from google import genai  # type: ignore

        self._genai = genai
        self.client = genai.Client(api_key=api_key)
        self.model = model or settings.gemini_text_model
        self.chat_model = chat_model or settings.gemini_chat_model

    async def generate_text(self, prompt: str, images: list[bytes] | None = None) -> str:
        """Single-shot analysis call; images (e.g. a page screenshot) follow the prompt."""
        from google.genai import types  # type: ignore

        contents: list[Any] = [prompt]
        for img in images or []:
            contents.append(types.Part.from_bytes(data=img, mime_type=sniff_mime_type(img)))

        resp = await self.client.aio.models.generate_content(model=self.model, contents=contents)
        text = getattr(resp, "text", None) or ""
        logger.info("Gemini response received, length: %d", len(text))
        logger.debug("First 500 chars: %s", text[:500])
        return text

    async def chat(self, history: list[ChatTurn], message: str, system_instruction: str) -> str:
        from google.genai import types  # type: ignore

        contents: list[Any] = [
            types.Content(
                role="user" if turn.role == "user" else "model",
                parts=[types.Part.from_text(text=turn.content)],
            )
            for turn in history
        ]
        contents.append(types.Content(role="user", parts=[types.Part.from_text(text=message)]))

        resp = await self.client.aio.models.generate_content(
            model=self.chat_model,
            contents=contents,
            config=types.GenerateContentConfig(system_instruction=system_instruction),
        )
        return getattr(resp, "text", "") or ""
