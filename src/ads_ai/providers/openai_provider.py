from __future__ import annotations

import base64
from typing import Any

from ads_ai.config import settings
from ads_ai.imaging import sniff_mime_type
from ads_ai.providers.base import ChatTurn


class OpenAITextProvider:
    """Alternative analysis/chat backend on the Responses API."""

    name = "openai"

    def __init__(self, api_key: str, model: str | None = None) -> None:
        from openai import AsyncOpenAI  # type: ignore

        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model or settings.openai_text_model

    async def generate_text(self, prompt: str, images: list[bytes] | None = None) -> str:
        content: list[dict[str, Any]] = [{"type": "input_text", "text": prompt}]
        for img in images or []:
            b64 = base64.b64encode(img).decode("ascii")
            content.append({"type": "input_image", "image_url": f"data:{sniff_mime_type(img)};base64,{b64}"})

        resp = await self.client.responses.create(
            model=self.model,
            input=[{"role": "user", "content": content}],
        )
        return resp.output_text or ""

    async def chat(self, history: list[ChatTurn], message: str, system_instruction: str) -> str:
        turns: list[dict[str, Any]] = [
            {"role": "user" if t.role == "user" else "assistant", "content": t.content} for t in history
        ]
        turns.append({"role": "user", "content": message})

        resp = await self.client.responses.create(
            model=self.model,
            instructions=system_instruction,
            input=turns,
        )
        return resp.output_text or ""
