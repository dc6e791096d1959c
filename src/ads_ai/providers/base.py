from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class GeneratedImage:
    data: bytes
    mime_type: str
    # Exact text sent for this image, including any per-variant suffix.
    prompt_used: str
    provider: str
    model: str
    variant: int
    raw_metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ChatTurn:
    role: str  # user|assistant
    content: str


class ImageBackend(Protocol):
    """One multimodal request in, one raw response out. Produces at most one image per call."""

    name: str
    model: str

    async def generate_content(self, parts: list[dict[str, Any]], aspect_ratio: str) -> dict[str, Any]: ...


class TextProvider(Protocol):
    name: str
    model: str

    async def generate_text(self, prompt: str, images: list[bytes] | None = None) -> str: ...

    async def chat(self, history: list[ChatTurn], message: str, system_instruction: str) -> str: ...
