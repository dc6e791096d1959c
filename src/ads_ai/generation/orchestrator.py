from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from ads_ai.config import settings
from ads_ai.errors import GenerationError
from ads_ai.imaging import sniff_mime_type, to_base64
from ads_ai.models import REFERENCE_ROLES, ReferenceImage, normalize_language
from ads_ai.providers.base import GeneratedImage, ImageBackend

logger = logging.getLogger(__name__)

ROLE_LABELS = {
    "template": "Template/Background:",
    "logo": "Logo:",
    "person": "Person/Product:",
}

VARIANT_SUFFIX = {
    "uk": "[Варіант {i} з {n}. Створіть унікальний варіант дизайну.]",
    "ru": "[Вариант {i} из {n}. Создайте уникальный вариант дизайна.]",
    "en": "[Variant {i} of {n}. Create a unique design variation.]",
}


@dataclass
class GenerationRequest:
    prompt: str
    aspect_ratio: str
    count: int = 1
    negative_prompt: str | None = None
    references: list[ReferenceImage] = field(default_factory=list)
    language: str = "uk"


def build_request_parts(prompt: str, references: list[ReferenceImage]) -> list[dict[str, Any]]:
    """
    Assemble the multimodal parts for one call.

    Each reference gets a text label followed by its inline image, grouped
    template, then logo, then person. The prompt text always comes last.
    """
    parts: list[dict[str, Any]] = []
    for role in REFERENCE_ROLES:
        for ref in references:
            if ref.role != role:
                continue
            parts.append({"text": ROLE_LABELS[role]})
            parts.append({"inlineData": {"mimeType": "image/png", "data": to_base64(ref.data)}})
    parts.append({"text": prompt})
    return parts


def variant_prompt(prompt: str, negative_prompt: str | None, index: int, count: int, language: str) -> str:
    text = prompt
    if negative_prompt:
        text += f"\n\nNegative prompt (avoid these): {negative_prompt}"
    if count > 1:
        suffix = VARIANT_SUFFIX[normalize_language(language)].format(i=index, n=count)
        text += f"\n\n{suffix}"
    return text


# Response shapes seen across API versions. Each takes one content part and
# returns base64 image data or None.
def _from_image_bytes(part: dict[str, Any]) -> str | None:
    image = part.get("image")
    return image.get("imageBytes") if isinstance(image, dict) else None


def _from_inline_data(part: dict[str, Any]) -> str | None:
    inline = part.get("inlineData")
    return inline.get("data") if isinstance(inline, dict) else None


def _from_inline_data_snake(part: dict[str, Any]) -> str | None:
    inline = part.get("inline_data")
    return inline.get("data") if isinstance(inline, dict) else None


IMAGE_EXTRACTORS: list[Callable[[dict[str, Any]], str | None]] = [
    _from_image_bytes,
    _from_inline_data,
    _from_inline_data_snake,
]


def extract_images(response: dict[str, Any]) -> list[bytes]:
    out: list[bytes] = []
    for candidate in response.get("candidates") or []:
        content = (candidate or {}).get("content") or {}
        for part in content.get("parts") or []:
            if not isinstance(part, dict):
                continue
            for extractor in IMAGE_EXTRACTORS:
                data = extractor(part)
                if not data:
                    continue
                try:
                    out.append(base64.b64decode(data))
                except (binascii.Error, ValueError):
                    logger.warning("Skipping image part with undecodable data")
                break
    return out


class ImageGenerationOrchestrator:
    """
    Produce `count` images with one backend call each.

    Calls run strictly in sequence with a fixed pause between them. A failed
    call is logged and the loop moves on; the caller gets whatever succeeded.
    """

    def __init__(
        self,
        backend: ImageBackend,
        delay_seconds: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.backend = backend
        self.delay_seconds = settings.image_call_delay_seconds if delay_seconds is None else delay_seconds
        self._sleep = sleep

    async def generate(self, request: GenerationRequest) -> list[GeneratedImage]:
        count = max(1, int(request.count))
        images: list[GeneratedImage] = []
        last_error: GenerationError | None = None

        for i in range(1, count + 1):
            prompt_used = variant_prompt(request.prompt, request.negative_prompt, i, count, request.language)
            parts = build_request_parts(prompt_used, request.references)
            logger.info("Generating image %d/%d (aspect ratio %s)", i, count, request.aspect_ratio)

            try:
                response = await self.backend.generate_content(parts, request.aspect_ratio)
            except GenerationError as exc:
                logger.error("Image %d/%d failed: %s", i, count, exc.message)
                last_error = exc
            else:
                extracted = extract_images(response)
                if not extracted:
                    logger.warning("Image %d/%d: response contained no image data", i, count)
                for data in extracted[:1]:
                    images.append(
                        GeneratedImage(
                            data=data,
                            mime_type=sniff_mime_type(data),
                            prompt_used=prompt_used,
                            provider=self.backend.name,
                            model=self.backend.model,
                            variant=i,
                            raw_metadata={"aspect_ratio": request.aspect_ratio},
                        )
                    )

            if i < count:
                await self._sleep(self.delay_seconds)

        if not images:
            if last_error is not None:
                raise GenerationError(
                    "Failed to generate image",
                    detail=last_error.detail or last_error.message,
                    reason=GenerationError.BACKEND_ERROR,
                )
            raise GenerationError("No images generated in response", reason=GenerationError.EMPTY_RESPONSE)

        logger.info("Generated %d of %d requested images", len(images), count)
        return images
