from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ads_ai.config import settings
from ads_ai.errors import InvalidRequestError, NotFoundError, PersistenceError
from ads_ai.generation.orchestrator import GenerationRequest, ImageGenerationOrchestrator
from ads_ai.imaging import to_base64, to_data_url, to_png_bytes
from ads_ai.models import AudienceSegment, CreativePromptContext, ReferenceImage, normalize_language
from ads_ai.prompts.creative import build_creative_prompt, build_negative_prompt, build_resize_prompt
from ads_ai.providers.base import GeneratedImage
from ads_ai.sizes import resize_target, resolve_aspect_ratio
from ads_ai.storage import SupabaseStore

logger = logging.getLogger(__name__)

# How generated images are referenced from their creative rows.
PERSIST_STORAGE = "storage"
PERSIST_INLINE = "inline"

# Fallbacks when a project has not been analyzed yet.
_PROJECT_DEFAULTS = {
    "uk": ("Проект без опису", "Професійний"),
    "ru": ("Проект без описания", "Профессиональный"),
    "en": ("Project without description", "Professional"),
}

_SUMMARY_MESSAGE = {
    "uk": '✅ Згенеровано {n} креатив(ів) для "{audience}"',
    "ru": '✅ Сгенерировано {n} креатив(ов) для "{audience}"',
    "en": '✅ Generated {n} creative(s) for "{audience}"',
}


@dataclass
class GenerationOutcome:
    images: list[GeneratedImage]
    prompt: str
    size: str
    aspect_ratio: str
    creatives: list[dict[str, Any]] = field(default_factory=list)
    image_urls: list[str] = field(default_factory=list)
    # Persistence problems that did not stop the images from being returned.
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "prompt": self.prompt,
            "size": self.size,
            "aspect_ratio": self.aspect_ratio,
            "images": [to_base64(img.data) for img in self.images],
            "image_urls": self.image_urls,
            "creatives": self.creatives,
            "warnings": self.warnings,
            "quantity": len(self.images),
        }


def load_references(files: dict[str, list[bytes]]) -> list[ReferenceImage]:
    """Normalize uploaded reference files (keyed by role or alias) to PNG ReferenceImages."""
    refs: list[ReferenceImage] = []
    for role, blobs in files.items():
        for blob in blobs:
            if not blob:
                continue
            try:
                refs.append(ReferenceImage(data=to_png_bytes(blob), role=role))
            except ValueError as exc:
                raise InvalidRequestError(str(exc)) from exc
    return refs


class CreativeService:
    def __init__(self, store: SupabaseStore, orchestrator: ImageGenerationOrchestrator) -> None:
        self.store = store
        self.orchestrator = orchestrator

    def _resolve_audience(
        self,
        project_id: str,
        audience_id: str | None,
        audience_details: dict[str, Any] | None,
    ) -> AudienceSegment:
        if audience_details:
            return AudienceSegment.from_row(audience_details)
        if not audience_id:
            raise InvalidRequestError("Target audience is required")
        for seg in self.store.list_audiences(project_id):
            if seg.id == audience_id:
                return seg
        try:
            return self.store.get_audience(audience_id)
        except NotFoundError:
            raise NotFoundError("Target audience not found") from None

    def _persist(
        self,
        outcome: GenerationOutcome,
        session_id: str,
        project_id: str | None,
        audience: AudienceSegment,
        format: str,
        reference_roles: frozenset[str],
        persist: str,
        language: str,
    ) -> None:
        for img in outcome.images:
            try:
                if persist == PERSIST_STORAGE:
                    url = self.store.upload_image(img.data, img.mime_type)
                else:
                    url = to_data_url(img.data, img.mime_type)
                outcome.image_urls.append(url)
                row = self.store.insert_creative(
                    session_id=session_id,
                    project_id=project_id,
                    target_audience=audience.name,
                    format=format,
                    size=outcome.size,
                    image_url=url,
                    prompt_used=img.prompt_used,
                    reference_roles=reference_roles,
                )
                outcome.creatives.append(row)
            except PersistenceError as exc:
                logger.error("Failed to save creative %d: %s", img.variant, exc.message)
                outcome.warnings.append(f"Creative {img.variant}: {exc.message}")

        message = _SUMMARY_MESSAGE[language].format(n=len(outcome.images), audience=audience.name)
        metadata = {
            "type": "generated_creative",
            "images": outcome.image_urls,
            "image": outcome.image_urls[0] if outcome.image_urls else None,
            "creativeIds": [c.get("id") for c in outcome.creatives],
            "prompt": outcome.prompt,
            "size": outcome.size,
            "quantity": len(outcome.images),
        }
        try:
            self.store.add_chat_message(session_id, "assistant", message, metadata=metadata)
        except PersistenceError as exc:
            logger.error("Failed to save generation message: %s", exc.message)
            outcome.warnings.append(f"Chat history: {exc.message}")

    async def generate(
        self,
        session_id: str,
        project_id: str,
        size: str,
        quantity: int = 1,
        audience_id: str | None = None,
        audience_details: dict[str, Any] | None = None,
        format: str | None = None,
        references: list[ReferenceImage] | None = None,
        style_notes: str | None = None,
        language: str | None = None,
        persist: str = PERSIST_STORAGE,
    ) -> GenerationOutcome:
        """
        Generate `quantity` creatives for one audience of a project.

        `format` is None for chat-triggered generation, which omits the
        format section of the prompt. Images are returned even when saving
        them fails; such failures are listed in `warnings`.
        """
        if quantity < 1:
            raise InvalidRequestError("Quantity must be at least 1")

        project = self.store.get_project(project_id)
        audience = self._resolve_audience(project_id, audience_id, audience_details)
        lang = normalize_language(language or project.get("language"), settings.default_language)
        references = references or []
        roles = frozenset(r.role for r in references)

        analysis = project.get("analysis_result") or {}
        default_summary, default_voice = _PROJECT_DEFAULTS[lang]
        ctx = CreativePromptContext(
            project_summary=analysis.get("summary") or project.get("description") or default_summary,
            key_features=list(analysis.get("key_features") or []),
            brand_voice=analysis.get("brand_voice") or default_voice,
            audience=audience,
            size=size,
            format=format,
            reference_roles=roles,
            style_notes=style_notes,
            language=lang,
        )
        prompt = build_creative_prompt(ctx)
        aspect_ratio = resolve_aspect_ratio(size)

        images = await self.orchestrator.generate(
            GenerationRequest(
                prompt=prompt,
                negative_prompt=build_negative_prompt(),
                references=references,
                aspect_ratio=aspect_ratio,
                count=quantity,
                language=lang,
            )
        )
        logger.info("Generated %d image(s) for project %s, audience %r", len(images), project_id, audience.name)

        outcome = GenerationOutcome(images=images, prompt=prompt, size=size, aspect_ratio=aspect_ratio)
        self._persist(
            outcome,
            session_id=session_id,
            project_id=project_id,
            audience=audience,
            format=format or "custom",
            reference_roles=roles,
            persist=persist,
            language=lang,
        )
        return outcome

    async def resize(
        self,
        image: bytes,
        target_size: str | None = None,
        current_size: str | None = None,
    ) -> GenerationOutcome:
        """Re-lay-out an existing creative for another size. Nothing is persisted."""
        if not image:
            raise InvalidRequestError("Image data is required")
        if not target_size and not current_size:
            raise InvalidRequestError("Target size or current size is required")

        size = target_size or resize_target(current_size or "")
        prompt = build_resize_prompt(size)
        aspect_ratio = resolve_aspect_ratio(size)
        logger.info("Resizing image to %s (%s)", size, aspect_ratio)

        images = await self.orchestrator.generate(
            GenerationRequest(
                prompt=prompt,
                references=[ReferenceImage(data=to_png_bytes(image), role="template")],
                aspect_ratio=aspect_ratio,
                count=1,
            )
        )
        return GenerationOutcome(images=images, prompt=prompt, size=size, aspect_ratio=aspect_ratio)
