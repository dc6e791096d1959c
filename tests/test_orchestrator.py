"""
Tests for the one-image-per-call generation loop.

Run with: pytest tests/test_orchestrator.py -v
"""

import base64

import pytest

from ads_ai.errors import ConfigurationError, GenerationError
from ads_ai.generation.orchestrator import (
    GenerationRequest,
    ImageGenerationOrchestrator,
    build_request_parts,
    extract_images,
    variant_prompt,
)
from ads_ai.models import ReferenceImage

from conftest import StubImageBackend, backend_failure, image_response, make_png, no_sleep

EMPTY = {"candidates": [{"content": {"parts": [{"text": "I cannot draw that."}]}}]}


def _orchestrator(backend, sleep=no_sleep):
    return ImageGenerationOrchestrator(backend, delay_seconds=1.0, sleep=sleep)


class TestExtractImages:
    @pytest.mark.parametrize("shape", ["image", "inlineData", "inline_data"])
    def test_each_response_shape(self, shape, png_bytes):
        assert extract_images(image_response(png_bytes, shape)) == [png_bytes]

    def test_text_only_and_empty_responses(self):
        assert extract_images(EMPTY) == []
        assert extract_images({}) == []
        assert extract_images({"candidates": [{}]}) == []

    def test_first_matching_shape_wins_per_part(self, png_bytes):
        other = make_png(color="blue")
        part = {
            "image": {"imageBytes": base64.b64encode(png_bytes).decode()},
            "inlineData": {"data": base64.b64encode(other).decode()},
        }
        response = {"candidates": [{"content": {"parts": [part]}}]}
        assert extract_images(response) == [png_bytes]


class TestRequestParts:
    def test_role_order_labels_and_prompt_last(self, png_bytes):
        refs = [
            ReferenceImage(data=b"person", role="product"),
            ReferenceImage(data=b"logo", role="brand"),
            ReferenceImage(data=b"template", role="background"),
        ]
        parts = build_request_parts("PROMPT", refs)

        assert [p.get("text") for p in parts[0::2][:3]] == ["Template/Background:", "Logo:", "Person/Product:"]
        images = [base64.b64decode(p["inlineData"]["data"]) for p in parts[1:6:2]]
        assert images == [b"template", b"logo", b"person"]
        assert all(p["inlineData"]["mimeType"] == "image/png" for p in parts[1:6:2])
        assert parts[-1] == {"text": "PROMPT"}
        assert len(parts) == 7

    def test_no_references_is_prompt_only(self):
        assert build_request_parts("P", []) == [{"text": "P"}]

    def test_variant_prompt(self):
        single = variant_prompt("P", "blurry", 1, 1, "uk")
        assert single == "P\n\nNegative prompt (avoid these): blurry"
        second = variant_prompt("P", None, 2, 3, "uk")
        assert second.endswith("[Варіант 2 з 3. Створіть унікальний варіант дизайну.]")
        assert "Variant 2 of 3" in variant_prompt("P", None, 2, 3, "en")
        assert "Вариант 2 из 3" in variant_prompt("P", None, 2, 3, "ru")


class TestGenerate:
    @pytest.mark.asyncio
    async def test_partial_success_when_middle_call_is_empty(self, png_bytes):
        backend = StubImageBackend([image_response(png_bytes), EMPTY, image_response(png_bytes)])
        images = await _orchestrator(backend).generate(GenerationRequest(prompt="P", aspect_ratio="1:1", count=3))

        assert len(backend.calls) == 3
        assert len(images) == 2
        assert [img.variant for img in images] == [1, 3]
        assert images[0].mime_type == "image/png"
        assert images[0].provider == "stub"

    @pytest.mark.asyncio
    async def test_partial_success_when_middle_call_raises(self, png_bytes):
        backend = StubImageBackend([image_response(png_bytes), backend_failure(), image_response(png_bytes)])
        images = await _orchestrator(backend).generate(GenerationRequest(prompt="P", aspect_ratio="1:1", count=3))
        assert len(images) == 2

    @pytest.mark.asyncio
    async def test_all_calls_fail(self):
        backend = StubImageBackend([backend_failure(), backend_failure(), backend_failure("API returned 429")])
        with pytest.raises(GenerationError) as exc_info:
            await _orchestrator(backend).generate(GenerationRequest(prompt="P", aspect_ratio="1:1", count=3))

        assert exc_info.value.reason == GenerationError.BACKEND_ERROR
        assert len(backend.calls) == 3

    @pytest.mark.asyncio
    async def test_all_calls_empty(self):
        backend = StubImageBackend([EMPTY, EMPTY])
        with pytest.raises(GenerationError) as exc_info:
            await _orchestrator(backend).generate(GenerationRequest(prompt="P", aspect_ratio="1:1", count=2))

        assert exc_info.value.reason == GenerationError.EMPTY_RESPONSE
        assert exc_info.value.to_payload()["reason"] == "empty_response"

    @pytest.mark.asyncio
    async def test_configuration_error_propagates_immediately(self):
        backend = StubImageBackend([ConfigurationError("missing credentials"), EMPTY, EMPTY])
        with pytest.raises(ConfigurationError):
            await _orchestrator(backend).generate(GenerationRequest(prompt="P", aspect_ratio="1:1", count=3))
        assert len(backend.calls) == 1

    @pytest.mark.asyncio
    async def test_delay_between_calls_not_after_last(self):
        delays = []

        async def record(seconds):
            delays.append(seconds)

        backend = StubImageBackend()
        await _orchestrator(backend, sleep=record).generate(GenerationRequest(prompt="P", aspect_ratio="9:16", count=3))
        assert delays == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_prompt_used_is_exact_text_sent(self):
        backend = StubImageBackend()
        request = GenerationRequest(prompt="P", aspect_ratio="9:16", count=2, negative_prompt="blurry", language="en")
        images = await _orchestrator(backend).generate(request)

        for call, img in zip(backend.calls, images):
            assert call["parts"][-1]["text"] == img.prompt_used
            assert call["aspect_ratio"] == "9:16"
        assert "Variant 1 of 2" in images[0].prompt_used
        assert "Variant 2 of 2" in images[1].prompt_used

    @pytest.mark.asyncio
    async def test_single_image_has_no_variant_marker(self):
        backend = StubImageBackend()
        images = await _orchestrator(backend).generate(GenerationRequest(prompt="P", aspect_ratio="1:1"))
        assert images[0].prompt_used == "P"
