"""
Tests for size ids, raw WxH strings and aspect-ratio resolution.

Run with: pytest tests/test_sizes.py -v
"""

import pytest

from ads_ai.sizes import SIZE_OPTIONS, is_vertical, resize_target, resolve_aspect_ratio, size_dimensions


class TestResolveAspectRatio:
    @pytest.mark.parametrize(
        "size, expected",
        [
            ("1080x1080", "1:1"),
            ("1080x1920", "9:16"),
            ("1920x1080", "16:9"),
            ("1080x1350", "4:5"),
            ("instagram-story", "9:16"),
            ("instagram-square", "1:1"),
            ("portrait", "4:5"),
            ("landscape", "16:9"),
            ("unknown-id", "1:1"),
        ],
    )
    def test_known_inputs(self, size, expected):
        assert resolve_aspect_ratio(size) == expected

    def test_is_idempotent(self):
        for size in ("1080x1920", "instagram-reel", "800x600", "garbage"):
            assert resolve_aspect_ratio(size) == resolve_aspect_ratio(size)

    def test_tall_size_far_from_known_ratios_is_vertical(self):
        # 1:3 is neither 16:9 nor 5:4
        assert resolve_aspect_ratio("600x1800") == "9:16"

    def test_any_horizontal_size_is_landscape(self):
        assert resolve_aspect_ratio("1200x1000") == "16:9"

    def test_malformed_raw_size_falls_back_to_square(self):
        assert resolve_aspect_ratio("0x100") == "1:1"
        assert resolve_aspect_ratio("axb") == "1:1"
        assert resolve_aspect_ratio("") == "1:1"


class TestSizeHelpers:
    def test_catalog_ratios_match_resolver(self):
        for option in SIZE_OPTIONS:
            assert resolve_aspect_ratio(option.id) == option.ratio
            assert resolve_aspect_ratio(option.dimensions) == option.ratio

    def test_dimensions_for_id_and_raw(self):
        assert size_dimensions("instagram-story") == (1080, 1920)
        assert size_dimensions("1200x628") == (1200, 628)
        assert size_dimensions("nope") == (1080, 1080)

    def test_resize_target_round_trip(self):
        assert is_vertical("1080x1920")
        assert resize_target("1080x1920") == "1080x1080"
        assert resize_target("1080x1080") == "1080x1920"
        assert resize_target("landscape") == "1080x1920"
