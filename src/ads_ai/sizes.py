from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SizeOption:
    id: str
    name: str
    width: int
    height: int
    ratio: str

    @property
    def dimensions(self) -> str:
        return f"{self.width}x{self.height}"


# Shared with the front end; ids, dimensions and ratios must match exactly.
SIZE_OPTIONS: tuple[SizeOption, ...] = (
    SizeOption("instagram-square", "Instagram Квадрат", 1080, 1080, "1:1"),
    SizeOption("instagram-story", "Instagram Stories", 1080, 1920, "9:16"),
    SizeOption("instagram-reel", "Instagram Reels", 1080, 1920, "9:16"),
    SizeOption("facebook-feed", "Facebook Feed", 1080, 1080, "1:1"),
    SizeOption("facebook-story", "Facebook Stories", 1080, 1920, "9:16"),
    SizeOption("landscape", "Landscape", 1920, 1080, "16:9"),
    SizeOption("portrait", "Portrait", 1080, 1350, "4:5"),
)

_BY_ID = {s.id: s for s in SIZE_OPTIONS}

SQUARE = "1080x1080"
VERTICAL = "1080x1920"

_RATIO_TOLERANCE = 0.1


def _parse_dimensions(size: str) -> tuple[int, int] | None:
    s = (size or "").strip().lower()
    if "x" not in s:
        return None
    try:
        w, h = s.split("x", 1)
        width, height = int(w), int(h)
    except ValueError:
        return None
    if width <= 0 or height <= 0:
        return None
    return width, height


def resolve_aspect_ratio(size: str) -> str:
    """
    Map a size id (`instagram-story`) or raw `WIDTHxHEIGHT` string to one of
    `1:1`, `9:16`, `16:9`, `4:5`. Unknown ids resolve to `1:1`.
    """
    dims = _parse_dimensions(size)
    if dims is None:
        option = _BY_ID.get((size or "").strip())
        return option.ratio if option else "1:1"

    width, height = dims
    if width == height:
        return "1:1"
    if height > width:
        ratio = height / width
        if abs(ratio - 16 / 9) < _RATIO_TOLERANCE:
            return "9:16"
        if abs(ratio - 5 / 4) < _RATIO_TOLERANCE:
            return "4:5"
        return "9:16"
    return "16:9"


def size_dimensions(size: str) -> tuple[int, int]:
    dims = _parse_dimensions(size)
    if dims is not None:
        return dims
    option = _BY_ID.get((size or "").strip())
    if option is None:
        return 1080, 1080
    return option.width, option.height


def is_vertical(size: str) -> bool:
    return resolve_aspect_ratio(size) == "9:16"


def resize_target(current_size: str) -> str:
    # Fixed round trip: stories become square, everything else becomes stories.
    return SQUARE if is_vertical(current_size) else VERTICAL
