from __future__ import annotations

import base64
import binascii
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from ads_ai.errors import InvalidRequestError


def sniff_mime_type(data: bytes, default: str = "image/png") -> str:
    try:
        with Image.open(BytesIO(data)) as img:
            return Image.MIME.get(img.format or "", default)
    except (UnidentifiedImageError, OSError):
        return default


def to_png_bytes(data: bytes) -> bytes:
    """Re-encode an uploaded reference image as PNG, the type declared to the image backend."""
    try:
        with Image.open(BytesIO(data)) as img:
            if img.format == "PNG":
                return data
            if img.mode not in ("RGB", "RGBA", "L", "LA"):
                img = img.convert("RGBA")
            buf = BytesIO()
            img.save(buf, format="PNG")
            return buf.getvalue()
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidRequestError("Reference file is not a readable image", detail=str(exc)) from exc


def decode_base64_image(value: str) -> bytes:
    # Accept both bare base64 and `data:image/...;base64,` URLs.
    s = (value or "").strip()
    if s.startswith("data:") and "," in s:
        s = s.split(",", 1)[1]
    try:
        return base64.b64decode(s, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidRequestError("Image data is not valid base64", detail=str(exc)) from exc


def to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def to_data_url(data: bytes, mime_type: str | None = None) -> str:
    return f"data:{mime_type or sniff_mime_type(data)};base64,{to_base64(data)}"
