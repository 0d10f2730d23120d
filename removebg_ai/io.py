from __future__ import annotations

import base64
import io
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from .models import ProcessingResult


def to_data_url(data: bytes, media_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{media_type};base64,{encoded}"


def probe_image(image_bytes: bytes) -> Tuple[Optional[str], Optional[int], Optional[int]]:
    """Return ``(media_type, width, height)`` read from the image header.

    Only the header is parsed; pixel data is never decoded. Unknown payloads
    give ``(None, None, None)``.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            media_type = Image.MIME.get(image.format or "")
            width, height = image.size
    except (UnidentifiedImageError, OSError):
        return None, None, None
    return media_type, width, height


def build_result(payload: bytes, content_type: Optional[str] = None) -> ProcessingResult:
    media_type, width, height = probe_image(payload)
    declared = (content_type or "").split(";")[0].strip().lower()
    if declared.startswith("image/"):
        media_type = declared
    return ProcessingResult(
        payload=payload,
        media_type=media_type or "image/png",
        width=width,
        height=height,
    )


def content_disposition(filename: str, inline: bool = False) -> str:
    kind = "inline" if inline else "attachment"
    return f'{kind}; filename="{filename}"'
