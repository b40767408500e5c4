"""Image payload handling at the service boundary.

Uploads arrive either as raw multipart bytes or as base64 strings (usually a
``data:`` URI). Both are resolved to raw bytes once, so the rest of the
pipeline never needs to know where an image came from.
"""

import base64
import binascii
import io
import logging
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from app.config import settings
from app.utils.exceptions import InvalidRequest

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"
DATA_URI_PREFIX = "data:image/jpeg;base64,"


def resolve_image(payload: Union[bytes, str, None]) -> Optional[bytes]:
    """
    Resolve an uploaded image payload to raw bytes.

    Args:
        payload: Multipart bytes, a ``data:<mime>;base64,<data>`` URI, bare
            base64, or None

    Returns:
        Image bytes, or None when no image was supplied

    Raises:
        InvalidRequest: If the payload cannot be decoded or is too large
    """
    if payload is None:
        return None

    if isinstance(payload, str):
        text = payload.strip()
        if not text:
            return None
        data = _decode_base64_payload(text)
    else:
        data = bytes(payload)

    if not data:
        raise InvalidRequest("Image payload is empty")

    if len(data) > settings.max_image_bytes:
        raise InvalidRequest(
            f"Image too large ({len(data)} bytes, max {settings.max_image_bytes})"
        )

    return data


def _decode_base64_payload(text: str) -> bytes:
    if text.startswith("data:"):
        header, sep, encoded = text.partition(",")
        if not sep or ";base64" not in header:
            raise InvalidRequest("Image data URI must be base64 encoded")
    else:
        encoded = text

    try:
        return base64.b64decode("".join(encoded.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidRequest(f"Image is not valid base64: {e}") from e


def detect_mime_type(data: bytes) -> str:
    """Sniff the image type from magic bytes, falling back to Pillow, then JPEG."""
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"RIFF") and b"WEBP" in data[:12]:
        return "image/webp"
    if data.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"

    try:
        with Image.open(io.BytesIO(data)) as image:
            if image.format:
                return Image.MIME.get(image.format, DEFAULT_MIME_TYPE)
    except (UnidentifiedImageError, OSError) as e:
        logger.debug("Pillow could not identify image: %s", e)

    return DEFAULT_MIME_TYPE


def to_data_uri(data: bytes) -> str:
    """Encode image bytes for API responses."""
    return DATA_URI_PREFIX + base64.b64encode(data).decode("ascii")
