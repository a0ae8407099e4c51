"""Conversion between uploaded image bytes and inline data URIs."""

import base64
import binascii
import mimetypes
from typing import Optional

from plant_health.errors import ImageDecodeError

DEFAULT_MIME_TYPE = "application/octet-stream"


def guess_mime_type(
    filename: Optional[str] = None,
    content_type: Optional[str] = None,
) -> str:
    """Pick a MIME type: declared content type, then filename, then a default."""
    if content_type and "/" in content_type:
        return content_type.split(";", 1)[0].strip().lower()
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return DEFAULT_MIME_TYPE


def encode_data_uri(data: bytes, mime_type: str) -> str:
    """Encode raw bytes as a base64 data URI."""
    if not isinstance(data, (bytes, bytearray)):
        raise ImageDecodeError(f"Expected bytes, got {type(data).__name__}")
    encoded = base64.b64encode(bytes(data)).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def decode_data_uri(data_uri: str) -> tuple[bytes, str]:
    """Split a base64 data URI into (raw bytes, MIME type).

    Raises:
        ImageDecodeError: If the URI is not a base64 data URI
    """
    if not data_uri.startswith("data:") or "," not in data_uri:
        raise ImageDecodeError("Image is not a data URI")

    header, payload = data_uri[len("data:"):].split(",", 1)
    params = header.split(";")
    if "base64" not in params[1:]:
        raise ImageDecodeError("Only base64 data URIs are supported")

    mime_type = params[0] or DEFAULT_MIME_TYPE
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 image payload: {e}") from e
    return data, mime_type
