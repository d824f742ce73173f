"""
Image ingestion for posts.

Images travel inside the JSON as base64 data URLs and are stored as raw
bytes without a MIME column. The MIME type is always sniffed from the magic
bytes, in both directions:

- ``decode`` accepts ``data:image/<type>;base64,<payload>`` or bare base64,
  ignores the declared type and only lets JPEG/PNG up to 10 MiB through;
- ``encode`` builds the data URL back from the stored bytes.
"""
from __future__ import annotations

import base64
import binascii
import re

from .errors import InvalidEncoding, PayloadTooLarge, UnsupportedFormat

MAX_IMAGE_BYTES = 10 * 1024 * 1024

JPEG_SIGNATURE = b"\xff\xd8\xff"
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

_DATA_URL_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,")
_WHITESPACE = re.compile(r"\s+")


def sniff_mime(data: bytes | None) -> str | None:
    """Return ``image/jpeg`` / ``image/png`` for known signatures, else None."""
    if not data or len(data) < 8:
        return None
    head = bytes(data[:8])
    if head.startswith(JPEG_SIGNATURE):
        return "image/jpeg"
    if head == PNG_SIGNATURE:
        return "image/png"
    return None


def strip_data_url(value: str) -> str:
    if value.startswith("data:image/"):
        return _DATA_URL_PREFIX.sub("", value, count=1)
    return value


def decode(value: str, field: str = "imagem") -> bytes:
    # line-wrapped base64 (MIME style) is fine, whitespace is skipped
    payload = _WHITESPACE.sub("", strip_data_url(value.strip()))

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidEncoding(field) from exc

    if len(data) > MAX_IMAGE_BYTES:
        raise PayloadTooLarge(field)

    if sniff_mime(data) is None:
        raise UnsupportedFormat(field)

    return data


def encode(data: bytes | None) -> str | None:
    mime = sniff_mime(data)
    if mime is None:
        return None
    return f"data:{mime};base64,{base64.b64encode(bytes(data)).decode('ascii')}"
