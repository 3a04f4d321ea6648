"""Naming and packaging of watermarked images for download."""

from __future__ import annotations

import base64
import zipfile
from io import BytesIO
from typing import Iterable

_EXTENSIONS = {"JPEG": "jpg", "PNG": "png"}
_MIME_TYPES = {"JPEG": "image/jpeg", "PNG": "image/png"}


def file_extension(fmt: str) -> str:
    return _EXTENSIONS.get(fmt.upper(), fmt.lower())


def mime_type(fmt: str) -> str:
    return _MIME_TYPES.get(fmt.upper(), "application/octet-stream")


def export_filename(number: int, fmt: str = "JPEG") -> str:
    """Return the download name for the ``number``-th image (1-based)."""
    return f"watermarked_image_{number}.{file_extension(fmt)}"


def to_data_url(data: bytes, fmt: str = "JPEG") -> str:
    b64 = base64.b64encode(data).decode("utf-8")
    return f"data:{mime_type(fmt)};base64,{b64}"


def build_zip(images: Iterable) -> bytes:
    """Zip watermarked images using their 1-based export names.

    Args:
        images: Watermarked images in output order. Each item needs ``data``
            and ``format`` attributes.

    Returns:
        The zip archive as bytes.
    """
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_STORED) as archive:
        for number, image in enumerate(images, start=1):
            archive.writestr(export_filename(number, image.format), image.data)
    return buffer.getvalue()
