"""Image manipulation utilities.

This module wraps the Pillow operations used by the watermark pipeline:
decoding uploaded bytes, placing a scaled, semi-transparent logo on a base
image and encoding the result for download. The batch runner and the API
endpoints call these helpers for every uploaded asset.
"""

from __future__ import annotations

from io import BytesIO
from typing import Tuple

from PIL import Image, UnidentifiedImageError  # type: ignore[import]

from errors import DecodeError
from watermark.models import LogoPlacement, LogoPosition

MARGIN_RATIO = 0.02
JPEG_QUALITY = 92


def decode_image(data: bytes) -> Image.Image:
    """Decode raw bytes into a fully loaded Pillow image.

    The pixel data is loaded eagerly so the underlying buffer can be
    discarded as soon as this function returns.

    Args:
        data: Raw image bytes.

    Returns:
        The decoded image.

    Raises:
        DecodeError: If the bytes are empty or not a supported raster format.
    """
    if not data:
        raise DecodeError("Empty image payload.")
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            return img.copy()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Could not decode image: {exc}") from exc


def logo_geometry(
    base_size: Tuple[int, int],
    logo_size: Tuple[int, int],
    placement: LogoPlacement,
) -> Tuple[float, float, float, float]:
    """Compute the logo box on the base image.

    Args:
        base_size: (width, height) of the base image.
        logo_size: Native (width, height) of the logo.
        placement: Position, scale and opacity settings.

    Returns:
        An ``(x, y, width, height)`` tuple in pixels, measured from the top
        left corner of the base image. Values are not rounded.
    """
    base_width, base_height = base_size
    logo_width, logo_height = logo_size
    if logo_width <= 0 or logo_height <= 0:
        raise DecodeError("Logo has no pixels.")

    width = base_width * placement.scale_percent / 100
    height = logo_height / logo_width * width
    margin = base_width * MARGIN_RATIO

    position = placement.position
    if position == LogoPosition.TOP_LEFT:
        x, y = margin, margin
    elif position == LogoPosition.TOP_RIGHT:
        x, y = base_width - width - margin, margin
    elif position == LogoPosition.BOTTOM_LEFT:
        x, y = margin, base_height - height - margin
    elif position == LogoPosition.CENTER:
        x, y = (base_width - width) / 2, (base_height - height) / 2
    else:
        x, y = base_width - width - margin, base_height - height - margin
    return x, y, width, height


def _faded_logo(logo: Image.Image, size: Tuple[int, int], factor: float) -> Image.Image:
    """Return a resized RGBA copy of ``logo`` with its alpha scaled by ``factor``."""
    resized = logo.convert("RGBA").resize(size, Image.Resampling.LANCZOS)
    if factor < 1.0:
        alpha = resized.getchannel("A").point(lambda a: round(a * factor))
        resized.putalpha(alpha)
    return resized


def composite(base: Image.Image, logo: Image.Image, placement: LogoPlacement) -> Image.Image:
    """Blend ``logo`` onto ``base`` according to ``placement``.

    The base image is drawn first at full opacity and keeps its exact
    dimensions. The logo is resized with its aspect ratio preserved and
    drawn with a uniform blend factor of ``opacity_percent / 100`` on top of
    its own alpha channel. Neither input image is modified.

    Args:
        base: Decoded base image.
        logo: Decoded logo image.
        placement: Position, scale and opacity settings.

    Returns:
        A new RGBA image with the same size as ``base``.
    """
    x, y, width, height = logo_geometry(base.size, logo.size, placement)
    target = (max(1, round(width)), max(1, round(height)))

    canvas = base.convert("RGBA")
    faded = _faded_logo(logo, target, placement.blend_factor)
    layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    try:
        # paste clips boxes that fall partly outside the canvas
        layer.paste(faded, (round(x), round(y)))
        return Image.alpha_composite(canvas, layer)
    finally:
        faded.close()
        layer.close()
        if canvas is not base:
            canvas.close()


def encode_image(img: Image.Image, fmt: str = "JPEG") -> bytes:
    """Encode an image for export.

    JPEG output is flattened to RGB since the format has no alpha channel.

    Args:
        img: The image to encode.
        fmt: Pillow format name, ``JPEG`` or ``PNG``.

    Returns:
        The encoded bytes.
    """
    buffer = BytesIO()
    if fmt.upper() in ("JPEG", "JPG"):
        rgb = img.convert("RGB")
        try:
            rgb.save(buffer, format="JPEG", quality=JPEG_QUALITY)
        finally:
            if rgb is not img:
                rgb.close()
    else:
        img.save(buffer, format=fmt.upper())
    return buffer.getvalue()
