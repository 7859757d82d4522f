"""Shared file utilities: image header inspection and capture logging."""

import os
import struct
from io import BytesIO
from typing import NamedTuple

from PIL import Image

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SOI = b"\xff\xd8"
# Baseline and progressive start-of-frame markers
JPEG_SOF_MARKERS = (0xC0, 0xC2)


class ImageDimensions(NamedTuple):
    width: int
    height: int


UNKNOWN_DIMENSIONS = ImageDimensions(0, 0)


def parse_image_dimensions(data: bytes) -> ImageDimensions:
    """Read width/height from PNG or JPEG header bytes. (0, 0) when unknown."""
    # PNG: IHDR is always the first chunk, width/height at fixed offsets 16 and 20
    if data[:8] == PNG_SIGNATURE:
        if len(data) < 24:
            return UNKNOWN_DIMENSIONS
        width, height = struct.unpack(">II", data[16:24])
        return ImageDimensions(width, height)

    # JPEG: FF Cx, 2-byte length, 1-byte precision, then height before width
    if data[:2] == JPEG_SOI:
        for i in range(2, len(data) - 8):
            if data[i] == 0xFF and data[i + 1] in JPEG_SOF_MARKERS:
                height, width = struct.unpack(">HH", data[i + 5 : i + 9])
                return ImageDimensions(width, height)

    return UNKNOWN_DIMENSIONS


def read_image_dimensions(path: str | os.PathLike) -> ImageDimensions:
    """Read pixel dimensions of a PNG/JPEG file without decoding it.

    Never raises: unsupported formats, truncated files and I/O errors all
    return ImageDimensions(0, 0).
    """
    try:
        with open(path, "rb") as f:
            header = f.read(24)
            if header[:8] == PNG_SIGNATURE:
                return parse_image_dimensions(header)
            return parse_image_dimensions(header + f.read())
    except (OSError, struct.error):
        return UNKNOWN_DIMENSIONS


def is_image_complete(data: bytes) -> bool:
    """Check if image data is complete (not truncated)."""
    if len(data) < 100:
        return False

    if data[:2] == JPEG_SOI:
        return data[-2:] == b"\xff\xd9"

    if data[:8] == PNG_SIGNATURE:
        return b"IEND" in data[-12:]

    # For other formats (e.g. WebP), try to decode
    try:
        img = Image.open(BytesIO(data))
        img.load()
        return True
    except Exception:
        return False


def log_saved_image(path: str | os.PathLike, dimensions: ImageDimensions | None = None, label: str = ""):
    """Log a saved image with size, dimensions and a truncation marker."""
    from .browser import log

    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        log(f"Saved: {label or path} (unreadable: {e})", "⚠")
        return

    dims = dimensions or parse_image_dimensions(data)
    size_mb = len(data) / 1024 / 1024
    status = "" if is_image_complete(data) else " [INCOMPLETE]"
    log(f"Saved: {label or path} ({size_mb:.2f} MB, {dims.width}x{dims.height}){status}", "◆")
