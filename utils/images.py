from __future__ import annotations

import logging
import os
from typing import Optional, Tuple

from PIL import Image, ImageOps

from pipeline.errors import ExtractionError
from utils.files import derived_path

log = logging.getLogger(__name__)

FALLBACK_FORMAT = "PNG"


def open_image(path: str) -> Image.Image:
    """Open and fully decode `path`, or raise ExtractionError."""
    try:
        img = Image.open(path)
        img.load()
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise ExtractionError(f"Cannot decode image {os.path.basename(path)}: {e}") from e

    width, height = img.size
    if not width or not height:
        img.close()
        raise ExtractionError(f"Cannot read size of {os.path.basename(path)}")
    return img


def output_format(img: Image.Image) -> Tuple[str, Optional[str]]:
    """
    Format to write a derivative of `img` in, plus the extension to force.

    Formats Pillow can only read (PSD, ...) fall back to PNG, in which case
    the extension is switched to `.png`; otherwise the source extension is kept.
    """
    Image.init()
    if img.format and img.format.upper() in Image.SAVE:
        return img.format, None
    return FALLBACK_FORMAT, ".png"


def save_image(img: Image.Image, path: str, fmt: str) -> str:
    """Write `img` to `path`; nothing is left on disk if writing fails."""
    try:
        img.save(path, format=fmt)
    except (OSError, ValueError, KeyError) as e:
        if os.path.exists(path):
            os.unlink(path)
        raise ExtractionError(f"Cannot write {os.path.basename(path)}: {e}") from e
    return path


def resize_image(path: str, size: int) -> str:
    """
    Cover-fit the image into a `size` x `size` square next to the source.

    The aspect ratio is kept; overflow is trimmed from the centre.
    """
    with open_image(path) as img:
        fmt, ext = output_format(img)
        resized = ImageOps.fit(img, (size, size))

    out_path = derived_path(path, "_resized", ext)
    log.info("[RESIZE] %s -> %dx%d", os.path.basename(path), size, size)
    return save_image(resized, out_path, fmt)
