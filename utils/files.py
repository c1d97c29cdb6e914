from __future__ import annotations

import logging
import os
import random
import shutil
import time
from typing import Optional

from fastapi import UploadFile

from pipeline.errors import InvalidInput

log = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".jpg"


def unique_filename(original: Optional[str]) -> str:
    """
    Build a collision-resistant name: `<epoch-ms>-<random><ext>`.

    The extension of the client's filename is preserved.
    """
    ext = os.path.splitext(original or "")[1] or DEFAULT_EXTENSION
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{ext.lower()}"


def derived_path(path: str, suffix: str, ext: Optional[str] = None) -> str:
    """`uploads/123.jpg` + `_polygon` -> `uploads/123_polygon.jpg`."""
    stem, original_ext = os.path.splitext(path)
    return f"{stem}{suffix}{ext or original_ext}"


def save_upload(upload: Optional[UploadFile], directory: str) -> str:
    """
    Persist an uploaded image under `directory` and return its path.

    Raises:
        InvalidInput: no file was sent, or its MIME type is not `image/*`.
    """
    if upload is None or not upload.filename:
        raise InvalidInput("No image uploaded")
    if not (upload.content_type or "").startswith("image/"):
        raise InvalidInput("Only image files are allowed!")

    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, unique_filename(upload.filename))
    with open(path, "wb") as out:
        shutil.copyfileobj(upload.file, out)

    log.info("[UPLOAD] saved %s (%s)", path, upload.content_type)
    return path
