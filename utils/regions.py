"""
Region extraction: turns an upload plus a caller-drawn region into the
single image the embedding service should look at.

Region kinds:
- `none`      : no region given; the source path is returned untouched.
- `full`      : whole frame; centre crop to 4:3 (landscape) or 3:4 (portrait).
- `rectangle` : crop to the bounding box of the given points.
- `polygon`   : pixels outside the polygon become transparent, then crop to
                its bounding box. Output is always PNG to keep the alpha.
"""

from __future__ import annotations

import json
import logging
import math
import os
from typing import Any, List, Literal, Optional, Sequence, Tuple

from PIL import Image, ImageChops, ImageDraw
from pydantic import BaseModel, Field, FiniteFloat, ValidationError

from pipeline.errors import ExtractionError, InvalidInput
from utils.files import derived_path
from utils.images import open_image, output_format, save_image

log = logging.getLogger(__name__)

Point = Tuple[FiniteFloat, FiniteFloat]
Box = Tuple[int, int, int, int]  # left, top, right, bottom

LANDSCAPE_RATIO = 4 / 3
PORTRAIT_RATIO = 3 / 4


class RegionDescriptor(BaseModel):
    kind: Literal["none", "full", "rectangle", "polygon"] = "none"
    points: List[Point] = Field(default_factory=list)

    @classmethod
    def from_values(cls, area: Optional[Any], is_polygon: bool = False) -> "RegionDescriptor":
        if area is None:
            return cls(kind="none")
        if not isinstance(area, list):
            raise InvalidInput("area must be a list of [x, y] pairs or null")
        if not area:
            return cls(kind="full")
        if is_polygon and len(area) < 3:
            raise InvalidInput("A polygon needs at least 3 points")

        try:
            return cls(kind="polygon" if is_polygon else "rectangle", points=area)
        except ValidationError as e:
            raise InvalidInput(f"Invalid area: {e.errors()[0]['msg']}") from e

    @classmethod
    def from_form(cls, area: Optional[str], is_polygon: Optional[str]) -> "RegionDescriptor":
        """Parse the JSON-encoded `area` / `isPolygon` multipart fields."""
        try:
            area_value = json.loads(area) if area else None
            polygon_value = json.loads(is_polygon) if is_polygon else False
        except json.JSONDecodeError as e:
            raise InvalidInput(f"area/isPolygon must be JSON: {e}") from e

        if not isinstance(polygon_value, bool):
            raise InvalidInput("isPolygon must be true or false")
        return cls.from_values(area_value, polygon_value)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def polygon_box(points: Sequence[Point], width: int, height: int) -> Box:
    """
    Axis-aligned bounding box of `points`, clamped to the image.

    The box is never smaller than 1x1, so a zero-area polygon still yields
    a pixel. A polygon lying completely outside the image is an error.
    """
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]

    min_x = max(0, math.floor(min(xs)))
    min_y = max(0, math.floor(min(ys)))
    max_x = min(width, math.ceil(max(xs)))
    max_y = min(height, math.ceil(max(ys)))

    if min_x >= width or min_y >= height or max_x < 0 or max_y < 0:
        raise ExtractionError("Region lies outside the image")

    crop_w = max(1, max_x - min_x)
    crop_h = max(1, max_y - min_y)
    return min_x, min_y, min_x + crop_w, min_y + crop_h


def fallback_box(width: int, height: int) -> Box:
    """
    Centre crop to 4:3 for landscape images, 3:4 otherwise.

    Offsets are clamped to be non-negative and the crop never runs past
    the image edge, so an image already shorter (or narrower) than the
    target keeps its full extent on that axis.
    """
    if width > height:
        new_h = _round_half_up(width / LANDSCAPE_RATIO)
        top = max(0, _round_half_up((height - new_h) / 2))
        crop_h = min(new_h, height - top)
        return 0, top, width, top + crop_h

    new_w = _round_half_up(height * PORTRAIT_RATIO)
    left = max(0, _round_half_up((width - new_w) / 2))
    crop_w = min(new_w, width - left)
    return left, 0, left + crop_w, height


def mask_polygon(img: Image.Image, points: Sequence[Point]) -> Image.Image:
    """Return an RGBA copy of `img` that is transparent outside `points`."""
    mask = Image.new("L", img.size, 0)
    ImageDraw.Draw(mask).polygon([(x, y) for x, y in points], fill=255)

    rgba = img.convert("RGBA")
    rgba.putalpha(ImageChops.multiply(rgba.getchannel("A"), mask))
    return rgba


def extract_region(image_path: str, region: RegionDescriptor) -> str:
    """
    Write the region of interest next to `image_path` and return its path.

    The source file is never modified. For `none` no file is written and
    `image_path` itself is returned.

    Raises:
        ExtractionError: the image cannot be decoded or the region is empty.
    """
    if region.kind == "none":
        return image_path

    with open_image(image_path) as img:
        width, height = img.size
        fmt, ext = output_format(img)

        if region.kind == "polygon":
            box = polygon_box(region.points, width, height)
            out = mask_polygon(img, region.points).crop(box)
            out_path, fmt = derived_path(image_path, "_polygon", ".png"), "PNG"
        elif region.kind == "rectangle":
            box = polygon_box(region.points, width, height)
            out = img.crop(box)
            out_path = derived_path(image_path, "_rect", ext)
        else:
            box = fallback_box(width, height)
            out = img.crop(box)
            out_path = derived_path(image_path, "_maxrect", ext)

    if box[2] <= box[0] or box[3] <= box[1]:
        raise ExtractionError(f"Empty crop {box} for {width}x{height} image")

    log.info(
        "[EXTRACT] %s %s box=%s -> %s",
        region.kind,
        os.path.basename(image_path),
        box,
        os.path.basename(out_path),
    )
    return save_image(out, out_path, fmt)
