from __future__ import annotations

import os

import pytest
from PIL import Image

from pipeline.errors import ExtractionError, InvalidInput
from utils.images import output_format, save_image
from utils.regions import RegionDescriptor, extract_region, fallback_box, polygon_box

SQUARE = [[10, 10], [50, 10], [50, 50], [10, 50]]


def test_no_region_returns_source(make_image, tmp_path):
    path = make_image()
    before = sorted(os.listdir(tmp_path))

    assert extract_region(path, RegionDescriptor()) == path
    assert sorted(os.listdir(tmp_path)) == before


def test_polygon_box_square():
    assert polygon_box(SQUARE, 100, 100) == (10, 10, 50, 50)


def test_polygon_box_clamps_to_image():
    assert polygon_box([[10, 10], [150, 10], [150, 50], [10, 50]], 100, 100) == (10, 10, 100, 50)
    assert polygon_box([[-5, -8], [40, -8], [40, 30]], 100, 100) == (0, 0, 40, 30)


def test_polygon_box_fractional_coordinates():
    assert polygon_box([[10.6, 10.2], [20.1, 10.2], [20.1, 30.7]], 100, 100) == (10, 10, 21, 31)


def test_polygon_box_degenerate_is_one_pixel():
    assert polygon_box([[20, 20], [20, 20], [20, 20]], 100, 100) == (20, 20, 21, 21)
    assert polygon_box([[20, 20], [60, 20], [40, 20]], 100, 100) == (20, 20, 60, 21)


def test_polygon_box_outside_image():
    with pytest.raises(ExtractionError):
        polygon_box([[200, 200], [300, 200], [300, 300]], 100, 100)


def test_fallback_box_landscape():
    assert fallback_box(1000, 900) == (0, 75, 1000, 825)


def test_fallback_box_landscape_shorter_than_ratio():
    # 4:3 of a 1000px width is 750px, taller than the image
    assert fallback_box(1000, 500) == (0, 0, 1000, 500)


def test_fallback_box_portrait():
    assert fallback_box(800, 800) == (100, 0, 700, 800)
    assert fallback_box(600, 1000) == (0, 0, 600, 1000)


def test_fallback_box_portrait_narrower_than_ratio():
    assert fallback_box(300, 800) == (0, 0, 300, 800)


def test_extract_polygon_masks_outside_pixels(make_image):
    path = make_image()
    region = RegionDescriptor.from_values([[0, 0], [40, 0], [0, 40]], True)

    out = extract_region(path, region)

    assert out.endswith("upload_polygon.png")
    with Image.open(out) as img:
        assert img.size == (40, 40)
        assert img.mode == "RGBA"
        assert img.getpixel((2, 2)) == (255, 0, 0, 255)
        assert img.getpixel((35, 35))[3] == 0


def test_extract_polygon_square(make_image):
    path = make_image()
    out = extract_region(path, RegionDescriptor.from_values(SQUARE, True))
    with Image.open(out) as img:
        assert img.size == (40, 40)


def test_extract_rectangle_keeps_format(make_image):
    path = make_image(name="shot.jpg")
    out = extract_region(path, RegionDescriptor.from_values(SQUARE, False))

    assert out.endswith("shot_rect.jpg")
    with Image.open(out) as img:
        assert img.format == "JPEG"
        assert img.size == (40, 40)


def test_extract_full_frame(make_image):
    path = make_image(size=(1000, 900))
    out = extract_region(path, RegionDescriptor(kind="full"))

    assert out.endswith("upload_maxrect.png")
    with Image.open(out) as img:
        assert img.size == (1000, 750)


def test_extract_never_touches_source(make_image):
    path = make_image()
    with open(path, "rb") as f:
        original = f.read()

    extract_region(path, RegionDescriptor.from_values(SQUARE, True))

    with open(path, "rb") as f:
        assert f.read() == original


def test_extract_undecodable(tmp_path):
    bad = tmp_path / "broken.png"
    bad.write_bytes(b"definitely not a png")
    with pytest.raises(ExtractionError):
        extract_region(str(bad), RegionDescriptor(kind="full"))


def test_extract_outside_image_writes_nothing(make_image, tmp_path):
    path = make_image()
    region = RegionDescriptor.from_values([[200, 200], [300, 200], [300, 300]], True)
    with pytest.raises(ExtractionError):
        extract_region(path, region)
    assert os.listdir(tmp_path) == ["upload.png"]


@pytest.mark.parametrize(
    "area,is_polygon,kind",
    [
        (None, None, "none"),
        ("null", "false", "none"),
        ("", "true", "none"),
        ("[]", "false", "full"),
        ("[]", "true", "full"),
        ("[[1, 2], [3, 4]]", "false", "rectangle"),
        ("[[1, 2], [3, 4], [5, 6]]", "true", "polygon"),
    ],
)
def test_descriptor_from_form(area, is_polygon, kind):
    assert RegionDescriptor.from_form(area, is_polygon).kind == kind


@pytest.mark.parametrize(
    "area,is_polygon",
    [
        ("[[1, 2], [3, 4]]", "true"),
        ("{not json", "false"),
        ("[[1, 2]]", '"yes"'),
        ('{"x": 1}', "false"),
        ('[["a", "b"]]', "false"),
        ("[[Infinity, 0], [1, 1], [0, 1]]", "true"),
        ("[[NaN, 0], [1, 1], [0, 1]]", "true"),
        ("[[0, -Infinity], [5, 5]]", "false"),
    ],
)
def test_descriptor_rejects_bad_input(area, is_polygon):
    with pytest.raises(InvalidInput):
        RegionDescriptor.from_form(area, is_polygon)


def test_output_format_keeps_writable_format():
    img = Image.new("RGB", (4, 4))
    img.format = "JPEG"
    assert output_format(img) == ("JPEG", None)


def test_output_format_falls_back_to_png_for_read_only_formats():
    img = Image.new("RGB", (4, 4))
    img.format = "PSD"
    assert output_format(img) == ("PNG", ".png")


def test_save_image_unknown_format(tmp_path):
    path = str(tmp_path / "crop.xyz")
    with pytest.raises(ExtractionError):
        save_image(Image.new("RGB", (4, 4)), path, "NOT-A-FORMAT")
    assert not os.path.exists(path)
