from __future__ import annotations

import pytest

from imgsqueeze.models import ImageFormat
from imgsqueeze.utils import (
    detect_image_format,
    format_bytes,
    format_from_name,
    matches_any,
    savings_percent,
)

from fakes import jpeg_bytes, png_bytes


@pytest.mark.parametrize(
    "original, optimized, expected",
    [
        (10000, 8000, 20),
        (5000, 5200, -4),
        (1000, 1000, 0),
        (1000, 1004, 0),
        (1000, 995, 0),
        (1000, 989, 1),
        (3, 1, 66),
        (0, 0, 0),
    ],
)
def test_savings_percent_truncates_toward_zero(original, optimized, expected):
    assert savings_percent(original, optimized) == expected


@pytest.mark.parametrize(
    "name, expected",
    [
        ("photo.png", ImageFormat.PNG),
        ("dir/PHOTO.PNG", ImageFormat.PNG),
        ("photo.jpg", ImageFormat.JPEG),
        ("photo.JPEG", ImageFormat.JPEG),
        ("anim.gif", ImageFormat.UNSUPPORTED),
        ("README", ImageFormat.UNSUPPORTED),
    ],
)
def test_format_from_name(name, expected):
    assert format_from_name(name) is expected


def test_matches_any_is_case_insensitive_and_uses_base_name():
    patterns = ("*.png", "*.jpg")
    assert matches_any("img/Banner.PNG", patterns)
    assert matches_any("a.b/c.jpg", patterns)
    assert not matches_any("img.png/readme.txt", patterns)
    assert not matches_any("anim.gif", patterns)


def test_detect_image_format_from_bytes_and_path(tmp_path):
    assert detect_image_format(png_bytes(64)) is ImageFormat.PNG
    assert detect_image_format(jpeg_bytes(64)) is ImageFormat.JPEG
    assert detect_image_format(b"plain text, not an image") is None

    path = tmp_path / "x.png"
    path.write_bytes(jpeg_bytes(64))
    assert detect_image_format(path) is ImageFormat.JPEG


def test_format_bytes():
    assert format_bytes(512) == "512 B"
    assert format_bytes(2048) == "2.0 KiB"
    assert format_bytes(3 * 1024 * 1024) == "3.0 MiB"
