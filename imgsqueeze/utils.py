"""Helpers for format detection and savings arithmetic."""

from __future__ import annotations

from fnmatch import fnmatch
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional, Union

from filetype import guess

from .models import ImageFormat

EXTENSION_FORMATS = {
    ".png": ImageFormat.PNG,
    ".jpg": ImageFormat.JPEG,
    ".jpeg": ImageFormat.JPEG,
}


def format_from_name(name: str) -> ImageFormat:
    """Map an object name to a format tag using its extension."""
    suffix = PurePosixPath(name).suffix.lower()
    return EXTENSION_FORMATS.get(suffix, ImageFormat.UNSUPPORTED)


def detect_image_format(source: Union[Path, bytes]) -> Optional[ImageFormat]:
    """Sniff the file signature; returns None when it is not a known image."""
    kind = guess(str(source) if isinstance(source, Path) else source)
    if kind is None or not kind.mime.startswith("image/"):
        return None
    extension = kind.extension.lower()
    if extension == "png":
        return ImageFormat.PNG
    if extension in ("jpg", "jpeg"):
        return ImageFormat.JPEG
    return ImageFormat.UNSUPPORTED


def savings_percent(original_size: int, optimized_size: int) -> int:
    """Percent of bytes saved, truncated toward zero."""
    if original_size <= 0:
        return 0
    delta = original_size - optimized_size
    magnitude = abs(delta) * 100 // original_size
    return magnitude if delta >= 0 else -magnitude


def format_bytes(size: int) -> str:
    """Render a byte count for log lines."""
    if abs(size) < 1024:
        return f"{size} B"
    if abs(size) < 1024 * 1024:
        return f"{size / 1024:.1f} KiB"
    return f"{size / (1024 * 1024):.1f} MiB"


def matches_any(name: str, patterns: Iterable[str]) -> bool:
    """Case-insensitive glob match of the object's base name."""
    basename = PurePosixPath(name).name.lower()
    return any(fnmatch(basename, pattern.lower()) for pattern in patterns)


def detect_mime_type(source: Union[Path, bytes]) -> Optional[str]:
    """MIME type from the file signature, or None when unrecognised."""
    kind = guess(str(source) if isinstance(source, Path) else source)
    return kind.mime if kind else None
