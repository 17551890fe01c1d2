"""Configuration objects and constants for an optimization run."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_PNG_TOOL = "optipng"
DEFAULT_JPEG_TOOL = "jpegtran"
DEFAULT_TOOL_TIMEOUT = 120.0
DEFAULT_WORKERS = 1


@dataclass(frozen=True)
class RunConfig:
    """Settings resolved once per run and passed explicitly to every stage."""

    bucket: str
    prefix: str = ""
    endpoint_url: Optional[str] = None
    region: Optional[str] = None
    profile: Optional[str] = None
    confirm: bool = True
    workers: int = DEFAULT_WORKERS
    tool_timeout: float = DEFAULT_TOOL_TIMEOUT
    png_tool: str = DEFAULT_PNG_TOOL
    jpeg_tool: str = DEFAULT_JPEG_TOOL
    conditional_commit: bool = False
    work_dir: Optional[Path] = None


def env_default(name: str, fallback: Optional[str] = None) -> Optional[str]:
    """Return a non-empty environment value or ``fallback``."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return fallback
    return value.strip()
