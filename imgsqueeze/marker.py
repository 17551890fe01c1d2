"""Idempotency marker stored in object metadata."""

from __future__ import annotations

from typing import Dict, Mapping

MARKER_KEY = "optimized"
MARKER_VALUE = "true"


def has_marker(metadata: Mapping[str, str]) -> bool:
    """Return True when the metadata already records a finished optimization."""
    # S3 returns user metadata keys lowercased.
    return any(key.lower() == MARKER_KEY for key in metadata)


def with_marker(metadata: Mapping[str, str]) -> Dict[str, str]:
    """Copy ``metadata`` and set the marker, replacing any differently-cased key."""
    tagged = {
        key: value for key, value in metadata.items() if key.lower() != MARKER_KEY
    }
    tagged[MARKER_KEY] = MARKER_VALUE
    return tagged
