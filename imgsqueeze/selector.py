"""Candidate discovery and filtering."""

from __future__ import annotations

import logging
from typing import List, Sequence

from .errors import AllAlreadyOptimized, NoCandidateImages
from .marker import has_marker
from .models import CandidateObject, ContainerRef
from .storage import ObjectStore
from .utils import format_from_name

logger = logging.getLogger("imgsqueeze")

DEFAULT_PATTERNS = ("*.png", "*.jpg", "*.jpeg")


def list_candidates(
    store: ObjectStore,
    container: ContainerRef,
    patterns: Sequence[str] = DEFAULT_PATTERNS,
) -> List[CandidateObject]:
    """List image objects in store order, tagged with their format."""
    return [
        CandidateObject(
            name=entry.name,
            size=entry.size,
            format=format_from_name(entry.name),
            metadata=dict(entry.metadata),
            etag=entry.etag,
            headers=dict(entry.headers),
        )
        for entry in store.list(container, patterns)
    ]


def filter_unmarked(candidates: Sequence[CandidateObject]) -> List[CandidateObject]:
    """Drop candidates that already carry the optimization marker."""
    return [candidate for candidate in candidates if not has_marker(candidate.metadata)]


def select_candidates(
    store: ObjectStore,
    container: ContainerRef,
    patterns: Sequence[str] = DEFAULT_PATTERNS,
) -> List[CandidateObject]:
    """Return the unmarked images to process.

    Raises :class:`NoCandidateImages` when no object matches the patterns and
    :class:`AllAlreadyOptimized` when every match is already marked.
    """
    images = list_candidates(store, container, patterns)
    if not images:
        raise NoCandidateImages(
            f"No PNG or JPEG images found in {container.bucket}/{container.prefix}"
        )
    pending = filter_unmarked(images)
    if not pending:
        raise AllAlreadyOptimized(
            f"All {len(images)} image(s) in {container.bucket}/{container.prefix} are already optimized"
        )
    logger.info(
        "Found %d image(s), %d not yet optimized", len(images), len(pending)
    )
    return pending
