"""Per-object optimization pipeline.

Each candidate moves through fetch, dispatch, optimizer run, evaluation and
then either a commit (content and marker written together) or a skip. The
local working copy lives in a private temporary directory that is removed
on every exit path, including unexpected exceptions.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path, PurePosixPath
from typing import Mapping

from .config import RunConfig
from .errors import (
    DownloadFailure,
    OptimizerInvocationFailure,
    UnsupportedFormat,
    UploadFailure,
)
from .marker import with_marker
from .models import Action, CandidateObject, ContainerRef, ImageFormat, OptimizationOutcome
from .optimizers import OptimizerAdapter
from .storage import ObjectStore
from .utils import detect_image_format, savings_percent

logger = logging.getLogger("imgsqueeze")


def select_optimizer(
    candidate: CandidateObject,
    optimizers: Mapping[ImageFormat, OptimizerAdapter],
) -> OptimizerAdapter:
    """Pick the adapter for the candidate's format tag."""
    optimizer = optimizers.get(candidate.format)
    if candidate.format is ImageFormat.UNSUPPORTED or optimizer is None:
        raise UnsupportedFormat(f"No optimizer for {candidate.name} ({candidate.format.value})")
    return optimizer


def should_commit(succeeded: bool, original_size: int, optimized_size: int) -> bool:
    """Both the tool's success signal and a non-negative saving are required."""
    return (
        succeeded
        and savings_percent(original_size, optimized_size) >= 0
        and optimized_size <= original_size
    )


def optimize_object(
    store: ObjectStore,
    container: ContainerRef,
    candidate: CandidateObject,
    optimizers: Mapping[ImageFormat, OptimizerAdapter],
    config: RunConfig,
) -> OptimizationOutcome:
    """Run the full pipeline for one candidate and return its outcome."""
    try:
        optimizer = select_optimizer(candidate, optimizers)
    except UnsupportedFormat as exc:
        logger.info("Skipping %s: %s", candidate.name, exc)
        return OptimizationOutcome(
            name=candidate.name,
            action=Action.SKIPPED_UNSUPPORTED_FORMAT,
            original_size=candidate.size,
            optimized_size=candidate.size,
        )

    with tempfile.TemporaryDirectory(prefix="imgsqueeze-", dir=config.work_dir) as tmp_dir:
        working_copy = Path(tmp_dir) / PurePosixPath(candidate.name).name
        return _process_working_copy(store, container, candidate, optimizer, config, working_copy)


def _process_working_copy(
    store: ObjectStore,
    container: ContainerRef,
    candidate: CandidateObject,
    optimizer: OptimizerAdapter,
    config: RunConfig,
    working_copy: Path,
) -> OptimizationOutcome:
    try:
        store.get(container, candidate.name, working_copy)
        original_size = working_copy.stat().st_size
    except (DownloadFailure, OSError) as exc:
        logger.error("Download of %s failed: %s", candidate.name, exc)
        return OptimizationOutcome(
            name=candidate.name,
            action=Action.FAILED,
            original_size=candidate.size,
            optimized_size=candidate.size,
            error=str(exc),
        )

    detected = detect_image_format(working_copy)
    if detected is not candidate.format:
        logger.info(
            "Skipping %s: content is %s, not %s",
            candidate.name,
            detected.value if detected else "not an image",
            candidate.format.value,
        )
        return OptimizationOutcome(
            name=candidate.name,
            action=Action.SKIPPED_UNSUPPORTED_FORMAT,
            original_size=original_size,
            optimized_size=original_size,
        )

    try:
        succeeded, output = optimizer.optimize(working_copy)
    except OptimizerInvocationFailure as exc:
        logger.error("Optimizer failed on %s: %s", candidate.name, exc)
        return OptimizationOutcome(
            name=candidate.name,
            action=Action.FAILED,
            original_size=original_size,
            optimized_size=original_size,
            error=str(exc),
        )

    optimized_size = working_copy.stat().st_size
    percent = savings_percent(original_size, optimized_size)
    outcome = OptimizationOutcome(
        name=candidate.name,
        action=Action.SKIPPED_NO_SAVINGS,
        original_size=original_size,
        optimized_size=optimized_size,
        savings_percent=percent,
    )
    if not should_commit(succeeded, original_size, optimized_size):
        if not succeeded:
            logger.info("%s did not report success for %s", optimizer.binary, candidate.name)
            logger.debug("%s output for %s:\n%s", optimizer.binary, candidate.name, output)
        return outcome

    if_match = candidate.etag if config.conditional_commit else None
    try:
        store.put(
            container,
            candidate.name,
            working_copy,
            with_marker(candidate.metadata),
            overwrite=True,
            if_match=if_match,
            headers=candidate.headers,
        )
    except UploadFailure as exc:
        logger.error("Upload of %s failed: %s", candidate.name, exc)
        outcome.action = Action.FAILED
        outcome.error = str(exc)
        return outcome

    outcome.action = Action.COMMITTED
    return outcome
