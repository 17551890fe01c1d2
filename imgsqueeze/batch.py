"""High-level orchestration of a single optimization pass over a container."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Mapping, Optional, Sequence

from .config import RunConfig
from .errors import AllAlreadyOptimized, NoCandidateImages, UserDeclined
from .models import (
    Action,
    BatchSummary,
    CandidateObject,
    ContainerRef,
    ImageFormat,
    OptimizationOutcome,
    RunStatus,
)
from .optimizers import OptimizerAdapter
from .pipeline import optimize_object
from .selector import select_candidates
from .storage import ObjectStore, resolve_container

logger = logging.getLogger("imgsqueeze")

ConfirmCallback = Callable[[Sequence[CandidateObject]], bool]


def describe_outcome(outcome: OptimizationOutcome) -> str:
    """Single progress line for an object."""
    if outcome.action is Action.FAILED:
        return f"{outcome.name}: failed ({outcome.error})"
    if outcome.action is Action.SKIPPED_UNSUPPORTED_FORMAT:
        return f"{outcome.name}: unsupported format"
    if outcome.savings_percent < 0:
        return f"{outcome.name}: {outcome.byte_delta} bytes ({outcome.savings_percent}%) ignored"
    return f"{outcome.name}: {outcome.byte_delta} bytes ({outcome.savings_percent}%)"


def _confirm_batch(
    candidates: Sequence[CandidateObject],
    config: RunConfig,
    confirm: Optional[ConfirmCallback],
) -> None:
    if not config.confirm:
        return
    if confirm is None:
        raise ValueError("Confirmation is enabled but no confirm callback was given")
    if not confirm(candidates):
        raise UserDeclined(f"Declined to optimize {len(candidates)} image(s)")


def _run_one(
    store: ObjectStore,
    container: ContainerRef,
    candidate: CandidateObject,
    optimizers: Mapping[ImageFormat, OptimizerAdapter],
    config: RunConfig,
    cancel_event: threading.Event,
) -> Optional[OptimizationOutcome]:
    if cancel_event.is_set():
        return None
    try:
        outcome = optimize_object(store, container, candidate, optimizers, config)
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Unexpected error optimizing %s", candidate.name)
        outcome = OptimizationOutcome(
            name=candidate.name,
            action=Action.FAILED,
            original_size=candidate.size,
            optimized_size=candidate.size,
            error=str(exc) or exc.__class__.__name__,
        )
    logger.info("%s", describe_outcome(outcome))
    return outcome


def run_batch(
    store: ObjectStore,
    config: RunConfig,
    optimizers: Mapping[ImageFormat, OptimizerAdapter],
    confirm: Optional[ConfirmCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> BatchSummary:
    """Select candidates and run the pipeline over each, isolating failures."""
    container = resolve_container(config)
    cancel_event = cancel_event or threading.Event()

    try:
        candidates = select_candidates(store, container)
    except NoCandidateImages as exc:
        logger.info("%s", exc)
        return BatchSummary(status=RunStatus.NO_CANDIDATE_IMAGES)
    except AllAlreadyOptimized as exc:
        logger.info("%s", exc)
        return BatchSummary(status=RunStatus.ALL_ALREADY_OPTIMIZED)

    try:
        _confirm_batch(candidates, config, confirm)
    except UserDeclined as exc:
        logger.info("%s", exc)
        return BatchSummary(status=RunStatus.USER_DECLINED, candidates=candidates)

    start = time.perf_counter()
    workers = max(1, config.workers)
    if workers == 1:
        results = [
            _run_one(store, container, candidate, optimizers, config, cancel_event)
            for candidate in candidates
        ]
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="imgsqueeze") as pool:
            futures = [
                pool.submit(_run_one, store, container, candidate, optimizers, config, cancel_event)
                for candidate in candidates
            ]
            results = [future.result() for future in futures]

    outcomes: List[OptimizationOutcome] = [outcome for outcome in results if outcome is not None]
    status = RunStatus.COMPLETED
    if len(outcomes) < len(candidates):
        logger.warning(
            "Cancelled after %d of %d image(s)", len(outcomes), len(candidates)
        )
        status = RunStatus.CANCELLED

    summary = BatchSummary(status=status, candidates=candidates, outcomes=outcomes)
    logger.info(
        "Processed %d image(s) in %.2fs: %d committed, %d without savings, %d unsupported, %d failed; %d bytes saved",
        len(outcomes),
        time.perf_counter() - start,
        summary.count(Action.COMMITTED),
        summary.count(Action.SKIPPED_NO_SAVINGS),
        summary.count(Action.SKIPPED_UNSUPPORTED_FORMAT),
        summary.failed,
        summary.bytes_saved,
    )
    return summary
