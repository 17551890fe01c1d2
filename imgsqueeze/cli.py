"""Command-line entry point for imgsqueeze."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Sequence

from .batch import run_batch
from .config import (
    DEFAULT_JPEG_TOOL,
    DEFAULT_PNG_TOOL,
    DEFAULT_TOOL_TIMEOUT,
    DEFAULT_WORKERS,
    RunConfig,
    env_default,
)
from .errors import StorageError
from .models import CandidateObject, RunStatus
from .optimizers import default_optimizers
from .storage import S3ObjectStore
from .utils import format_bytes

logger = logging.getLogger("imgsqueeze.cli")

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_NO_CANDIDATES = 3
EXIT_ALL_OPTIMIZED = 4
EXIT_DECLINED = 5
EXIT_CANCELLED = 6
EXIT_STORAGE_ERROR = 7

STATUS_EXIT_CODES = {
    RunStatus.NO_CANDIDATE_IMAGES: EXIT_NO_CANDIDATES,
    RunStatus.ALL_ALREADY_OPTIMIZED: EXIT_ALL_OPTIMIZED,
    RunStatus.USER_DECLINED: EXIT_DECLINED,
    RunStatus.CANCELLED: EXIT_CANCELLED,
}


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Losslessly recompress PNG and JPEG objects in an S3 bucket and "
            "replace them when the result is not larger."
        ),
    )
    parser.add_argument(
        "bucket",
        nargs="?",
        default=env_default("IMGSQUEEZE_BUCKET"),
        help="Bucket to scan (default: $IMGSQUEEZE_BUCKET)",
    )
    parser.add_argument(
        "--prefix",
        default=env_default("IMGSQUEEZE_PREFIX", ""),
        help="Only consider keys under this prefix",
    )
    parser.add_argument(
        "--endpoint-url",
        default=env_default("IMGSQUEEZE_ENDPOINT_URL"),
        help="Custom S3 endpoint for S3-compatible stores",
    )
    parser.add_argument("--region", default=None, help="AWS region name")
    parser.add_argument("--profile", default=None, help="AWS profile to load credentials from")
    parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Do not ask for confirmation before modifying objects",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_WORKERS,
        help="Number of objects to optimize concurrently",
    )
    parser.add_argument(
        "--tool-timeout",
        type=float,
        default=DEFAULT_TOOL_TIMEOUT,
        help="Seconds to allow each optimizer invocation",
    )
    parser.add_argument(
        "--png-tool",
        default=env_default("OPTIPNG_BIN", DEFAULT_PNG_TOOL),
        help="optipng executable",
    )
    parser.add_argument(
        "--jpeg-tool",
        default=env_default("JPEGTRAN_BIN", DEFAULT_JPEG_TOOL),
        help="jpegtran executable",
    )
    parser.add_argument(
        "--conditional-commit",
        action="store_true",
        help="Only replace an object if its ETag is unchanged since listing",
    )
    parser.add_argument(
        "--work-dir",
        type=Path,
        default=None,
        help="Directory for temporary working copies",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    args = parser.parse_args(argv)
    if not args.bucket:
        parser.error("a bucket is required (argument or $IMGSQUEEZE_BUCKET)")
    if args.workers < 1:
        parser.error("--workers must be at least 1")
    return args


def prompt_confirmation(candidates: Sequence[CandidateObject]) -> bool:
    """Ask once whether the whole batch may be modified."""
    total = sum(candidate.size for candidate in candidates)
    try:
        answer = input(
            f"Optimize {len(candidates)} image(s) totalling {format_bytes(total)}? [y/N] "
        )
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _install_interrupt_handler(cancel_event: threading.Event):
    def _handle(signum, frame):  # noqa: ARG001
        if cancel_event.is_set():
            raise KeyboardInterrupt
        logger.warning("Interrupt received; finishing in-flight images (press Ctrl+C again to abort)")
        cancel_event.set()

    return signal.signal(signal.SIGINT, _handle)


def _run(args: argparse.Namespace) -> int:
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    config = RunConfig(
        bucket=args.bucket,
        prefix=args.prefix,
        endpoint_url=args.endpoint_url,
        region=args.region,
        profile=args.profile,
        confirm=not args.yes,
        workers=args.workers,
        tool_timeout=args.tool_timeout,
        png_tool=args.png_tool,
        jpeg_tool=args.jpeg_tool,
        conditional_commit=args.conditional_commit,
        work_dir=args.work_dir.resolve() if args.work_dir else None,
    )

    cancel_event = threading.Event()
    previous_handler = _install_interrupt_handler(cancel_event)

    try:
        store = S3ObjectStore.from_config(config)
        summary = run_batch(
            store,
            config,
            default_optimizers(config),
            confirm=prompt_confirmation,
            cancel_event=cancel_event,
        )
    except StorageError as exc:
        logger.error("%s", exc)
        return EXIT_STORAGE_ERROR
    except KeyboardInterrupt:
        logger.warning("Aborted")
        return EXIT_CANCELLED
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    if summary.status is RunStatus.CANCELLED:
        logger.warning("Cancelled; saved %s before stopping", format_bytes(summary.bytes_saved))
        return EXIT_CANCELLED
    if summary.status is not RunStatus.COMPLETED:
        logger.info("Nothing changed: %s", summary.status.value.replace("_", " "))
        return STATUS_EXIT_CODES[summary.status]

    if summary.failed:
        logger.error("%d image(s) failed; see messages above", summary.failed)
        return EXIT_FAILURES
    logger.info("Done; saved %s", format_bytes(summary.bytes_saved))
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    return _run(parse_args(argv))


if __name__ == "__main__":
    sys.exit(main())
