"""Data models shared by the selector, pipeline and orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class ImageFormat(str, Enum):
    PNG = "png"
    JPEG = "jpeg"
    UNSUPPORTED = "unsupported"


class Action(str, Enum):
    """Terminal outcome of one pipeline invocation."""

    COMMITTED = "committed"
    SKIPPED_NO_SAVINGS = "skipped_no_savings"
    SKIPPED_UNSUPPORTED_FORMAT = "skipped_unsupported_format"
    FAILED = "failed"


class RunStatus(str, Enum):
    """How a batch run ended."""

    COMPLETED = "completed"
    NO_CANDIDATE_IMAGES = "no_candidate_images"
    ALL_ALREADY_OPTIMIZED = "all_already_optimized"
    USER_DECLINED = "user_declined"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ContainerRef:
    """Resolved remote container: a bucket and an optional key prefix."""

    bucket: str
    prefix: str = ""


@dataclass
class StoredObject:
    """Listing entry returned by an object store."""

    name: str
    size: int
    metadata: Dict[str, str]
    etag: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class CandidateObject:
    """Remote image object eligible for optimization."""

    name: str
    size: int
    format: ImageFormat
    metadata: Dict[str, str] = field(default_factory=dict)
    etag: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class OptimizationOutcome:
    """Result of running the pipeline over a single candidate."""

    name: str
    action: Action
    original_size: int = 0
    optimized_size: int = 0
    savings_percent: int = 0
    error: Optional[str] = None

    @property
    def byte_delta(self) -> int:
        return self.original_size - self.optimized_size


@dataclass
class BatchSummary:
    """Aggregated view over every outcome of a run."""

    status: RunStatus
    candidates: List[CandidateObject] = field(default_factory=list)
    outcomes: List[OptimizationOutcome] = field(default_factory=list)

    def count(self, action: Action) -> int:
        return sum(1 for outcome in self.outcomes if outcome.action is action)

    @property
    def counts(self) -> Dict[Action, int]:
        return {action: self.count(action) for action in Action}

    @property
    def bytes_saved(self) -> int:
        """Cumulative byte delta over committed objects."""
        return sum(
            outcome.byte_delta
            for outcome in self.outcomes
            if outcome.action is Action.COMMITTED
        )

    @property
    def failed(self) -> int:
        return self.count(Action.FAILED)
