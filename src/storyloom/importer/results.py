"""Result values reported by import stages and whole import runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from storyloom.store.base import Row

# Keys of ImportResult.counts, in stage order
COUNT_KEYS = (
    "story_world",
    "story",
    "characters",
    "locations",
    "factions",
    "objects",
    "events",
    "relationships",
    "plotlines",
    "scenes",
    "character_events",
    "plotline_events",
    "plotline_characters",
    "event_dependencies",
    "scene_characters",
)


class StageStatus(str, Enum):
    """Outcome of one import stage."""

    SUCCESS = "success"
    PARTIAL = "partial"
    SKIPPED = "skipped"
    FATAL = "fatal"


@dataclass
class StageResult:
    """Outcome of one stage: the rows it stored and what it had to drop.

    ``skipped`` counts records dropped on purpose (unresolved references,
    missing names); ``failed`` counts records the store rejected. Either one
    turns an otherwise finished stage into ``PARTIAL``.
    """

    stage: str
    status: StageStatus = StageStatus.SUCCESS
    rows: list[Row] = field(default_factory=list)
    skipped: int = 0
    failed: int = 0
    error: str | None = None

    @classmethod
    def ok(cls, stage: str, rows: list[Row]) -> StageResult:
        """A stage that stored every record it was given."""
        return cls(stage=stage, rows=list(rows))

    @classmethod
    def skip(cls, stage: str) -> StageResult:
        """A stage with no input to process."""
        return cls(stage=stage, status=StageStatus.SKIPPED)

    @classmethod
    def fatal(cls, stage: str, error: str) -> StageResult:
        """A stage that could not run; the import stops here."""
        return cls(stage=stage, status=StageStatus.FATAL, error=error)

    def finish(self) -> StageResult:
        """Settle the status from the skip and failure counters."""
        if self.status is StageStatus.SUCCESS and (self.skipped or self.failed):
            self.status = StageStatus.PARTIAL
        return self

    @property
    def count(self) -> int:
        # Records matched to the same row count once
        return len({row["id"] for row in self.rows})


@dataclass
class ImportResult:
    """Aggregate outcome of one import call."""

    success: bool
    counts: dict[str, int] = field(
        default_factory=lambda: dict.fromkeys(COUNT_KEYS, 0)
    )
    error: str | None = None
    stages: list[StageResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Wire shape: ``{success, counts, error?}``."""
        payload: dict[str, Any] = {
            "success": self.success,
            "counts": dict(self.counts),
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload
