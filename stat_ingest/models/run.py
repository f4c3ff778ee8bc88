"""In-memory state models for an ingestion run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from stat_ingest.models.spec import ScrapeTarget

# Normalized output row: canonical field name -> cell text
CanonicalRecord = dict[str, str]


class TargetStatus(str, Enum):
    """Lifecycle state of a single scrape target within a run."""

    PENDING = "pending"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    SKIPPED = "skipped"


@dataclass
class TargetOutcome:
    """Per-target result of a run."""

    target: ScrapeTarget
    status: TargetStatus = TargetStatus.PENDING
    attempts: int = 0
    records_extracted: int = 0
    last_error: str | None = None


@dataclass
class RunReport:
    """Accumulated records and per-target outcomes for one run."""

    records: list[CanonicalRecord] = field(default_factory=list)
    outcomes: list[TargetOutcome] = field(default_factory=list)
    inserted_ids: list = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: datetime | None = None

    def _with_status(self, status: TargetStatus) -> list[TargetOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def succeeded(self) -> list[TargetOutcome]:
        return self._with_status(TargetStatus.SUCCEEDED)

    @property
    def exhausted(self) -> list[TargetOutcome]:
        return self._with_status(TargetStatus.EXHAUSTED)

    @property
    def skipped(self) -> list[TargetOutcome]:
        return self._with_status(TargetStatus.SKIPPED)
