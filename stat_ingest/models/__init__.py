"""Public models for the ingestion pipeline."""

from stat_ingest.models.run import (
    CanonicalRecord,
    RunReport,
    TargetOutcome,
    TargetStatus,
)
from stat_ingest.models.spec import (
    LABEL_FIELD,
    MISSING_VALUE,
    ExtractionSpec,
    ScrapeTarget,
)

__all__ = [
    "CanonicalRecord",
    "ExtractionSpec",
    "LABEL_FIELD",
    "MISSING_VALUE",
    "RunReport",
    "ScrapeTarget",
    "TargetOutcome",
    "TargetStatus",
]
