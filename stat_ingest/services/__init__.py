"""Run orchestration."""

from stat_ingest.services.runner import IngestionRunner

__all__ = ["IngestionRunner"]
