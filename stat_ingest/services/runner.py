"""Ingestion runner: drives a multi-target extraction run.

For each scrape target, in submission order:

lookup spec → [open session → navigate → extract → close session] (retried)
→ append records to the run's accumulator.

Per-target states: pending → skipped (spec not registered), or pending →
attempting → succeeded | exhausted. The attempt counter lives inside the
per-target loop, so a target that burns its whole budget leaves the next
target's budget untouched. No per-target failure ever aborts the run.

Once every target is terminal, a non-empty accumulator is written to the
store in exactly one batched insert. An empty accumulator means no store
interaction at all. Store failures are the only errors that propagate; the
report (with every extracted record) rides along on the exception so the
caller can retry ``persist`` without re-extracting.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator

from stat_ingest.config.settings import IngestSettings
from stat_ingest.errors import ConfigNotFoundError, InvalidSpecError, StoreError
from stat_ingest.extractors.registry import SpecRegistry
from stat_ingest.extractors.table import TableExtractor
from stat_ingest.models.run import CanonicalRecord, RunReport, TargetOutcome, TargetStatus
from stat_ingest.models.spec import ExtractionSpec, ScrapeTarget
from stat_ingest.renderer.base import Renderer, Session
from stat_ingest.store.base import DocumentStore

logger = logging.getLogger(__name__)


class IngestionRunner:
    """Runs scrape targets sequentially and persists their records in one batch.

    Dependencies are injected via the constructor so the runner is testable
    without a real browser or database. ``sleep`` is the backoff primitive.
    """

    def __init__(
        self,
        *,
        renderer: Renderer,
        store: DocumentStore,
        registry: SpecRegistry,
        db_name: str,
        collection_name: str,
        extractor: TableExtractor | None = None,
        max_attempts: int = 5,
        backoff_ms: int = 5000,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if backoff_ms < 0:
            raise ValueError("backoff_ms must not be negative")

        self._renderer = renderer
        self._store = store
        self._registry = registry
        self._db_name = db_name
        self._collection_name = collection_name
        self._extractor = extractor or TableExtractor()
        self._max_attempts = max_attempts
        self._backoff_ms = backoff_ms
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: IngestSettings,
        *,
        renderer: Renderer,
        store: DocumentStore,
        registry: SpecRegistry,
    ) -> "IngestionRunner":
        return cls(
            renderer=renderer,
            store=store,
            registry=registry,
            db_name=settings.db_name,
            collection_name=settings.collection_name,
            max_attempts=settings.max_attempts,
            backoff_ms=settings.backoff_ms,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, targets: Sequence[ScrapeTarget]) -> RunReport:
        """Extract every target, then persist all records in a single batch.

        Raises
        ------
        StoreError
            If the final batched write fails. ``exc.details["report"]``
            holds the run report with all accumulated records.
        """
        report = await self.collect(targets)

        if not report.records:
            logger.info("No records extracted, skipping store write")
            return report

        try:
            report.inserted_ids = await self.persist(report.records)
        except StoreError as exc:
            exc.details["report"] = report
            logger.error(
                "Store write failed after extraction: %s (%d records kept in memory)",
                exc,
                len(report.records),
            )
            raise

        return report

    async def collect(self, targets: Sequence[ScrapeTarget]) -> RunReport:
        """Run every target through extraction and accumulate their records."""
        report = RunReport()

        for target in targets:
            outcome, records = await self._run_target(target)
            report.outcomes.append(outcome)
            report.records.extend(records)

        report.completed_at = datetime.utcnow()
        logger.info(
            "Extraction finished: %d records (succeeded=%d, exhausted=%d, skipped=%d)",
            len(report.records),
            len(report.succeeded),
            len(report.exhausted),
            len(report.skipped),
        )
        return report

    async def persist(self, records: Sequence[Mapping[str, str]]) -> list:
        """Insert *records* as one batch and return the store's generated ids.

        The connection is closed whether or not the write succeeds.
        """
        connection = await self._store.connect()
        try:
            collection = connection.collection(self._db_name, self._collection_name)
            inserted_ids = await collection.insert_many(list(records))
        finally:
            await connection.close()

        logger.info(
            "Inserted %d records into %s.%s: %s",
            len(inserted_ids),
            self._db_name,
            self._collection_name,
            inserted_ids,
            extra={"records_extracted": len(records)},
        )
        return inserted_ids

    # ------------------------------------------------------------------
    # Per-target retry loop
    # ------------------------------------------------------------------

    async def _run_target(
        self, target: ScrapeTarget
    ) -> tuple[TargetOutcome, list[CanonicalRecord]]:
        outcome = TargetOutcome(target=target)
        context = {
            "target_url": target.url,
            "label": target.label,
            "spec_name": target.spec_name,
        }

        try:
            spec = self._registry.lookup(target.spec_name)
        except ConfigNotFoundError as exc:
            outcome.status = TargetStatus.SKIPPED
            outcome.last_error = str(exc)
            logger.warning(
                "Skipping %s (%s): %s",
                target.url,
                target.label,
                exc,
                extra={**context, "status": outcome.status.value},
            )
            return outcome, []

        attempt = 0
        while True:
            attempt += 1
            outcome.status = TargetStatus.ATTEMPTING
            outcome.attempts = attempt

            try:
                records = await self._attempt(target, spec)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                outcome.last_error = str(exc)
                # A broken spec fails the same way on every attempt
                remaining = 0 if isinstance(exc, InvalidSpecError) else self._max_attempts - attempt

                if remaining <= 0:
                    outcome.status = TargetStatus.EXHAUSTED
                    logger.error(
                        "Giving up on %s (%s) after %d attempts: %s",
                        target.url,
                        target.label,
                        attempt,
                        exc,
                        extra={
                            **context,
                            "attempt": attempt,
                            "attempts_remaining": 0,
                            "error_reason": exc,
                            "status": outcome.status.value,
                        },
                    )
                    return outcome, []

                logger.warning(
                    "Attempt %d/%d failed for %s (%s): %s; retrying in %dms, %d attempts left",
                    attempt,
                    self._max_attempts,
                    target.url,
                    target.label,
                    exc,
                    self._backoff_ms,
                    remaining,
                    extra={
                        **context,
                        "attempt": attempt,
                        "attempts_remaining": remaining,
                        "error_reason": exc,
                    },
                )
                await self._sleep(self._backoff_ms / 1000.0)
                continue

            outcome.status = TargetStatus.SUCCEEDED
            outcome.records_extracted = len(records)
            if records:
                logger.info(
                    "Extracted %d records from %s (%s) on attempt %d",
                    len(records),
                    target.url,
                    target.label,
                    attempt,
                    extra={**context, "attempt": attempt, "records_extracted": len(records)},
                )
            else:
                logger.info(
                    "Table on %s (%s) had no data rows",
                    target.url,
                    target.label,
                    extra={**context, "attempt": attempt, "records_extracted": 0},
                )
            return outcome, records

    async def _attempt(
        self, target: ScrapeTarget, spec: ExtractionSpec
    ) -> list[CanonicalRecord]:
        spec.ensure_valid()
        async with self._session() as session:
            await session.navigate(target.url)
            return await self._extractor.extract(session, spec, target.label)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[Session]:
        """Open a renderer session and always close it."""
        session = await self._renderer.new_session()
        try:
            yield session
        finally:
            try:
                await session.close()
            except Exception:
                logger.warning("Failed to close renderer session", exc_info=True)
