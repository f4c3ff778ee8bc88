"""Run entry point: load settings and catalog, extract, persist.

Usage: ``python -m stat_ingest.main`` (configure via STATINGEST_* env vars).
"""

from __future__ import annotations

import asyncio
import logging

from stat_ingest.config.catalog import load_catalog
from stat_ingest.config.settings import IngestSettings
from stat_ingest.logging_config import configure_logging
from stat_ingest.models.run import RunReport
from stat_ingest.renderer.chromium import PlaywrightRenderer
from stat_ingest.services.runner import IngestionRunner
from stat_ingest.store.mongo import MongoDocumentStore

logger = logging.getLogger(__name__)


async def run_catalog(settings: IngestSettings) -> RunReport:
    """Run every target of the configured catalog once."""
    catalog = load_catalog(settings.catalog_path)

    store = MongoDocumentStore(
        settings.store_url,
        server_selection_timeout_ms=settings.store_timeout_ms,
    )

    async with PlaywrightRenderer(
        headless=settings.headless,
        navigation_timeout_ms=settings.navigation_timeout_ms,
        selector_timeout_ms=settings.selector_timeout_ms,
        wait_until=settings.wait_until,
    ) as renderer:
        runner = IngestionRunner.from_settings(
            settings,
            renderer=renderer,
            store=store,
            registry=catalog.registry,
        )
        return await runner.run(catalog.targets)


def main() -> None:
    settings = IngestSettings()
    configure_logging(settings.log_level)
    logger.info("Starting ingestion run (catalog=%s)", settings.catalog_path)

    report = asyncio.run(run_catalog(settings))

    logger.info(
        "Ingestion run complete: %d records inserted, %d targets exhausted, %d skipped",
        len(report.inserted_ids),
        len(report.exhausted),
        len(report.skipped),
    )


if __name__ == "__main__":
    main()
