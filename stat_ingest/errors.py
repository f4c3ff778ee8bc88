"""Error hierarchy for the extraction and ingestion pipeline.

All pipeline-specific errors extend IngestError. Per-target errors
(ConfigNotFoundError, SelectorTimeoutError, NavigationError) are contained by
the ingestion runner; only StoreError subclasses propagate out of a run.
"""

from __future__ import annotations


class IngestError(Exception):
    """Base error for all pipeline-specific errors."""

    message: str = "Ingestion error"

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)


class InvalidSpecError(IngestError):
    """Extraction spec has an empty locator or an invalid column map."""

    message = "Invalid extraction spec"


class ConfigNotFoundError(IngestError):
    """No extraction spec registered under the requested name."""

    message = "No extraction spec registered under that name"


class CatalogError(IngestError):
    """Catalog file missing or unreadable."""

    message = "Catalog could not be loaded"


class SelectorTimeoutError(IngestError):
    """Table or elements never materialized within the renderer's wait budget."""

    message = "Selector did not resolve in time"


class NavigationError(IngestError):
    """Renderer or network failure while loading a page."""

    message = "Navigation failed"


class StoreError(IngestError):
    """Base error for document store failures."""

    message = "Document store error"


class StoreConnectionError(StoreError):
    """Document store unreachable."""

    message = "Document store unreachable"


class StoreWriteError(StoreError):
    """Document store rejected the batch."""

    message = "Document store rejected the batch"
