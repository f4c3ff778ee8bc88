"""Configuration module: settings and the spec/target catalog."""

from stat_ingest.config.catalog import Catalog, load_catalog
from stat_ingest.config.settings import IngestSettings

__all__ = [
    "Catalog",
    "IngestSettings",
    "load_catalog",
]
