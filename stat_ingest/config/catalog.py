"""Catalog loader: named extraction specs and scrape targets from YAML.

Layout::

    defaults:            # optional, merged under every spec
      table_selector: div.table-responsive
      ...
    specs:
      <name>:
        column_map: {<canonical field>: <header label>, ...}
    targets:
      - {url: ..., spec_name: <name>, label: ...}

An invalid spec or target is logged and skipped so one bad entry does not
block the rest of the catalog. Targets naming a skipped spec are kept; the
runner will report them as skipped at run time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import ValidationError

from stat_ingest.errors import CatalogError, InvalidSpecError
from stat_ingest.extractors.registry import SpecRegistry
from stat_ingest.models.spec import ExtractionSpec, ScrapeTarget

logger = logging.getLogger(__name__)


@dataclass
class Catalog:
    registry: SpecRegistry = field(default_factory=SpecRegistry)
    targets: list[ScrapeTarget] = field(default_factory=list)


def _normalize(config: dict) -> dict:
    """Accept ``mappings`` as the legacy name of ``column_map``."""
    config = dict(config)
    if "mappings" in config and "column_map" not in config:
        config["column_map"] = config.pop("mappings")
    return config


def load_catalog(yaml_path: str) -> Catalog:
    """Parse a catalog YAML file into a spec registry and a target list.

    Raises
    ------
    CatalogError
        If the file is missing, is not valid YAML, or is not a mapping.
    """
    path = Path(yaml_path)

    if not path.exists():
        raise CatalogError(f"Catalog file not found at {yaml_path}", path=yaml_path)

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise CatalogError(f"Failed to parse catalog YAML at {yaml_path}: {exc}", path=yaml_path) from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise CatalogError(f"Catalog at {yaml_path} must be a mapping", path=yaml_path)

    for section, kind in (("defaults", dict), ("specs", dict), ("targets", list)):
        if not isinstance(raw.get(section) or kind(), kind):
            raise CatalogError(f"Catalog section '{section}' must be a {kind.__name__}", path=yaml_path)

    defaults = _normalize(raw.get("defaults") or {})
    catalog = Catalog()

    for name, config in (raw.get("specs") or {}).items():
        if config is None:
            config = {}
        if not isinstance(config, dict):
            logger.error(
                "Invalid extraction spec '%s': expected a mapping, got %s, skipping",
                name,
                type(config).__name__,
            )
            continue
        try:
            spec = ExtractionSpec.from_config({**defaults, **_normalize(config)})
        except InvalidSpecError as exc:
            logger.error("Invalid extraction spec '%s': %s, skipping", name, exc.details.get("errors"))
            continue
        catalog.registry.register(str(name), spec)

    for index, entry in enumerate(raw.get("targets") or []):
        try:
            catalog.targets.append(ScrapeTarget.model_validate(entry))
        except ValidationError as exc:
            logger.error("Invalid scrape target #%d: %s, skipping", index, exc)

    logger.info(
        "Loaded catalog %s: %d specs, %d targets",
        yaml_path,
        len(catalog.registry),
        len(catalog.targets),
    )
    return catalog
