"""Named extraction spec registry.

Maps a spec name → ``ExtractionSpec`` so a single ingestion runner can serve
heterogeneous targets. The registry is an explicit object handed to the
runner at construction; there is no module-level instance.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from stat_ingest.errors import ConfigNotFoundError
from stat_ingest.models.spec import ExtractionSpec

logger = logging.getLogger(__name__)


class SpecRegistry:
    """Registry that maps spec names to extraction specs."""

    def __init__(self) -> None:
        self._specs: dict[str, ExtractionSpec] = {}

    @classmethod
    def from_mapping(cls, specs: Mapping[str, ExtractionSpec]) -> "SpecRegistry":
        registry = cls()
        for name, spec in specs.items():
            registry.register(name, spec)
        return registry

    def register(self, name: str, spec: ExtractionSpec) -> None:
        """Register *spec* under *name*.

        Re-registering an existing name replaces the previous spec.
        """
        if name in self._specs:
            logger.debug("Replacing extraction spec '%s'", name)
        self._specs[name] = spec

    def lookup(self, name: str) -> ExtractionSpec:
        """Return the spec registered under *name*.

        Raises
        ------
        ConfigNotFoundError
            If no spec is registered under the given name.
        """
        try:
            return self._specs[name]
        except KeyError:
            raise ConfigNotFoundError(
                f"No extraction spec registered under '{name}'",
                spec_name=name,
            ) from None

    def names(self) -> list[str]:
        """Return registered spec names in registration order."""
        return list(self._specs.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)
