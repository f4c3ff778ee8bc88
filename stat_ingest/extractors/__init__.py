"""Table extractor and named spec registry."""

from stat_ingest.extractors.registry import SpecRegistry
from stat_ingest.extractors.table import TableExtractor, map_row, pair_cells

__all__ = ["SpecRegistry", "TableExtractor", "map_row", "pair_cells"]
