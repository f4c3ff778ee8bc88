"""Spec-driven table extractor.

Reads one table from a rendered page and reshapes each data row into a
canonical record:

1. wait for ``table_selector`` to resolve,
2. collect header texts and per-row cell texts in document order (one
   in-page evaluation),
3. pair header *i* with cell *i* to build a raw row,
4. project the raw row through the spec's ``column_map``.

Rows whose cell count differs from the header count are tolerated: trailing
headers without a cell are absent from the raw row, and cells beyond the last
header are dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from stat_ingest.errors import SelectorTimeoutError
from stat_ingest.models.run import CanonicalRecord
from stat_ingest.models.spec import LABEL_FIELD, LOCATOR_FIELDS, MISSING_VALUE, ExtractionSpec

if TYPE_CHECKING:
    from stat_ingest.renderer.base import Session

logger = logging.getLogger(__name__)

# Runs inside the page. Returns null when the table is gone.
TABLE_SCRIPT = """(spec) => {
    const table = document.querySelector(spec.table_selector);
    if (!table) {
        return null;
    }
    const text = (el) => (el.innerText ?? el.textContent ?? "");
    const headers = Array.from(table.querySelectorAll(spec.header_selector), text);
    const rows = Array.from(table.querySelectorAll(spec.row_selector), (row) =>
        Array.from(row.querySelectorAll(spec.cell_selector), text)
    );
    return { headers, rows };
}
"""


def clean_cell(value: Any) -> str:
    """Trim surrounding whitespace from a header or cell text."""
    if value is None:
        return ""
    return str(value).strip()


def pair_cells(headers: Sequence[str], cells: Sequence[str]) -> dict[str, str]:
    """Pair the header at position *i* with the cell at position *i*.

    The shorter sequence wins. A header label that appears twice keeps the
    value of its last position.
    """
    return dict(zip(headers, cells))


def map_row(
    raw_row: Mapping[str, str],
    column_map: Mapping[str, str],
    label: str,
) -> CanonicalRecord:
    """Project *raw_row* onto the canonical schema ``{Event} ∪ column_map``."""
    record: CanonicalRecord = {LABEL_FIELD: label}
    for field, header in column_map.items():
        record[field] = raw_row.get(header, MISSING_VALUE)
    return record


class TableExtractor:
    """Extracts canonical records from a page using an ``ExtractionSpec``.

    The extractor does not own the page and never closes it.
    """

    async def extract(
        self,
        page: "Session",
        spec: ExtractionSpec,
        label: str,
    ) -> list[CanonicalRecord]:
        """Extract one record per data row of the spec's table.

        Raises
        ------
        InvalidSpecError
            If any locator of *spec* is empty.
        SelectorTimeoutError
            If the table never materializes.
        """
        spec.ensure_valid()

        await page.wait_for(spec.table_selector)

        selectors = {name: getattr(spec, name) for name in LOCATOR_FIELDS}
        table = await page.evaluate(TABLE_SCRIPT, selectors)
        if table is None:
            raise SelectorTimeoutError(
                f"Table {spec.table_selector!r} disappeared before extraction",
                selector=spec.table_selector,
            )

        headers = [clean_cell(h) for h in table.get("headers") or []]
        records: list[CanonicalRecord] = []

        for index, row in enumerate(table.get("rows") or []):
            cells = [clean_cell(c) for c in row]
            if len(cells) != len(headers):
                logger.debug(
                    "Row %d has %d cells for %d headers (label=%s)",
                    index,
                    len(cells),
                    len(headers),
                    label,
                )
            records.append(map_row(pair_cells(headers, cells), spec.column_map, label))

        logger.debug(
            "Extracted %d rows with headers %s (label=%s)",
            len(records),
            headers,
            label,
        )
        return records
