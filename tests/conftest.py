"""Shared test fixtures and hypothesis strategies for the ingestion test suite."""

from __future__ import annotations

import os

import pytest
from hypothesis import strategies as st

from fakes import FakeStore, RecordingSleep
from stat_ingest.config.settings import IngestSettings
from stat_ingest.extractors.registry import SpecRegistry
from stat_ingest.models.spec import ExtractionSpec


# ---------------------------------------------------------------------------
# Keep STATINGEST_* env vars from the host out of the tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("STATINGEST_"):
            monkeypatch.delenv(key)


# ---------------------------------------------------------------------------
# Settings / spec fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> IngestSettings:
    """Test settings with fast retries."""
    return IngestSettings(max_attempts=3, backoff_ms=10)


@pytest.fixture
def stats_spec() -> ExtractionSpec:
    return ExtractionSpec(
        table_selector="div.table-responsive",
        header_selector="thead th",
        row_selector="tbody tr",
        cell_selector="td",
        column_map={"Player": "Player", "Kills": "K"},
    )


@pytest.fixture
def registry(stats_spec: ExtractionSpec) -> SpecRegistry:
    return SpecRegistry.from_mapping({"vct": stats_spec})


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


# ---------------------------------------------------------------------------
# Hypothesis strategies (reusable across property tests)
# ---------------------------------------------------------------------------

# Header / cell text without surrounding whitespace
cell_texts = st.text(
    alphabet=st.characters(categories=("L", "N", "P")),
    min_size=0,
    max_size=12,
)
header_labels = st.text(
    alphabet=st.characters(categories=("L", "N", "P")),
    min_size=1,
    max_size=8,
)
unique_headers = st.lists(header_labels, min_size=1, max_size=10, unique=True)
canonical_fields = st.from_regex(r"[A-Z][A-Za-z_]{0,9}", fullmatch=True).filter(
    lambda name: name != "Event"
)
labels = st.text(min_size=1, max_size=30)
attempt_budgets = st.integers(min_value=1, max_value=6)
