"""Extraction spec and scrape target models.

An ExtractionSpec is plain configuration: four opaque locators interpreted by
the renderer plus an ordered column map from canonical field name to source
header label. Specs are frozen, column map included, so they can be shared
across targets and validated, serialized and tested without a live page.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)

from stat_ingest.errors import InvalidSpecError

# Field carrying the target label on every canonical record
LABEL_FIELD = "Event"

# Value for canonical fields whose source header is absent from a row
MISSING_VALUE = "N/A"

LOCATOR_FIELDS = ("table_selector", "header_selector", "row_selector", "cell_selector")


class ExtractionSpec(BaseModel):
    """Declarative description of how to find and decode one table."""

    model_config = ConfigDict(frozen=True)

    table_selector: str
    header_selector: str
    row_selector: str
    cell_selector: str
    column_map: Mapping[str, str] = Field(
        default_factory=dict,
        validate_default=True,
        validation_alias=AliasChoices("column_map", "mappings"),
    )

    @field_validator(*LOCATOR_FIELDS)
    @classmethod
    def _locator_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("locator must be a non-empty string")
        return value

    @field_validator("column_map", mode="after")
    @classmethod
    def _column_map_read_only(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @field_serializer("column_map")
    def _serialize_column_map(self, value: Mapping[str, str]) -> dict[str, str]:
        return dict(value)

    @model_validator(mode="after")
    def _label_field_reserved(self) -> "ExtractionSpec":
        if LABEL_FIELD in self.column_map:
            raise ValueError(f"column_map may not redefine the '{LABEL_FIELD}' field")
        return self

    @classmethod
    def from_config(cls, data: dict) -> "ExtractionSpec":
        """Build a spec from a config mapping, raising InvalidSpecError on bad input."""
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise InvalidSpecError(
                f"Invalid extraction spec: {exc.error_count()} error(s)",
                errors=exc.errors(include_url=False),
            ) from exc

    def ensure_valid(self) -> None:
        """Re-check locators before use.

        Catches specs built with ``model_construct`` that skipped validation.
        """
        empty = [
            name
            for name in LOCATOR_FIELDS
            if not isinstance(getattr(self, name, None), str) or not getattr(self, name).strip()
        ]
        if empty:
            raise InvalidSpecError(
                f"Extraction spec has empty locator(s): {', '.join(empty)}",
                fields=empty,
            )

    @property
    def output_fields(self) -> list[str]:
        """Canonical schema produced by this spec, label field first."""
        return [LABEL_FIELD, *self.column_map]


class ScrapeTarget(BaseModel):
    """One unit of ingestion work: a page, the spec that decodes it, and a label."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1)
    spec_name: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("spec_name", "config_name"),
    )
    label: str = Field(
        ...,
        validation_alias=AliasChoices("label", "event_name"),
    )
