"""Pydantic Settings for an ingestion run.

All environment variables use the STATINGEST_ prefix.
Example: STATINGEST_MAX_ATTEMPTS=3, STATINGEST_STORE_URL=mongodb://db:27017
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class IngestSettings(BaseSettings):
    """Run-level options validated from environment variables."""

    log_level: str = "INFO"

    # Retry policy (per target)
    max_attempts: int = Field(default=5, ge=1)
    backoff_ms: int = Field(default=5000, ge=0)

    # Document store
    store_url: str = "mongodb://localhost:27017"
    db_name: str = Field(default="game_stats", min_length=1)
    collection_name: str = Field(default="player_stats", min_length=1)
    store_timeout_ms: int = Field(default=10000, ge=100)

    # Renderer
    headless: bool = True
    navigation_timeout_ms: int = Field(default=30000, ge=1000)
    selector_timeout_ms: int = Field(default=30000, ge=100)
    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = "networkidle"

    # Named specs and targets
    catalog_path: str = "stat_ingest/config/catalog.yaml"

    model_config = {"env_prefix": "STATINGEST_"}
