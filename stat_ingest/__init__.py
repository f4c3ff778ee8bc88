"""Spec-driven table extraction and batched ingestion."""
