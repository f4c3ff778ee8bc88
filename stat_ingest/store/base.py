"""Document store capability consumed by the ingestion runner."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Protocol, runtime_checkable


@runtime_checkable
class Collection(Protocol):
    async def insert_many(self, records: Sequence[Mapping[str, str]]) -> list:
        """Insert *records* as one batch and return the generated ids.

        Raises ``StoreWriteError`` if the batch is rejected.
        """
        ...


@runtime_checkable
class StoreConnection(Protocol):
    def collection(self, db: str, name: str) -> Collection:
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class DocumentStore(Protocol):
    async def connect(self) -> StoreConnection:
        """Open a connection, raising ``StoreConnectionError`` if unreachable."""
        ...
