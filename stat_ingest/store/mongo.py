"""MongoDB document store backed by pymongo's asyncio client.

``connect`` pings the server so an unreachable store fails at connect time
rather than on the first write. Records are copied before insertion because
the driver adds ``_id`` to the documents it is given.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pymongo import AsyncMongoClient
from pymongo.errors import ConnectionFailure, PyMongoError

from stat_ingest.errors import StoreConnectionError, StoreWriteError

logger = logging.getLogger(__name__)


class MongoCollection:
    def __init__(self, collection: Any) -> None:
        self._collection = collection

    async def insert_many(self, records: Sequence[Mapping[str, str]]) -> list:
        documents = [dict(record) for record in records]
        try:
            result = await self._collection.insert_many(documents)
        except ConnectionFailure as exc:
            raise StoreConnectionError(
                f"Lost connection during batch insert: {exc}",
                collection=self._collection.full_name,
            ) from exc
        except PyMongoError as exc:
            raise StoreWriteError(
                f"Batch insert of {len(documents)} records rejected: {exc}",
                collection=self._collection.full_name,
            ) from exc
        return list(result.inserted_ids)


class MongoConnection:
    def __init__(self, client: AsyncMongoClient) -> None:
        self._client = client

    def collection(self, db: str, name: str) -> MongoCollection:
        return MongoCollection(self._client[db][name])

    async def close(self) -> None:
        await self._client.close()


class MongoDocumentStore:
    """Opens MongoDB connections for batched record inserts.

    Parameters
    ----------
    url:
        MongoDB connection string, e.g. ``mongodb://localhost:27017``.
    server_selection_timeout_ms:
        How long ``connect`` waits for a reachable server.
    """

    def __init__(self, url: str, *, server_selection_timeout_ms: int = 10_000) -> None:
        self._url = url
        self._server_selection_timeout_ms = server_selection_timeout_ms

    async def connect(self) -> MongoConnection:
        client: AsyncMongoClient = AsyncMongoClient(
            self._url,
            serverSelectionTimeoutMS=self._server_selection_timeout_ms,
        )
        try:
            await client.admin.command("ping")
        except PyMongoError as exc:
            await client.close()
            raise StoreConnectionError(f"Could not connect to document store: {exc}") from exc

        logger.info("Connected to document store")
        return MongoConnection(client)
