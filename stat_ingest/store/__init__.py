"""Document store capability and its MongoDB implementation."""

from stat_ingest.store.base import Collection, DocumentStore, StoreConnection
from stat_ingest.store.mongo import MongoConnection, MongoDocumentStore

__all__ = [
    "Collection",
    "DocumentStore",
    "MongoConnection",
    "MongoDocumentStore",
    "StoreConnection",
]
