from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from nodeflow.config import settings
from nodeflow.core.enums import SourceKind
from nodeflow.core.errors import DataSourceError, SourceUnavailableError
from nodeflow.core.models import NodeProfile
from nodeflow.io.schemas import profile_to_document
from nodeflow.ports.document_store_port import DocumentStorePort
from nodeflow.ports.profile_sink_port import ProfileSinkPort


logger = logging.getLogger(__name__)


def _default_collections() -> Dict[SourceKind, str]:
    return {
        SourceKind.SWAPS: settings.SWAP_COLLECTION_NAME,
        SourceKind.ATOM_BASE: settings.ATOM_COLLECTION_NAME,
        SourceKind.ATONE_BASE: settings.ATONE_COLLECTION_NAME,
    }


class MongoDocumentStore(DocumentStorePort):
    """
    Raw swap logs from MongoDB. The client is created on first use and reused afterwards.
    """

    def __init__(
        self,
        uri: Optional[str] = settings.MONGODB_URI,
        db_name: str = settings.SWAP_DB_NAME,
        collections: Optional[Mapping[SourceKind, str]] = None,
        client_factory: Callable[[str], Any] = AsyncMongoClient,
    ) -> None:
        self._uri = uri
        self._db_name = db_name
        self._collections = dict(collections or _default_collections())
        self._client_factory = client_factory

        self._client: Optional[Any] = None
        self._lock = asyncio.Lock()

    async def client(self) -> Any:
        if self._client is not None:
            return self._client
        async with self._lock:
            if self._client is None:
                if not self._uri:
                    raise SourceUnavailableError("MONGODB_URI is not set")
                try:
                    self._client = self._client_factory(self._uri)
                except PyMongoError as e:
                    raise SourceUnavailableError(f"MongoDB client setup failed: {e}") from e
                logger.info("MongoDB client created (db=%s)", self._db_name)
        return self._client

    async def fetch_raw(self, source_kind: SourceKind) -> List[Dict[str, Any]]:
        client = await self.client()
        collection = client[self._db_name][self._collections[source_kind]]
        docs: List[Dict[str, Any]] = []
        try:
            async for doc in collection.find({}, {"_id": 0}):
                docs.append(doc)
        except PyMongoError as e:
            raise SourceUnavailableError(f"MongoDB read failed: {e}") from e
        return docs

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


class MongoProfileSink(ProfileSinkPort):
    """
    Replace-all writer for the profiles collection.
    """

    def __init__(
        self,
        store: MongoDocumentStore,
        db_name: str = settings.NODES_DB_NAME,
        collection_name: str = settings.NODES_COLLECTION_NAME,
    ) -> None:
        self._store = store
        self._db_name = db_name
        self._collection_name = collection_name

    async def replace_all(self, profiles: Sequence[NodeProfile]) -> int:
        if not profiles:
            logger.warning("Skipping %s because there are no profiles", self._collection_name)
            return 0

        client = await self._store.client()
        collection = client[self._db_name][self._collection_name]
        docs = [profile_to_document(p) for p in profiles]
        try:
            await collection.delete_many({})
            result = await collection.insert_many(docs)
        except PyMongoError as e:
            raise DataSourceError(f"MongoDB write failed: {e}") from e

        count = len(result.inserted_ids)
        logger.info("%s: inserted %d profile(s)", self._collection_name, count)
        return count
