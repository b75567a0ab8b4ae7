"""Generic MongoDB repositories: sync (PyMongo) and async (Motor).

Both classes expose the same operations with the same semantics; the async
one awaits a single driver call per operation. Identifier parsing and
timestamp stamping are shared in _RepositoryBase.
"""

import logging
from typing import Any, Generic, Iterable

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import DESCENDING, MongoClient

from shopping_center.config import DbSettings

from .connection import (
    create_async_client,
    create_client,
    sanitize_mongodb_url,
    validate_db_settings,
)
from .exceptions import InvalidIdError
from .filters import Filter, Projection, render_filter
from .models import (
    TDocument,
    _as_utc,
    get_collection_name,
    next_timestamp,
    parse_object_id,
    utc_now,
)

logger = logging.getLogger(__name__)


class _RepositoryBase(Generic[TDocument]):
    """Shared identifier, timestamp and query bookkeeping."""

    def __init__(self, document_type: type[TDocument], settings: DbSettings | None) -> None:
        self.settings = validate_db_settings(settings)
        self.document_type = document_type
        self.collection_name = get_collection_name(document_type)

    def _query(self, filter: Filter | None) -> dict[str, Any]:
        return render_filter(filter, self.document_type.stored_key)

    def _load(self, raw: dict[str, Any]) -> TDocument:
        return self.document_type.from_mongo(raw)

    @staticmethod
    def _id_query(id: str | ObjectId) -> dict[str, ObjectId]:
        return {"_id": parse_object_id(id)}

    @staticmethod
    def _prepare_insert(document: TDocument) -> None:
        document.created_at = utc_now()
        document.updated_at = None
        if not document.has_id:
            document.id = ObjectId()

    def _keep_created_at(self, document: TDocument, stored: dict[str, Any] | None) -> None:
        # A document rebuilt from its id alone must not wipe the insert stamp
        if stored is None:
            return
        created_at = stored.get(self._created_at_key)
        if created_at is not None:
            document.created_at = _as_utc(created_at)

    @staticmethod
    def _prepare_replace(document: TDocument) -> None:
        if not document.has_id:
            raise InvalidIdError(document.id)
        document.updated_at = next_timestamp(document.updated_at or document.created_at)

    @property
    def _created_at_key(self) -> str:
        return self.document_type.stored_key("created_at")

    def _page_bounds(self, page_size: int, page_number: int) -> tuple[int, int]:
        if page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {page_size}")
        if page_number < 1:
            raise ValueError(f"page_number must be at least 1, got {page_number}")
        return (page_number - 1) * page_size, page_size

    def _newest_first(self) -> list[tuple[str, int]]:
        return [
            (self._created_at_key, DESCENDING),
            ("_id", DESCENDING),
        ]


class MongoRepository(_RepositoryBase[TDocument]):
    """Synchronous repository for one document type.

    Args:
        document_type: Document subclass stored in the collection
        settings: DbSettings with connection string and database name
        client: Optional pre-built MongoClient; the repository then does
            not close it
    """

    def __init__(
        self,
        document_type: type[TDocument],
        settings: DbSettings | None,
        client: MongoClient | None = None,
    ) -> None:
        super().__init__(document_type, settings)
        self._owns_client = client is None
        self._client = client if client is not None else create_client(self.settings)
        self._collection = self._client[self.settings.database_name][self.collection_name]
        logger.info(
            f"Initialized MongoRepository for '{self.collection_name}' "
            f"on {sanitize_mongodb_url(self.settings.connection_string)}"
        )

    def __enter__(self) -> "MongoRepository[TDocument]":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the client if this repository created it."""
        if self._owns_client:
            self._client.close()
            logger.info(f"Closed MongoRepository for '{self.collection_name}'")

    def contains(self, filter: Filter) -> bool:
        return self._collection.find_one(self._query(filter), projection={"_id": 1}) is not None

    def count(self) -> int:
        """Estimated document count from collection metadata."""
        return self._collection.estimated_document_count()

    def filter_by(self, filter: Filter, projection: Projection | None = None) -> list:
        if projection is None:
            return [self._load(raw) for raw in self._collection.find(self._query(filter))]
        cursor = self._collection.find(self._query(filter), projection.to_mongo())
        return [projection.apply(raw) for raw in cursor]

    def find_one(self, filter: Filter) -> TDocument | None:
        raw = self._collection.find_one(self._query(filter))
        return self._load(raw) if raw is not None else None

    def find_by_id(self, id: str | ObjectId) -> TDocument | None:
        raw = self._collection.find_one(self._id_query(id))
        return self._load(raw) if raw is not None else None

    def insert_one(self, document: TDocument, new_id: bool = True) -> None:
        """Insert a document, or replace it when new_id is False and it has an id."""
        if not new_id and document.has_id:
            self.replace_one(document)
            return
        self._prepare_insert(document)
        self._collection.insert_one(document.to_mongo())
        logger.debug(f"Inserted {document.id} into '{self.collection_name}'")

    def insert_many(self, documents: Iterable[TDocument]) -> None:
        documents = list(documents)
        if not documents:
            return
        for document in documents:
            self._prepare_insert(document)
        self._collection.insert_many([document.to_mongo() for document in documents])
        logger.debug(f"Inserted {len(documents)} documents into '{self.collection_name}'")

    def replace_one(self, document: TDocument) -> None:
        """Overwrite the stored document with the same id. No match is a no-op."""
        if document.created_at is None and document.has_id:
            stored = self._collection.find_one(
                {"_id": document.id}, projection={self._created_at_key: 1}
            )
            self._keep_created_at(document, stored)
        self._prepare_replace(document)
        self._collection.find_one_and_replace({"_id": document.id}, document.to_mongo())
        logger.debug(f"Replaced {document.id} in '{self.collection_name}'")

    def delete_one(self, filter: Filter) -> None:
        self._collection.find_one_and_delete(self._query(filter))

    def delete_by_id(self, id: str | ObjectId) -> None:
        self._collection.find_one_and_delete(self._id_query(id))
        logger.debug(f"Deleted {id} from '{self.collection_name}'")

    def delete_many(self, filter: Filter) -> None:
        result = self._collection.delete_many(self._query(filter))
        logger.debug(f"Deleted {result.deleted_count} documents from '{self.collection_name}'")

    def get_all(self) -> list[TDocument]:
        return [self._load(raw) for raw in self._collection.find({})]

    def get_all_with_paging(
        self,
        page_size: int = 20,
        page_number: int = 1,
        check_delete: bool = True,
    ) -> list[TDocument]:
        """Newest-first page of documents.

        check_delete is accepted for interface compatibility; there is no
        soft-delete state to filter on.
        """
        skip, limit = self._page_bounds(page_size, page_number)
        cursor = self._collection.find({}, sort=self._newest_first(), skip=skip, limit=limit)
        return [self._load(raw) for raw in cursor]


class AsyncMongoRepository(_RepositoryBase[TDocument]):
    """Asyncio repository for one document type, backed by Motor.

    Same operations and semantics as MongoRepository. Cancelling an awaiting
    task abandons the call; a write already sent may still complete.
    """

    def __init__(
        self,
        document_type: type[TDocument],
        settings: DbSettings | None,
        client: AsyncIOMotorClient | None = None,
    ) -> None:
        super().__init__(document_type, settings)
        self._owns_client = client is None
        self._client = client if client is not None else create_async_client(self.settings)
        self._collection = self._client[self.settings.database_name][self.collection_name]
        logger.info(
            f"Initialized AsyncMongoRepository for '{self.collection_name}' "
            f"on {sanitize_mongodb_url(self.settings.connection_string)}"
        )

    async def __aenter__(self) -> "AsyncMongoRepository[TDocument]":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the client if this repository created it."""
        if self._owns_client:
            self._client.close()
            logger.info(f"Closed AsyncMongoRepository for '{self.collection_name}'")

    async def contains(self, filter: Filter) -> bool:
        raw = await self._collection.find_one(self._query(filter), projection={"_id": 1})
        return raw is not None

    async def count(self) -> int:
        """Estimated document count from collection metadata."""
        return await self._collection.estimated_document_count()

    async def filter_by(self, filter: Filter, projection: Projection | None = None) -> list:
        if projection is None:
            cursor = self._collection.find(self._query(filter))
            return [self._load(raw) async for raw in cursor]
        cursor = self._collection.find(self._query(filter), projection.to_mongo())
        return [projection.apply(raw) async for raw in cursor]

    async def find_one(self, filter: Filter) -> TDocument | None:
        raw = await self._collection.find_one(self._query(filter))
        return self._load(raw) if raw is not None else None

    async def find_by_id(self, id: str | ObjectId) -> TDocument | None:
        raw = await self._collection.find_one(self._id_query(id))
        return self._load(raw) if raw is not None else None

    async def insert_one(self, document: TDocument, new_id: bool = True) -> None:
        """Insert a document, or replace it when new_id is False and it has an id."""
        if not new_id and document.has_id:
            await self.replace_one(document)
            return
        self._prepare_insert(document)
        await self._collection.insert_one(document.to_mongo())
        logger.debug(f"Inserted {document.id} into '{self.collection_name}'")

    async def insert_many(self, documents: Iterable[TDocument]) -> None:
        documents = list(documents)
        if not documents:
            return
        for document in documents:
            self._prepare_insert(document)
        await self._collection.insert_many([document.to_mongo() for document in documents])
        logger.debug(f"Inserted {len(documents)} documents into '{self.collection_name}'")

    async def replace_one(self, document: TDocument) -> None:
        """Overwrite the stored document with the same id. No match is a no-op."""
        if document.created_at is None and document.has_id:
            stored = await self._collection.find_one(
                {"_id": document.id}, projection={self._created_at_key: 1}
            )
            self._keep_created_at(document, stored)
        self._prepare_replace(document)
        await self._collection.find_one_and_replace({"_id": document.id}, document.to_mongo())
        logger.debug(f"Replaced {document.id} in '{self.collection_name}'")

    async def delete_one(self, filter: Filter) -> None:
        await self._collection.find_one_and_delete(self._query(filter))

    async def delete_by_id(self, id: str | ObjectId) -> None:
        query = self._id_query(id)
        await self._collection.find_one_and_delete(query)
        logger.debug(f"Deleted {id} from '{self.collection_name}'")

    async def delete_many(self, filter: Filter) -> None:
        result = await self._collection.delete_many(self._query(filter))
        logger.debug(f"Deleted {result.deleted_count} documents from '{self.collection_name}'")

    async def get_all(self) -> list[TDocument]:
        return [self._load(raw) async for raw in self._collection.find({})]

    async def get_all_with_paging(
        self,
        page_size: int = 20,
        page_number: int = 1,
        check_delete: bool = True,
    ) -> list[TDocument]:
        """Newest-first page of documents. check_delete is accepted and unused."""
        skip, limit = self._page_bounds(page_size, page_number)
        cursor = self._collection.find({}, sort=self._newest_first(), skip=skip, limit=limit)
        return [self._load(raw) async for raw in cursor]
