"""
Database service layer for the FastAPI application.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from api.models import BOOK_FIELDS

logger = structlog.get_logger(__name__)

LIST_SORT = [("created_at", DESCENDING), ("_id", DESCENDING)]


class StoreErrorKind(str, Enum):
    """Failure kinds raised by the store layer."""
    INVALID_ID = "invalid_id"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


class BookStoreError(Exception):
    """Raised by BookStore operations; ``kind`` tells callers what went wrong."""

    def __init__(self, kind: StoreErrorKind, book_id: Optional[str] = None):
        self.kind = kind
        self.book_id = book_id
        super().__init__(f"{kind.value}: {book_id}" if book_id else kind.value)


def _utcnow() -> datetime:
    """Current UTC time truncated to the millisecond precision BSON stores."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def parse_book_id(book_id: str) -> ObjectId:
    """
    Convert a path identifier to an ObjectId.

    Raises:
        BookStoreError: with kind INVALID_ID if the string is not a valid ObjectId
    """
    if not ObjectId.is_valid(book_id):
        raise BookStoreError(StoreErrorKind.INVALID_ID, book_id)
    return ObjectId(book_id)


class BookStore:
    """
    Async MongoDB access for book documents.

    Documents carry ``created_at``/``updated_at`` timestamps that are set
    here, on insert and on every update.
    """

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    @classmethod
    def from_client(cls, client: AsyncIOMotorClient, database_name: str,
                    collection_name: str) -> "BookStore":
        return cls(client[database_name][collection_name])

    async def ensure_indexes(self) -> None:
        """Create the index backing newest-first listing."""
        try:
            await self.collection.create_index(LIST_SORT)
            logger.info("Ensured book indexes", collection=self.collection.name)
        except PyMongoError as e:
            logger.error("Failed to create indexes", error=str(e))
            raise BookStoreError(StoreErrorKind.UNAVAILABLE) from e

    async def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a new book.

        Args:
            fields: title, author, year and summary

        Returns:
            The stored document including ``_id`` and timestamps
        """
        now = _utcnow()
        doc = dict(fields, created_at=now, updated_at=now)
        try:
            result = await self.collection.insert_one(doc)
        except PyMongoError as e:
            logger.error("Failed to insert book", title=fields.get("title"), error=str(e))
            raise BookStoreError(StoreErrorKind.UNAVAILABLE) from e

        doc["_id"] = result.inserted_id
        logger.debug("Inserted book", book_id=str(result.inserted_id))
        return doc

    async def list_all(self) -> List[Dict[str, Any]]:
        """All books, newest first."""
        try:
            cursor = self.collection.find({}).sort(LIST_SORT)
            return await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error("Failed to list books", error=str(e))
            raise BookStoreError(StoreErrorKind.UNAVAILABLE) from e

    async def get(self, book_id: str) -> Dict[str, Any]:
        """
        Get a single book by ID.

        Raises:
            BookStoreError: INVALID_ID, NOT_FOUND or UNAVAILABLE
        """
        object_id = parse_book_id(book_id)
        try:
            doc = await self.collection.find_one({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to get book by ID", book_id=book_id, error=str(e))
            raise BookStoreError(StoreErrorKind.UNAVAILABLE, book_id) from e

        if doc is None:
            raise BookStoreError(StoreErrorKind.NOT_FOUND, book_id)
        return doc

    async def replace(self, book_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Overwrite every mutable field of a book.

        Fields missing from ``fields`` are stored as None.
        """
        full = {name: fields.get(name) for name in BOOK_FIELDS}
        return await self._set_fields(book_id, full)

    async def update(self, book_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Apply only the given fields, leaving the rest untouched."""
        return await self._set_fields(book_id, fields)

    async def _set_fields(self, book_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        object_id = parse_book_id(book_id)
        update_data = dict(fields, updated_at=_utcnow())
        try:
            doc = await self.collection.find_one_and_update(
                {"_id": object_id},
                {"$set": update_data},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error("Failed to update book", book_id=book_id, error=str(e))
            raise BookStoreError(StoreErrorKind.UNAVAILABLE, book_id) from e

        if doc is None:
            logger.warning("Book not found for update", book_id=book_id)
            raise BookStoreError(StoreErrorKind.NOT_FOUND, book_id)

        logger.debug("Updated book", book_id=book_id, fields=sorted(fields))
        return doc

    async def delete(self, book_id: str) -> None:
        """Remove a book; raises NOT_FOUND if nothing was deleted."""
        object_id = parse_book_id(book_id)
        try:
            doc = await self.collection.find_one_and_delete({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to delete book", book_id=book_id, error=str(e))
            raise BookStoreError(StoreErrorKind.UNAVAILABLE, book_id) from e

        if doc is None:
            logger.warning("Book not found for deletion", book_id=book_id)
            raise BookStoreError(StoreErrorKind.NOT_FOUND, book_id)
        logger.debug("Deleted book", book_id=book_id)

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.collection.database.command("ping")
            books_count = await self.collection.count_documents({})
            return {
                "status": "healthy",
                "books_collection": "accessible",
                "books_count": books_count,
            }
        except PyMongoError as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e),
            }
