"""
Pytest configuration and shared fixtures.
"""

import copy
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from api.database import BookStore, BookStoreError, StoreErrorKind
from api.main import app, get_book_store


class InMemoryBookStore:
    """
    Dict-backed stand-in for BookStore used by the API tests.

    Timestamps come from a fake clock that advances one millisecond per
    call, so creation order is always observable.
    """

    def __init__(self):
        self.books = {}
        self._now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _tick(self):
        self._now += timedelta(milliseconds=1)
        return self._now

    def _parse(self, book_id):
        if not ObjectId.is_valid(book_id):
            raise BookStoreError(StoreErrorKind.INVALID_ID, book_id)
        object_id = ObjectId(book_id)
        if object_id not in self.books:
            raise BookStoreError(StoreErrorKind.NOT_FOUND, book_id)
        return object_id

    def seed(self, **fields):
        """Store a book directly, bypassing the API."""
        now = self._tick()
        doc = dict(fields, _id=ObjectId(), created_at=now, updated_at=now)
        self.books[doc["_id"]] = doc
        return copy.deepcopy(doc)

    async def create(self, fields):
        return self.seed(**fields)

    async def list_all(self):
        docs = sorted(
            self.books.values(),
            key=lambda d: (d["created_at"], d["_id"]),
            reverse=True,
        )
        return copy.deepcopy(docs)

    async def get(self, book_id):
        return copy.deepcopy(self.books[self._parse(book_id)])

    async def replace(self, book_id, fields):
        full = {name: fields.get(name) for name in ("title", "author", "year", "summary")}
        return await self.update(book_id, full)

    async def update(self, book_id, fields):
        object_id = self._parse(book_id)
        self.books[object_id].update(fields, updated_at=self._tick())
        return copy.deepcopy(self.books[object_id])

    async def delete(self, book_id):
        del self.books[self._parse(book_id)]

    async def health_check(self):
        return {"status": "healthy", "books_count": len(self.books)}


@pytest.fixture
def book_store():
    """Empty in-memory book store."""
    return InMemoryBookStore()


@pytest.fixture
def client(book_store):
    """Test client with the in-memory store injected."""
    app.dependency_overrides[get_book_store] = lambda: book_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def failing_store():
    """Store mock whose every operation can be told to fail."""
    store = AsyncMock(spec=BookStore)
    app.dependency_overrides[get_book_store] = lambda: store
    yield store
    app.dependency_overrides.clear()


@pytest.fixture
def sample_book(book_store):
    """One stored book."""
    return book_store.seed(title="The Odyssey", author="Homer", year=-700, summary=None)
