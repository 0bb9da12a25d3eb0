"""
Pytest configuration and shared fixtures.
"""

import pytest
from unittest.mock import AsyncMock, Mock
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from api.config import APIConfig
from api.database import BookCatalogService
from api.main import create_app


class InMemoryBooksCollection:
    """
    Minimal stand-in for a motor collection holding book documents.

    Supports equality filters, inclusion projections and the unique
    ``id`` index the catalog relies on.
    """

    name = "books"

    def __init__(self):
        self.docs = []
        self.next_object_id = 1

    @staticmethod
    def _matches(doc, filter_query):
        return all(doc.get(key) == value for key, value in filter_query.items())

    @staticmethod
    def _project(doc, projection):
        included = [key for key, flag in (projection or {}).items() if flag and key != "_id"]
        if included:
            return {key: doc[key] for key in included if key in doc}
        return {key: value for key, value in doc.items() if key != "_id"}

    async def create_index(self, keys, unique=False):
        return f"{keys}_1"

    def find(self, filter_query=None, projection=None):
        matches = [
            self._project(doc, projection)
            for doc in self.docs
            if self._matches(doc, filter_query or {})
        ]
        cursor = Mock()
        cursor.to_list = AsyncMock(return_value=matches)
        return cursor

    async def find_one(self, filter_query, projection=None):
        for doc in self.docs:
            if self._matches(doc, filter_query):
                return self._project(doc, projection)
        return None

    async def insert_one(self, document):
        if any(doc["id"] == document["id"] for doc in self.docs):
            raise DuplicateKeyError(f"E11000 duplicate key error dup key: {{ id: \"{document['id']}\" }}")
        stored = dict(document, _id=self.next_object_id)
        self.next_object_id += 1
        self.docs.append(stored)
        document["_id"] = stored["_id"]
        return Mock(inserted_id=stored["_id"])

    async def find_one_and_update(self, filter_query, update, projection=None, return_document=None):
        for doc in self.docs:
            if self._matches(doc, filter_query):
                doc.update(update["$set"])
                return self._project(doc, projection)
        return None

    async def delete_one(self, filter_query):
        for index, doc in enumerate(self.docs):
            if self._matches(doc, filter_query):
                del self.docs[index]
                return Mock(deleted_count=1)
        return Mock(deleted_count=0)


@pytest.fixture
def test_settings():
    """Settings that ignore any local .env file."""
    return APIConfig(_env_file=None)


@pytest.fixture
def mock_collection():
    """Create a mock motor collection for service tests."""
    collection = AsyncMock()
    collection.name = "books"
    cursor = Mock()
    cursor.to_list = AsyncMock(return_value=[])
    collection.find = Mock(return_value=cursor)
    collection.find_one.return_value = None
    collection.delete_one.return_value = Mock(deleted_count=0)
    return collection


@pytest.fixture
def catalog(mock_collection):
    """Catalog service backed by the mock collection."""
    return BookCatalogService(mock_collection)


@pytest.fixture
def mock_catalog():
    """Mock catalog service for route tests."""
    return AsyncMock(spec=BookCatalogService)


@pytest.fixture
def client(mock_catalog, test_settings):
    """Test client serving the mocked catalog."""
    return TestClient(create_app(catalog=mock_catalog, settings=test_settings))


@pytest.fixture
def books_collection():
    """In-memory books collection."""
    return InMemoryBooksCollection()


@pytest.fixture
def live_client(books_collection, test_settings):
    """Test client serving a real catalog over the in-memory collection."""
    catalog = BookCatalogService(books_collection)
    return TestClient(create_app(catalog=catalog, settings=test_settings))


@pytest.fixture
def sample_book_doc():
    """A stored book document as the collection returns it."""
    return {
        "id": "42",
        "title": "Dune",
        "author": "Herbert",
        "publisher": "Ace",
        "isbn": "0441013597",
        "avail": True,
        "who": None,
        "due": None
    }
