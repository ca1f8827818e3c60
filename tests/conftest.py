"""
Pytest configuration and shared fixtures.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId
from fastapi.testclient import TestClient

from api.database import BookDatabaseService
from api.main import app, get_db_service


@pytest.fixture
def sample_book_doc():
    """A book document as MongoDB returns it."""
    stamp = datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)
    return {
        "_id": ObjectId("65a4f0c2e4b0a1b2c3d4e5f6"),
        "title": "1984",
        "author": "George Orwell",
        "genre": "Fiction",
        "publicationYear": 1949,
        "available": True,
        "createdAt": stamp,
        "updatedAt": stamp,
    }


@pytest.fixture
def sample_book(sample_book_doc):
    """The sample document as an API response model."""
    from api.models import BookResponse
    return BookResponse.from_document(sample_book_doc)


@pytest.fixture
def mock_collection():
    """Create a mock motor collection with async write methods."""
    collection = MagicMock()
    collection.insert_one = AsyncMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.update_one = AsyncMock()
    collection.update_many = AsyncMock()
    collection.delete_one = AsyncMock()
    collection.create_index = AsyncMock()
    collection.count_documents = AsyncMock(return_value=0)

    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=[])
    collection.find.return_value = cursor
    return collection


@pytest.fixture
def mock_database(mock_collection):
    """Create a mock motor database that hands out the mock collection."""
    database = MagicMock()
    database.__getitem__.return_value = mock_collection
    database.command = AsyncMock(return_value={"ok": 1})
    return database


@pytest.fixture
def db_service(mock_database):
    """Book database service backed by the mock database."""
    return BookDatabaseService(mock_database)


@pytest.fixture
def mock_db_service():
    """Mock database service injected into the API routes."""
    mock = AsyncMock(spec=BookDatabaseService)
    app.dependency_overrides[get_db_service] = lambda: mock
    yield mock
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)
