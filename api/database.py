"""
Database service layer for the FastAPI application.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from api.models import (
    BookCreate, BookUpdate, BookResponse,
    UpdateAckResponse, DeleteAckResponse
)

logger = structlog.get_logger(__name__)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class BookDatabaseService:
    """Database service for book operations. Each method issues one datastore call."""

    def __init__(self, database: AsyncIOMotorDatabase, collection_name: str = "books"):
        self.database = database
        self.books_collection = database[collection_name]

    async def create_indexes(self) -> None:
        """Create indexes for the lookup routes."""
        try:
            await self.books_collection.create_index("genre")
            await self.books_collection.create_index("title")
            await self.books_collection.create_index("publicationYear")
            logger.info("Successfully created MongoDB indexes")
        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def create_book(self, book: BookCreate) -> BookResponse:
        """
        Insert a new book.

        Args:
            book: Validated book payload

        Returns:
            The stored book with its generated id and timestamps
        """
        try:
            book_doc = book.to_document(utcnow())
            result = await self.books_collection.insert_one(book_doc)
            book_doc["_id"] = result.inserted_id
            logger.debug("Successfully inserted book", title=book.title, book_id=str(result.inserted_id))
            return BookResponse.from_document(book_doc)
        except Exception as e:
            logger.error("Failed to insert book", title=book.title, error=str(e))
            raise

    async def list_books(self) -> List[BookResponse]:
        """Return every book in natural order."""
        return await self._find({})

    async def find_by_genre(self, genre: str) -> List[BookResponse]:
        """Return books whose genre matches exactly."""
        return await self._find({"genre": genre})

    async def find_before_year(self, year: int) -> List[BookResponse]:
        """Return books published strictly before ``year``."""
        return await self._find({"publicationYear": {"$lt": year}})

    async def find_by_title(self, title: str) -> Optional[BookResponse]:
        """
        Get the first book with an exactly matching title.

        Args:
            title: Book title

        Returns:
            BookResponse if found, None otherwise
        """
        try:
            book_doc = await self.books_collection.find_one({"title": title})
            if book_doc:
                return BookResponse.from_document(book_doc)
            return None
        except Exception as e:
            logger.error("Failed to get book by title", title=title, error=str(e))
            raise

    async def update_book(self, book_id: str, update: BookUpdate) -> UpdateAckResponse:
        """
        Apply a partial update to one book.

        Args:
            book_id: Hex ObjectId of the book; a malformed value raises
            update: Partial update payload

        Returns:
            UpdateAckResponse with matched and modified counts
        """
        try:
            set_fields = update.to_set_fields()
            set_fields["updatedAt"] = utcnow()
            result = await self.books_collection.update_one(
                {"_id": ObjectId(book_id)},
                {"$set": set_fields}
            )
            logger.debug("Updated book", book_id=book_id,
                         fields=sorted(set_fields), matched=result.matched_count)
            return UpdateAckResponse(
                acknowledged=result.acknowledged,
                matched_count=result.matched_count,
                modified_count=result.modified_count
            )
        except Exception as e:
            logger.error("Failed to update book", book_id=book_id, error=str(e))
            raise

    async def delete_book(self, book_id: str) -> DeleteAckResponse:
        """Delete one book by id. A missing id yields deleted_count 0."""
        try:
            result = await self.books_collection.delete_one({"_id": ObjectId(book_id)})
            logger.debug("Deleted book", book_id=book_id, deleted=result.deleted_count)
            return DeleteAckResponse(
                acknowledged=result.acknowledged,
                deleted_count=result.deleted_count
            )
        except Exception as e:
            logger.error("Failed to delete book", book_id=book_id, error=str(e))
            raise

    async def backfill_availability(self) -> UpdateAckResponse:
        """Set ``available`` to true on every book missing the field."""
        try:
            result = await self.books_collection.update_many(
                {"available": {"$exists": False}},
                {"$set": {"available": True, "updatedAt": utcnow()}}
            )
            logger.info("Backfilled availability",
                        matched=result.matched_count, modified=result.modified_count)
            return UpdateAckResponse(
                acknowledged=result.acknowledged,
                matched_count=result.matched_count,
                modified_count=result.modified_count
            )
        except Exception as e:
            logger.error("Failed to backfill availability", error=str(e))
            raise

    async def health_check(self) -> Dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")
            books_count = await self.books_collection.count_documents({})

            return {
                "status": "healthy",
                "books_collection": "accessible",
                "books_count": books_count
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }

    async def _find(self, filter_query: Dict) -> List[BookResponse]:
        try:
            cursor = self.books_collection.find(filter_query)
            books_docs = await cursor.to_list(length=None)
            logger.debug("Fetched books", filter=filter_query, count=len(books_docs))
            return [BookResponse.from_document(book_doc) for book_doc in books_docs]
        except Exception as e:
            logger.error("Failed to get books", filter=filter_query, error=str(e))
            raise


async def connect(mongodb_url: str, default_database: str, collection_name: str) -> tuple:
    """
    Open the motor client, verify it with a ping and build the service.

    Returns:
        (client, BookDatabaseService)
    """
    client = AsyncIOMotorClient(mongodb_url, tz_aware=True)
    try:
        database = client.get_default_database(default=default_database)
        await database.command("ping")
        logger.info("Database connection established",
                    database=database.name, collection=collection_name)

        db_service = BookDatabaseService(database, collection_name)
        await db_service.create_indexes()
        return client, db_service
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        client.close()
        raise
