"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, validator


TEXT_FIELDS = ("title", "author", "genre")


class BookCreate(BaseModel):
    """Request body for creating a book."""
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    genre: str = Field(..., description="Book genre")
    publication_year: int = Field(..., alias="publicationYear", description="Year of publication")
    available: bool = Field(True, description="Whether the book can be borrowed")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "title": "1984",
                "author": "George Orwell",
                "genre": "Fiction",
                "publicationYear": 1949,
                "available": True
            }
        }
    }

    @validator(*TEXT_FIELDS)
    def validate_text(cls, v):
        """Trim surrounding whitespace and reject blank values."""
        v = v.strip()
        if not v:
            raise ValueError('must not be empty')
        return v

    def to_document(self, now: datetime) -> Dict[str, Any]:
        """Build the MongoDB document for insertion."""
        document = self.dict(by_alias=True)
        document["createdAt"] = now
        document["updatedAt"] = now
        return document


class BookUpdate(BaseModel):
    """
    Request body for a partial update.

    Every field is optional. Only values that are present and truthy are
    written, except ``available`` which is written whenever it is a bool.
    """
    genre: Optional[str] = None
    available: Optional[bool] = None
    publication_year: Optional[int] = Field(None, alias="publicationYear")
    title: Optional[str] = None
    author: Optional[str] = None

    model_config = {"populate_by_name": True}

    @validator(*TEXT_FIELDS)
    def strip_text(cls, v):
        """Trim surrounding whitespace."""
        if v is None:
            return v
        return v.strip()

    @validator("available", pre=True)
    def drop_non_bool(cls, v):
        """Ignore availability values that are not JSON booleans."""
        if isinstance(v, bool):
            return v
        return None

    def to_set_fields(self) -> Dict[str, Any]:
        """Return the document fields this update overwrites."""
        fields = {}
        if self.genre:
            fields["genre"] = self.genre
        if isinstance(self.available, bool):
            fields["available"] = self.available
        if self.publication_year:
            fields["publicationYear"] = self.publication_year
        if self.title:
            fields["title"] = self.title
        if self.author:
            fields["author"] = self.author
        return fields


class BookResponse(BaseModel):
    """Book response model for API."""
    id: str = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    genre: str = Field(..., description="Book genre")
    publication_year: Optional[int] = Field(None, alias="publicationYear", description="Year of publication")
    available: Optional[bool] = Field(None, description="Availability flag, missing on legacy records")
    created_at: Optional[str] = Field(None, alias="createdAt", description="Creation timestamp")
    updated_at: Optional[str] = Field(None, alias="updatedAt", description="Last update timestamp")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_document(cls, book_doc: Dict[str, Any]) -> "BookResponse":
        """Convert a raw MongoDB document into a response model."""
        book_doc = dict(book_doc)
        book_doc["id"] = str(book_doc.pop("_id"))

        # Convert datetime fields to ISO format strings for JSON serialization
        for key in ("createdAt", "updatedAt"):
            if isinstance(book_doc.get(key), datetime):
                book_doc[key] = book_doc[key].isoformat()

        return cls(**book_doc)


class BookCreatedResponse(BaseModel):
    """Response model for a newly created book."""
    message: str = Field(..., description="Confirmation message")
    book: BookResponse = Field(..., description="The stored book")


class UpdateAckResponse(BaseModel):
    """Acknowledgment of an update_one/update_many call."""
    acknowledged: bool = Field(..., description="Whether the write was acknowledged")
    matched_count: int = Field(..., alias="matchedCount", description="Documents matched by the filter")
    modified_count: int = Field(..., alias="modifiedCount", description="Documents actually modified")

    model_config = {"populate_by_name": True}


class DeleteAckResponse(BaseModel):
    """Acknowledgment of a delete_one call."""
    acknowledged: bool = Field(..., description="Whether the write was acknowledged")
    deleted_count: int = Field(..., alias="deletedCount", description="Documents deleted")

    model_config = {"populate_by_name": True}


class MessageResponse(BaseModel):
    """Plain message response model."""
    message: str = Field(..., description="Human-readable message")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[Any] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
