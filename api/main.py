"""
FastAPI main application for the Library Book Tracker API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List

import structlog
from fastapi import FastAPI, HTTPException, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from api.config import config
from api.database import BookDatabaseService, connect
from api.models import (
    BookCreate, BookUpdate, BookCreatedResponse, BookResponse,
    UpdateAckResponse, DeleteAckResponse, MessageResponse,
    ErrorResponse, HealthResponse
)
from utilities.logger import setup_logging

# Setup logging
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger.info("Starting Library Book Tracker API", port=config.port)

    client, app.state.db_service = await connect(
        config.mongodb_url,
        config.mongodb_database,
        config.mongodb_collection
    )

    yield

    logger.info("Shutting down Library Book Tracker API")
    client.close()


# Create FastAPI application
app = FastAPI(
    title=config.api_title,
    description="""
    A small REST API for tracking a library's books.

    ## Features

    * **Books**: Add, list, update and delete books
    * **Lookups**: Find books by genre, by exact title, or published before a year
    * **Maintenance**: Backfill the availability flag on legacy records
    """,
    version=config.api_version,
    lifespan=lifespan
)


def get_db_service(request: Request) -> BookDatabaseService:
    """Resolve the database service created during startup."""
    db_service = getattr(request.app.state, "db_service", None)
    if db_service is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database service not available"
        )
    return db_service


# Exception handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.detail,
            status_code=exc.status_code
        ).dict(),
        headers=exc.headers
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    """Reject malformed requests with 400 before touching the database."""
    errors = [
        {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]
    logger.warning("Request validation failed", path=request.url.path, errors=errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error="Invalid request",
            detail=errors,
            status_code=status.HTTP_400_BAD_REQUEST
        ).dict()
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc) if config.debug else None,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        ).dict()
    )


def server_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=message
    )


@app.get("/", response_class=PlainTextResponse, tags=["Health"])
async def root():
    """Service status string."""
    return "Library Book Tracker API is running"


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    db_service = getattr(request.app.state, "db_service", None)
    db_status = "unavailable"
    if db_service:
        health_info = await db_service.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=config.api_version,
        database_status=db_status
    )


# Books endpoints
@app.post(
    "/books",
    response_model=BookCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Books"]
)
async def create_book(
    book: BookCreate,
    db_service: BookDatabaseService = Depends(get_db_service)
):
    """
    Add a new book.

    - **title**, **author**, **genre**: required, trimmed
    - **publicationYear**: required integer
    - **available**: optional, defaults to true
    """
    try:
        new_book = await db_service.create_book(book)
    except Exception as e:
        logger.error("Error adding book", error=str(e))
        raise server_error("Error adding book")

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=BookCreatedResponse(message="New book added", book=new_book).dict(by_alias=True)
    )


@app.get("/books", response_model=List[BookResponse], tags=["Books"])
async def list_books(db_service: BookDatabaseService = Depends(get_db_service)):
    """Get every book."""
    try:
        books = await db_service.list_books()
    except Exception as e:
        logger.error("Error fetching books", error=str(e))
        raise server_error("Error fetching books")

    return JSONResponse(content=[book.dict(by_alias=True) for book in books])


@app.post("/books/fix-availability", response_model=UpdateAckResponse, tags=["Maintenance"])
async def fix_availability(db_service: BookDatabaseService = Depends(get_db_service)):
    """Set ``available`` to true on every book that lacks it. Safe to repeat."""
    try:
        result = await db_service.backfill_availability()
    except Exception as e:
        logger.error("Error adding availability", error=str(e))
        raise server_error("Error adding availability")

    return JSONResponse(content=result.dict(by_alias=True))


@app.get("/books/genre/{genre}", response_model=List[BookResponse], tags=["Books"])
async def get_books_by_genre(
    genre: str,
    db_service: BookDatabaseService = Depends(get_db_service)
):
    """Get books in a genre (exact, case-sensitive match after trimming)."""
    try:
        books = await db_service.find_by_genre(genre.strip())
    except Exception as e:
        logger.error("Error fetching by genre", genre=genre, error=str(e))
        raise server_error("Error fetching by genre")

    return JSONResponse(content=[book.dict(by_alias=True) for book in books])


@app.get(
    "/books/title/{title}",
    response_model=BookResponse,
    responses={404: {"model": MessageResponse}},
    tags=["Books"]
)
async def get_book_by_title(
    title: str,
    db_service: BookDatabaseService = Depends(get_db_service)
):
    """Get the first book with exactly this title, ignoring surrounding whitespace."""
    try:
        book = await db_service.find_by_title(title.strip())
    except Exception as e:
        logger.error("Error searching by title", title=title, error=str(e))
        raise server_error("Error searching by title")

    if not book:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=MessageResponse(message="Book not found").dict()
        )

    return JSONResponse(content=book.dict(by_alias=True))


@app.get("/books/before/{year}", response_model=List[BookResponse], tags=["Books"])
async def get_books_before_year(
    year: int,
    db_service: BookDatabaseService = Depends(get_db_service)
):
    """Get books published strictly before ``year``."""
    try:
        books = await db_service.find_before_year(year)
    except Exception as e:
        logger.error("Error fetching books before year", year=year, error=str(e))
        raise server_error("Error fetching books")

    return JSONResponse(content=[book.dict(by_alias=True) for book in books])


@app.put("/books/{book_id}", response_model=UpdateAckResponse, tags=["Books"])
async def update_book(
    book_id: str,
    update: BookUpdate,
    db_service: BookDatabaseService = Depends(get_db_service)
):
    """
    Partially update a book.

    Only fields that are present and truthy are written; ``available`` is
    written whenever it is a boolean. Returns the write acknowledgment.
    """
    try:
        result = await db_service.update_book(book_id, update)
    except Exception as e:
        logger.error("Error updating book", book_id=book_id, error=str(e))
        raise server_error("Error updating book")

    return JSONResponse(content=result.dict(by_alias=True))


@app.delete("/books/{book_id}", response_model=DeleteAckResponse, tags=["Books"])
async def delete_book(
    book_id: str,
    db_service: BookDatabaseService = Depends(get_db_service)
):
    """Delete a book. Deleting a missing id reports ``deletedCount`` 0."""
    try:
        result = await db_service.delete_book(book_id)
    except Exception as e:
        logger.error("Error deleting book", book_id=book_id, error=str(e))
        raise server_error("Error deleting book")

    return JSONResponse(content=result.dict(by_alias=True))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="info"
    )
