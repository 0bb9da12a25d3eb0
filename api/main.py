"""
FastAPI main application for the Library Book Catalog API.
"""

import json
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from motor.motor_asyncio import AsyncIOMotorClient
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import APIConfig, config
from api.database import BookCatalogService
from api.errors import CatalogError, InvalidUpdateBodyError
from api.models import (
    Book, BookMessageResponse, BookSummary, ErrorResponse,
    HealthResponse, MessageResponse
)

# Setup logging
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings: APIConfig = app.state.settings
    logger.info("Starting Library Book Catalog API")

    # A catalog handed to create_app() is owned by the caller
    if app.state.catalog is not None:
        yield
        return

    client = AsyncIOMotorClient(
        settings.mongodb_url,
        serverSelectionTimeoutMS=settings.mongodb_timeout_ms
    )
    try:
        database = client[settings.mongodb_database]

        # Test connection
        await database.command("ping")
        logger.info("Database connection established", database=settings.mongodb_database)

        catalog = BookCatalogService(database[settings.mongodb_collection])
        await catalog.ensure_indexes()

    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        client.close()
        raise

    app.state.catalog = catalog
    yield

    # Shutdown
    logger.info("Shutting down Library Book Catalog API")
    app.state.catalog = None
    client.close()


def get_catalog(request: Request) -> BookCatalogService:
    """Dependency returning the catalog service attached to the app."""
    catalog = request.app.state.catalog
    if catalog is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database service not available"
        )
    return catalog


router = APIRouter()


# Health check endpoint
@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    settings: APIConfig = request.app.state.settings
    catalog: Optional[BookCatalogService] = request.app.state.catalog

    db_status = "unavailable"
    if catalog is not None:
        health_info = await catalog.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.utcnow(),
        version=settings.api_version,
        database_status=db_status
    )


# Books endpoints
@router.get("/books", response_model=List[BookSummary], tags=["Books"])
async def list_books(
    avail: Optional[str] = None,
    catalog: BookCatalogService = Depends(get_catalog)
):
    """
    List `{id, title}` summaries of every book.

    - **avail**: `true` or `false` to filter on availability; any other value is ignored
    """
    return await catalog.list_books(avail)


@router.get("/books/{book_id}", response_model=Book, tags=["Books"])
async def get_book(
    book_id: str,
    catalog: BookCatalogService = Depends(get_catalog)
):
    """Get a single book by ID."""
    return await catalog.get_book(book_id)


@router.post(
    "/books/{book_id}/{title}/{author}/{publisher}/{isbn}",
    response_model=BookMessageResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Books"]
)
async def create_book(
    book_id: str,
    title: str,
    author: str,
    publisher: str,
    isbn: str,
    catalog: BookCatalogService = Depends(get_catalog)
):
    """
    Create a book from path segments. New books start available.

    Fails with 403 if the id is already taken.
    """
    book = await catalog.create_book(book_id, title, author, publisher, isbn)
    return BookMessageResponse(message=f"Book {book_id} created", book=book)


@router.put("/books/{book_id}", response_model=BookMessageResponse, tags=["Books"])
async def update_book(
    book_id: str,
    request: Request,
    catalog: BookCatalogService = Depends(get_catalog)
):
    """
    Update a book.

    Fields are taken from the query string (`avail`, `title`, `author`,
    `publisher`, `isbn`, `who`, `due`). Only when the query string is empty
    is the JSON body merged onto the document instead. Bodies not sent as
    `application/json` are ignored.
    """
    query_params = request.query_params
    body = None
    content_type = request.headers.get("content-type", "")
    if not query_params and content_type.lower().startswith("application/json"):
        raw = await request.body()
        if raw.strip():
            try:
                body = json.loads(raw)
            except (ValueError, RecursionError):
                raise InvalidUpdateBodyError("Malformed JSON body")

    book = await catalog.update_book(book_id, query_params, body)
    return BookMessageResponse(message=f"Book {book.id} updated", book=book)


@router.delete(
    "/books/{book_id}",
    response_model=MessageResponse,
    responses={204: {"description": "No book with this id"}},
    tags=["Books"]
)
async def delete_book(
    book_id: str,
    catalog: BookCatalogService = Depends(get_catalog)
):
    """Delete a book. Responds 204 with no body when nothing matched."""
    deleted = await catalog.delete_book(book_id)
    if not deleted:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return MessageResponse(message=f"Book with id {book_id} deleted")


def _error_response(status_code: int, error: str, detail: Optional[str] = None, headers=None):
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(exclude_none=True),
        headers=headers
    )


def create_app(
    catalog: Optional[BookCatalogService] = None,
    settings: Optional[APIConfig] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        catalog: Catalog service to serve from. When omitted, the lifespan
            connects to MongoDB using ``settings`` and owns the client.
        settings: Configuration, defaults to the global ``config``

    Returns:
        Configured FastAPI application
    """
    settings = settings or config

    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.catalog = catalog

    cors_headers = settings.cors_headers()

    @app.middleware("http")
    async def cors_middleware(request: Request, call_next):
        """Attach CORS headers; answer any preflight before routing."""
        if request.method == "OPTIONS":
            response = Response(status_code=status.HTTP_200_OK)
        else:
            response = await call_next(request)
        response.headers.update(cors_headers)
        return response

    # Exception handlers
    @app.exception_handler(CatalogError)
    async def catalog_exception_handler(request: Request, exc: CatalogError):
        """Handle domain errors raised by the catalog."""
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        return _error_response(exc.status_code, str(exc.detail), headers=exc.headers)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path)
        # Runs outside cors_middleware, so the headers are added here
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            detail=str(exc) if settings.debug else None,
            headers=cors_headers
        )

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=True,
        log_level="info"
    )
