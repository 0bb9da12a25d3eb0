"""
Database service layer for the FastAPI application.
"""

from typing import Any, Dict, List, Mapping, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import ValidationError
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from api.errors import (
    BookAlreadyExistsError, BookNotFoundError, InvalidFieldsError,
    InvalidUpdateBodyError, MissingBookIdError
)
from api.models import Book, BookSummary, BookUpdate, UPDATABLE_FIELDS

logger = structlog.get_logger(__name__)

# Mongo's own key never leaves the service
DOCUMENT_PROJECTION = {"_id": False}
SUMMARY_PROJECTION = {"_id": False, "id": True, "title": True}


def summarize(docs: List[Mapping[str, Any]]) -> List[BookSummary]:
    """Reduce book documents to their ``{id, title}`` summaries."""
    return [BookSummary(id=doc["id"], title=doc.get("title")) for doc in docs]


class BookCatalogService:
    """CRUD operations over the books collection."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def ensure_indexes(self) -> None:
        """
        Create the unique index on ``id``.

        The index is what rejects duplicate creates, so it must exist
        before the API starts accepting requests.
        """
        await self.collection.create_index("id", unique=True)
        logger.info("Ensured unique index on book id", collection=self.collection.name)

    async def list_books(self, avail: Optional[str] = None) -> List[BookSummary]:
        """
        List book summaries in store order.

        Args:
            avail: ``"true"`` or ``"false"`` to filter on availability;
                any other value lists every book

        Returns:
            List of BookSummary
        """
        filter_query = {}
        if avail in ("true", "false"):
            filter_query["avail"] = avail == "true"

        cursor = self.collection.find(filter_query, SUMMARY_PROJECTION)
        docs = await cursor.to_list(length=None)
        return summarize(docs)

    async def get_book(self, book_id: str) -> Book:
        """
        Get a single book by its id.

        Raises:
            BookNotFoundError: if no document has this id
        """
        doc = await self.collection.find_one({"id": book_id}, DOCUMENT_PROJECTION)
        if doc is None:
            raise BookNotFoundError(book_id)
        return Book.model_validate(doc)

    async def create_book(
        self,
        book_id: str,
        title: Optional[str],
        author: Optional[str],
        publisher: Optional[str],
        isbn: Optional[str],
    ) -> Book:
        """
        Insert a new, available book.

        Duplicate ids are detected by the unique index rather than a
        separate lookup, so two concurrent creates cannot both succeed.

        Raises:
            MissingBookIdError: if ``book_id`` is empty
            BookAlreadyExistsError: if the id is already taken
        """
        if not book_id:
            raise MissingBookIdError()

        book = Book(
            id=book_id,
            title=title,
            author=author,
            publisher=publisher,
            isbn=isbn,
            avail=True,
            who=None,
            due=None,
        )
        try:
            # insert_one adds _id to the dict it is given
            await self.collection.insert_one(book.model_dump())
        except DuplicateKeyError:
            logger.warning("Book already exists", book_id=book_id)
            raise BookAlreadyExistsError(book_id)

        logger.info("Book created", book_id=book_id, title=title)
        return book

    async def update_book(
        self,
        book_id: str,
        query_params: Mapping[str, str],
        body: Any = None,
    ) -> Book:
        """
        Update a book from query parameters or, when there are none, a JSON body.

        Query mode sets each named field to the given string, except
        ``avail`` which becomes ``True`` only for the literal ``"true"``.
        Body mode merges the catalog fields present in ``body``. The two
        modes never mix: any query parameter means the body is ignored.

        Args:
            book_id: Book identifier
            query_params: Query string parameters of the request
            body: Decoded JSON body, or None when absent

        Returns:
            The saved Book

        Raises:
            BookNotFoundError: if no document has this id
            InvalidFieldsError: if a query key is not an updatable field
            InvalidUpdateBodyError: if the body is not a valid object
        """
        try:
            doc = await self.collection.find_one({"id": book_id}, DOCUMENT_PROJECTION)
            if doc is None:
                raise BookNotFoundError(book_id)

            if query_params:
                changes = self._changes_from_query(query_params)
            else:
                changes = self._changes_from_body(body)

            if changes:
                doc = await self.collection.find_one_and_update(
                    {"id": book_id},
                    {"$set": changes},
                    projection=DOCUMENT_PROJECTION,
                    return_document=ReturnDocument.AFTER,
                )
                # Deleted between the lookup and the update
                if doc is None:
                    raise BookNotFoundError(book_id)
                logger.info("Book updated", book_id=book_id, fields=sorted(changes))
            else:
                logger.debug("Update carried no changes", book_id=book_id)

            return Book.model_validate(doc)

        except (BookNotFoundError, InvalidFieldsError, InvalidUpdateBodyError):
            raise
        except Exception as e:
            logger.error("Failed to update book", book_id=book_id, error=str(e))
            raise

    @staticmethod
    def _changes_from_query(query_params: Mapping[str, str]) -> Dict[str, Any]:
        invalid = [key for key in query_params if key not in UPDATABLE_FIELDS]
        if invalid:
            raise InvalidFieldsError(invalid)

        changes: Dict[str, Any] = {}
        for key, value in query_params.items():
            if key == "avail":
                changes[key] = value == "true"
            else:
                changes[key] = value
        return changes

    @staticmethod
    def _changes_from_body(body: Any) -> Dict[str, Any]:
        if body is None:
            return {}
        if not isinstance(body, dict):
            raise InvalidUpdateBodyError("Request body must be a JSON object")
        try:
            update = BookUpdate.model_validate(body)
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
            raise InvalidUpdateBodyError(f"Invalid value for field(s): {', '.join(fields)}")
        return update.model_dump(exclude_unset=True)

    async def delete_book(self, book_id: str) -> bool:
        """
        Delete a book.

        Returns:
            True if a document was removed, False if none matched
        """
        result = await self.collection.delete_one({"id": book_id})
        deleted = result.deleted_count > 0
        if deleted:
            logger.info("Book deleted", book_id=book_id)
        else:
            logger.debug("Delete matched no book", book_id=book_id)
        return deleted

    async def health_check(self) -> Dict:
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
                "books_count": books_count
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
