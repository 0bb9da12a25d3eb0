"""
Domain errors raised by the catalog service.

Each error carries the HTTP status it is reported with; the application's
exception handler renders them as ``{"error": message}``.
"""

from typing import List


class CatalogError(Exception):
    """Base class for catalog errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BookNotFoundError(CatalogError):
    status_code = 404

    def __init__(self, book_id: str):
        super().__init__("Book not found")
        self.book_id = book_id


class BookAlreadyExistsError(CatalogError):
    status_code = 403

    def __init__(self, book_id: str):
        super().__init__(f"Book with id {book_id} already exists")
        self.book_id = book_id


class MissingBookIdError(CatalogError):
    status_code = 400

    def __init__(self):
        super().__init__("Missing id in URL")


class InvalidFieldsError(CatalogError):
    """Raised when an update names fields outside the allow-set."""

    status_code = 400

    def __init__(self, fields: List[str]):
        super().__init__(f"Invalid field(s): {', '.join(fields)}")
        self.fields = fields


class InvalidUpdateBodyError(CatalogError):
    status_code = 400
