"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# Field names a PUT may target through query parameters
UPDATABLE_FIELDS = ("avail", "title", "author", "publisher", "isbn", "who", "due")


class Book(BaseModel):
    """A book document as stored in the catalog collection."""
    id: str = Field(..., description="Externally assigned book identifier")
    title: Optional[str] = Field(None, description="Book title")
    author: Optional[str] = Field(None, description="Book author")
    publisher: Optional[str] = Field(None, description="Publisher")
    isbn: Optional[str] = Field(None, description="ISBN")
    avail: Optional[bool] = Field(None, description="True unless the book is checked out")
    who: Optional[str] = Field(None, description="Borrower while checked out")
    due: Optional[str] = Field(None, description="Due date while checked out")

    model_config = ConfigDict(extra="ignore")


class BookSummary(BaseModel):
    """Reduced projection returned by the list endpoint."""
    id: str = Field(..., description="Book identifier")
    title: Optional[str] = Field(None, description="Book title")

    model_config = ConfigDict(extra="ignore")


class BookUpdate(BaseModel):
    """
    JSON body accepted by PUT when no query parameters are given.

    Only catalog fields are applied; unknown keys and ``id`` are dropped,
    and scalar values are coerced to the field types.
    """
    title: Optional[str] = None
    author: Optional[str] = None
    publisher: Optional[str] = None
    isbn: Optional[str] = None
    avail: Optional[bool] = None
    who: Optional[str] = None
    due: Optional[str] = None

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class BookMessageResponse(BaseModel):
    """Confirmation returned by create and update."""
    message: str = Field(..., description="Human-readable confirmation")
    book: Book = Field(..., description="The saved book document")


class MessageResponse(BaseModel):
    """Plain confirmation message."""
    message: str = Field(..., description="Human-readable confirmation")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
