"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_core import PydanticCustomError

REQUIRED_FIELDS_MESSAGE = "title and author are required"
NO_VALID_FIELDS_MESSAGE = "No valid fields to update"
EMPTY_FIELDS_MESSAGE = "title and author cannot be empty"

BOOK_FIELDS = ("title", "author", "year", "summary")


def _strip(value):
    if isinstance(value, str):
        return value.strip()
    return value


class BookCreate(BaseModel):
    """
    Request body for creating a book.

    ``title`` and ``author`` are declared optional so that a missing value
    reports the same error as an empty one.
    """
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(None, description="Book title")
    author: Optional[str] = Field(None, description="Book author")
    year: Optional[int] = Field(None, description="Publication year, negative for BCE")
    summary: Optional[str] = Field(None, description="Short summary")

    @field_validator("title", "author")
    @classmethod
    def strip_names(cls, v):
        """Trim surrounding whitespace."""
        return _strip(v)

    @model_validator(mode="after")
    def require_title_and_author(self):
        """Reject missing, null or blank title/author."""
        if not self.title or not self.author:
            raise PydanticCustomError("missing_required", REQUIRED_FIELDS_MESSAGE)
        return self

    def to_document(self) -> Dict[str, Any]:
        """Every mutable field, with omitted optionals as None."""
        return {name: getattr(self, name) for name in BOOK_FIELDS}


class BookReplace(BookCreate):
    """Request body for a full replace; same rules as create."""


class BookPatch(BaseModel):
    """
    Request body for a partial update.

    Unknown keys are dropped. Only fields present in the body are applied,
    so ``{"year": null}`` clears the year while ``{}`` changes nothing.
    """
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(None, description="Book title")
    author: Optional[str] = Field(None, description="Book author")
    year: Optional[int] = Field(None, description="Publication year, negative for BCE")
    summary: Optional[str] = Field(None, description="Short summary")

    @field_validator("title", "author")
    @classmethod
    def strip_names(cls, v):
        """Trim surrounding whitespace."""
        return _strip(v)

    @model_validator(mode="after")
    def reject_blank_names(self):
        """A supplied title or author may not be blanked out."""
        for name in ("title", "author"):
            if name in self.model_fields_set and not getattr(self, name):
                raise PydanticCustomError("empty_required", EMPTY_FIELDS_MESSAGE)
        return self

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly present in the request body."""
        return self.model_dump(include=self.model_fields_set)


class BookResponse(BaseModel):
    """Book response model for API."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    year: Optional[int] = Field(None, description="Publication year")
    summary: Optional[str] = Field(None, description="Short summary")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp")
    updated_at: datetime = Field(..., alias="updatedAt", description="Last update timestamp")

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "BookResponse":
        """Build a response from a stored MongoDB document."""
        return cls(
            id=str(doc["_id"]),
            title=doc["title"],
            author=doc["author"],
            year=doc.get("year"),
            summary=doc.get("summary"),
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
