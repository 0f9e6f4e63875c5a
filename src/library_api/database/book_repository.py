"""
Book repository implementation for the Library API.

This repository provides data access for the catalog:

1. **Listing and lookup** by database id
2. **Creation** with ISBN uniqueness and copy-count defaults
3. **Search** by case-insensitive substring of title or author
4. **Partial updates** that keep 0 <= available_copies <= total_copies

Copy counts are also changed by the lending workflow, which locks the book row
itself; see ``loan_repository.py``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy import func, or_, select

from ..database.schema import MAX_ID
from ..database.schema import Book as BookDB
from ..database.session import safe_commit, safe_query
from ..models.book import Book as BookModel
from .repository import BaseRepository, DuplicateError, InvalidInputError

# Fields that are NOT NULL in the books table
_REQUIRED_BOOK_FIELDS = ("title", "author", "isbn", "total_copies", "available_copies")


class BookCreateSchema(BaseModel):
    """Schema for creating a new book."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=255)
    author: str = Field(..., min_length=1, max_length=255)
    isbn: str = Field(..., min_length=1, max_length=20)
    category: str | None = Field(None, max_length=100)
    total_copies: int = Field(default=1, ge=1, le=MAX_ID)
    available_copies: int | None = Field(
        default=None,
        ge=0,
        le=MAX_ID,
        description="Defaults to total_copies when omitted",
    )
    publication_year: int | None = Field(None, ge=-9999, le=9999)


class BookUpdateSchema(BaseModel):
    """Schema for updating a book - all fields optional, only those sent are applied."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(None, min_length=1, max_length=255)
    author: str | None = Field(None, min_length=1, max_length=255)
    isbn: str | None = Field(None, min_length=1, max_length=20)
    category: str | None = Field(None, max_length=100)
    total_copies: int | None = Field(None, ge=1, le=MAX_ID)
    available_copies: int | None = Field(None, ge=0, le=MAX_ID)
    publication_year: int | None = Field(None, ge=-9999, le=9999)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "BookUpdateSchema":
        """An explicit null is only allowed for nullable columns."""
        for name in _REQUIRED_BOOK_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class BookRepository(BaseRepository[BookDB, BookCreateSchema, BookUpdateSchema, BookModel]):
    """
    Repository for book data access.

    All methods return ``Book`` pydantic models; copy counts are validated
    here so the table constraints are never the first line of defence.
    """

    entity_name = "Book"

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    def _isbn_taken(self, isbn: str, exclude_id: int | None = None) -> bool:
        query = select(func.count()).select_from(BookDB).where(BookDB.isbn == isbn)
        if exclude_id is not None:
            query = query.where(BookDB.id != exclude_id)
        count = safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to check ISBN existence"
        )
        return count > 0

    def create(self, data: BookCreateSchema) -> BookModel:
        """
        Add a book to the catalog.

        ``available_copies`` defaults to ``total_copies``.

        Raises:
            InvalidInputError: If available_copies exceeds total_copies
            DuplicateError: If the ISBN already exists
            RepositoryException: On other database errors
        """
        available = data.available_copies
        if available is None:
            available = data.total_copies
        if available > data.total_copies:
            raise InvalidInputError("Available copies cannot exceed total copies")

        if self._isbn_taken(data.isbn):
            raise DuplicateError(f"A book with ISBN {data.isbn} already exists")

        book = BookDB(
            title=data.title,
            author=data.author,
            isbn=data.isbn,
            category=data.category,
            total_copies=data.total_copies,
            available_copies=available,
            publication_year=data.publication_year,
        )
        self.session.add(book)
        try:
            safe_commit(self.session, "create book")
        except DuplicateError as e:
            # Lost a race with a concurrent insert of the same ISBN
            raise DuplicateError(f"A book with ISBN {data.isbn} already exists") from e
        self.session.refresh(book)
        return self._to_response_model(book)

    def search(self, term: str | None) -> list[BookModel]:
        """
        Find books whose title or author contains ``term``, ignoring case.

        Raises:
            InvalidInputError: If the term is missing or blank
        """
        if term is None or not term.strip():
            raise InvalidInputError("A search term is required")

        pattern = f"%{term.strip()}%"
        query = (
            select(BookDB)
            .where(or_(BookDB.title.ilike(pattern), BookDB.author.ilike(pattern)))
            .order_by(BookDB.title.asc(), BookDB.id.asc())
        )
        results = safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to search books"
        )
        return [self._to_response_model(book) for book in results]

    def _validate_patch(self, db_obj: BookDB, changes: dict[str, Any]) -> None:
        total = changes.get("total_copies", db_obj.total_copies)
        available = changes.get("available_copies", db_obj.available_copies)
        if available > total:
            raise InvalidInputError("Available copies cannot exceed total copies")

        isbn = changes.get("isbn")
        if isbn is not None and isbn != db_obj.isbn and self._isbn_taken(isbn, db_obj.id):
            raise DuplicateError(f"A book with ISBN {isbn} already exists")
