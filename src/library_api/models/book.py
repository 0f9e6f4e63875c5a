"""
Book model for the Library API.

This is the shape a catalog entry takes in every JSON response. Rows are read
straight from the ``books`` table through ``from_attributes``.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Book(BaseModel):
    """
    Represents a book in the library catalog.

    ``available_copies`` counts the copies on the shelf; the difference to
    ``total_copies`` is the number of copies currently on loan.
    """

    id: int = Field(..., description="Database identifier of the book")

    title: str = Field(
        ...,
        description="The title of the book",
        examples=["The Great Gatsby", "Cien años de soledad"],
    )

    author: str = Field(
        ...,
        description="Author name as printed on the cover",
        examples=["F. Scott Fitzgerald", "Gabriel García Márquez"],
    )

    isbn: str = Field(
        ...,
        description="International Standard Book Number, unique across the catalog",
        examples=["9780743273565"],
    )

    category: str | None = Field(
        None,
        description="Free-form category or genre",
        examples=["Fiction", "History"],
    )

    total_copies: int = Field(..., description="Copies owned by the library", ge=1)

    available_copies: int = Field(..., description="Copies currently on the shelf", ge=0)

    publication_year: int | None = Field(None, description="Year of publication")

    @model_validator(mode="after")
    def validate_copies(self) -> "Book":
        """Ensure available copies doesn't exceed total copies."""
        if self.available_copies > self.total_copies:
            raise ValueError("Available copies cannot exceed total copies")
        return self

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "The Great Gatsby",
                "author": "F. Scott Fitzgerald",
                "isbn": "9780743273565",
                "category": "Fiction",
                "total_copies": 3,
                "available_copies": 2,
                "publication_year": 1925,
            }
        },
    )
