"""Book catalog endpoints: ``/api/books``."""

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database.book_repository import BookCreateSchema, BookRepository, BookUpdateSchema
from ..database.errors import NotFoundError
from . import EntityId, envelope, get_db_session

router = APIRouter(prefix="/books", tags=["books"])


class BookSearchRequest(BaseModel):
    """Body of ``POST /api/books/search``."""

    search: str | None = None


@router.get("")
def list_books(session: Session = Depends(get_db_session)):
    books = BookRepository(session).get_all(order_by="id")
    return envelope(data=books, count=len(books))


@router.get("/{book_id}")
def get_book(book_id: EntityId, session: Session = Depends(get_db_session)):
    book = BookRepository(session).get_by_id(book_id)
    if book is None:
        raise NotFoundError(f"Book with ID {book_id} not found")
    return envelope(data=book)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_book(payload: BookCreateSchema, session: Session = Depends(get_db_session)):
    book = BookRepository(session).create(payload)
    return envelope(data=book, message="Book created successfully")


@router.post("/search")
def search_books(payload: BookSearchRequest, session: Session = Depends(get_db_session)):
    """Case-insensitive substring search over title and author."""
    books = BookRepository(session).search(payload.search)
    return envelope(data=books, count=len(books), search=payload.search.strip())


@router.put("/{book_id}")
def update_book(
    book_id: EntityId, payload: BookUpdateSchema, session: Session = Depends(get_db_session)
):
    book = BookRepository(session).update(book_id, payload)
    return envelope(data=book, message="Book updated successfully")
