"""
Database package for the Library API.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and connection handling (session.py)
- Repositories for books, users and the lending workflow

Request handlers only talk to the repositories; the repositories only raise
the errors defined in ``errors.py``.
"""

from .book_repository import BookCreateSchema, BookRepository, BookUpdateSchema
from .errors import (
    DuplicateError,
    InvalidInputError,
    LoanRejectedError,
    NotFoundError,
    RepositoryException,
)
from .loan_repository import LoanCreateSchema, LoanRepository
from .repository import BaseRepository
from .schema import Base, Book, Loan, LoanActionEnum, LoanHistory, LoanStatusEnum, User
from .session import POOL_SIZE, DatabaseManager, safe_commit, safe_query
from .user_repository import UserCreateSchema, UserRepository, UserUpdateSchema

__all__ = [
    "POOL_SIZE",
    "Base",
    "BaseRepository",
    "Book",
    "BookCreateSchema",
    "BookRepository",
    "BookUpdateSchema",
    "DatabaseManager",
    "DuplicateError",
    "InvalidInputError",
    "Loan",
    "LoanActionEnum",
    "LoanCreateSchema",
    "LoanHistory",
    "LoanRejectedError",
    "LoanRepository",
    "LoanStatusEnum",
    "NotFoundError",
    "RepositoryException",
    "User",
    "UserCreateSchema",
    "UserRepository",
    "UserUpdateSchema",
    "safe_commit",
    "safe_query",
]
