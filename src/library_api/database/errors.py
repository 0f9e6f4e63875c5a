"""Error taxonomy shared by the repositories and the HTTP layer."""

from typing import Any


class RepositoryException(Exception):
    """Base exception for repository operations; unexpected failures map to HTTP 500."""

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidInputError(RepositoryException):
    """Raised when request data is missing, malformed or breaks a business rule."""


class LoanRejectedError(InvalidInputError):
    """Raised when the lending workflow refuses to create or return a loan."""


class NotFoundError(RepositoryException):
    """Raised when an entity is not found."""


class DuplicateError(RepositoryException):
    """Raised when attempting to create a duplicate entity."""
