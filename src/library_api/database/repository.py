"""
Repository pattern implementation for the Library API.

Repositories keep SQL out of the request handlers:

1. **Separation**: handlers validate shape and format responses; repositories
   own query shape, filters, joins and partial updates
2. **Testability**: a repository only needs a ``Session``, so tests run it
   against an in-memory SQLite database
3. **Consistency**: every method returns pydantic models and raises only the
   errors defined in ``errors.py``

Every statement goes through SQLAlchemy, so values are always bound as
parameters and never spliced into SQL text.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import asc, desc, select
from sqlalchemy.orm import Session

from .errors import (
    DuplicateError,
    InvalidInputError,
    LoanRejectedError,
    NotFoundError,
    RepositoryException,
)
from .schema import Base
from .session import safe_commit, safe_query

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)

__all__ = [
    "BaseRepository",
    "DuplicateError",
    "InvalidInputError",
    "LoanRejectedError",
    "NotFoundError",
    "RepositoryException",
]


class BaseRepository(
    ABC, Generic[ModelType, CreateSchemaType, UpdateSchemaType, ResponseSchemaType]
):
    """
    Abstract base repository providing common read and patch operations.

    Subclasses declare their table and response model and add the
    entity-specific queries.
    """

    #: Human-readable entity name used in error messages
    entity_name = "Entity"

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database model to Pydantic response model."""
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _get_db_obj(self, id: int, for_update: bool = False) -> ModelType | None:
        query = select(self.model_class).where(self.model_class.id == id)
        if for_update:
            query = query.with_for_update()
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.entity_name.lower()}",
        )

    def get_by_id(self, id: int) -> ResponseSchemaType | None:
        """
        Get entity by ID.

        Args:
            id: Entity ID

        Returns:
            Pydantic model or None if not found

        Raises:
            RepositoryException: On database errors
        """
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def get_all(
        self,
        order_by: str | None = "id",
        order_desc: bool = False,
    ) -> list[ResponseSchemaType]:
        """
        Get all entities with optional sorting.

        Args:
            order_by: Field name to order by
            order_desc: Whether to order descending

        Raises:
            RepositoryException: On database errors
        """
        query = select(self.model_class)

        if order_by and hasattr(self.model_class, order_by):
            order_field = getattr(self.model_class, order_by)
            query = query.order_by(desc(order_field) if order_desc else asc(order_field))

        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            f"Failed to list {self.entity_name.lower()}s",
        )
        return [self._to_response_model(item) for item in results]

    def _validate_patch(self, db_obj: ModelType, changes: dict[str, Any]) -> None:
        """Hook for entity-specific checks on a patch; raise to reject it."""

    def update(self, id: int, data: UpdateSchemaType) -> ResponseSchemaType:
        """
        Load-then-patch: apply only the fields present in ``data``.

        The row is locked for the duration of the transaction. A rejected patch
        rolls back without touching the row.

        Args:
            id: Entity ID
            data: Update schema; unset fields are left alone

        Returns:
            The entity as re-read after the update

        Raises:
            NotFoundError: If the entity does not exist
            InvalidInputError: If ``data`` carries no field or fails validation
            DuplicateError: If the change violates a unique constraint
            RepositoryException: On other database errors
        """
        db_obj = self._get_db_obj(id, for_update=True)
        if db_obj is None:
            raise NotFoundError(f"{self.entity_name} with ID {id} not found")

        changes = data.model_dump(exclude_unset=True)
        try:
            if not changes:
                raise InvalidInputError("No fields provided to update")
            self._validate_patch(db_obj, changes)
        except RepositoryException:
            self.session.rollback()
            raise

        for field, value in changes.items():
            setattr(db_obj, field, value)

        safe_commit(self.session, f"update {self.entity_name.lower()}")
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)
