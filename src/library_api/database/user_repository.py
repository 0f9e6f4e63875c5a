"""
User repository implementation for the Library API.

This repository manages library members:

1. **Registration** with email format and uniqueness checks
2. **Listing** with an optional active/inactive filter
3. **Partial updates** of contact details
4. **Deactivation** (soft delete), only allowed without active loans
"""

import logging
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy import func, select

from ..database.schema import Book as BookDB
from ..database.schema import Loan as LoanDB
from ..database.schema import LoanStatusEnum
from ..database.schema import User as UserDB
from ..database.session import safe_commit, safe_query
from ..models.loan import LoanDetail
from ..models.user import User as UserModel
from ..models.user import validate_email_shape
from .loan_repository import LoanRepository, loan_to_detail
from .repository import (
    BaseRepository,
    DuplicateError,
    InvalidInputError,
    NotFoundError,
    RepositoryException,
)

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "Email is already registered to another user"


class UserCreateSchema(BaseModel):
    """Schema for registering a new user."""

    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=30)
    address: str | None = Field(None, max_length=500)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return validate_email_shape(v)


class UserUpdateSchema(BaseModel):
    """Schema for updating a user - all fields optional."""

    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: str | None = Field(None, min_length=1, max_length=200)
    email: str | None = Field(None, min_length=1, max_length=255)
    phone: str | None = Field(None, min_length=1, max_length=30)
    address: str | None = Field(None, max_length=500)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_email_shape(v)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "UserUpdateSchema":
        for name in ("full_name", "email", "phone"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class UserRepository(BaseRepository[UserDB, UserCreateSchema, UserUpdateSchema, UserModel]):
    """
    Repository for user data access.

    Users are never deleted; ``deactivate`` is the only way to retire one.
    """

    entity_name = "User"

    @property
    def model_class(self):
        return UserDB

    @property
    def response_schema(self):
        return UserModel

    def _email_taken(self, email: str, exclude_id: int | None = None) -> bool:
        query = select(func.count()).select_from(UserDB).where(UserDB.email == email)
        if exclude_id is not None:
            query = query.where(UserDB.id != exclude_id)
        count = safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to check email existence"
        )
        return count > 0

    def list_users(self, is_active: bool | None = None) -> list[UserModel]:
        """List users by id, optionally only active or only inactive ones."""
        query = select(UserDB)
        if is_active is not None:
            query = query.where(UserDB.is_active == is_active)
        query = query.order_by(UserDB.id)

        results = safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to list users"
        )
        return [self._to_response_model(user) for user in results]

    def create(self, data: UserCreateSchema) -> UserModel:
        """
        Register a new user, active as of today.

        Raises:
            DuplicateError: If the email is already registered
            RepositoryException: On other database errors
        """
        if self._email_taken(data.email):
            raise DuplicateError(DUPLICATE_EMAIL_MESSAGE)

        user = UserDB(
            full_name=data.full_name,
            email=data.email,
            phone=data.phone,
            address=data.address,
            registration_date=date.today(),
            is_active=True,
        )
        self.session.add(user)
        try:
            safe_commit(self.session, "create user")
        except DuplicateError as e:
            raise DuplicateError(DUPLICATE_EMAIL_MESSAGE) from e
        self.session.refresh(user)
        logger.info("User %s registered", user.id)
        return self._to_response_model(user)

    def _validate_patch(self, db_obj: UserDB, changes: dict[str, Any]) -> None:
        email = changes.get("email")
        if email is not None and email != db_obj.email and self._email_taken(email, db_obj.id):
            raise DuplicateError(DUPLICATE_EMAIL_MESSAGE)

    def get_active_loans(self, user_id: int) -> list[LoanDetail]:
        """The user's active loans, soonest due first, each with its book title."""
        query = (
            select(LoanDB, BookDB.title)
            .join(BookDB, LoanDB.book_id == BookDB.id)
            .where(LoanDB.user_id == user_id, LoanDB.status == LoanStatusEnum.ACTIVE)
            .order_by(LoanDB.due_date, LoanDB.id)
        )
        rows = safe_query(
            self.session, lambda s: s.execute(query).all(), "Failed to get active loans"
        )
        return [loan_to_detail(loan, book_title=title) for loan, title in rows]

    def deactivate(self, user_id: int) -> UserModel:
        """
        Deactivate (soft delete) a user.

        Deactivating an already inactive user without loans succeeds again.

        Raises:
            NotFoundError: If the user does not exist
            InvalidInputError: If the user still holds active loans; the
                error's ``details`` carry the ``active_loans`` count
        """
        user = self._get_db_obj(user_id, for_update=True)
        try:
            if user is None:
                raise NotFoundError(f"User with ID {user_id} not found")

            active_loans = LoanRepository(self.session).count_active_loans(user_id)
            if active_loans > 0:
                raise InvalidInputError(
                    "Cannot deactivate a user with active loans", active_loans=active_loans
                )
        except RepositoryException:
            self.session.rollback()
            raise

        user.is_active = False
        safe_commit(self.session, "deactivate user")
        self.session.refresh(user)
        logger.info("User %s deactivated", user_id)
        return self._to_response_model(user)
