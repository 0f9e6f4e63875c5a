"""
SQLAlchemy database schema for the Library API.

Four tables back the service:

1. ``books`` - the catalog, with copy counts maintained by the lending workflow
2. ``users`` - library members, soft-deleted through ``is_active``
3. ``loans`` - one row per lending of one book to one user
4. ``loan_history`` - append-only lifecycle log for loans
"""

import enum
from datetime import date

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

# Largest value a 32-bit INTEGER column can hold
MAX_ID = 2**31 - 1


class LoanStatusEnum(str, enum.Enum):
    """Database enum for loan status."""

    ACTIVE = "active"
    RETURNED = "returned"


class LoanActionEnum(str, enum.Enum):
    """Lifecycle events recorded in the loan history."""

    CREATED = "created"
    RETURNED = "returned"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    # Store the lowercase values rather than the member names
    return [member.value for member in enum_cls]


class Book(Base):
    """
    Books table - the library catalog.

    ``available_copies`` is decremented when a loan is created and incremented
    when it is returned; it can never leave the range [0, total_copies].
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    isbn = Column(String(20), nullable=False, unique=True)
    category = Column(String(100), nullable=True)
    total_copies = Column(Integer, nullable=False, default=1)
    available_copies = Column(Integer, nullable=False, default=1)
    publication_year = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=True, default=func.now(), onupdate=func.now())

    loans = relationship("Loan", back_populates="book")

    __table_args__ = (
        Index("idx_book_title", "title"),
        Index("idx_book_author", "author"),
        CheckConstraint("available_copies >= 0", name="check_available_copies_non_negative"),
        CheckConstraint(
            "available_copies <= total_copies", name="check_available_not_exceed_total"
        ),
        CheckConstraint("total_copies > 0", name="check_total_copies_positive"),
    )


class User(Base):
    """
    Users table - library members.

    Users are never deleted; deactivation flips ``is_active`` to false.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(30), nullable=False)
    address = Column(String(500), nullable=True)
    registration_date = Column(Date, nullable=False, default=date.today)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=True, default=func.now(), onupdate=func.now())

    loans = relationship("Loan", back_populates="user")

    __table_args__ = (Index("idx_user_active", "is_active"),)


class Loan(Base):
    """
    Loans table - created only by the lending workflow.

    Status moves from ``active`` to ``returned`` exactly once.
    """

    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False)
    loan_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=True)
    status = Column(
        Enum(LoanStatusEnum, name="loan_status", values_callable=_enum_values),
        nullable=False,
        default=LoanStatusEnum.ACTIVE,
    )
    fine_amount = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=True, default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="loans")
    book = relationship("Book", back_populates="loans")
    history = relationship("LoanHistory", back_populates="loan")

    __table_args__ = (
        Index("idx_loan_user", "user_id"),
        Index("idx_loan_book", "book_id"),
        Index("idx_loan_status", "status"),
        CheckConstraint("due_date >= loan_date", name="check_due_after_loan"),
        CheckConstraint("fine_amount >= 0", name="check_fine_non_negative"),
    )


class LoanHistory(Base):
    """
    Loan history table - immutable audit trail of loan lifecycle events.
    """

    __tablename__ = "loan_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=False)
    action = Column(
        Enum(LoanActionEnum, name="loan_action", values_callable=_enum_values),
        nullable=False,
    )
    action_date = Column(DateTime, nullable=False, default=func.now())
    details = Column(Text, nullable=True)

    loan = relationship("Loan", back_populates="history")

    __table_args__ = (Index("idx_history_loan", "loan_id", "action_date"),)
