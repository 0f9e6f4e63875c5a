"""
Loan models for the Library API.

- Loan: a single lending of one book to one user
- LoanDetail: a loan joined with the display fields of its user and book
- LoanHistoryEntry: one lifecycle event of a loan
- ReturnInfo: the outcome of processing a return (lateness and fine)
"""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LoanStatus(str, Enum):
    """Status of a loan."""

    ACTIVE = "active"
    RETURNED = "returned"


class LoanAction(str, Enum):
    """Lifecycle event recorded in a loan's history."""

    CREATED = "created"
    RETURNED = "returned"


class Loan(BaseModel):
    """
    Represents a loan record.

    A loan starts ``active`` and becomes ``returned`` exactly once; the fine is
    zero until the return is processed.
    """

    id: int
    user_id: int
    book_id: int
    loan_date: date = Field(..., description="Date the book was handed out")
    due_date: date = Field(..., description="Date the book must be back")
    return_date: date | None = Field(None, description="Date the book came back")
    status: LoanStatus = Field(default=LoanStatus.ACTIVE)
    fine_amount: float = Field(default=0.0, ge=0.0, description="Fine charged on return")

    model_config = ConfigDict(from_attributes=True)


class LoanDetail(Loan):
    """Loan joined with user and book fields for display.

    Which extra fields are filled depends on the query that produced it.
    """

    user_name: str | None = None
    user_email: str | None = None
    user_phone: str | None = None
    book_title: str | None = None
    book_author: str | None = None
    book_isbn: str | None = None


class LoanHistoryEntry(BaseModel):
    """A single event in a loan's lifecycle."""

    id: int
    loan_id: int
    action: LoanAction
    action_date: datetime
    details: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ReturnInfo(BaseModel):
    """Result of processing a return."""

    loan_id: int
    return_date: date
    days_late: int = Field(default=0, ge=0)
    fine_amount: float = Field(default=0.0, ge=0.0)
