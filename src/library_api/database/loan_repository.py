"""
Loan repository implementation for the Library API.

This repository owns the lending workflow:

1. **Loans**: listing with filters and lookup with the loan's history
2. **Checkout**: creating a loan and taking one copy off the shelf
3. **Returns**: closing a loan, charging a late fine and restocking the copy

Checkout and return each run as a single transaction. Checkout locks the user
row and then the book row; return locks the loan row and then the book row.
The user lock serializes checkouts against deactivation and the loan limit;
the book lock keeps two requests from taking the last copy.
A broken lending rule rolls the transaction back and raises
``LoanRejectedError`` with the rule's message.
"""

import logging
from datetime import date, timedelta

from pydantic import BaseModel, Field
from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..database.schema import Book as BookDB
from ..database.schema import Loan as LoanDB
from ..database.schema import MAX_ID, LoanActionEnum, LoanStatusEnum
from ..database.schema import LoanHistory as LoanHistoryDB
from ..database.schema import User as UserDB
from ..database.session import safe_commit, safe_query
from ..models.loan import LoanAction, LoanDetail, LoanHistoryEntry, LoanStatus, ReturnInfo
from .repository import InvalidInputError, LoanRejectedError, RepositoryException

logger = logging.getLogger(__name__)

DEFAULT_LOAN_DAYS = 14
MAX_LOAN_DAYS = 30
DEFAULT_FINE_PER_DAY = 1.0
DEFAULT_MAX_ACTIVE_LOANS = 5


class LoanCreateSchema(BaseModel):
    """Schema for creating a loan."""

    user_id: int = Field(..., ge=1, le=MAX_ID)
    book_id: int = Field(..., ge=1, le=MAX_ID)
    loan_days: int | None = None  # If not provided, use DEFAULT_LOAN_DAYS


def loan_to_detail(loan: LoanDB, **display: str | None) -> LoanDetail:
    """Convert a loan DB object plus joined display fields to a LoanDetail."""
    return LoanDetail(
        id=loan.id,
        user_id=loan.user_id,
        book_id=loan.book_id,
        loan_date=loan.loan_date,
        due_date=loan.due_date,
        return_date=loan.return_date,
        status=LoanStatus(loan.status.value),
        fine_amount=loan.fine_amount,
        **display,
    )


class LoanRepository:
    """
    Repository for loans and the lending workflow.

    The lending limits are passed in rather than read from the configuration
    so tests can exercise them directly.
    """

    def __init__(
        self,
        session: Session,
        fine_per_day: float = DEFAULT_FINE_PER_DAY,
        max_active_loans: int = DEFAULT_MAX_ACTIVE_LOANS,
    ):
        self.session = session
        self.fine_per_day = fine_per_day
        self.max_active_loans = max_active_loans

    def list_loans(
        self,
        status: str | LoanStatus | None = None,
        user_id: int | None = None,
    ) -> list[LoanDetail]:
        """
        List loans, newest first.

        Both filters are optional and combine with AND.

        Raises:
            InvalidInputError: If ``status`` is not a known loan status
        """
        query = (
            select(LoanDB, UserDB.full_name, UserDB.email, BookDB.title, BookDB.author)
            .join(UserDB, LoanDB.user_id == UserDB.id)
            .join(BookDB, LoanDB.book_id == BookDB.id)
        )

        if status is not None:
            try:
                status_enum = LoanStatusEnum(status)
            except ValueError:
                valid = ", ".join(member.value for member in LoanStatusEnum)
                raise InvalidInputError(
                    f"Invalid status '{status}'. Expected one of: {valid}"
                ) from None
            query = query.where(LoanDB.status == status_enum)

        if user_id is not None:
            query = query.where(LoanDB.user_id == user_id)

        query = query.order_by(desc(LoanDB.loan_date), desc(LoanDB.id))

        rows = safe_query(self.session, lambda s: s.execute(query).all(), "Failed to list loans")
        return [
            loan_to_detail(
                loan,
                user_name=user_name,
                user_email=user_email,
                book_title=book_title,
                book_author=book_author,
            )
            for loan, user_name, user_email, book_title, book_author in rows
        ]

    def get_detail(self, loan_id: int) -> LoanDetail | None:
        """Get a loan joined with its user's and book's display fields."""
        query = (
            select(
                LoanDB,
                UserDB.full_name,
                UserDB.email,
                UserDB.phone,
                BookDB.title,
                BookDB.author,
                BookDB.isbn,
            )
            .join(UserDB, LoanDB.user_id == UserDB.id)
            .join(BookDB, LoanDB.book_id == BookDB.id)
            .where(LoanDB.id == loan_id)
        )
        row = safe_query(self.session, lambda s: s.execute(query).first(), "Failed to get loan")
        if row is None:
            return None

        loan, user_name, user_email, user_phone, book_title, book_author, book_isbn = row
        return loan_to_detail(
            loan,
            user_name=user_name,
            user_email=user_email,
            user_phone=user_phone,
            book_title=book_title,
            book_author=book_author,
            book_isbn=book_isbn,
        )

    def get_history(self, loan_id: int) -> list[LoanHistoryEntry]:
        """Get a loan's history, most recent event first."""
        query = (
            select(LoanHistoryDB)
            .where(LoanHistoryDB.loan_id == loan_id)
            .order_by(desc(LoanHistoryDB.action_date), desc(LoanHistoryDB.id))
        )
        entries = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to get loan history",
        )
        return [
            LoanHistoryEntry(
                id=entry.id,
                loan_id=entry.loan_id,
                action=LoanAction(entry.action.value),
                action_date=entry.action_date,
                details=entry.details,
            )
            for entry in entries
        ]

    def get_with_history(
        self, loan_id: int
    ) -> tuple[LoanDetail, list[LoanHistoryEntry]] | None:
        """
        Get a loan together with its history.

        Returns:
            Tuple of (loan, history) or None if the loan does not exist
        """
        loan = self.get_detail(loan_id)
        if loan is None:
            return None
        return loan, self.get_history(loan_id)

    def count_active_loans(self, user_id: int) -> int:
        """Number of loans the user has not returned yet."""
        query = (
            select(func.count())
            .select_from(LoanDB)
            .where(LoanDB.user_id == user_id, LoanDB.status == LoanStatusEnum.ACTIVE)
        )
        return safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to count active loans"
        )

    def create_loan(self, data: LoanCreateSchema) -> LoanDetail:
        """
        Lend a book to a user.

        This method runs the checkout transaction:
        1. Locks the user row and validates it exists and is active
        2. Locks the book row and validates a copy is available
        3. Validates the user is below the active loan limit
        4. Creates the loan (due ``loan_days`` from today)
        5. Takes one copy off the book's availability
        6. Records a ``created`` history entry

        Args:
            data: Loan creation data

        Returns:
            The created loan, re-read with user and book display fields

        Raises:
            InvalidInputError: If loan_days is outside 1..MAX_LOAN_DAYS
            LoanRejectedError: If any lending rule fails
            RepositoryException: On database errors
        """
        loan_days = DEFAULT_LOAN_DAYS if data.loan_days is None else data.loan_days
        if not 1 <= loan_days <= MAX_LOAN_DAYS:
            raise InvalidInputError(f"Loan period must be between 1 and {MAX_LOAN_DAYS} days")

        try:
            user = safe_query(
                self.session,
                lambda s: s.execute(
                    select(UserDB).where(UserDB.id == data.user_id).with_for_update()
                ).scalar_one_or_none(),
                "Failed to get user for loan",
            )
            if user is None:
                raise LoanRejectedError(f"User {data.user_id} not found")
            if not user.is_active:
                raise LoanRejectedError("User is not active")

            book = safe_query(
                self.session,
                lambda s: s.execute(
                    select(BookDB).where(BookDB.id == data.book_id).with_for_update()
                ).scalar_one_or_none(),
                "Failed to get book for loan",
            )
            if book is None:
                raise LoanRejectedError(f"Book {data.book_id} not found")
            if book.available_copies <= 0:
                raise LoanRejectedError("No copies of this book are available")

            if self.count_active_loans(user.id) >= self.max_active_loans:
                raise LoanRejectedError(
                    f"User has reached the limit of {self.max_active_loans} active loans"
                )
        except RepositoryException as e:
            self.session.rollback()
            if isinstance(e, LoanRejectedError):
                logger.info("Loan rejected: %s", e.message)
            raise

        today = date.today()
        loan = LoanDB(
            user_id=user.id,
            book_id=book.id,
            loan_date=today,
            due_date=today + timedelta(days=loan_days),
            status=LoanStatusEnum.ACTIVE,
            fine_amount=0.0,
        )
        self.session.add(loan)
        book.available_copies -= 1
        # Assigns loan.id so the history row can reference it
        self.session.flush()

        self.session.add(
            LoanHistoryDB(
                loan_id=loan.id,
                action=LoanActionEnum.CREATED,
                details=f"Loan for {loan_days} day(s), due {loan.due_date.isoformat()}",
            )
        )
        safe_commit(self.session, "create loan")
        logger.info("Loan %s created: user %s, book %s", loan.id, user.id, book.id)

        return self.get_detail(loan.id)

    def return_loan(self, loan_id: int) -> tuple[LoanDetail, ReturnInfo]:
        """
        Process the return of a loan.

        This method runs the return transaction:
        1. Locks the loan row and validates it is still active
        2. Computes days late and the fine (days late x fine per day)
        3. Marks the loan returned as of today
        4. Puts the copy back on the shelf (never above total_copies)
        5. Records a ``returned`` history entry

        Returns:
            Tuple of (updated loan, return info)

        Raises:
            LoanRejectedError: If the loan does not exist or was already returned
            RepositoryException: On database errors
        """
        try:
            loan = safe_query(
                self.session,
                lambda s: s.execute(
                    select(LoanDB).where(LoanDB.id == loan_id).with_for_update()
                ).scalar_one_or_none(),
                "Failed to get loan for return",
            )
            if loan is None:
                raise LoanRejectedError(f"Loan {loan_id} not found")
            if loan.status != LoanStatusEnum.ACTIVE:
                raise LoanRejectedError(f"Loan {loan_id} has already been returned")

            book = safe_query(
                self.session,
                lambda s: s.execute(
                    select(BookDB).where(BookDB.id == loan.book_id).with_for_update()
                ).scalar_one(),
                "Failed to get book for return",
            )
        except RepositoryException as e:
            self.session.rollback()
            if isinstance(e, LoanRejectedError):
                logger.info("Return rejected: %s", e.message)
            raise

        today = date.today()
        days_late = max(0, (today - loan.due_date).days)
        fine_amount = round(days_late * self.fine_per_day, 2)

        loan.return_date = today
        loan.status = LoanStatusEnum.RETURNED
        loan.fine_amount = fine_amount
        book.available_copies = min(book.available_copies + 1, book.total_copies)

        details = "Book returned on time"
        if days_late > 0:
            details = f"Returned {days_late} day(s) late, fine {fine_amount:.2f}"
        self.session.add(
            LoanHistoryDB(loan_id=loan.id, action=LoanActionEnum.RETURNED, details=details)
        )
        safe_commit(self.session, "return loan")
        logger.info("Loan %s returned, %d day(s) late", loan.id, days_late)

        return_info = ReturnInfo(
            loan_id=loan.id,
            return_date=today,
            days_late=days_late,
            fine_amount=fine_amount,
        )
        return self.get_detail(loan.id), return_info
