"""
Tests for the response models.

These tests verify that the models:
1. Enforce the copy-count invariant on books
2. Derive loan periods and lateness
3. Read SQLAlchemy rows through from_attributes
"""

from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from library_api.database.schema import Book as BookDB
from library_api.models import Book, Loan, LoanStatus, ReturnInfo, User
from library_api.models.user import validate_email_shape


class TestBook:
    def test_all_copies_on_loan_is_valid(self):
        book = Book(
            id=1, title="Dune", author="Frank Herbert", isbn="1", total_copies=3, available_copies=0
        )
        assert book.available_copies == 0

    def test_available_cannot_exceed_total(self):
        with pytest.raises(ValidationError, match="cannot exceed"):
            Book(id=1, title="Dune", author="F", isbn="1", total_copies=1, available_copies=2)

    def test_from_orm_row(self):
        row = BookDB(
            id=7, title="Dune", author="Frank Herbert", isbn="1", total_copies=2, available_copies=0
        )
        book = Book.model_validate(row)
        assert book.id == 7
        assert book.available_copies == 0


class TestLoan:
    def test_defaults(self):
        today = date.today()
        loan = Loan(id=1, user_id=1, book_id=1, loan_date=today, due_date=today + timedelta(days=7))

        assert loan.status == LoanStatus.ACTIVE
        assert loan.fine_amount == 0.0
        assert loan.return_date is None
        assert loan.due_date == today + timedelta(days=7)

    def test_negative_fine_rejected(self):
        with pytest.raises(ValidationError):
            ReturnInfo(loan_id=1, return_date=date.today(), days_late=1, fine_amount=-1)


class TestUser:
    def test_email_shape(self):
        assert validate_email_shape("a.b@example.org") == "a.b@example.org"
        with pytest.raises(ValueError):
            validate_email_shape("example.org")

    def test_active_by_default(self):
        user = User(
            id=1,
            full_name="Jane Doe",
            email="jane@example.com",
            phone="555",
            registration_date=date.today(),
        )
        assert user.is_active is True
