"""Lending endpoints: ``/api/loans``."""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ..database.errors import InvalidInputError, NotFoundError
from ..database.loan_repository import LoanCreateSchema, LoanRepository
from . import MAX_ID, EntityId, envelope, get_db_session

router = APIRouter(prefix="/loans", tags=["loans"])


def get_loan_repository(
    request: Request, session: Session = Depends(get_db_session)
) -> LoanRepository:
    """Build a LoanRepository with the lending limits from the app config."""
    config = request.app.state.config
    return LoanRepository(
        session,
        fine_per_day=config.fine_per_day,
        max_active_loans=config.max_active_loans,
    )


@router.get("")
def list_loans(
    status_filter: str | None = Query(None, alias="status"),
    user_id: int | None = Query(None, ge=1, le=MAX_ID),
    repo: LoanRepository = Depends(get_loan_repository),
):
    loans = repo.list_loans(status=status_filter, user_id=user_id)
    return envelope(
        data=loans,
        count=len(loans),
        filters={"status": status_filter, "user_id": user_id},
    )


@router.get("/{loan_id}")
def get_loan(loan_id: EntityId, repo: LoanRepository = Depends(get_loan_repository)):
    result = repo.get_with_history(loan_id)
    if result is None:
        raise NotFoundError(f"Loan with ID {loan_id} not found")
    loan, history = result
    return envelope(data={"loan": loan, "history": history})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_loan(payload: LoanCreateSchema, repo: LoanRepository = Depends(get_loan_repository)):
    loan = repo.create_loan(payload)
    return envelope(data=loan, message="Loan created successfully")


@router.post("/{loan_id}/return")
def return_loan(loan_id: str, repo: LoanRepository = Depends(get_loan_repository)):
    """Close a loan; the message mentions the fine when the book came back late."""
    try:
        loan_pk = int(loan_id)
    except ValueError:
        raise InvalidInputError("Loan ID must be a valid number") from None
    if not 1 <= loan_pk <= MAX_ID:
        raise InvalidInputError(f"Loan {loan_id} not found")

    loan, return_info = repo.return_loan(loan_pk)

    message = "Book returned successfully"
    if return_info.days_late > 0:
        message += (
            f". A fine of {return_info.fine_amount:.2f} was applied for "
            f"{return_info.days_late} day(s) late"
        )
    return envelope(data={"loan": loan, "return_info": return_info}, message=message)
