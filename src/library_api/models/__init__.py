"""
Library API models.

Pydantic models for the entities exposed over HTTP:
- Book: catalog entries
- User: library members
- Loan / LoanDetail / LoanHistoryEntry / ReturnInfo: lending records
"""

from .book import Book
from .loan import Loan, LoanAction, LoanDetail, LoanHistoryEntry, LoanStatus, ReturnInfo
from .user import User

__all__ = [
    "Book",
    "Loan",
    "LoanAction",
    "LoanDetail",
    "LoanHistoryEntry",
    "LoanStatus",
    "ReturnInfo",
    "User",
]
