#!/usr/bin/env python3
"""
Initialize the Library API database.

This script:
1. Creates all database tables
2. Optionally loads sample data
3. Verifies the database is ready for the API server

Usage:
    python scripts/init_database.py [--drop-existing] [--sample-data] [--database-url URL]
"""

import argparse
import logging
import sys
from datetime import date, timedelta

from sqlalchemy import inspect

from library_api.database import (
    Base,
    Book,
    DatabaseManager,
    Loan,
    LoanActionEnum,
    LoanHistory,
    LoanStatusEnum,
    User,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for database initialization."""
    parser = argparse.ArgumentParser(description="Initialize the Library API database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load sample data after creating tables",
    )
    parser.add_argument(
        "--database-url",
        help="Override the database URL built from the DB_* settings",
    )

    args = parser.parse_args()

    logger.info("Initializing database manager...")
    db_manager = DatabaseManager(args.database_url)

    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)

    try:
        logger.info("Creating database schema...")
        db_manager.init_database(drop_existing=args.drop_existing)

        if args.sample_data:
            logger.info("Loading sample data...")
            load_sample_data(db_manager)
            logger.info("Sample data loaded")

        tables = set(inspect(db_manager.engine).get_table_names())
        logger.info("Tables present: %s", ", ".join(sorted(tables)))

        missing_tables = set(Base.metadata.tables) - tables
        if missing_tables:
            logger.error("Missing expected tables: %s", ", ".join(sorted(missing_tables)))
            sys.exit(1)

        logger.info("Database initialization complete")

    except Exception:
        logger.exception("Database initialization failed")
        sys.exit(1)
    finally:
        db_manager.close()


def load_sample_data(db_manager: DatabaseManager) -> None:
    """
    Load a small catalog for trying the API by hand.

    This creates:
    - Several books, one of them currently on loan
    - Three users, one of them deactivated
    - One active loan and one loan returned late
    """
    today = date.today()

    with db_manager.session_scope() as session:
        books = [
            Book(
                isbn="9780743273565",
                title="The Great Gatsby",
                author="F. Scott Fitzgerald",
                category="Fiction",
                publication_year=1925,
                total_copies=3,
                available_copies=2,
            ),
            Book(
                isbn="9780061120084",
                title="To Kill a Mockingbird",
                author="Harper Lee",
                category="Fiction",
                publication_year=1960,
                total_copies=2,
                available_copies=2,
            ),
            Book(
                isbn="9780452284234",
                title="1984",
                author="George Orwell",
                category="Science Fiction",
                publication_year=1949,
                total_copies=1,
                available_copies=1,
            ),
            Book(
                isbn="9780307474278",
                title="One Hundred Years of Solitude",
                author="Gabriel García Márquez",
                category="Magical Realism",
                publication_year=1967,
                total_copies=2,
                available_copies=2,
            ),
        ]
        session.add_all(books)

        users = [
            User(
                full_name="Jane Smith",
                email="jane.smith@example.com",
                phone="555-0101",
                address="12 Elm Street",
                registration_date=today - timedelta(days=400),
            ),
            User(
                full_name="Carlos Ruiz",
                email="carlos.ruiz@example.com",
                phone="555-0102",
                registration_date=today - timedelta(days=90),
            ),
            User(
                full_name="Amina Okafor",
                email="amina.okafor@example.com",
                phone="555-0103",
                registration_date=today - timedelta(days=700),
                is_active=False,
            ),
        ]
        session.add_all(users)
        session.flush()

        gatsby, _, orwell, _ = books
        jane, carlos, _ = users

        active_loan = Loan(
            user_id=jane.id,
            book_id=gatsby.id,
            loan_date=today - timedelta(days=3),
            due_date=today + timedelta(days=11),
            status=LoanStatusEnum.ACTIVE,
        )
        late_loan = Loan(
            user_id=carlos.id,
            book_id=orwell.id,
            loan_date=today - timedelta(days=20),
            due_date=today - timedelta(days=6),
            return_date=today - timedelta(days=2),
            status=LoanStatusEnum.RETURNED,
            fine_amount=4.0,
        )
        session.add_all([active_loan, late_loan])
        session.flush()

        session.add_all(
            [
                LoanHistory(
                    loan_id=active_loan.id,
                    action=LoanActionEnum.CREATED,
                    details="Loan for 14 day(s)",
                ),
                LoanHistory(
                    loan_id=late_loan.id,
                    action=LoanActionEnum.CREATED,
                    details="Loan for 14 day(s)",
                ),
                LoanHistory(
                    loan_id=late_loan.id,
                    action=LoanActionEnum.RETURNED,
                    details="Returned 4 day(s) late, fine 4.00",
                ),
            ]
        )


if __name__ == "__main__":
    main()
