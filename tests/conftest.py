"""Test configuration and fixtures for the Library API.

1. Isolated test databases - each test gets a fresh in-memory SQLite database
2. Configuration overrides - test configs never read the environment's .env
3. Repositories and sample rows for the data-access tests
4. A TestClient over an app built with ``create_app``
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from library_api.app import create_app
from library_api.config import AppConfig, reset_config
from library_api.database.book_repository import BookCreateSchema, BookRepository
from library_api.database.loan_repository import LoanRepository
from library_api.database.session import DatabaseManager
from library_api.database.user_repository import UserCreateSchema, UserRepository
from library_api.models import Book, User

# === Configuration Fixtures ===


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Every test starts and ends without a cached configuration."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def test_config() -> AppConfig:
    """Configuration pointing at an in-memory database with default lending rules."""
    return AppConfig(
        _env_file=None,
        database_url="sqlite://",
        fine_per_day=1.0,
        max_active_loans=5,
        log_level="DEBUG",
    )


# === Test Database Fixtures ===


@pytest.fixture
def db_manager() -> Generator[DatabaseManager, None, None]:
    """Provide a DatabaseManager over a fresh in-memory database."""
    manager = DatabaseManager("sqlite://")
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def session(db_manager: DatabaseManager) -> Generator[Session, None, None]:
    """Provide a session for repository tests."""
    db_session = db_manager.create_session()
    yield db_session
    db_session.close()


@pytest.fixture
def book_repo(session: Session) -> BookRepository:
    return BookRepository(session)


@pytest.fixture
def user_repo(session: Session) -> UserRepository:
    return UserRepository(session)


@pytest.fixture
def loan_repo(session: Session) -> LoanRepository:
    return LoanRepository(session, fine_per_day=1.0, max_active_loans=5)


# === Sample Data Fixtures ===


@pytest.fixture
def sample_book(book_repo: BookRepository) -> Book:
    """A book with two copies, both on the shelf."""
    return book_repo.create(
        BookCreateSchema(
            title="The Hobbit",
            author="J.R.R. Tolkien",
            isbn="9780547928227",
            category="Fantasy",
            total_copies=2,
            publication_year=1937,
        )
    )


@pytest.fixture
def sample_user(user_repo: UserRepository) -> User:
    """An active library member."""
    return user_repo.create(
        UserCreateSchema(
            full_name="Jane Doe",
            email="jane.doe@example.com",
            phone="555-123-4567",
            address="1 Main Street",
        )
    )


# === HTTP Fixtures ===


@pytest.fixture
def app(db_manager: DatabaseManager, test_config: AppConfig):
    return create_app(db_manager=db_manager, config=test_config)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """TestClient with the application lifespan running."""
    with TestClient(app) as test_client:
        yield test_client
