"""
Database session management for the Library API.

``DatabaseManager`` is the single owner of the connection pool. It is built
once at startup, handed to the application, and disposed at shutdown. Request
handlers borrow a short-lived ``Session`` per request and never hold a
connection across requests.
"""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from .errors import DuplicateError, RepositoryException
from .schema import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Maximum number of concurrent database connections held by the pool.
POOL_SIZE = 10


class DatabaseManager:
    """
    Manages the engine, connection pool and session factory.

    This class provides:
    - A bounded connection pool; callers queue when every connection is busy
    - Session factory with explicit transactions
    - Schema bootstrap and a connectivity self-check
    """

    def __init__(self, database_url: str | None = None):
        """
        Initialize the database manager.

        Args:
            database_url: SQLAlchemy database URL. If None, it is built from
                the application configuration.
        """
        if database_url is None:
            database_url = get_config().get_database_url()

        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        """
        Get or create the database engine.

        Server databases get a QueuePool of ``POOL_SIZE`` connections with no
        overflow. SQLite (tests and local development) shares one connection
        through a StaticPool and has foreign key enforcement switched on.
        """
        if self._engine is None:
            if self.database_url.startswith("sqlite"):
                self._engine = create_engine(
                    self.database_url,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                    echo=False,
                )

                @event.listens_for(self._engine, "connect")
                def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
                    cursor = dbapi_connection.cursor()
                    cursor.execute("PRAGMA foreign_keys=ON")
                    cursor.close()
            else:
                self._engine = create_engine(
                    self.database_url,
                    pool_size=POOL_SIZE,
                    max_overflow=0,
                    pool_pre_ping=True,
                    echo=False,
                )

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory

    def create_session(self) -> Session:
        """Create a new database session. The caller is responsible for closing it."""
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for database operations.

        ```python
        with db_manager.session_scope() as session:
            book = session.get(Book, 1)
        ```

        The session is committed on success, rolled back and re-raised on
        failure, and always closed.
        """
        session = self.create_session()
        try:
            yield session
            session.commit()
            logger.debug("Database transaction committed successfully")
        except Exception:
            logger.exception("Database error, rolling back")
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """
        Create any missing tables.

        Args:
            drop_existing: If True, drop all tables before creating
        """
        engine = self.engine

        if drop_existing:
            logger.warning("Dropping all existing tables...")
            Base.metadata.drop_all(bind=engine)

        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialization complete")

    def verify_connection(self) -> bool:
        """
        Verify the database connection is working with a trivial round trip.

        Returns:
            True if connection is successful, False otherwise
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
        except Exception:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        """Dispose of the pool. Called when the process shuts down."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


def safe_commit(session: Session, operation: str) -> None:
    """
    Commit a session, translating driver failures into repository errors.

    Args:
        session: The database session
        operation: Description of the operation (for error messages)

    Raises:
        DuplicateError: If a unique constraint was violated
        RepositoryException: If the commit fails for any other reason
    """
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        detail = str(e.orig).lower()
        if "unique" in detail or "duplicate" in detail:
            raise DuplicateError(f"Failed to {operation}: duplicate value") from e
        raise RepositoryException(f"Failed to {operation}") from e
    except SQLAlchemyError as e:
        session.rollback()
        raise RepositoryException(f"Failed to {operation}") from e


def safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a query, translating driver failures into repository errors.

    Args:
        session: The database session
        query_func: Function that performs the query
        error_msg: Message for the resulting error

    Returns:
        Query result

    Raises:
        RepositoryException: If the query fails
    """
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        raise RepositoryException(error_msg) from e
