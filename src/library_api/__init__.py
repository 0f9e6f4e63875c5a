"""
Library API Package.

A REST API for a small library: the book catalog, library members, and the
loans that connect them.

Key Components:
- models: Pydantic models for data validation and serialization
- database: SQLAlchemy schema, session management and repositories
- config: Configuration management with pydantic-settings
- routes: FastAPI routers for books, users and loans
- app: Application factory wiring routers, middleware and error handlers
"""

__version__ = "1.0.0"

__all__ = [
    "__version__",
]
