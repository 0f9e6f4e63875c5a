"""
HTTP routes for the Library API.

Each module defines an ``APIRouter`` for one resource. Handlers are plain
``def`` functions so FastAPI runs them on its worker thread pool; each request
gets its own database session from ``get_db_session``.

Handlers never catch repository errors. The exception handlers registered in
``library_api.app`` turn them into the JSON envelope.
"""

from collections.abc import Generator
from typing import Annotated, Any

from fastapi import APIRouter, Path, Request
from sqlalchemy.orm import Session

from ..database.schema import MAX_ID

#: Path parameter type for database ids
EntityId = Annotated[int, Path(ge=1, le=MAX_ID)]


def get_db_session(request: Request) -> Generator[Session, None, None]:
    """Yield a session bound to the application's pool, closed after the response."""
    session = request.app.state.db_manager.create_session()
    try:
        yield session
    finally:
        session.close()


def envelope(data: Any = None, message: str | None = None, **extra: Any) -> dict[str, Any]:
    """Build a success envelope: ``{success, message?, count?/..., data?}``."""
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    body.update(extra)
    if data is not None:
        body["data"] = data
    return body


def build_api_router() -> APIRouter:
    """Collect the resource routers under ``/api``."""
    from .books import router as books_router
    from .loans import router as loans_router
    from .users import router as users_router

    api_router = APIRouter(prefix="/api")
    api_router.include_router(books_router)
    api_router.include_router(loans_router)
    api_router.include_router(users_router)
    return api_router


__all__ = ["MAX_ID", "EntityId", "build_api_router", "envelope", "get_db_session"]
