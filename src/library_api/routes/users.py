"""Library member endpoints: ``/api/users``."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database.errors import NotFoundError
from ..database.user_repository import UserCreateSchema, UserRepository, UserUpdateSchema
from . import EntityId, envelope, get_db_session

router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
def list_users(
    active: bool | None = Query(None, description="Only active (true) or inactive (false) users"),
    session: Session = Depends(get_db_session),
):
    users = UserRepository(session).list_users(is_active=active)
    return envelope(data=users, count=len(users))


@router.get("/{user_id}")
def get_user(user_id: EntityId, session: Session = Depends(get_db_session)):
    """A user together with the loans they have not returned yet."""
    repo = UserRepository(session)
    user = repo.get_by_id(user_id)
    if user is None:
        raise NotFoundError(f"User with ID {user_id} not found")
    return envelope(data={"user": user, "active_loans": repo.get_active_loans(user_id)})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreateSchema, session: Session = Depends(get_db_session)):
    user = UserRepository(session).create(payload)
    return envelope(data=user, message="User created successfully")


@router.put("/{user_id}")
def update_user(
    user_id: EntityId, payload: UserUpdateSchema, session: Session = Depends(get_db_session)
):
    user = UserRepository(session).update(user_id, payload)
    return envelope(data=user, message="User updated successfully")


@router.delete("/{user_id}/deactivate")
def deactivate_user(user_id: EntityId, session: Session = Depends(get_db_session)):
    user = UserRepository(session).deactivate(user_id)
    return envelope(data=user, message="User deactivated successfully")
