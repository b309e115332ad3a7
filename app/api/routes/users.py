"""User directory endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, require_roles
from app.db.dependencies import get_db_session
from app.models.entities import UserRole, UserStatus
from app.services.directory_service import DirectoryService, UserCreateData, UserUpdateData

router = APIRouter(prefix="/users", tags=["users"])


class UserCreatePayload(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    role: UserRole
    status: UserStatus = UserStatus.ACTIVE
    department: str | None = Field(default=None, max_length=100)
    position: str | None = Field(default=None, max_length=100)
    working_for: int | None = Field(default=None, ge=1)


class UserUpdatePayload(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    role: UserRole | None = None
    status: UserStatus | None = None
    department: str | None = Field(default=None, max_length=100)
    position: str | None = Field(default=None, max_length=100)
    working_for: int | None = Field(default=None, ge=1)


class UserStatusPayload(BaseModel):
    status: UserStatus


@router.get("")
def list_users(
    role: UserRole | None = Query(default=None),
    user_status: UserStatus | None = Query(default=None, alias="status"),
    _context: RequestUserContext = Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = DirectoryService(db)
    users = service.list_users(role=role, user_status=user_status)
    return {"items": [service.serialize_user(user) for user in users]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreatePayload,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = DirectoryService(db)
    user = service.create_user(context=context, data=UserCreateData(**payload.model_dump()))
    return service.serialize_user(user)


@router.patch("/{user_id}")
def update_user(
    user_id: int,
    payload: UserUpdatePayload,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = DirectoryService(db)
    user = service.update_user(context=context, user_id=user_id, data=UserUpdateData(**payload.model_dump()))
    return service.serialize_user(user)


@router.patch("/{user_id}/status")
def change_user_status(
    user_id: int,
    payload: UserStatusPayload,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = DirectoryService(db)
    user = service.change_user_status(context=context, user_id=user_id, new_status=payload.status)
    return service.serialize_user(user)
