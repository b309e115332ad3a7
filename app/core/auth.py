"""Authentication context extraction and RBAC guard utilities."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.dependencies import get_db_session
from app.models.entities import User, UserRole, UserStatus


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    user_id: int
    email: str
    display_name: str
    role: UserRole
    status: UserStatus
    working_for: int | None = None
    ip_address: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_vendor(self) -> bool:
        return self.role == UserRole.VENDOR


def _parse_user_id(raw_value: str | None) -> int | None:
    if raw_value is None or not raw_value.strip():
        return None
    try:
        user_id = int(raw_value.strip())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid X-User-Id header.",
        ) from None
    if user_id < 1:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid X-User-Id header.",
        )
    return user_id


def _resolve_user_id(x_user_id: str | None) -> int:
    settings = get_settings()
    user_id = _parse_user_id(x_user_id)
    if user_id is not None:
        return user_id

    if settings.auth_allow_dev_principal:
        return settings.auth_dev_user_id

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing identity header. Expected X-User-Id or enable development principal fallback.",
    )


def build_user_context(user: User, *, ip_address: str | None = None) -> RequestUserContext:
    """Build a request context from a persisted user.

    Utility exported for tests and service-level callers.
    """

    return RequestUserContext(
        user_id=user.id,
        email=user.email,
        display_name=user.full_name,
        role=user.role,
        status=user.status,
        working_for=user.working_for,
        ip_address=ip_address,
    )


def get_current_user_context(
    request: Request,
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user.

    Header strategy:
    - The upstream gateway validates the bearer token and forwards the user id.
    - Role and status are always read from the database, never from the header.
    """

    user_id = _resolve_user_id(x_user_id)
    user = db.scalar(select(User).where(User.id == user_id))
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user for identity header.",
        )
    if user.status != UserStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"User account is {user.status.value}.",
        )

    client_host = request.client.host if request.client else None
    return build_user_context(user, ip_address=client_host)


def has_role(context: RequestUserContext, allowed_roles: set[UserRole]) -> bool:
    """Check whether user has one of the allowed roles."""

    return context.role in allowed_roles


def require_roles(*roles: UserRole):
    """Dependency factory requiring one of the provided roles."""

    allowed = set(roles)

    def dependency(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
        if not has_role(context, allowed):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden: You do not have permission to access this resource.",
            )
        return context

    return dependency
