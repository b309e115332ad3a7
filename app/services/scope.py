"""Per-request resolution of the users a caller may see in reports."""

from __future__ import annotations

from dataclasses import dataclass, field

from fastapi import HTTPException, status

from app.core.auth import RequestUserContext
from app.models.entities import UserRole
from app.repositories.work_repository import WorkRepository, vendor_project_pattern


@dataclass(frozen=True)
class ConsultantScope:
    """Visible user ids for a caller.

    ``unrestricted`` scopes (admins) see every row. Otherwise only rows whose
    user id is in ``user_ids`` are visible; an empty set is a valid scope with
    no visible rows.
    """

    unrestricted: bool
    user_ids: frozenset[int] = field(default_factory=frozenset)
    vendor_id: int | None = None
    company_name: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.unrestricted and not self.user_ids

    @property
    def project_type_pattern(self) -> str | None:
        if self.company_name is None:
            return None
        return vendor_project_pattern(self.company_name)

    def allows(self, user_id: int) -> bool:
        return self.unrestricted or user_id in self.user_ids


def resolve_consultant_scope(repo: WorkRepository, context: RequestUserContext) -> ConsultantScope:
    """Resolve the caller's scope from current database state.

    Never cached: consultants can be reassigned between two requests.
    """

    if context.role == UserRole.ADMIN:
        return ConsultantScope(unrestricted=True)

    if context.role == UserRole.VENDOR:
        vendor = repo.get_vendor_by_user_id(context.user_id)
        if vendor is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to access this report.",
            )
        return ConsultantScope(
            unrestricted=False,
            user_ids=frozenset(repo.list_consultant_ids(context.user_id)),
            vendor_id=vendor.id,
            company_name=vendor.company_name,
        )

    return ConsultantScope(unrestricted=False, user_ids=frozenset({context.user_id}))
