"""Application service for users, vendors and consultant assignment."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.models.entities import User, UserRole, UserStatus, Vendor, utcnow
from app.repositories.work_repository import WorkRepository
from app.services.audit_service import AuditTrail
from app.services.report_service import percentage

logger = logging.getLogger(__name__)

DIRECTORY_VIEW_ROLES = {UserRole.ADMIN, UserRole.MANAGER}


@dataclass(slots=True)
class UserCreateData:
    first_name: str
    last_name: str
    email: str
    role: UserRole
    status: UserStatus = UserStatus.ACTIVE
    department: str | None = None
    position: str | None = None
    working_for: int | None = None


@dataclass(slots=True)
class UserUpdateData:
    first_name: str | None = None
    last_name: str | None = None
    role: UserRole | None = None
    status: UserStatus | None = None
    department: str | None = None
    position: str | None = None
    working_for: int | None = None


@dataclass(slots=True)
class VendorCreateData:
    user_id: int
    company_name: str
    contact_person: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    service_type: str | None = None
    contract_start_date: date | None = None
    contract_end_date: date | None = None


@dataclass(slots=True)
class VendorUpdateData:
    company_name: str | None = None
    contact_person: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    service_type: str | None = None
    contract_start_date: date | None = None
    contract_end_date: date | None = None


class DirectoryService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = WorkRepository(db)
        self.audit = AuditTrail(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_user(user: User) -> dict[str, object]:
        return {
            "id": user.id,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "name": user.full_name,
            "email": user.email,
            "role": user.role.value,
            "status": user.status.value,
            "department": user.department,
            "position": user.position,
            "working_for": user.working_for,
            "created_at": user.created_at.isoformat(),
            "updated_at": user.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_vendor(vendor: Vendor) -> dict[str, object]:
        return {
            "id": vendor.id,
            "user_id": vendor.user_id,
            "company_name": vendor.company_name,
            "contact_person": vendor.contact_person,
            "contact_email": vendor.contact_email,
            "contact_phone": vendor.contact_phone,
            "service_type": vendor.service_type,
            "contract_start_date": vendor.contract_start_date.isoformat() if vendor.contract_start_date else None,
            "contract_end_date": vendor.contract_end_date.isoformat() if vendor.contract_end_date else None,
            "created_at": vendor.created_at.isoformat(),
        }

    # ---------- Guards ----------
    def _require_vendor_user(self, user_id: int, *, field_name: str) -> User:
        user = self.repo.get_user(user_id)
        if user is None or user.role != UserRole.VENDOR:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"{field_name} must reference an existing vendor user.",
            )
        return user

    def _ensure_vendor_visible(self, *, context: RequestUserContext, vendor_id: int) -> Vendor:
        vendor = self.repo.get_vendor(vendor_id)
        if vendor is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vendor not found.")
        if context.role in DIRECTORY_VIEW_ROLES:
            return vendor
        if context.is_vendor and vendor.user_id == context.user_id:
            return vendor
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to view this vendor.",
        )

    # ---------- Users ----------
    def list_users(
        self,
        *,
        role: UserRole | None = None,
        user_status: UserStatus | None = None,
    ) -> list[User]:
        return self.repo.list_users(role=role, status=user_status)

    def create_user(self, *, context: RequestUserContext, data: UserCreateData) -> User:
        email = data.email.strip().lower()
        if self.repo.get_user_by_email(email) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered.")
        if data.working_for is not None:
            self._require_vendor_user(data.working_for, field_name="working_for")

        now = utcnow()
        user = self.repo.add_user(
            User(
                first_name=data.first_name.strip(),
                last_name=data.last_name.strip(),
                email=email,
                role=data.role,
                status=data.status,
                department=data.department,
                position=data.position,
                working_for=data.working_for,
                created_at=now,
                updated_at=now,
            )
        )
        self.audit.add_user_entry(
            context,
            action="Created user",
            description=f"Created user {user.full_name} ({user.email}) with role {user.role.value}",
        )
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered.") from exc

        self.db.refresh(user)
        return user

    def update_user(self, *, context: RequestUserContext, user_id: int, data: UserUpdateData) -> User:
        user = self.repo.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

        if data.working_for is not None:
            if data.working_for == user.id:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="A user cannot work for themselves.",
                )
            self._require_vendor_user(data.working_for, field_name="working_for")
            user.working_for = data.working_for

        if data.first_name is not None:
            user.first_name = data.first_name.strip()
        if data.last_name is not None:
            user.last_name = data.last_name.strip()
        if data.role is not None:
            user.role = data.role
        if data.status is not None:
            user.status = data.status
        if data.department is not None:
            user.department = data.department
        if data.position is not None:
            user.position = data.position
        user.updated_at = utcnow()

        self.audit.add_user_entry(
            context,
            action="Updated user",
            description=f"Updated user {user.id} ({user.email})",
        )
        self.db.commit()
        self.db.refresh(user)
        return user

    def change_user_status(self, *, context: RequestUserContext, user_id: int, new_status: UserStatus) -> User:
        user = self.repo.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

        user.status = new_status
        user.updated_at = utcnow()
        self.audit.add_user_entry(
            context,
            action="user_status_change",
            description=f"Changed status of user {user.id} to {new_status.value}",
        )
        self.db.commit()
        self.db.refresh(user)
        return user

    # ---------- Vendors ----------
    def list_vendors(self, *, context: RequestUserContext) -> list[Vendor]:
        if context.role in DIRECTORY_VIEW_ROLES:
            return self.repo.list_vendors()
        if context.is_vendor:
            own = self.repo.get_vendor_by_user_id(context.user_id)
            return [own] if own is not None else []
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: You do not have permission to access this resource.",
        )

    def get_vendor(self, *, context: RequestUserContext, vendor_id: int) -> Vendor:
        return self._ensure_vendor_visible(context=context, vendor_id=vendor_id)

    def create_vendor(self, *, context: RequestUserContext, data: VendorCreateData) -> Vendor:
        self._require_vendor_user(data.user_id, field_name="user_id")
        if data.contract_start_date and data.contract_end_date and data.contract_end_date < data.contract_start_date:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="contract_end_date must be greater than or equal to contract_start_date.",
            )
        if self.repo.get_vendor_by_user_id(data.user_id) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Vendor profile already exists for this user.",
            )

        now = utcnow()
        vendor = self.repo.add_vendor(
            Vendor(
                user_id=data.user_id,
                company_name=data.company_name.strip(),
                contact_person=data.contact_person,
                contact_email=data.contact_email,
                contact_phone=data.contact_phone,
                service_type=data.service_type,
                contract_start_date=data.contract_start_date,
                contract_end_date=data.contract_end_date,
                created_at=now,
                updated_at=now,
            )
        )
        self.audit.add_user_entry(
            context,
            action="Created vendor",
            description=f"Created vendor {vendor.company_name} for user {vendor.user_id}",
        )
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Vendor profile already exists for this user.",
            ) from exc

        self.db.refresh(vendor)
        return vendor

    def update_vendor(self, *, context: RequestUserContext, vendor_id: int, data: VendorUpdateData) -> Vendor:
        """Admins edit any vendor profile; a vendor user edits only their own."""

        vendor = self.repo.get_vendor(vendor_id)
        if vendor is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vendor not found.")
        if context.role != UserRole.ADMIN and not (context.is_vendor and vendor.user_id == context.user_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to update this vendor.",
            )

        target_start = data.contract_start_date or vendor.contract_start_date
        target_end = data.contract_end_date or vendor.contract_end_date
        if target_start and target_end and target_end < target_start:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="contract_end_date must be greater than or equal to contract_start_date.",
            )

        if data.company_name is not None:
            vendor.company_name = data.company_name.strip()
        if data.contact_person is not None:
            vendor.contact_person = data.contact_person
        if data.contact_email is not None:
            vendor.contact_email = data.contact_email
        if data.contact_phone is not None:
            vendor.contact_phone = data.contact_phone
        if data.service_type is not None:
            vendor.service_type = data.service_type
        vendor.contract_start_date = target_start
        vendor.contract_end_date = target_end
        vendor.updated_at = utcnow()

        self.audit.add_user_entry(
            context,
            action="Updated vendor",
            description=f"Updated vendor profile ID: {vendor.id}, Company: {vendor.company_name}",
        )
        self.db.commit()
        self.db.refresh(vendor)
        return vendor

    def delete_vendor(self, *, context: RequestUserContext, vendor_id: int) -> None:
        """Remove the vendor profile. The vendor user and its consultants stay."""

        vendor = self.repo.get_vendor(vendor_id)
        if vendor is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vendor not found.")

        self.audit.add_user_entry(
            context,
            action="Deleted vendor profile",
            description=f"Deleted vendor profile ID: {vendor.id}, Company: {vendor.company_name}",
        )
        self.repo.delete_vendor(vendor)
        self.db.commit()
        logger.info("Vendor profile %s deleted by user %s", vendor_id, context.user_id)

    def list_consultants(self, *, context: RequestUserContext, vendor_id: int) -> list[User]:
        vendor = self._ensure_vendor_visible(context=context, vendor_id=vendor_id)
        return self.repo.list_consultants(vendor.user_id)

    def assign_consultant(self, *, context: RequestUserContext, vendor_id: int, user_id: int) -> User:
        vendor = self.repo.get_vendor(vendor_id)
        if vendor is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vendor not found.")
        consultant = self.repo.get_user(user_id)
        if consultant is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        if consultant.role != UserRole.CONSULTANT:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Only consultants can be assigned to a vendor.",
            )

        previous = consultant.working_for
        consultant.working_for = vendor.user_id
        consultant.updated_at = utcnow()
        self.audit.add_user_entry(
            context,
            action="Assigned consultant",
            description=(
                f"Assigned consultant {consultant.id} to vendor {vendor.company_name}"
                + (f" (previously working for {previous})" if previous and previous != vendor.user_id else "")
            ),
        )
        self.db.commit()
        self.db.refresh(consultant)
        logger.info("Consultant %s now works for vendor %s", consultant.id, vendor.id)
        return consultant

    def vendor_task_stats(self, *, context: RequestUserContext, vendor_id: int) -> dict[str, object]:
        vendor = self._ensure_vendor_visible(context=context, vendor_id=vendor_id)
        counts = self.repo.vendor_task_counts(vendor.user_id, today=date.today())
        return {
            "vendor_id": vendor.id,
            "company_name": vendor.company_name,
            "total_tasks": counts["total"],
            "completed_tasks": counts["completed"],
            "in_progress_tasks": counts["in_progress"],
            "overdue_tasks": counts["overdue"],
            "completion_rate": percentage(counts["completed"], counts["total"]),
        }
