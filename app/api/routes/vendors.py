"""Vendor and consultant endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, get_current_user_context, require_roles
from app.db.dependencies import get_db_session
from app.models.entities import UserRole
from app.services.directory_service import DirectoryService, VendorCreateData, VendorUpdateData

router = APIRouter(prefix="/vendors", tags=["vendors"])


class VendorCreatePayload(BaseModel):
    user_id: int = Field(ge=1)
    company_name: str = Field(min_length=1, max_length=255)
    contact_person: str | None = Field(default=None, max_length=100)
    contact_email: str | None = Field(default=None, min_length=3, max_length=255)
    contact_phone: str | None = Field(default=None, max_length=50)
    service_type: str | None = Field(default=None, max_length=100)
    contract_start_date: date | None = None
    contract_end_date: date | None = None


class VendorUpdatePayload(BaseModel):
    company_name: str | None = Field(default=None, min_length=1, max_length=255)
    contact_person: str | None = Field(default=None, max_length=100)
    contact_email: str | None = Field(default=None, min_length=3, max_length=255)
    contact_phone: str | None = Field(default=None, max_length=50)
    service_type: str | None = Field(default=None, max_length=100)
    contract_start_date: date | None = None
    contract_end_date: date | None = None


@router.post("", status_code=status.HTTP_201_CREATED)
def create_vendor(
    payload: VendorCreatePayload,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = DirectoryService(db)
    vendor = service.create_vendor(context=context, data=VendorCreateData(**payload.model_dump()))
    return service.serialize_vendor(vendor)


@router.get("")
def list_vendors(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = DirectoryService(db)
    return {"items": [service.serialize_vendor(vendor) for vendor in service.list_vendors(context=context)]}


@router.get("/{vendor_id}")
def get_vendor(
    vendor_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = DirectoryService(db)
    return service.serialize_vendor(service.get_vendor(context=context, vendor_id=vendor_id))


@router.patch("/{vendor_id}")
def update_vendor(
    vendor_id: int,
    payload: VendorUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = DirectoryService(db)
    vendor = service.update_vendor(context=context, vendor_id=vendor_id, data=VendorUpdateData(**payload.model_dump()))
    return service.serialize_vendor(vendor)


@router.delete("/{vendor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_vendor(
    vendor_id: int,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> Response:
    DirectoryService(db).delete_vendor(context=context, vendor_id=vendor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{vendor_id}/consultants")
def list_vendor_consultants(
    vendor_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = DirectoryService(db)
    consultants = service.list_consultants(context=context, vendor_id=vendor_id)
    return {"items": [service.serialize_user(user) for user in consultants]}


@router.put("/{vendor_id}/consultants/{user_id}")
def assign_vendor_consultant(
    vendor_id: int,
    user_id: int,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = DirectoryService(db)
    consultant = service.assign_consultant(context=context, vendor_id=vendor_id, user_id=user_id)
    return service.serialize_user(consultant)


@router.get("/{vendor_id}/task-stats")
def get_vendor_task_stats(
    vendor_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return DirectoryService(db).vendor_task_stats(context=context, vendor_id=vendor_id)
