"""Reporting endpoints: scoped task, performance, project, vendor and log reports."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, get_current_user_context
from app.db.dependencies import get_db_session
from app.services.export_service import MEDIA_TYPES
from app.services.report_service import ReportService

router = APIRouter(prefix="/reports", tags=["reports"])


class ReportExportPayload(BaseModel):
    report_type: str | None = Field(default=None, max_length=64)
    format: str | None = Field(default="csv", max_length=8)
    filters: dict[str, object] = Field(default_factory=dict)


def _service(db: Session) -> ReportService:
    return ReportService(db)


@router.get("/tasks")
def report_tasks(
    project_id: int | None = None,
    user_id: int | None = None,
    status: str | None = Query(default=None, description="Single status or comma-separated list."),
    priority: str | None = Query(default=None, description="Single priority or comma-separated list."),
    start_date: date | None = None,
    end_date: date | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).run_report(
        context=context,
        report_type="tasks",
        raw_filters={
            "project_id": project_id,
            "user_id": user_id,
            "status": status,
            "priority": priority,
            "start_date": start_date,
            "end_date": end_date,
            "sort_by": sort_by,
            "sort_order": sort_order,
        },
    )


@router.get("/user-performance")
def report_user_performance(
    user_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).run_report(
        context=context,
        report_type="user-performance",
        raw_filters={"user_id": user_id, "start_date": start_date, "end_date": end_date},
    )


@router.get("/project-status")
def report_project_status(
    project_id: int | None = None,
    status: str | None = Query(default=None, description="Single status or comma-separated list."),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).run_report(
        context=context,
        report_type="project-status",
        raw_filters={"project_id": project_id, "status": status},
    )


@router.get("/vendor-performance")
def report_vendor_performance(
    vendor_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).run_report(
        context=context,
        report_type="vendor-performance",
        raw_filters={"vendor_id": vendor_id, "start_date": start_date, "end_date": end_date},
    )


@router.get("/user-logs")
def report_user_logs(
    user_id: int | None = None,
    action: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).run_report(
        context=context,
        report_type="user-logs",
        raw_filters={"user_id": user_id, "action": action, "start_date": start_date, "end_date": end_date},
    )


@router.post("/export")
def export_report(
    payload: ReportExportPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).export_report(
        context=context,
        report_type=payload.report_type,
        raw_filters=payload.filters,
        format_name=payload.format,
    )


@router.get("/exports/{filename}")
def download_export(
    filename: str,
    _context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> FileResponse:
    path = _service(db).exporter.resolve(filename)
    return FileResponse(path, media_type=MEDIA_TYPES[path.suffix.lstrip(".")], filename=filename)
