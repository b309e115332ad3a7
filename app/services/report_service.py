"""Report assembly: scope, filters, primary query, fan-out rollups, export."""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from fastapi import HTTPException, status
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.core.config import get_settings
from app.models.entities import (
    DailyUpdate,
    Priority,
    Project,
    ProjectStatus,
    Task,
    TaskAssignment,
    TaskStatus,
    User,
    UserLog,
    UserRole,
    Vendor,
)
from app.repositories.report_repository import ReportRepository
from app.repositories.work_repository import WorkRepository, vendor_project_pattern
from app.services.audit_service import AuditTrail, describe_filters
from app.services.export_service import ReportExporter, normalize_export_format
from app.services.query_filters import FilterBuilder, resolve_sort, split_values
from app.services.scope import ConsultantScope, resolve_consultant_scope

logger = logging.getLogger(__name__)

ALL_ROLES = frozenset(UserRole)


def check_enum_list(value: str | None, enum_cls: type[enum.Enum]) -> str | None:
    """Validate a single value or comma-separated list against ``enum_cls``."""

    if value is None:
        return None
    for item in split_values(value):
        try:
            enum_cls(item)
        except ValueError:
            allowed_values = ", ".join(member.value for member in enum_cls)
            raise ValueError(f"Invalid value '{item}'. Allowed: {allowed_values}.") from None
    return value


class ReportFilters(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    start_date: date | None = None
    end_date: date | None = None

    @model_validator(mode="after")
    def check_date_range(self) -> ReportFilters:
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be greater than or equal to start_date.")
        return self


class TaskReportFilters(ReportFilters):
    project_id: int | None = Field(default=None, ge=1)
    user_id: int | None = Field(default=None, ge=1)
    status: str | None = Field(default=None, max_length=200)
    priority: str | None = Field(default=None, max_length=100)
    sort_by: str | None = Field(default=None, max_length=64)
    sort_order: str | None = Field(default=None, max_length=4)

    @field_validator("status")
    @classmethod
    def check_status(cls, value: str | None) -> str | None:
        return check_enum_list(value, TaskStatus)

    @field_validator("priority")
    @classmethod
    def check_priority(cls, value: str | None) -> str | None:
        return check_enum_list(value, Priority)


class UserPerformanceFilters(ReportFilters):
    user_id: int | None = Field(default=None, ge=1)


class ProjectStatusFilters(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    project_id: int | None = Field(default=None, ge=1)
    status: str | None = Field(default=None, max_length=200)

    @field_validator("status")
    @classmethod
    def check_status(cls, value: str | None) -> str | None:
        return check_enum_list(value, ProjectStatus)


class VendorPerformanceFilters(ReportFilters):
    vendor_id: int | None = Field(default=None, ge=1)


class UserLogFilters(ReportFilters):
    user_id: int | None = Field(default=None, ge=1)
    action: str | None = Field(default=None, max_length=100)


TASK_SORT_COLUMNS = {
    "task_title": Task.title,
    "task_status": Task.status,
    "priority": Task.priority,
    "due_date": Task.due_date,
    "assigned_on": Task.created_at,
    "last_updated": Task.updated_at,
    "project_name": Project.name,
}


def _plain(value: object) -> object:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    return value


def _plain_row(row: Mapping[str, object]) -> dict[str, object]:
    return {key: _plain(value) for key, value in row.items()}


def _count(value: object) -> int:
    return int(value or 0)


def _round2(value: object) -> float | None:
    if value is None:
        return None
    return round(float(value), 2)


def percentage(part: int, total: int) -> float | int:
    """``round(part / total * 100, 2)``; exactly ``0`` when total is zero."""

    if total == 0:
        return 0
    return round(part / total * 100, 2)


def _with_counts(row: Mapping[str, object], *names: str) -> dict[str, object]:
    shaped = _plain_row(row)
    for name in names:
        shaped[name] = _count(shaped.get(name))
    return shaped


@dataclass(frozen=True, slots=True)
class ReportDefinition:
    label: str
    filters_model: type[BaseModel]
    allowed_roles: frozenset[UserRole]
    builder_name: str


REPORT_DEFINITIONS: dict[str, ReportDefinition] = {
    "tasks": ReportDefinition("task report", TaskReportFilters, ALL_ROLES, "_task_rows"),
    "user-performance": ReportDefinition(
        "user performance report",
        UserPerformanceFilters,
        frozenset({UserRole.ADMIN, UserRole.MANAGER, UserRole.VENDOR}),
        "_user_performance_rows",
    ),
    "project-status": ReportDefinition("project status report", ProjectStatusFilters, ALL_ROLES, "_project_status_rows"),
    "vendor-performance": ReportDefinition(
        "vendor performance report",
        VendorPerformanceFilters,
        frozenset({UserRole.ADMIN, UserRole.VENDOR}),
        "_vendor_performance_rows",
    ),
    "user-logs": ReportDefinition(
        "user logs report",
        UserLogFilters,
        frozenset({UserRole.ADMIN, UserRole.VENDOR}),
        "_user_log_rows",
    ),
}


class ReportService:
    """Builds the five scoped reports and their file exports."""

    def __init__(
        self,
        db: Session,
        *,
        exporter: ReportExporter | None = None,
        today: date | None = None,
    ) -> None:
        self.db = db
        self.repo = ReportRepository(db)
        self.work_repo = WorkRepository(db)
        self.audit = AuditTrail(db)
        self.exporter = exporter or ReportExporter(get_settings().export_dir)
        self.today = today

    def _today(self) -> date:
        return self.today or date.today()

    # ---------- Access / scope ----------
    @staticmethod
    def _definition(report_type: str | None) -> ReportDefinition:
        if not report_type or not report_type.strip():
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Report type is required.",
            )
        definition = REPORT_DEFINITIONS.get(report_type.strip())
        if definition is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Invalid report type. Use one of: {', '.join(REPORT_DEFINITIONS)}.",
            )
        return definition

    @staticmethod
    def _ensure_role(context: RequestUserContext, definition: ReportDefinition) -> None:
        if context.role not in definition.allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden: You do not have permission to access this resource.",
            )

    @staticmethod
    def _ensure_user_visible(scope: ConsultantScope, user_id: int | None) -> None:
        if user_id is not None and not scope.allows(user_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to view this user's data.",
            )

    @staticmethod
    def parse_filters(definition: ReportDefinition, raw_filters: Mapping[str, object] | None) -> BaseModel:
        try:
            return definition.filters_model.model_validate(dict(raw_filters or {}))
        except ValidationError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=exc.errors(include_url=False, include_context=False, include_input=False),
            ) from None

    # ---------- Entry points ----------
    def run_report(
        self,
        *,
        context: RequestUserContext,
        report_type: str,
        raw_filters: Mapping[str, object] | None,
    ) -> dict[str, object]:
        definition = self._definition(report_type)
        rows, echoed = self._build(context, definition, raw_filters)

        self.audit.record_best_effort(
            context,
            action=f"Generated {definition.label}",
            description=f"Generated {definition.label} with filters: {describe_filters(echoed)}",
        )
        return {"success": True, "data": rows, "filters": echoed}

    def export_report(
        self,
        *,
        context: RequestUserContext,
        report_type: str | None,
        raw_filters: Mapping[str, object] | None,
        format_name: str | None,
    ) -> dict[str, object]:
        definition = self._definition(report_type)
        normalized_format = normalize_export_format(format_name)
        rows, echoed = self._build(context, definition, raw_filters)

        exported = self.exporter.export(rows, report_type.strip(), normalized_format)
        self.audit.record_best_effort(
            context,
            action=f"Exported {report_type} report",
            description=(
                f"Exported {report_type} report as {normalized_format} with filters: {describe_filters(echoed)}"
            ),
        )
        return {
            "success": True,
            "file": exported.filename,
            "message": f"Report exported as {normalized_format} successfully",
        }

    def _build(
        self,
        context: RequestUserContext,
        definition: ReportDefinition,
        raw_filters: Mapping[str, object] | None,
    ) -> tuple[list[dict[str, object]], dict[str, object]]:
        self._ensure_role(context, definition)
        filters = self.parse_filters(definition, raw_filters)
        scope = resolve_consultant_scope(self.work_repo, context)
        builder: Callable[[RequestUserContext, ConsultantScope, BaseModel], list[dict[str, object]]]
        builder = getattr(self, definition.builder_name)
        rows = builder(context, scope, filters)
        return rows, filters.model_dump(mode="json", exclude_none=True)

    # ---------- Task report ----------
    def _task_rows(
        self,
        context: RequestUserContext,
        scope: ConsultantScope,
        filters: TaskReportFilters,
    ) -> list[dict[str, object]]:
        self._ensure_user_visible(scope, filters.user_id)
        builder = (
            FilterBuilder(filters.model_dump(), {"project_id", "user_id", "status", "priority", "start_date", "end_date"})
            .equals("project_id", Task.project_id)
            .equals("user_id", TaskAssignment.user_id)
            .one_or_many("status", Task.status, TaskStatus)
            .one_or_many("priority", Task.priority, Priority)
            .on_or_after("start_date", Task.created_at)
            .on_or_before("end_date", Task.created_at)
            .within_scope(TaskAssignment.user_id, scope)
        )
        if builder.no_results:
            return []
        self._log_filters("tasks", builder)

        order_by = resolve_sort(filters.sort_by, filters.sort_order, TASK_SORT_COLUMNS)
        return [_plain_row(row) for row in self.repo.task_rows(builder, order_by)]

    # ---------- User performance ----------
    def _user_performance_rows(
        self,
        context: RequestUserContext,
        scope: ConsultantScope,
        filters: UserPerformanceFilters,
    ) -> list[dict[str, object]]:
        self._ensure_user_visible(scope, filters.user_id)
        builder = (
            FilterBuilder(filters.model_dump(), {"user_id", "start_date", "end_date"})
            .equals("user_id", User.id)
            .on_or_after("start_date", Task.created_at, include_null=True)
            .on_or_before("end_date", Task.created_at, include_null=True)
            .within_scope(User.id, scope)
        )
        if builder.no_results:
            return []
        self._log_filters("user-performance", builder)

        users = []
        for row in self.repo.user_performance_rows(builder, today=self._today()):
            user = _with_counts(
                row,
                "total_tasks",
                "completed_tasks",
                "in_progress_tasks",
                "pending_tasks",
                "overdue_tasks",
            )
            user["avg_completion_days"] = _round2(row["avg_completion_days"])
            self.attach_daily_hours(user, filters)
            users.append(user)
        return users

    def attach_daily_hours(self, user: dict[str, object], filters: ReportFilters) -> None:
        """Fan-out: per-day hours for one user, plus totals and daily average."""

        builder = (
            FilterBuilder(filters.model_dump(), {"start_date", "end_date"})
            .on_or_after("start_date", DailyUpdate.update_date)
            .on_or_before("end_date", DailyUpdate.update_date)
        )
        days = [
            {
                "date": row["date"],
                "hours": float(row["hours"] or 0),
                "tasks_worked_on": _count(row["tasks_worked_on"]),
            }
            for row in self.repo.daily_hours(int(user["user_id"]), builder)
        ]
        total_hours = round(sum(day["hours"] for day in days), 2)
        user["daily_updates"] = days
        user["total_hours"] = total_hours
        user["avg_daily_hours"] = round(total_hours / max(len(days), 1), 2)

    # ---------- Project status ----------
    def _project_status_rows(
        self,
        context: RequestUserContext,
        scope: ConsultantScope,
        filters: ProjectStatusFilters,
    ) -> list[dict[str, object]]:
        builder = (
            FilterBuilder(filters.model_dump(), {"project_id", "status"})
            .equals("project_id", Project.id)
            .one_or_many("status", Project.status, ProjectStatus)
        )
        if context.is_vendor:
            if scope.is_empty:
                return []
            builder.where(Project.project_type.like(scope.project_type_pattern))
        self._log_filters("project-status", builder)

        projects = []
        for row in self.repo.project_status_rows(builder, today=self._today()):
            project = _with_counts(
                row,
                "total_tasks",
                "completed_tasks",
                "in_progress_tasks",
                "todo_tasks",
                "review_tasks",
                "on_hold_tasks",
                "overdue_tasks",
            )
            project["completion_percentage"] = percentage(project["completed_tasks"], project["total_tasks"])
            self.attach_team_members(project)
            projects.append(project)
        return projects

    def attach_team_members(self, project: dict[str, object]) -> None:
        """Fan-out: assignees of one project with their task counts."""

        project["team_members"] = [
            _with_counts(member, "assigned_tasks", "completed_tasks")
            for member in self.repo.team_members(int(project["project_id"]))
        ]

    # ---------- Vendor performance ----------
    def _vendor_performance_rows(
        self,
        context: RequestUserContext,
        scope: ConsultantScope,
        filters: VendorPerformanceFilters,
    ) -> list[dict[str, object]]:
        vendor_filter = filters.vendor_id
        if context.is_vendor:
            if vendor_filter is not None and vendor_filter != scope.vendor_id:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="You do not have permission to view another vendor's performance.",
                )
            if scope.is_empty:
                return []
            vendor_filter = scope.vendor_id

        vendor_builder = FilterBuilder({"vendor_id": vendor_filter}, {"vendor_id"}).equals("vendor_id", Vendor.id)
        task_builder = self._task_date_builder(filters)
        self._log_filters("vendor-performance", vendor_builder)

        vendors = []
        for row in self.repo.vendor_performance_rows(vendor_builder, task_builder, today=self._today()):
            vendor = _with_counts(
                row,
                "total_projects",
                "total_consultants",
                "total_tasks",
                "completed_tasks",
                "in_progress_tasks",
                "overdue_tasks",
            )
            vendor["completion_rate"] = percentage(vendor["completed_tasks"], vendor["total_tasks"])
            vendor["avg_completion_days"] = _round2(row["avg_completion_days"])
            self.attach_consultant_rollups(vendor, filters)
            self.attach_project_rollups(vendor)
            vendors.append(vendor)
        return vendors

    @staticmethod
    def _task_date_builder(filters: ReportFilters) -> FilterBuilder:
        return (
            FilterBuilder(filters.model_dump(), {"start_date", "end_date"})
            .on_or_after("start_date", Task.created_at)
            .on_or_before("end_date", Task.created_at)
        )

    def attach_consultant_rollups(self, vendor: dict[str, object], filters: ReportFilters) -> None:
        """Fan-out: every consultant of the vendor, zero counts included."""

        consultants = []
        for row in self.repo.consultant_rollups(
            int(vendor["vendor_user_id"]),
            self._task_date_builder(filters),
            today=self._today(),
        ):
            consultant = _with_counts(row, "total_tasks", "completed_tasks", "in_progress_tasks", "overdue_tasks")
            consultant["completion_rate"] = percentage(consultant["completed_tasks"], consultant["total_tasks"])
            consultants.append(consultant)
        vendor["consultants"] = consultants

    def attach_project_rollups(self, vendor: dict[str, object]) -> None:
        """Fan-out: projects owned by the vendor through the project type convention."""

        pattern = vendor_project_pattern(str(vendor["company_name"]))
        projects = []
        for row in self.repo.project_rollups(pattern):
            project = _with_counts(row, "total_tasks", "completed_tasks")
            project["completion_percentage"] = percentage(project["completed_tasks"], project["total_tasks"])
            projects.append(project)
        vendor["projects"] = projects

    # ---------- User logs ----------
    def _user_log_rows(
        self,
        context: RequestUserContext,
        scope: ConsultantScope,
        filters: UserLogFilters,
    ) -> list[dict[str, object]]:
        self._ensure_user_visible(scope, filters.user_id)
        builder = (
            FilterBuilder(filters.model_dump(), {"user_id", "action", "start_date", "end_date"})
            .equals("user_id", UserLog.user_id)
            .contains("action", UserLog.action)
            .since("start_date", UserLog.created_at)
            .through_end_of_day("end_date", UserLog.created_at)
            .within_scope(UserLog.user_id, scope)
        )
        if builder.no_results:
            return []
        self._log_filters("user-logs", builder)
        return [_plain_row(row) for row in self.repo.user_log_rows(builder)]

    @staticmethod
    def _log_filters(report_type: str, builder: FilterBuilder) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            clause, params = builder.render()
            logger.debug("%s report criteria: %s %r", report_type, clause or "<none>", params)
