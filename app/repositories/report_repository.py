"""Read-only report queries.

Primary queries take a populated :class:`FilterBuilder`. Fan-out queries run
once per primary row and are kept as separate named methods so they can later
be replaced by a batched join without touching the service.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from sqlalchemy import and_, case, func, literal, select
from sqlalchemy.orm import Session, aliased
from sqlalchemy.sql.elements import ColumnElement

from app.db.functions import elapsed_days
from app.models.entities import (
    ConsultantProfile,
    DailyUpdate,
    Project,
    Task,
    TaskAssignment,
    TaskStatus,
    User,
    UserLog,
    UserRole,
    Vendor,
)
from app.services.query_filters import FilterBuilder


def full_name(user) -> ColumnElement[str]:
    return user.first_name + " " + user.last_name


def _count_when(condition: ColumnElement[bool]) -> ColumnElement[int]:
    return func.sum(case((condition, 1), else_=0))


def _overdue(today: date) -> ColumnElement[bool]:
    return and_(Task.due_date < today, Task.status != TaskStatus.COMPLETED)


def _avg_completion_days() -> ColumnElement[float]:
    return func.avg(case((Task.status == TaskStatus.COMPLETED, elapsed_days(Task.updated_at, Task.created_at))))


class ReportRepository:
    """SQL for the five report shapes and their nested rollups."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _rows(self, stmt) -> list[dict[str, object]]:
        return [dict(row) for row in self.db.execute(stmt).mappings().all()]

    # ---------- Task report ----------
    def task_rows(
        self,
        builder: FilterBuilder,
        order_by: Sequence[ColumnElement] | None = None,
    ) -> list[dict[str, object]]:
        assignee = aliased(User, name="assignee")
        creator = aliased(User, name="creator")
        stmt = (
            select(
                Task.id.label("task_id"),
                Task.title.label("task_title"),
                Task.description.label("description"),
                Task.status.label("task_status"),
                Task.priority.label("priority"),
                Task.due_date.label("due_date"),
                Task.estimated_hours.label("estimated_hours"),
                Task.actual_hours.label("actual_hours"),
                Task.created_at.label("assigned_on"),
                Task.updated_at.label("last_updated"),
                assignee.id.label("user_id"),
                full_name(assignee).label("assigned_to"),
                full_name(creator).label("created_by"),
                Project.id.label("project_id"),
                Project.name.label("project_name"),
                Project.status.label("project_status"),
            )
            .select_from(Task)
            .join(TaskAssignment, TaskAssignment.task_id == Task.id)
            .join(assignee, assignee.id == TaskAssignment.user_id)
            .outerjoin(creator, creator.id == Task.created_by)
            .join(Project, Project.id == Task.project_id)
        )
        stmt = builder.apply(stmt)
        if order_by:
            stmt = stmt.order_by(*order_by, Task.id.asc())
        else:
            stmt = stmt.order_by(Project.name.asc(), Task.due_date.asc(), Task.id.asc())
        return self._rows(stmt)

    # ---------- User performance ----------
    def user_performance_rows(self, builder: FilterBuilder, *, today: date) -> list[dict[str, object]]:
        stmt = (
            select(
                User.id.label("user_id"),
                full_name(User).label("user_name"),
                User.role.label("role"),
                User.department.label("department"),
                User.position.label("position"),
                func.count(Task.id).label("total_tasks"),
                _count_when(Task.status == TaskStatus.COMPLETED).label("completed_tasks"),
                _count_when(Task.status == TaskStatus.IN_PROGRESS).label("in_progress_tasks"),
                _count_when(Task.status.in_([TaskStatus.NEW, TaskStatus.TO_DO])).label("pending_tasks"),
                _count_when(_overdue(today)).label("overdue_tasks"),
                _avg_completion_days().label("avg_completion_days"),
            )
            .select_from(User)
            .outerjoin(TaskAssignment, TaskAssignment.user_id == User.id)
            .outerjoin(Task, Task.id == TaskAssignment.task_id)
        )
        stmt = (
            builder.apply(stmt)
            .group_by(User.id, User.first_name, User.last_name, User.role, User.department, User.position)
            .order_by(User.first_name.asc(), User.last_name.asc(), User.id.asc())
        )
        return self._rows(stmt)

    def daily_hours(self, user_id: int, builder: FilterBuilder) -> list[dict[str, object]]:
        stmt = select(
            DailyUpdate.update_date.label("date"),
            func.sum(DailyUpdate.hours_spent).label("hours"),
            func.count(DailyUpdate.task_id.distinct()).label("tasks_worked_on"),
        ).where(DailyUpdate.user_id == user_id)
        stmt = (
            builder.apply(stmt)
            .group_by(DailyUpdate.update_date)
            .order_by(DailyUpdate.update_date.asc())
        )
        return self._rows(stmt)

    # ---------- Project status ----------
    def project_status_rows(self, builder: FilterBuilder, *, today: date) -> list[dict[str, object]]:
        manager = aliased(User, name="manager")
        project_columns = (
            Project.id,
            Project.name,
            Project.description,
            Project.status,
            Project.priority,
            Project.start_date,
            Project.end_date,
            Project.created_at,
            Project.updated_at,
            Project.client_name,
            Project.budget,
            Project.project_type,
        )
        stmt = (
            select(
                Project.id.label("project_id"),
                Project.name.label("project_name"),
                Project.description.label("description"),
                Project.status.label("project_status"),
                Project.priority.label("priority"),
                Project.start_date.label("start_date"),
                Project.end_date.label("end_date"),
                Project.created_at.label("created_at"),
                Project.updated_at.label("updated_at"),
                full_name(manager).label("manager_name"),
                Project.client_name.label("client_name"),
                Project.budget.label("budget"),
                Project.project_type.label("project_type"),
                func.count(Task.id).label("total_tasks"),
                _count_when(Task.status == TaskStatus.COMPLETED).label("completed_tasks"),
                _count_when(Task.status == TaskStatus.IN_PROGRESS).label("in_progress_tasks"),
                _count_when(Task.status.in_([TaskStatus.NEW, TaskStatus.TO_DO])).label("todo_tasks"),
                _count_when(Task.status == TaskStatus.REVIEW).label("review_tasks"),
                _count_when(Task.status == TaskStatus.ON_HOLD).label("on_hold_tasks"),
                _count_when(_overdue(today)).label("overdue_tasks"),
            )
            .select_from(Project)
            .outerjoin(manager, manager.id == Project.manager_id)
            .outerjoin(Task, Task.project_id == Project.id)
        )
        stmt = (
            builder.apply(stmt)
            .group_by(*project_columns, manager.first_name, manager.last_name)
            .order_by(Project.start_date.desc(), Project.id.asc())
        )
        return self._rows(stmt)

    def team_members(self, project_id: int) -> list[dict[str, object]]:
        stmt = (
            select(
                User.id.label("user_id"),
                full_name(User).label("name"),
                User.role.label("role"),
                func.count(Task.id).label("assigned_tasks"),
                _count_when(Task.status == TaskStatus.COMPLETED).label("completed_tasks"),
            )
            .select_from(User)
            .join(TaskAssignment, TaskAssignment.user_id == User.id)
            .join(Task, Task.id == TaskAssignment.task_id)
            .where(Task.project_id == project_id)
            .group_by(User.id, User.first_name, User.last_name, User.role)
            .order_by(User.role.asc(), User.first_name.asc(), User.last_name.asc())
        )
        return self._rows(stmt)

    # ---------- Vendor performance ----------
    def vendor_performance_rows(
        self,
        vendor_builder: FilterBuilder,
        task_builder: FilterBuilder,
        *,
        today: date,
    ) -> list[dict[str, object]]:
        """One row per vendor.

        Projects, consultants and tasks are aggregated in separate subqueries;
        joining them directly would multiply task counts by project count.
        """

        task_stats = task_builder.apply(
            select(
                User.working_for.label("vendor_user_id"),
                func.count(Task.id).label("total_tasks"),
                _count_when(Task.status == TaskStatus.COMPLETED).label("completed_tasks"),
                _count_when(Task.status == TaskStatus.IN_PROGRESS).label("in_progress_tasks"),
                _count_when(_overdue(today)).label("overdue_tasks"),
                _avg_completion_days().label("avg_completion_days"),
            )
            .select_from(User)
            .join(TaskAssignment, TaskAssignment.user_id == User.id)
            .join(Task, Task.id == TaskAssignment.task_id)
            .where(User.role == UserRole.CONSULTANT, User.working_for.is_not(None))
        ).group_by(User.working_for).subquery("task_stats")

        consultant_counts = (
            select(
                User.working_for.label("vendor_user_id"),
                func.count(User.id).label("total_consultants"),
            )
            .where(User.role == UserRole.CONSULTANT, User.working_for.is_not(None))
            .group_by(User.working_for)
            .subquery("consultant_counts")
        )

        project_pattern = literal("%Vendor - ") + Vendor.company_name + literal("%")
        project_counts = (
            select(
                Vendor.id.label("vendor_id"),
                func.count(Project.id).label("total_projects"),
            )
            .select_from(Vendor)
            .join(Project, Project.project_type.like(project_pattern))
            .group_by(Vendor.id)
            .subquery("project_counts")
        )

        stmt = (
            select(
                Vendor.id.label("vendor_id"),
                Vendor.user_id.label("vendor_user_id"),
                Vendor.company_name.label("company_name"),
                Vendor.contact_person.label("contact_person"),
                Vendor.contact_email.label("contact_email"),
                Vendor.contact_phone.label("contact_phone"),
                Vendor.service_type.label("service_type"),
                Vendor.contract_start_date.label("contract_start_date"),
                Vendor.contract_end_date.label("contract_end_date"),
                func.coalesce(project_counts.c.total_projects, 0).label("total_projects"),
                func.coalesce(consultant_counts.c.total_consultants, 0).label("total_consultants"),
                func.coalesce(task_stats.c.total_tasks, 0).label("total_tasks"),
                func.coalesce(task_stats.c.completed_tasks, 0).label("completed_tasks"),
                func.coalesce(task_stats.c.in_progress_tasks, 0).label("in_progress_tasks"),
                func.coalesce(task_stats.c.overdue_tasks, 0).label("overdue_tasks"),
                task_stats.c.avg_completion_days.label("avg_completion_days"),
            )
            .select_from(Vendor)
            .outerjoin(project_counts, project_counts.c.vendor_id == Vendor.id)
            .outerjoin(consultant_counts, consultant_counts.c.vendor_user_id == Vendor.user_id)
            .outerjoin(task_stats, task_stats.c.vendor_user_id == Vendor.user_id)
        )
        stmt = vendor_builder.apply(stmt).order_by(Vendor.company_name.asc(), Vendor.id.asc())
        return self._rows(stmt)

    def consultant_rollups(
        self,
        vendor_user_id: int,
        task_builder: FilterBuilder,
        *,
        today: date,
    ) -> list[dict[str, object]]:
        """Every consultant of the vendor, including those without tasks."""

        task_join = Task.id == TaskAssignment.task_id
        task_filter = task_builder.clause()
        if task_filter is not None:
            task_join = and_(task_join, task_filter)

        stmt = (
            select(
                User.id.label("user_id"),
                full_name(User).label("user_name"),
                ConsultantProfile.specialization.label("specialization"),
                ConsultantProfile.hourly_rate.label("hourly_rate"),
                func.count(Task.id).label("total_tasks"),
                _count_when(Task.status == TaskStatus.COMPLETED).label("completed_tasks"),
                _count_when(Task.status == TaskStatus.IN_PROGRESS).label("in_progress_tasks"),
                _count_when(_overdue(today)).label("overdue_tasks"),
            )
            .select_from(User)
            .outerjoin(ConsultantProfile, ConsultantProfile.user_id == User.id)
            .outerjoin(TaskAssignment, TaskAssignment.user_id == User.id)
            .outerjoin(Task, task_join)
            .where(User.role == UserRole.CONSULTANT, User.working_for == vendor_user_id)
            .group_by(
                User.id,
                User.first_name,
                User.last_name,
                ConsultantProfile.specialization,
                ConsultantProfile.hourly_rate,
            )
            .order_by(User.first_name.asc(), User.last_name.asc(), User.id.asc())
        )
        return self._rows(stmt)

    def project_rollups(self, project_type_pattern: str) -> list[dict[str, object]]:
        stmt = (
            select(
                Project.id.label("project_id"),
                Project.name.label("project_name"),
                Project.status.label("status"),
                Project.start_date.label("start_date"),
                Project.end_date.label("end_date"),
                func.count(Task.id).label("total_tasks"),
                _count_when(Task.status == TaskStatus.COMPLETED).label("completed_tasks"),
            )
            .select_from(Project)
            .outerjoin(Task, Task.project_id == Project.id)
            .where(Project.project_type.like(project_type_pattern))
            .group_by(Project.id, Project.name, Project.status, Project.start_date, Project.end_date)
            .order_by(Project.start_date.desc(), Project.id.asc())
        )
        return self._rows(stmt)

    # ---------- User logs ----------
    def user_log_rows(self, builder: FilterBuilder) -> list[dict[str, object]]:
        stmt = (
            select(
                UserLog.id.label("log_id"),
                User.id.label("user_id"),
                full_name(User).label("user_name"),
                User.role.label("role"),
                UserLog.action.label("action"),
                UserLog.description.label("description"),
                UserLog.created_at.label("created_at"),
                UserLog.ip_address.label("ip_address"),
            )
            .select_from(UserLog)
            .join(User, User.id == UserLog.user_id)
        )
        stmt = builder.apply(stmt).order_by(UserLog.created_at.desc(), UserLog.id.desc())
        return self._rows(stmt)
