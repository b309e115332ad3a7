"""Repository helpers for users, vendors, projects and tasks."""

from __future__ import annotations

from datetime import date

from sqlalchemy import and_, case, delete, func, select
from sqlalchemy.orm import Session

from app.models.entities import (
    DailyUpdate,
    Project,
    ProjectLog,
    ProjectTeamMember,
    Task,
    TaskAssignment,
    TaskComment,
    TaskLog,
    TaskStatus,
    TaskTimeEntry,
    User,
    UserLog,
    UserRole,
    UserStatus,
    Vendor,
)


def vendor_project_pattern(company_name: str) -> str:
    """LIKE pattern identifying projects owned by a vendor company."""

    return f"%Vendor - {company_name}%"


class WorkRepository:
    """Persistence operations used by directory and work services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Users ----------
    def get_user(self, user_id: int) -> User | None:
        return self.db.scalar(select(User).where(User.id == user_id))

    def get_user_by_email(self, email: str) -> User | None:
        return self.db.scalar(select(User).where(User.email == email))

    def list_users(self, *, role: UserRole | None = None, status: UserStatus | None = None) -> list[User]:
        stmt = select(User)
        if role is not None:
            stmt = stmt.where(User.role == role)
        if status is not None:
            stmt = stmt.where(User.status == status)
        return self.db.scalars(stmt.order_by(User.first_name.asc(), User.last_name.asc())).all()

    def add_user(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()
        return user

    # ---------- Vendors ----------
    def get_vendor(self, vendor_id: int) -> Vendor | None:
        return self.db.scalar(select(Vendor).where(Vendor.id == vendor_id))

    def get_vendor_by_user_id(self, user_id: int) -> Vendor | None:
        return self.db.scalar(select(Vendor).where(Vendor.user_id == user_id))

    def list_vendors(self) -> list[Vendor]:
        return self.db.scalars(select(Vendor).order_by(Vendor.company_name.asc())).all()

    def add_vendor(self, vendor: Vendor) -> Vendor:
        self.db.add(vendor)
        self.db.flush()
        return vendor

    def delete_vendor(self, vendor: Vendor) -> None:
        self.db.delete(vendor)
        self.db.flush()

    def list_consultants(self, vendor_user_id: int) -> list[User]:
        return self.db.scalars(
            select(User)
            .where(and_(User.role == UserRole.CONSULTANT, User.working_for == vendor_user_id))
            .order_by(User.first_name.asc(), User.last_name.asc())
        ).all()

    def list_consultant_ids(self, vendor_user_id: int) -> list[int]:
        return self.db.scalars(
            select(User.id)
            .where(and_(User.role == UserRole.CONSULTANT, User.working_for == vendor_user_id))
            .order_by(User.id.asc())
        ).all()

    def vendor_task_counts(self, vendor_user_id: int, *, today: date) -> dict[str, int]:
        row = self.db.execute(
            select(
                func.count(Task.id).label("total"),
                func.sum(case((Task.status == TaskStatus.COMPLETED, 1), else_=0)).label("completed"),
                func.sum(case((Task.status == TaskStatus.IN_PROGRESS, 1), else_=0)).label("in_progress"),
                func.sum(
                    case((and_(Task.due_date < today, Task.status != TaskStatus.COMPLETED), 1), else_=0)
                ).label("overdue"),
            )
            .select_from(Task)
            .join(TaskAssignment, TaskAssignment.task_id == Task.id)
            .join(User, User.id == TaskAssignment.user_id)
            .where(User.working_for == vendor_user_id)
        ).one()
        return {
            "total": int(row.total or 0),
            "completed": int(row.completed or 0),
            "in_progress": int(row.in_progress or 0),
            "overdue": int(row.overdue or 0),
        }

    # ---------- Projects ----------
    def get_project(self, project_id: int) -> Project | None:
        return self.db.scalar(select(Project).where(Project.id == project_id))

    def list_projects(self, *, project_type_pattern: str | None = None) -> list[Project]:
        stmt = select(Project)
        if project_type_pattern is not None:
            stmt = stmt.where(Project.project_type.like(project_type_pattern))
        return self.db.scalars(stmt.order_by(Project.name.asc(), Project.id.asc())).all()

    def project_matches_pattern(self, project_id: int, pattern: str) -> bool:
        found = self.db.scalar(
            select(func.count(Project.id)).where(and_(Project.id == project_id, Project.project_type.like(pattern)))
        )
        return bool(found)

    def add_project(self, project: Project) -> Project:
        self.db.add(project)
        self.db.flush()
        return project

    def delete_project(self, project: Project) -> None:
        """Remove a project with its tasks, team and project log rows."""

        for task_id in self.db.scalars(select(Task.id).where(Task.project_id == project.id)).all():
            self._delete_task_children(task_id)
        self.db.execute(delete(Task).where(Task.project_id == project.id))
        self.db.execute(delete(ProjectTeamMember).where(ProjectTeamMember.project_id == project.id))
        self.db.execute(delete(ProjectLog).where(ProjectLog.project_id == project.id))
        self.db.delete(project)
        self.db.flush()

    # ---------- Project team ----------
    def get_team_member(self, project_id: int, user_id: int) -> ProjectTeamMember | None:
        return self.db.scalar(
            select(ProjectTeamMember).where(
                and_(ProjectTeamMember.project_id == project_id, ProjectTeamMember.user_id == user_id)
            )
        )

    def list_team_members(self, project_id: int) -> list[tuple[ProjectTeamMember, User]]:
        return self.db.execute(
            select(ProjectTeamMember, User)
            .join(User, User.id == ProjectTeamMember.user_id)
            .where(ProjectTeamMember.project_id == project_id)
            .order_by(ProjectTeamMember.joined_at.asc(), ProjectTeamMember.id.asc())
        ).all()

    def add_team_member(self, member: ProjectTeamMember) -> ProjectTeamMember:
        self.db.add(member)
        self.db.flush()
        return member

    def delete_team_member(self, member: ProjectTeamMember) -> None:
        self.db.delete(member)
        self.db.flush()

    # ---------- Tasks ----------
    def get_task(self, task_id: int) -> Task | None:
        return self.db.scalar(select(Task).where(Task.id == task_id))

    def list_tasks(self, project_id: int) -> list[Task]:
        return self.db.scalars(
            select(Task)
            .where(Task.project_id == project_id)
            .order_by(Task.due_date.asc(), Task.id.asc())
        ).all()

    def add_task(self, task: Task) -> Task:
        self.db.add(task)
        self.db.flush()
        return task

    def list_assignee_ids(self, task_id: int) -> list[int]:
        return self.db.scalars(
            select(TaskAssignment.user_id)
            .where(TaskAssignment.task_id == task_id)
            .order_by(TaskAssignment.user_id.asc())
        ).all()

    def get_assignment(self, task_id: int, user_id: int) -> TaskAssignment | None:
        return self.db.scalar(
            select(TaskAssignment).where(
                and_(TaskAssignment.task_id == task_id, TaskAssignment.user_id == user_id)
            )
        )

    def add_assignment(self, assignment: TaskAssignment) -> TaskAssignment:
        self.db.add(assignment)
        self.db.flush()
        return assignment

    def _delete_task_children(self, task_id: int) -> None:
        for model in (TaskLog, DailyUpdate, TaskComment, TaskAssignment, TaskTimeEntry):
            self.db.execute(delete(model).where(model.task_id == task_id))

    def delete_task(self, task: Task) -> None:
        self._delete_task_children(task.id)
        self.db.delete(task)
        self.db.flush()

    def task_status_counts(
        self, *, project_id: int | None = None, project_type_pattern: str | None = None
    ) -> list[tuple[TaskStatus, int]]:
        count = func.count(Task.id).label("count")
        stmt = select(Task.status, count).select_from(Task)
        if project_id is not None:
            stmt = stmt.where(Task.project_id == project_id)
        if project_type_pattern is not None:
            stmt = stmt.join(Project, Project.id == Task.project_id).where(
                Project.project_type.like(project_type_pattern)
            )
        return self.db.execute(stmt.group_by(Task.status).order_by(count.desc(), Task.status.asc())).all()

    def list_open_tasks_due(
        self,
        *,
        due_before: date | None = None,
        due_from: date | None = None,
        due_through: date | None = None,
        limit: int,
        project_type_pattern: str | None = None,
    ) -> list[Task]:
        """Open tasks (not completed or cancelled) by due date, soonest first."""

        stmt = select(Task).where(Task.status.notin_([TaskStatus.COMPLETED, TaskStatus.CANCELLED]))
        if due_before is not None:
            stmt = stmt.where(Task.due_date < due_before)
        if due_from is not None:
            stmt = stmt.where(Task.due_date >= due_from)
        if due_through is not None:
            stmt = stmt.where(Task.due_date <= due_through)
        if project_type_pattern is not None:
            stmt = stmt.join(Project, Project.id == Task.project_id).where(
                Project.project_type.like(project_type_pattern)
            )
        return self.db.scalars(stmt.order_by(Task.due_date.asc(), Task.id.asc()).limit(limit)).all()

    # ---------- Time entries ----------
    def list_time_entries(self, task_id: int) -> list[tuple[TaskTimeEntry, User]]:
        return self.db.execute(
            select(TaskTimeEntry, User)
            .join(User, User.id == TaskTimeEntry.user_id)
            .where(TaskTimeEntry.task_id == task_id)
            .order_by(TaskTimeEntry.work_date.desc(), TaskTimeEntry.id.desc())
        ).all()

    def add_time_entry(self, entry: TaskTimeEntry) -> TaskTimeEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    # ---------- Daily updates ----------
    def get_daily_update(self, *, task_id: int, user_id: int, update_date: date) -> DailyUpdate | None:
        return self.db.scalar(
            select(DailyUpdate).where(
                and_(
                    DailyUpdate.task_id == task_id,
                    DailyUpdate.user_id == user_id,
                    DailyUpdate.update_date == update_date,
                )
            )
        )

    def list_daily_updates(self, task_id: int) -> list[DailyUpdate]:
        return self.db.scalars(
            select(DailyUpdate)
            .where(DailyUpdate.task_id == task_id)
            .order_by(DailyUpdate.update_date.desc(), DailyUpdate.id.desc())
        ).all()

    def add_daily_update(self, update: DailyUpdate) -> DailyUpdate:
        self.db.add(update)
        self.db.flush()
        return update

    # ---------- Comments ----------
    def get_comment(self, comment_id: int) -> TaskComment | None:
        return self.db.scalar(select(TaskComment).where(TaskComment.id == comment_id))

    def list_comments(self, task_id: int) -> list[TaskComment]:
        return self.db.scalars(
            select(TaskComment)
            .where(TaskComment.task_id == task_id)
            .order_by(TaskComment.created_at.asc(), TaskComment.id.asc())
        ).all()

    def add_comment(self, comment: TaskComment) -> TaskComment:
        self.db.add(comment)
        self.db.flush()
        return comment

    # ---------- Audit rows ----------
    def add_user_log(self, row: UserLog) -> UserLog:
        self.db.add(row)
        self.db.flush()
        return row

    def add_project_log(self, row: ProjectLog) -> ProjectLog:
        self.db.add(row)
        self.db.flush()
        return row

    def add_task_log(self, row: TaskLog) -> TaskLog:
        self.db.add(row)
        self.db.flush()
        return row
