"""Application service for projects, teams, tasks, assignments, daily updates, comments and time entries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.models.entities import (
    DailyUpdate,
    Priority,
    Project,
    ProjectStatus,
    ProjectTeamMember,
    ReplyStatus,
    Task,
    TaskAssignment,
    TaskComment,
    TaskStatus,
    TaskTimeEntry,
    User,
    UserRole,
    UserStatus,
    utcnow,
)
from app.repositories.work_repository import WorkRepository
from app.services.audit_service import AuditTrail
from app.services.scope import resolve_consultant_scope

PROJECT_EDIT_ROLES = {UserRole.ADMIN, UserRole.MANAGER}
TASK_EDIT_ROLES = {UserRole.ADMIN, UserRole.MANAGER}


@dataclass(slots=True)
class ProjectCreateData:
    name: str
    description: str | None = None
    status: ProjectStatus = ProjectStatus.PLANNING
    priority: Priority = Priority.MEDIUM
    start_date: date | None = None
    end_date: date | None = None
    manager_id: int | None = None
    client_name: str | None = None
    budget: Decimal | None = None
    project_type: str | None = None


@dataclass(slots=True)
class ProjectUpdateData:
    name: str | None = None
    description: str | None = None
    status: ProjectStatus | None = None
    priority: Priority | None = None
    start_date: date | None = None
    end_date: date | None = None
    manager_id: int | None = None
    client_name: str | None = None
    budget: Decimal | None = None
    project_type: str | None = None


@dataclass(slots=True)
class TaskCreateData:
    title: str
    description: str | None = None
    status: TaskStatus = TaskStatus.NEW
    priority: Priority = Priority.MEDIUM
    due_date: date | None = None
    estimated_hours: Decimal | None = None
    assignee_ids: tuple[int, ...] = ()


@dataclass(slots=True)
class TaskUpdateData:
    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: Priority | None = None
    due_date: date | None = None
    estimated_hours: Decimal | None = None
    actual_hours: Decimal | None = None


@dataclass(slots=True)
class DailyUpdateCreateData:
    hours_spent: Decimal
    work_done: str
    update_date: date | None = None
    challenges: str | None = None
    task_status: TaskStatus | None = None


@dataclass(slots=True)
class TimeEntryCreateData:
    hours: int = 0
    minutes: int = 0
    description: str | None = None
    work_date: date | None = None


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _number(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


class WorkService:
    def __init__(self, db: Session, *, today: date | None = None) -> None:
        self.db = db
        self.repo = WorkRepository(db)
        self.audit = AuditTrail(db)
        self.today = today

    def _today(self) -> date:
        return self.today or date.today()

    # ---------- Serialization ----------
    @staticmethod
    def serialize_project(project: Project) -> dict[str, object]:
        return {
            "id": project.id,
            "name": project.name,
            "description": project.description,
            "status": project.status.value,
            "priority": project.priority.value,
            "start_date": _iso(project.start_date),
            "end_date": _iso(project.end_date),
            "manager_id": project.manager_id,
            "client_name": project.client_name,
            "budget": _number(project.budget),
            "project_type": project.project_type,
            "created_at": project.created_at.isoformat(),
            "updated_at": project.updated_at.isoformat(),
        }

    def serialize_task(self, task: Task) -> dict[str, object]:
        return {
            "id": task.id,
            "project_id": task.project_id,
            "title": task.title,
            "description": task.description,
            "status": task.status.value,
            "priority": task.priority.value,
            "due_date": _iso(task.due_date),
            "estimated_hours": _number(task.estimated_hours),
            "actual_hours": _number(task.actual_hours),
            "created_by": task.created_by,
            "assignee_ids": self.repo.list_assignee_ids(task.id),
            "created_at": task.created_at.isoformat(),
            "updated_at": task.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_daily_update(update: DailyUpdate) -> dict[str, object]:
        return {
            "id": update.id,
            "task_id": update.task_id,
            "user_id": update.user_id,
            "update_date": update.update_date.isoformat(),
            "hours_spent": float(update.hours_spent),
            "work_done": update.work_done,
            "challenges": update.challenges,
            "task_status": update.task_status.value,
            "created_at": update.created_at.isoformat(),
        }

    @staticmethod
    def serialize_comment(comment: TaskComment) -> dict[str, object]:
        return {
            "id": comment.id,
            "task_id": comment.task_id,
            "user_id": comment.user_id,
            "parent_id": comment.parent_id,
            "content": comment.content,
            "reply_status": comment.reply_status.value,
            "created_at": comment.created_at.isoformat(),
        }

    @staticmethod
    def serialize_time_entry(entry: TaskTimeEntry, user_name: str) -> dict[str, object]:
        return {
            "id": entry.id,
            "task_id": entry.task_id,
            "user_id": entry.user_id,
            "user_name": user_name,
            "hours": entry.hours,
            "minutes": entry.minutes,
            "total_hours": float(entry.total_hours),
            "description": entry.description,
            "work_date": entry.work_date.isoformat(),
            "created_at": entry.created_at.isoformat(),
        }

    @staticmethod
    def serialize_team_member(member: ProjectTeamMember, user: User) -> dict[str, object]:
        return {
            "user_id": member.user_id,
            "project_role": member.role,
            "joined_at": member.joined_at.isoformat(),
            "first_name": user.first_name,
            "last_name": user.last_name,
            "email": user.email,
            "department": user.department,
            "position": user.position,
        }

    # ---------- Guards ----------
    @staticmethod
    def _ensure_role(context: RequestUserContext, allowed_roles: set[UserRole], detail: str) -> None:
        if context.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

    def _ensure_project_access(self, *, context: RequestUserContext, project_id: int) -> Project:
        project = self.repo.get_project(project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")

        if context.is_vendor:
            scope = resolve_consultant_scope(self.repo, context)
            if not self.repo.project_matches_pattern(project.id, scope.project_type_pattern):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="You do not have permission to access this project.",
                )
        return project

    def _ensure_task_access(self, *, context: RequestUserContext, task_id: int) -> Task:
        task = self.repo.get_task(task_id)
        if task is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")
        self._ensure_project_access(context=context, project_id=task.project_id)
        return task

    def _ensure_project_manager(self, *, context: RequestUserContext, project_id: int, detail: str) -> Project:
        """Admins, or the manager the project is assigned to."""

        project = self._ensure_project_access(context=context, project_id=project_id)
        if context.role != UserRole.ADMIN and project.manager_id != context.user_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return project

    def _vendor_pattern(self, context: RequestUserContext) -> str | None:
        if not context.is_vendor:
            return None
        return resolve_consultant_scope(self.repo, context).project_type_pattern

    def _validate_manager(self, manager_id: int | None) -> None:
        if manager_id is None:
            return
        manager = self.repo.get_user(manager_id)
        if manager is None or manager.role not in PROJECT_EDIT_ROLES:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="manager_id must reference an existing admin or manager.",
            )

    def _validate_assignee(self, context: RequestUserContext, user_id: int) -> None:
        user = self.repo.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        if user.status != UserStatus.ACTIVE:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Tasks can only be assigned to active users.",
            )
        if context.is_vendor and user.working_for != context.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Vendors can only assign their own consultants.",
            )

    # ---------- Projects ----------
    def list_projects(self, *, context: RequestUserContext) -> list[Project]:
        return self.repo.list_projects(project_type_pattern=self._vendor_pattern(context))

    def get_project(self, *, context: RequestUserContext, project_id: int) -> Project:
        return self._ensure_project_access(context=context, project_id=project_id)

    def create_project(self, *, context: RequestUserContext, data: ProjectCreateData) -> Project:
        self._ensure_role(context, PROJECT_EDIT_ROLES, "Only admins and managers can create projects.")
        if data.start_date and data.end_date and data.end_date < data.start_date:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="end_date must be greater than or equal to start_date.",
            )
        manager_id = data.manager_id if data.manager_id is not None else context.user_id
        self._validate_manager(manager_id)

        now = utcnow()
        project = self.repo.add_project(
            Project(
                name=data.name.strip(),
                description=data.description.strip() if data.description else None,
                status=data.status,
                priority=data.priority,
                start_date=data.start_date,
                end_date=data.end_date,
                manager_id=manager_id,
                client_name=data.client_name,
                budget=data.budget,
                project_type=data.project_type,
                created_at=now,
                updated_at=now,
            )
        )
        self.audit.add_project_entry(
            context,
            project_id=project.id,
            action="create",
            description=f'Project "{project.name}" created',
        )
        self.db.commit()
        self.db.refresh(project)
        return project

    def update_project(self, *, context: RequestUserContext, project_id: int, data: ProjectUpdateData) -> Project:
        self._ensure_role(context, PROJECT_EDIT_ROLES, "Only admins and managers can update projects.")
        project = self._ensure_project_access(context=context, project_id=project_id)

        target_start = data.start_date if data.start_date is not None else project.start_date
        target_end = data.end_date if data.end_date is not None else project.end_date
        if target_start and target_end and target_end < target_start:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="end_date must be greater than or equal to start_date.",
            )
        if data.manager_id is not None:
            self._validate_manager(data.manager_id)
            project.manager_id = data.manager_id

        previous_status = project.status
        if data.name is not None:
            project.name = data.name.strip()
        if data.description is not None:
            project.description = data.description.strip() if data.description else None
        if data.status is not None:
            project.status = data.status
        if data.priority is not None:
            project.priority = data.priority
        if data.client_name is not None:
            project.client_name = data.client_name
        if data.budget is not None:
            project.budget = data.budget
        if data.project_type is not None:
            project.project_type = data.project_type
        project.start_date = target_start
        project.end_date = target_end
        project.updated_at = utcnow()

        description = f'Project "{project.name}" updated'
        if project.status != previous_status:
            description += f" (status {previous_status.value} -> {project.status.value})"
        self.audit.add_project_entry(context, project_id=project.id, action="update", description=description)
        self.db.commit()
        self.db.refresh(project)
        return project

    def delete_project(self, *, context: RequestUserContext, project_id: int) -> None:
        """Delete a project with everything hanging off it.

        The audit row goes to ``user_logs`` because the project's own log rows
        are removed together with it.
        """

        project = self._ensure_project_manager(
            context=context,
            project_id=project_id,
            detail="Only admins and the project manager can delete this project.",
        )
        self.audit.add_user_entry(
            context,
            action="Deleted project",
            description=f'Deleted project "{project.name}" (ID: {project.id})',
        )
        self.repo.delete_project(project)
        self.db.commit()

    # ---------- Project team ----------
    def list_team_members(
        self, *, context: RequestUserContext, project_id: int
    ) -> list[tuple[ProjectTeamMember, User]]:
        project = self._ensure_project_access(context=context, project_id=project_id)
        return self.repo.list_team_members(project.id)

    def add_team_member(
        self,
        *,
        context: RequestUserContext,
        project_id: int,
        user_id: int,
        role: str = "member",
    ) -> tuple[ProjectTeamMember, User]:
        project = self._ensure_project_manager(
            context=context,
            project_id=project_id,
            detail="Only admins and the project manager can change the project team.",
        )
        user = self.repo.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        if self.repo.get_team_member(project.id, user.id) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User is already a member of this project team.",
            )

        member = self.repo.add_team_member(
            ProjectTeamMember(project_id=project.id, user_id=user.id, role=role.strip(), joined_at=utcnow())
        )
        self.audit.add_project_entry(
            context,
            project_id=project.id,
            action="add_team_member",
            description=f"Team member ({user.id}) added to project",
        )
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User is already a member of this project team.",
            ) from exc
        self.db.refresh(member)
        return member, user

    def remove_team_member(self, *, context: RequestUserContext, project_id: int, user_id: int) -> None:
        project = self._ensure_project_manager(
            context=context,
            project_id=project_id,
            detail="Only admins and the project manager can change the project team.",
        )
        member = self.repo.get_team_member(project.id, user_id)
        if member is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team member not found.")

        self.repo.delete_team_member(member)
        self.audit.add_project_entry(
            context,
            project_id=project.id,
            action="remove_team_member",
            description=f"Team member ({user_id}) removed from project",
        )
        self.db.commit()

    # ---------- Tasks ----------
    def list_tasks(self, *, context: RequestUserContext, project_id: int) -> list[Task]:
        self._ensure_project_access(context=context, project_id=project_id)
        return self.repo.list_tasks(project_id)

    def create_task(self, *, context: RequestUserContext, project_id: int, data: TaskCreateData) -> Task:
        self._ensure_role(context, TASK_EDIT_ROLES, "Only admins and managers can create tasks.")
        project = self._ensure_project_access(context=context, project_id=project_id)
        for user_id in data.assignee_ids:
            self._validate_assignee(context, user_id)

        now = utcnow()
        task = self.repo.add_task(
            Task(
                project_id=project.id,
                title=data.title.strip(),
                description=data.description,
                status=data.status,
                priority=data.priority,
                due_date=data.due_date,
                estimated_hours=data.estimated_hours,
                created_by=context.user_id,
                created_at=now,
                updated_at=now,
            )
        )
        for user_id in dict.fromkeys(data.assignee_ids):
            self.repo.add_assignment(
                TaskAssignment(task_id=task.id, user_id=user_id, assigned_by=context.user_id, assigned_at=now)
            )
        self.audit.add_task_entry(context, task_id=task.id, action="create", description=f'Task "{task.title}" created')
        self.db.commit()
        self.db.refresh(task)
        return task

    def update_task(self, *, context: RequestUserContext, task_id: int, data: TaskUpdateData) -> Task:
        task = self._ensure_task_access(context=context, task_id=task_id)
        can_edit = (
            context.role in TASK_EDIT_ROLES
            or task.created_by == context.user_id
            or context.user_id in self.repo.list_assignee_ids(task.id)
        )
        if not can_edit:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to update this task.",
            )

        previous_status = task.status
        if data.title is not None:
            task.title = data.title.strip()
        if data.description is not None:
            task.description = data.description
        if data.status is not None:
            task.status = data.status
        if data.priority is not None:
            task.priority = data.priority
        if data.due_date is not None:
            task.due_date = data.due_date
        if data.estimated_hours is not None:
            task.estimated_hours = data.estimated_hours
        if data.actual_hours is not None:
            task.actual_hours = data.actual_hours
        task.updated_at = utcnow()

        description = f'Task "{task.title}" updated'
        if task.status != previous_status:
            description += f" (status {previous_status.value} -> {task.status.value})"
        self.audit.add_task_entry(context, task_id=task.id, action="update", description=description)
        self.db.commit()
        self.db.refresh(task)
        return task

    def assign_task(self, *, context: RequestUserContext, task_id: int, user_id: int) -> TaskAssignment:
        self._ensure_role(
            context,
            {UserRole.ADMIN, UserRole.MANAGER, UserRole.VENDOR},
            "You do not have permission to assign this task.",
        )
        task = self._ensure_task_access(context=context, task_id=task_id)
        self._validate_assignee(context, user_id)
        if self.repo.get_assignment(task.id, user_id) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User is already assigned to this task.")

        assignment = self.repo.add_assignment(
            TaskAssignment(task_id=task.id, user_id=user_id, assigned_by=context.user_id, assigned_at=utcnow())
        )
        self.audit.add_task_entry(context, task_id=task.id, action="assign", description=f"Assigned user {user_id}")
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User is already assigned to this task.",
            ) from exc
        return assignment

    def delete_task(self, *, context: RequestUserContext, task_id: int) -> None:
        task = self._ensure_task_access(context=context, task_id=task_id)
        if context.role not in TASK_EDIT_ROLES and task.created_by != context.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to delete this task.",
            )

        self.audit.add_user_entry(
            context,
            action="Deleted task",
            description=f'Deleted task "{task.title}" (ID: {task.id}) from project {task.project_id}',
        )
        self.repo.delete_task(task)
        self.db.commit()

    def task_stats(self, *, context: RequestUserContext, project_id: int | None = None) -> list[dict[str, object]]:
        if project_id is not None:
            self._ensure_project_access(context=context, project_id=project_id)
        rows = self.repo.task_status_counts(
            project_id=project_id,
            project_type_pattern=self._vendor_pattern(context),
        )
        return [{"status": task_status.value, "count": int(count)} for task_status, count in rows]

    def overdue_tasks(self, *, context: RequestUserContext, limit: int = 10) -> list[Task]:
        return self.repo.list_open_tasks_due(
            due_before=self._today(),
            limit=limit,
            project_type_pattern=self._vendor_pattern(context),
        )

    def upcoming_tasks(self, *, context: RequestUserContext, days: int = 7, limit: int = 10) -> list[Task]:
        """Open tasks due between today and ``days`` from now, both ends included."""

        today = self._today()
        return self.repo.list_open_tasks_due(
            due_from=today,
            due_through=today + timedelta(days=days),
            limit=limit,
            project_type_pattern=self._vendor_pattern(context),
        )

    # ---------- Daily updates ----------
    def list_daily_updates(self, *, context: RequestUserContext, task_id: int) -> list[DailyUpdate]:
        task = self._ensure_task_access(context=context, task_id=task_id)
        return self.repo.list_daily_updates(task.id)

    def add_daily_update(self, *, context: RequestUserContext, task_id: int, data: DailyUpdateCreateData) -> DailyUpdate:
        task = self._ensure_task_access(context=context, task_id=task_id)
        if context.user_id not in self.repo.list_assignee_ids(task.id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only assignees can post daily updates for this task.",
            )

        update_date = data.update_date or self._today()
        if self.repo.get_daily_update(task_id=task.id, user_id=context.user_id, update_date=update_date):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A daily update for this task and date already exists.",
            )

        if data.task_status is not None and data.task_status != task.status:
            previous_status = task.status
            task.status = data.task_status
            task.updated_at = utcnow()
            self.audit.add_task_entry(
                context,
                task_id=task.id,
                action="status_change",
                description=f"Status {previous_status.value} -> {task.status.value} via daily update",
            )

        update = self.repo.add_daily_update(
            DailyUpdate(
                task_id=task.id,
                user_id=context.user_id,
                update_date=update_date,
                hours_spent=data.hours_spent,
                work_done=data.work_done.strip(),
                challenges=data.challenges,
                task_status=task.status,
            )
        )
        self.audit.add_task_entry(
            context,
            task_id=task.id,
            action="daily_update",
            description=f"Logged {data.hours_spent} hours for {update_date.isoformat()}",
        )
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A daily update for this task and date already exists.",
            ) from exc

        self.db.refresh(update)
        return update

    # ---------- Comments ----------
    def list_comments(self, *, context: RequestUserContext, task_id: int) -> list[TaskComment]:
        task = self._ensure_task_access(context=context, task_id=task_id)
        return self.repo.list_comments(task.id)

    def add_comment(
        self,
        *,
        context: RequestUserContext,
        task_id: int,
        content: str,
        parent_id: int | None = None,
    ) -> TaskComment:
        """Add a comment, or a reply when ``parent_id`` is set.

        A pending comment becomes ``replied`` only when someone other than its
        author replies. A comment that already has its reply cannot get another.
        """

        task = self._ensure_task_access(context=context, task_id=task_id)

        parent = None
        if parent_id is not None:
            parent = self.repo.get_comment(parent_id)
            if parent is None or parent.task_id != task.id:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found.")
            if parent.parent_id is not None:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="Replies cannot be nested.",
                )
            if parent.reply_status == ReplyStatus.REPLIED:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Comment already has a reply.")

        now = utcnow()
        comment = self.repo.add_comment(
            TaskComment(
                task_id=task.id,
                user_id=context.user_id,
                parent_id=parent.id if parent is not None else None,
                content=content.strip(),
                reply_status=ReplyStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
        )
        if parent is not None and parent.user_id != context.user_id:
            parent.reply_status = ReplyStatus.REPLIED
            parent.updated_at = now

        self.audit.add_task_entry(
            context,
            task_id=task.id,
            action="comment",
            description="Replied to a comment" if parent is not None else "Added a comment to task",
        )
        self.db.commit()
        self.db.refresh(comment)
        return comment

    # ---------- Time entries ----------
    def list_time_entries(self, *, context: RequestUserContext, task_id: int) -> list[tuple[TaskTimeEntry, User]]:
        task = self._ensure_task_access(context=context, task_id=task_id)
        return self.repo.list_time_entries(task.id)

    def track_time(self, *, context: RequestUserContext, task_id: int, data: TimeEntryCreateData) -> TaskTimeEntry:
        """Record time spent on a task and add it to the task's ``actual_hours``."""

        task = self._ensure_task_access(context=context, task_id=task_id)
        if context.role not in TASK_EDIT_ROLES and context.user_id not in self.repo.list_assignee_ids(task.id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only assignees can log time on this task.",
            )
        if data.hours == 0 and data.minutes == 0:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="A time entry must cover at least one minute.",
            )

        entry = self.repo.add_time_entry(
            TaskTimeEntry(
                task_id=task.id,
                user_id=context.user_id,
                hours=data.hours,
                minutes=data.minutes,
                description=data.description.strip() if data.description else None,
                work_date=data.work_date or self._today(),
                created_at=utcnow(),
            )
        )
        task.actual_hours = (task.actual_hours or Decimal("0")) + entry.total_hours
        task.updated_at = utcnow()
        self.audit.add_task_entry(
            context,
            task_id=task.id,
            action="time_track",
            description=f"Logged {data.hours} hours and {data.minutes} minutes on task",
        )
        self.db.commit()
        self.db.refresh(entry)
        return entry
