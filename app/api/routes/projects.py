"""Project, team, task, daily update, comment and time entry endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, get_current_user_context
from app.db.dependencies import get_db_session
from app.models.entities import Priority, ProjectStatus, TaskStatus
from app.services.work_service import (
    DailyUpdateCreateData,
    ProjectCreateData,
    ProjectUpdateData,
    TaskCreateData,
    TaskUpdateData,
    TimeEntryCreateData,
    WorkService,
)

router = APIRouter(tags=["projects"])


class ProjectCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    status: ProjectStatus = ProjectStatus.PLANNING
    priority: Priority = Priority.MEDIUM
    start_date: date | None = None
    end_date: date | None = None
    manager_id: int | None = Field(default=None, ge=1)
    client_name: str | None = Field(default=None, max_length=255)
    budget: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    project_type: str | None = Field(default=None, max_length=255)


class ProjectUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    status: ProjectStatus | None = None
    priority: Priority | None = None
    start_date: date | None = None
    end_date: date | None = None
    manager_id: int | None = Field(default=None, ge=1)
    client_name: str | None = Field(default=None, max_length=255)
    budget: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    project_type: str | None = Field(default=None, max_length=255)


class TaskCreatePayload(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    status: TaskStatus = TaskStatus.NEW
    priority: Priority = Priority.MEDIUM
    due_date: date | None = None
    estimated_hours: Decimal | None = Field(default=None, ge=0, max_digits=5, decimal_places=2)
    assignee_ids: list[int] = Field(default_factory=list)


class TaskUpdatePayload(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    status: TaskStatus | None = None
    priority: Priority | None = None
    due_date: date | None = None
    estimated_hours: Decimal | None = Field(default=None, ge=0, max_digits=5, decimal_places=2)
    actual_hours: Decimal | None = Field(default=None, ge=0, max_digits=5, decimal_places=2)


class AssignmentCreatePayload(BaseModel):
    user_id: int = Field(ge=1)


class DailyUpdateCreatePayload(BaseModel):
    hours_spent: Decimal = Field(gt=0, le=24, max_digits=5, decimal_places=2)
    work_done: str = Field(min_length=1, max_length=5000)
    update_date: date | None = None
    challenges: str | None = Field(default=None, max_length=5000)
    task_status: TaskStatus | None = None


class CommentCreatePayload(BaseModel):
    content: str = Field(min_length=1, max_length=5000)
    parent_id: int | None = Field(default=None, ge=1)


class TeamMemberCreatePayload(BaseModel):
    user_id: int = Field(ge=1)
    role: str = Field(default="member", min_length=1, max_length=50)


class TimeEntryCreatePayload(BaseModel):
    hours: int = Field(default=0, ge=0, le=24)
    minutes: int = Field(default=0, ge=0, lt=60)
    description: str | None = Field(default=None, max_length=5000)
    work_date: date | None = None


def _work_service(db: Session) -> WorkService:
    return WorkService(db)


# ---------- Projects ----------
@router.get("/projects")
def list_projects(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _work_service(db)
    return {"items": [service.serialize_project(project) for project in service.list_projects(context=context)]}


@router.post("/projects", status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _work_service(db)
    project = service.create_project(context=context, data=ProjectCreateData(**payload.model_dump()))
    return service.serialize_project(project)


@router.get("/projects/{project_id}")
def get_project(
    project_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _work_service(db)
    return service.serialize_project(service.get_project(context=context, project_id=project_id))


@router.patch("/projects/{project_id}")
def update_project(
    project_id: int,
    payload: ProjectUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _work_service(db)
    project = service.update_project(
        context=context,
        project_id=project_id,
        data=ProjectUpdateData(**payload.model_dump()),
    )
    return service.serialize_project(project)


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _work_service(db).delete_project(context=context, project_id=project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- Project team ----------
@router.get("/projects/{project_id}/team")
def list_project_team(
    project_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _work_service(db)
    members = service.list_team_members(context=context, project_id=project_id)
    return {"items": [service.serialize_team_member(member, user) for member, user in members]}


@router.post("/projects/{project_id}/team", status_code=status.HTTP_201_CREATED)
def add_project_team_member(
    project_id: int,
    payload: TeamMemberCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _work_service(db)
    member, user = service.add_team_member(
        context=context,
        project_id=project_id,
        user_id=payload.user_id,
        role=payload.role,
    )
    return service.serialize_team_member(member, user)


@router.delete("/projects/{project_id}/team/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_project_team_member(
    project_id: int,
    user_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _work_service(db).remove_team_member(context=context, project_id=project_id, user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- Tasks ----------
@router.get("/projects/{project_id}/tasks")
def list_project_tasks(
    project_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _work_service(db)
    tasks = service.list_tasks(context=context, project_id=project_id)
    return {"items": [service.serialize_task(task) for task in tasks]}


@router.post("/projects/{project_id}/tasks", status_code=status.HTTP_201_CREATED)
def create_project_task(
    project_id: int,
    payload: TaskCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _work_service(db)
    data = payload.model_dump()
    data["assignee_ids"] = tuple(payload.assignee_ids)
    task = service.create_task(context=context, project_id=project_id, data=TaskCreateData(**data))
    return service.serialize_task(task)


@router.get("/tasks/stats")
def task_stats(
    project_id: int | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    return {"items": _work_service(db).task_stats(context=context, project_id=project_id)}


@router.get("/tasks/overdue")
def overdue_tasks(
    limit: int = Query(default=10, ge=1, le=100),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _work_service(db)
    return {"items": [service.serialize_task(task) for task in service.overdue_tasks(context=context, limit=limit)]}


@router.get("/tasks/upcoming")
def upcoming_tasks(
    days: int = Query(default=7, ge=0, le=365),
    limit: int = Query(default=10, ge=1, le=100),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _work_service(db)
    tasks = service.upcoming_tasks(context=context, days=days, limit=limit)
    return {"items": [service.serialize_task(task) for task in tasks]}


@router.patch("/tasks/{task_id}")
def update_task(
    task_id: int,
    payload: TaskUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _work_service(db)
    task = service.update_task(context=context, task_id=task_id, data=TaskUpdateData(**payload.model_dump()))
    return service.serialize_task(task)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _work_service(db).delete_task(context=context, task_id=task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/tasks/{task_id}/assignments", status_code=status.HTTP_201_CREATED)
def create_task_assignment(
    task_id: int,
    payload: AssignmentCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    assignment = _work_service(db).assign_task(context=context, task_id=task_id, user_id=payload.user_id)
    return {"task_id": assignment.task_id, "user_id": assignment.user_id, "assigned_by": assignment.assigned_by}


# ---------- Daily updates ----------
@router.get("/tasks/{task_id}/daily-updates")
def list_task_daily_updates(
    task_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _work_service(db)
    updates = service.list_daily_updates(context=context, task_id=task_id)
    return {"items": [service.serialize_daily_update(update) for update in updates]}


@router.post("/tasks/{task_id}/daily-updates", status_code=status.HTTP_201_CREATED)
def create_task_daily_update(
    task_id: int,
    payload: DailyUpdateCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _work_service(db)
    update = service.add_daily_update(
        context=context,
        task_id=task_id,
        data=DailyUpdateCreateData(**payload.model_dump()),
    )
    return service.serialize_daily_update(update)


# ---------- Comments ----------
@router.get("/tasks/{task_id}/comments")
def list_task_comments(
    task_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _work_service(db)
    comments = service.list_comments(context=context, task_id=task_id)
    return {"items": [service.serialize_comment(comment) for comment in comments]}


@router.post("/tasks/{task_id}/comments", status_code=status.HTTP_201_CREATED)
def create_task_comment(
    task_id: int,
    payload: CommentCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _work_service(db)
    comment = service.add_comment(
        context=context,
        task_id=task_id,
        content=payload.content,
        parent_id=payload.parent_id,
    )
    return service.serialize_comment(comment)


# ---------- Time entries ----------
@router.get("/tasks/{task_id}/time")
def list_task_time_entries(
    task_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _work_service(db)
    entries = service.list_time_entries(context=context, task_id=task_id)
    return {"items": [service.serialize_time_entry(entry, user.full_name) for entry, user in entries]}


@router.post("/tasks/{task_id}/time", status_code=status.HTTP_201_CREATED)
def track_task_time(
    task_id: int,
    payload: TimeEntryCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _work_service(db)
    entry = service.track_time(context=context, task_id=task_id, data=TimeEntryCreateData(**payload.model_dump()))
    return service.serialize_time_entry(entry, context.display_name)
