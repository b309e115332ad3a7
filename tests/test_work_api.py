from __future__ import annotations

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.entities import (
    DailyUpdate,
    ProjectLog,
    ProjectTeamMember,
    Task,
    TaskAssignment,
    TaskComment,
    TaskLog,
    TaskStatus,
    TaskTimeEntry,
    UserLog,
    UserRole,
)
from app.repositories.work_repository import WorkRepository
from conftest import Seeder, auth_headers


def _create_project(client: TestClient, headers: dict[str, str], **overrides: object) -> dict[str, object]:
    payload = {"name": "Apollo", "start_date": "2026-01-01", "end_date": "2026-06-30", "budget": "15000.00"}
    payload.update(overrides)
    response = client.post("/api/v1/projects", headers=headers, json=payload)
    assert response.status_code == 201
    return response.json()


def test_project_lifecycle_writes_project_logs(client: TestClient, seed: Seeder, db_session: Session) -> None:
    manager = seed.user(UserRole.MANAGER)
    headers = auth_headers(manager.id)

    project = _create_project(client, headers)
    assert project["manager_id"] == manager.id
    assert project["budget"] == 15000.0

    updated = client.patch(f"/api/v1/projects/{project['id']}", headers=headers, json={"status": "in_progress"})
    assert updated.status_code == 200
    assert updated.json()["status"] == "in_progress"

    logs = db_session.scalars(select(ProjectLog).order_by(ProjectLog.id)).all()
    assert [log.action for log in logs] == ["create", "update"]
    assert logs[1].description == 'Project "Apollo" updated (status planning -> in_progress)'


def test_project_dates_are_validated(client: TestClient, seed: Seeder) -> None:
    manager = seed.user(UserRole.MANAGER)

    response = client.post(
        "/api/v1/projects",
        headers=auth_headers(manager.id),
        json={"name": "Backwards", "start_date": "2026-06-01", "end_date": "2026-01-01"},
    )

    assert response.status_code == 422


def test_employee_cannot_create_projects(client: TestClient, seed: Seeder) -> None:
    employee = seed.user(UserRole.EMPLOYEE)

    response = client.post("/api/v1/projects", headers=auth_headers(employee.id), json={"name": "Side quest"})

    assert response.status_code == 403


def test_vendor_sees_only_owned_projects(client: TestClient, seed: Seeder) -> None:
    vendor_user = seed.user(UserRole.VENDOR)
    seed.vendor(vendor_user, company_name="Acme")
    owned = seed.project(name="Acme rollout", project_type="Vendor - Acme")
    other = seed.project(name="Internal", project_type="Internal")
    headers = auth_headers(vendor_user.id)

    listed = client.get("/api/v1/projects", headers=headers)

    assert [project["id"] for project in listed.json()["items"]] == [owned.id]
    assert client.get(f"/api/v1/projects/{other.id}", headers=headers).status_code == 403
    assert client.get(f"/api/v1/projects/{owned.id}", headers=headers).status_code == 200


def test_task_creation_assigns_and_logs(client: TestClient, seed: Seeder, db_session: Session) -> None:
    manager = seed.user(UserRole.MANAGER)
    employee = seed.user(UserRole.EMPLOYEE)
    project = seed.project()

    response = client.post(
        f"/api/v1/projects/{project.id}/tasks",
        headers=auth_headers(manager.id),
        json={"title": "Wire up", "priority": "high", "due_date": "2026-04-01", "assignee_ids": [employee.id]},
    )

    assert response.status_code == 201
    task = response.json()
    assert task["assignee_ids"] == [employee.id]
    assert task["status"] == "new"
    assert task["created_by"] == manager.id

    listed = client.get(f"/api/v1/projects/{project.id}/tasks", headers=auth_headers(employee.id))
    assert [item["title"] for item in listed.json()["items"]] == ["Wire up"]

    logs = db_session.scalars(select(TaskLog)).all()
    assert [(log.action, log.description) for log in logs] == [("create", 'Task "Wire up" created')]


def test_assignee_can_update_task_but_outsider_cannot(client: TestClient, seed: Seeder) -> None:
    employee = seed.user(UserRole.EMPLOYEE)
    outsider = seed.user(UserRole.EMPLOYEE)
    project = seed.project()
    task = seed.task(project, assignees=(employee,))

    allowed = client.patch(f"/api/v1/tasks/{task.id}", headers=auth_headers(employee.id), json={"status": "review"})
    denied = client.patch(f"/api/v1/tasks/{task.id}", headers=auth_headers(outsider.id), json={"status": "completed"})

    assert allowed.status_code == 200
    assert allowed.json()["status"] == "review"
    assert denied.status_code == 403


def test_duplicate_assignment_is_conflict(client: TestClient, seed: Seeder) -> None:
    manager = seed.user(UserRole.MANAGER)
    employee = seed.user(UserRole.EMPLOYEE)
    task = seed.task(seed.project(), assignees=(employee,))

    response = client.post(
        f"/api/v1/tasks/{task.id}/assignments",
        headers=auth_headers(manager.id),
        json={"user_id": employee.id},
    )

    assert response.status_code == 409


def test_vendor_assigns_only_own_consultants(client: TestClient, seed: Seeder) -> None:
    vendor_user = seed.user(UserRole.VENDOR)
    seed.vendor(vendor_user, company_name="Acme")
    own = seed.consultant(vendor_user)
    other_vendor = seed.user(UserRole.VENDOR)
    foreign = seed.consultant(other_vendor)
    task = seed.task(seed.project(project_type="Vendor - Acme"))
    headers = auth_headers(vendor_user.id)

    accepted = client.post(f"/api/v1/tasks/{task.id}/assignments", headers=headers, json={"user_id": own.id})
    rejected = client.post(f"/api/v1/tasks/{task.id}/assignments", headers=headers, json={"user_id": foreign.id})

    assert accepted.status_code == 201
    assert rejected.status_code == 403


def test_daily_update_snapshots_status_and_rejects_duplicates(client: TestClient, seed: Seeder) -> None:
    employee = seed.user(UserRole.EMPLOYEE)
    task = seed.task(seed.project(), status=TaskStatus.TO_DO, assignees=(employee,))
    headers = auth_headers(employee.id)
    payload = {"update_date": "2026-03-02", "hours_spent": "3.5", "work_done": "Wrote tests", "task_status": "in_progress"}

    first = client.post(f"/api/v1/tasks/{task.id}/daily-updates", headers=headers, json=payload)
    second = client.post(f"/api/v1/tasks/{task.id}/daily-updates", headers=headers, json=payload)

    assert first.status_code == 201
    assert first.json()["task_status"] == "in_progress"
    assert first.json()["hours_spent"] == 3.5
    assert second.status_code == 409

    listed = client.get(f"/api/v1/tasks/{task.id}/daily-updates", headers=headers)
    assert [item["update_date"] for item in listed.json()["items"]] == ["2026-03-02"]


def test_daily_update_requires_assignee(client: TestClient, seed: Seeder) -> None:
    employee = seed.user(UserRole.EMPLOYEE)
    task = seed.task(seed.project())

    response = client.post(
        f"/api/v1/tasks/{task.id}/daily-updates",
        headers=auth_headers(employee.id),
        json={"hours_spent": "1", "work_done": "Nothing assigned"},
    )

    assert response.status_code == 403


def test_daily_update_hours_are_bounded(client: TestClient, seed: Seeder) -> None:
    employee = seed.user(UserRole.EMPLOYEE)
    task = seed.task(seed.project(), assignees=(employee,))

    response = client.post(
        f"/api/v1/tasks/{task.id}/daily-updates",
        headers=auth_headers(employee.id),
        json={"hours_spent": "25", "work_done": "Too much"},
    )

    assert response.status_code == 422


def test_reply_from_other_user_marks_comment_replied(client: TestClient, seed: Seeder) -> None:
    manager = seed.user(UserRole.MANAGER)
    employee = seed.user(UserRole.EMPLOYEE)
    task = seed.task(seed.project(), assignees=(employee,))

    question = client.post(
        f"/api/v1/tasks/{task.id}/comments",
        headers=auth_headers(employee.id),
        json={"content": "Which API version?"},
    ).json()
    own_followup = client.post(
        f"/api/v1/tasks/{task.id}/comments",
        headers=auth_headers(employee.id),
        json={"content": "Any news?", "parent_id": question["id"]},
    )
    answer = client.post(
        f"/api/v1/tasks/{task.id}/comments",
        headers=auth_headers(manager.id),
        json={"content": "v2", "parent_id": question["id"]},
    )
    second_answer = client.post(
        f"/api/v1/tasks/{task.id}/comments",
        headers=auth_headers(manager.id),
        json={"content": "v3 actually", "parent_id": question["id"]},
    )

    assert question["reply_status"] == "pending"
    assert own_followup.status_code == 201
    assert answer.status_code == 201
    assert second_answer.status_code == 409

    comments = client.get(f"/api/v1/tasks/{task.id}/comments", headers=auth_headers(manager.id)).json()["items"]
    statuses = {comment["id"]: comment["reply_status"] for comment in comments}
    assert statuses[question["id"]] == "replied"


def test_reply_to_comment_on_other_task_is_not_found(client: TestClient, seed: Seeder) -> None:
    manager = seed.user(UserRole.MANAGER)
    project = seed.project()
    first = seed.task(project)
    second = seed.task(project)
    comment = client.post(
        f"/api/v1/tasks/{first.id}/comments",
        headers=auth_headers(manager.id),
        json={"content": "Hello"},
    ).json()

    response = client.post(
        f"/api/v1/tasks/{second.id}/comments",
        headers=auth_headers(manager.id),
        json={"content": "Wrong thread", "parent_id": comment["id"]},
    )

    assert response.status_code == 404


def test_unknown_task_is_not_found(client: TestClient, seed: Seeder) -> None:
    manager = seed.user(UserRole.MANAGER)

    response = client.get("/api/v1/tasks/999/comments", headers=auth_headers(manager.id))

    assert response.status_code == 404


# ---------- Deletion ----------
def test_project_manager_deletes_project_with_dependents(
    client: TestClient, seed: Seeder, db_session: Session
) -> None:
    manager = seed.user(UserRole.MANAGER)
    other_manager = seed.user(UserRole.MANAGER)
    employee = seed.user(UserRole.EMPLOYEE)
    project = seed.project(name="Sunset", manager=manager)
    task = seed.task(project, assignees=(employee,))
    seed.daily_update(task, employee, update_date=date(2026, 3, 2), hours="2")
    headers = auth_headers(manager.id)
    client.post(f"/api/v1/tasks/{task.id}/comments", headers=headers, json={"content": "Wrap up"})
    client.post(f"/api/v1/tasks/{task.id}/time", headers=auth_headers(employee.id), json={"hours": 1})
    client.post(f"/api/v1/projects/{project.id}/team", headers=headers, json={"user_id": employee.id})
    project_id, task_id = project.id, task.id

    denied = client.delete(f"/api/v1/projects/{project_id}", headers=auth_headers(other_manager.id))
    deleted = client.delete(f"/api/v1/projects/{project_id}", headers=headers)

    assert denied.status_code == 403
    assert deleted.status_code == 204
    assert client.get(f"/api/v1/projects/{project_id}", headers=headers).status_code == 404
    assert db_session.scalars(select(Task).where(Task.id == task_id)).all() == []
    for model in (TaskLog, DailyUpdate, TaskComment, TaskAssignment, TaskTimeEntry):
        assert db_session.scalars(select(model).where(model.task_id == task_id)).all() == []
    for model in (ProjectLog, ProjectTeamMember):
        assert db_session.scalars(select(model).where(model.project_id == project_id)).all() == []
    log = db_session.scalar(select(UserLog).where(UserLog.action == "Deleted project"))
    assert log.user_id == manager.id
    assert log.description == f'Deleted project "Sunset" (ID: {project_id})'


def test_task_creator_or_manager_can_delete_task(client: TestClient, seed: Seeder, db_session: Session) -> None:
    manager = seed.user(UserRole.MANAGER)
    creator = seed.user(UserRole.EMPLOYEE)
    assignee = seed.user(UserRole.EMPLOYEE)
    project = seed.project()
    own = seed.task(project, title="Mine", created_by=creator, assignees=(assignee,))
    other = seed.task(project, title="Theirs", assignees=(assignee,))
    own_id, other_id = own.id, other.id

    assert client.delete(f"/api/v1/tasks/{own_id}", headers=auth_headers(assignee.id)).status_code == 403
    assert client.delete(f"/api/v1/tasks/{own_id}", headers=auth_headers(creator.id)).status_code == 204
    assert client.delete(f"/api/v1/tasks/{other_id}", headers=auth_headers(manager.id)).status_code == 204
    assert client.delete(f"/api/v1/tasks/{other_id}", headers=auth_headers(manager.id)).status_code == 404

    assert db_session.scalars(select(TaskAssignment)).all() == []
    descriptions = db_session.scalars(
        select(UserLog.description).where(UserLog.action == "Deleted task").order_by(UserLog.id)
    ).all()
    assert descriptions == [
        f'Deleted task "Mine" (ID: {own_id}) from project {project.id}',
        f'Deleted task "Theirs" (ID: {other_id}) from project {project.id}',
    ]


def test_vendor_cannot_delete_task_outside_owned_projects(client: TestClient, seed: Seeder) -> None:
    vendor_user = seed.user(UserRole.VENDOR)
    seed.vendor(vendor_user, company_name="Acme")
    task = seed.task(seed.project(project_type="Internal"))

    response = client.delete(f"/api/v1/tasks/{task.id}", headers=auth_headers(vendor_user.id))

    assert response.status_code == 403


# ---------- Project team ----------
def test_project_team_add_list_and_remove(client: TestClient, seed: Seeder, db_session: Session) -> None:
    manager = seed.user(UserRole.MANAGER)
    employee = seed.user(UserRole.EMPLOYEE, first_name="Tess")
    project = seed.project(manager=manager)
    headers = auth_headers(manager.id)
    team_path = f"/api/v1/projects/{project.id}/team"

    added = client.post(team_path, headers=headers, json={"user_id": employee.id, "role": "reviewer"})
    duplicate = client.post(team_path, headers=headers, json={"user_id": employee.id})
    unknown = client.post(team_path, headers=headers, json={"user_id": 999})

    assert added.status_code == 201
    assert added.json()["project_role"] == "reviewer"
    assert added.json()["first_name"] == "Tess"
    assert duplicate.status_code == 409
    assert unknown.status_code == 404

    listed = client.get(team_path, headers=auth_headers(employee.id))
    assert [member["user_id"] for member in listed.json()["items"]] == [employee.id]

    assert client.delete(f"{team_path}/{employee.id}", headers=headers).status_code == 204
    assert client.delete(f"{team_path}/{employee.id}", headers=headers).status_code == 404
    assert client.get(team_path, headers=headers).json()["items"] == []

    logs = db_session.scalars(select(ProjectLog).order_by(ProjectLog.id)).all()
    assert [(log.action, log.description) for log in logs] == [
        ("add_team_member", f"Team member ({employee.id}) added to project"),
        ("remove_team_member", f"Team member ({employee.id}) removed from project"),
    ]


def test_only_admin_or_project_manager_changes_team(client: TestClient, seed: Seeder) -> None:
    admin = seed.user(UserRole.ADMIN)
    manager = seed.user(UserRole.MANAGER)
    other_manager = seed.user(UserRole.MANAGER)
    employee = seed.user(UserRole.EMPLOYEE)
    project = seed.project(manager=manager)
    team_path = f"/api/v1/projects/{project.id}/team"

    for outsider in (other_manager, employee):
        response = client.post(team_path, headers=auth_headers(outsider.id), json={"user_id": employee.id})
        assert response.status_code == 403
    response = client.post(team_path, headers=auth_headers(admin.id), json={"user_id": employee.id})
    assert response.status_code == 201


# ---------- Task listings ----------
def test_task_stats_counts_by_status(client: TestClient, seed: Seeder) -> None:
    manager = seed.user(UserRole.MANAGER)
    first = seed.project(name="First")
    second = seed.project(name="Second")
    seed.task(first, status=TaskStatus.TO_DO)
    seed.task(first, status=TaskStatus.TO_DO)
    seed.task(first, status=TaskStatus.COMPLETED)
    seed.task(second, status=TaskStatus.IN_PROGRESS)
    headers = auth_headers(manager.id)

    overall = client.get("/api/v1/tasks/stats", headers=headers)
    scoped = client.get("/api/v1/tasks/stats", params={"project_id": second.id}, headers=headers)

    assert overall.json()["items"] == [
        {"status": "to_do", "count": 2},
        {"status": "completed", "count": 1},
        {"status": "in_progress", "count": 1},
    ]
    assert scoped.json()["items"] == [{"status": "in_progress", "count": 1}]
    assert client.get("/api/v1/tasks/stats", params={"project_id": 999}, headers=headers).status_code == 404


def test_vendor_task_stats_only_cover_owned_projects(client: TestClient, seed: Seeder) -> None:
    vendor_user = seed.user(UserRole.VENDOR)
    seed.vendor(vendor_user, company_name="Acme")
    seed.task(seed.project(project_type="Vendor - Acme"), status=TaskStatus.REVIEW)
    seed.task(seed.project(project_type="Internal"), status=TaskStatus.TO_DO)

    response = client.get("/api/v1/tasks/stats", headers=auth_headers(vendor_user.id))

    assert response.json()["items"] == [{"status": "review", "count": 1}]


def test_overdue_and_upcoming_skip_closed_tasks(client: TestClient, seed: Seeder) -> None:
    manager = seed.user(UserRole.MANAGER)
    project = seed.project()
    today = date.today()
    late = seed.task(project, title="Late", due_date=today - timedelta(days=2))
    seed.task(project, title="Late but done", status=TaskStatus.COMPLETED, due_date=today - timedelta(days=1))
    seed.task(project, title="Late but cancelled", status=TaskStatus.CANCELLED, due_date=today - timedelta(days=1))
    due_today = seed.task(project, title="Today", due_date=today)
    soon = seed.task(project, title="Soon", due_date=today + timedelta(days=7))
    later = seed.task(project, title="Later", due_date=today + timedelta(days=10))
    seed.task(project, title="Undated")
    headers = auth_headers(manager.id)

    overdue = client.get("/api/v1/tasks/overdue", headers=headers).json()["items"]
    upcoming = client.get("/api/v1/tasks/upcoming", headers=headers).json()["items"]
    wider = client.get("/api/v1/tasks/upcoming", params={"days": 14}, headers=headers).json()["items"]
    capped = client.get("/api/v1/tasks/upcoming", params={"days": 14, "limit": 2}, headers=headers).json()["items"]

    assert [task["id"] for task in overdue] == [late.id]
    assert [task["id"] for task in upcoming] == [due_today.id, soon.id]
    assert [task["id"] for task in wider] == [due_today.id, soon.id, later.id]
    assert [task["id"] for task in capped] == [due_today.id, soon.id]


# ---------- Time entries ----------
def test_assignee_tracks_time_and_actual_hours_accumulate(
    client: TestClient, seed: Seeder, db_session: Session
) -> None:
    employee = seed.user(UserRole.EMPLOYEE, first_name="Tim")
    task = seed.task(seed.project(), assignees=(employee,))
    headers = auth_headers(employee.id)
    time_path = f"/api/v1/tasks/{task.id}/time"

    first = client.post(time_path, headers=headers, json={"hours": 1, "minutes": 30, "description": "Pairing"})
    second = client.post(time_path, headers=headers, json={"hours": 2, "work_date": "2026-03-01"})

    assert first.status_code == 201
    assert first.json()["total_hours"] == 1.5
    assert first.json()["user_name"] == "Tim Tester"
    assert first.json()["work_date"] == date.today().isoformat()
    assert second.status_code == 201

    db_session.refresh(task)
    assert float(task.actual_hours) == 3.5

    listed = client.get(time_path, headers=headers).json()["items"]
    assert [entry["work_date"] for entry in listed] == [date.today().isoformat(), "2026-03-01"]
    assert listed[0]["description"] == "Pairing"

    logs = db_session.scalars(select(TaskLog).where(TaskLog.action == "time_track").order_by(TaskLog.id)).all()
    assert [log.description for log in logs] == [
        "Logged 1 hours and 30 minutes on task",
        "Logged 2 hours and 0 minutes on task",
    ]


@pytest.mark.parametrize(
    "payload",
    [{"hours": 0, "minutes": 0}, {"minutes": 60}, {"hours": 25}, {"hours": -1}],
)
def test_time_entry_duration_is_validated(client: TestClient, seed: Seeder, payload: dict[str, int]) -> None:
    employee = seed.user(UserRole.EMPLOYEE)
    task = seed.task(seed.project(), assignees=(employee,))

    response = client.post(f"/api/v1/tasks/{task.id}/time", headers=auth_headers(employee.id), json=payload)

    assert response.status_code == 422


def test_time_tracking_requires_assignee_or_manager(client: TestClient, seed: Seeder) -> None:
    manager = seed.user(UserRole.MANAGER)
    outsider = seed.user(UserRole.EMPLOYEE)
    task = seed.task(seed.project())

    denied = client.post(f"/api/v1/tasks/{task.id}/time", headers=auth_headers(outsider.id), json={"hours": 1})
    allowed = client.post(f"/api/v1/tasks/{task.id}/time", headers=auth_headers(manager.id), json={"minutes": 15})

    assert denied.status_code == 403
    assert allowed.status_code == 201
    assert allowed.json()["total_hours"] == 0.25


def test_time_entry_is_not_committed_without_its_task_log(
    client: TestClient, seed: Seeder, db_session: Session, monkeypatch: pytest.MonkeyPatch
) -> None:
    employee = seed.user(UserRole.EMPLOYEE)
    task = seed.task(seed.project(), assignees=(employee,))
    headers = auth_headers(employee.id)
    task_id = task.id

    def failing_log(self: WorkRepository, row: TaskLog) -> TaskLog:
        raise RuntimeError("log table unavailable")

    monkeypatch.setattr(WorkRepository, "add_task_log", failing_log)

    with pytest.raises(RuntimeError, match="log table unavailable"):
        client.post(f"/api/v1/tasks/{task_id}/time", headers=headers, json={"hours": 3})
    db_session.rollback()

    assert db_session.scalars(select(TaskTimeEntry)).all() == []
    assert db_session.scalar(select(Task.actual_hours).where(Task.id == task_id)) is None
