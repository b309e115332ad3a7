from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import get_settings
from app.db.base import Base
from app.db.dependencies import get_db_session
import app.models.entities  # noqa: F401
from app.main import create_app
from app.models.entities import (
    ConsultantProfile,
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
    UserStatus,
    Vendor,
)


@pytest.fixture(autouse=True)
def export_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    target = tmp_path / "exports"
    monkeypatch.setenv("EXPORT_DIR", str(target))
    get_settings.cache_clear()
    yield target
    get_settings.cache_clear()


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user_id: int) -> dict[str, str]:
    return {"X-User-Id": str(user_id)}


@contextmanager
def recorded_statements(db: Session) -> Iterator[list[str]]:
    """Collect the SQL statements executed on the session's engine."""

    statements: list[str] = []
    engine = db.get_bind()

    def record(conn, cursor, statement, parameters, context, executemany) -> None:
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", record)
    try:
        yield statements
    finally:
        event.remove(engine, "before_cursor_execute", record)


class Seeder:
    """Inserts rows directly, bypassing the API and its audit writes."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self._counter = 0

    def _save(self, row):
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def user(
        self,
        role: UserRole,
        *,
        first_name: str | None = None,
        last_name: str = "Tester",
        working_for: int | None = None,
        status: UserStatus = UserStatus.ACTIVE,
    ) -> User:
        self._counter += 1
        first = first_name or f"{role.value.title()}{self._counter}"
        return self._save(
            User(
                first_name=first,
                last_name=last_name,
                email=f"{first.lower()}.{self._counter}@test.local",
                role=role,
                status=status,
                department="Delivery",
                position=role.value,
                working_for=working_for,
            )
        )

    def vendor(self, user: User, *, company_name: str) -> Vendor:
        return self._save(Vendor(user_id=user.id, company_name=company_name, contact_person=user.full_name))

    def consultant(self, vendor_user: User, *, first_name: str | None = None, hourly_rate: str | None = None) -> User:
        consultant = self.user(UserRole.CONSULTANT, first_name=first_name, working_for=vendor_user.id)
        if hourly_rate is not None:
            self._save(
                ConsultantProfile(user_id=consultant.id, specialization="Backend", hourly_rate=Decimal(hourly_rate))
            )
        return consultant

    def project(
        self,
        *,
        name: str = "Project",
        project_type: str | None = None,
        status: ProjectStatus = ProjectStatus.IN_PROGRESS,
        start_date: date | None = date(2026, 1, 1),
        manager: User | None = None,
    ) -> Project:
        return self._save(
            Project(
                name=name,
                status=status,
                priority=Priority.MEDIUM,
                start_date=start_date,
                project_type=project_type,
                manager_id=manager.id if manager else None,
            )
        )

    def task(
        self,
        project: Project,
        *,
        title: str = "Task",
        status: TaskStatus = TaskStatus.TO_DO,
        assignees: tuple[User, ...] = (),
        due_date: date | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
        priority: Priority = Priority.MEDIUM,
        created_by: User | None = None,
    ) -> Task:
        created = created_at or datetime(2026, 3, 1, 9, 0)
        task = self._save(
            Task(
                project_id=project.id,
                title=title,
                status=status,
                priority=priority,
                due_date=due_date,
                created_by=created_by.id if created_by else None,
                created_at=created,
                updated_at=updated_at or created,
            )
        )
        for assignee in assignees:
            self._save(TaskAssignment(task_id=task.id, user_id=assignee.id))
        return task

    def daily_update(self, task: Task, user: User, *, update_date: date, hours: str) -> DailyUpdate:
        return self._save(
            DailyUpdate(
                task_id=task.id,
                user_id=user.id,
                update_date=update_date,
                hours_spent=Decimal(hours),
                work_done="Work",
                task_status=task.status,
            )
        )

    def user_log(self, user: User, *, action: str, created_at: datetime) -> UserLog:
        return self._save(UserLog(user_id=user.id, action=action, description=action, created_at=created_at))


@pytest.fixture()
def seed(db_session: Session) -> Seeder:
    return Seeder(db_session)
