from __future__ import annotations

import logging

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.core.auth import build_user_context
from app.models.entities import ProjectLog, UserLog, UserRole
from app.services.audit_service import AuditTrail, describe_filters
from conftest import Seeder


def test_best_effort_write_commits_row(db_session: Session, seed: Seeder) -> None:
    admin = seed.user(UserRole.ADMIN)
    context = build_user_context(admin, ip_address="127.0.0.1")

    row = AuditTrail(db_session).record_best_effort(context, action="Generated task report", description="x")

    assert row is not None
    stored = db_session.scalars(select(UserLog)).all()
    assert [(log.user_id, log.action, log.ip_address) for log in stored] == [
        (admin.id, "Generated task report", "127.0.0.1")
    ]


def test_best_effort_write_swallows_commit_failure(
    db_session: Session,
    seed: Seeder,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    admin = seed.user(UserRole.ADMIN)
    context = build_user_context(admin)

    def failing_commit() -> None:
        raise OperationalError("INSERT INTO user_logs", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with caplog.at_level(logging.WARNING, logger="app.services.audit_service"):
        row = AuditTrail(db_session).record_best_effort(context, action="Generated task report", description="x")

    assert row is None
    assert "Audit write failed" in caplog.text
    assert db_session.scalars(select(UserLog)).all() == []


def test_best_effort_write_swallows_unexpected_errors(
    db_session: Session,
    seed: Seeder,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    admin = seed.user(UserRole.ADMIN)
    context = build_user_context(admin)

    def broken_commit() -> None:
        raise RuntimeError("driver crashed")

    monkeypatch.setattr(db_session, "commit", broken_commit)

    with caplog.at_level(logging.WARNING, logger="app.services.audit_service"):
        row = AuditTrail(db_session).record_best_effort(context, action="Exported tasks report", description="x")

    assert row is None
    assert "driver crashed" in caplog.text


def test_transactional_entries_are_only_staged(db_session: Session, seed: Seeder) -> None:
    admin = seed.user(UserRole.ADMIN)
    project = seed.project(name="Apollo")
    context = build_user_context(admin)

    AuditTrail(db_session).add_project_entry(context, project_id=project.id, action="update", description="staged")
    db_session.rollback()

    assert db_session.scalars(select(ProjectLog).where(ProjectLog.project_id == project.id)).all() == []


def test_describe_filters_is_stable() -> None:
    assert describe_filters({"status": "new", "project_id": 2}) == '{"project_id": 2, "status": "new"}'
