from __future__ import annotations

from datetime import date, datetime

import pytest
from fastapi import HTTPException

from app.models.entities import Task, TaskAssignment, TaskStatus, UserLog
from app.services.query_filters import FilterBuilder, resolve_sort, sanitize_sort_field, split_values
from app.services.scope import ConsultantScope


def test_render_produces_positional_sql_and_ordered_params() -> None:
    builder = (
        FilterBuilder({"project_id": 3, "status": "in_progress,review"}, {"project_id", "status"})
        .equals("project_id", Task.project_id)
        .one_or_many("status", Task.status, TaskStatus)
    )

    sql, params = builder.render()

    assert "tasks.project_id = ?" in sql
    assert "tasks.status IN (?, ?)" in sql
    assert sql.count("?") == len(params) == 3
    assert params == [3, TaskStatus.IN_PROGRESS, TaskStatus.REVIEW]


def test_single_status_uses_equality() -> None:
    builder = FilterBuilder({"status": "completed"}, {"status"}).one_or_many("status", Task.status, TaskStatus)

    sql, params = builder.render()

    assert sql == "tasks.status = ?"
    assert params == [TaskStatus.COMPLETED]


def test_invalid_enum_value_is_rejected_before_any_query() -> None:
    builder = FilterBuilder({"status": "done"}, {"status"})

    with pytest.raises(HTTPException) as error:
        builder.one_or_many("status", Task.status, TaskStatus)

    assert error.value.status_code == 422
    assert "done" in error.value.detail


def test_unknown_filter_field_is_not_accepted() -> None:
    builder = FilterBuilder({"project_id": 1}, {"project_id"})

    with pytest.raises(ValueError):
        builder.equals("owner_id", Task.created_by)


def test_values_outside_whitelist_are_dropped() -> None:
    builder = FilterBuilder({"project_id": 1, "sort_by": "title"}, {"project_id"})

    assert builder.values == {"project_id": 1}


def test_absent_and_blank_values_add_no_criteria() -> None:
    builder = (
        FilterBuilder({"project_id": None, "status": "  "}, {"project_id", "status"})
        .equals("project_id", Task.project_id)
        .one_or_many("status", Task.status, TaskStatus)
    )

    assert builder.render() == ("", [])


def test_date_bounds_compare_on_calendar_date() -> None:
    builder = (
        FilterBuilder({"start_date": date(2026, 3, 1), "end_date": date(2026, 3, 10)}, {"start_date", "end_date"})
        .on_or_after("start_date", Task.created_at)
        .on_or_before("end_date", Task.created_at)
    )

    sql, params = builder.render()

    assert "date(tasks.created_at) >= ?" in sql
    assert "date(tasks.created_at) <= ?" in sql
    assert params == [date(2026, 3, 1), date(2026, 3, 10)]


def test_end_of_day_bound_uses_next_midnight() -> None:
    builder = FilterBuilder({"end_date": date(2026, 3, 10)}, {"end_date"}).through_end_of_day(
        "end_date", UserLog.created_at
    )

    sql, params = builder.render()

    assert sql == "user_logs.created_at <= ?"
    assert params == [datetime(2026, 3, 11, 0, 0)]


def test_text_filter_is_bound_not_inlined() -> None:
    builder = FilterBuilder({"action": "x'; DROP TABLE users; --"}, {"action"}).contains("action", UserLog.action)

    sql, params = builder.render()

    assert "DROP" not in sql
    assert "DROP TABLE users" in params[0]


def test_empty_scope_sets_sentinel_instead_of_empty_in_list() -> None:
    builder = FilterBuilder({}, set()).within_scope(
        TaskAssignment.user_id,
        ConsultantScope(unrestricted=False, user_ids=frozenset()),
    )

    assert builder.no_results is True
    assert builder.conditions == []


def test_scope_renders_sorted_user_ids() -> None:
    builder = FilterBuilder({}, set()).within_scope(
        TaskAssignment.user_id,
        ConsultantScope(unrestricted=False, user_ids=frozenset({7, 3})),
    )

    sql, params = builder.render()

    assert sql == "task_assignments.user_id IN (?, ?)"
    assert params == [3, 7]


def test_unrestricted_scope_adds_nothing() -> None:
    builder = FilterBuilder({}, set()).within_scope(TaskAssignment.user_id, ConsultantScope(unrestricted=True))

    assert builder.no_results is False
    assert builder.render() == ("", [])


def test_sort_field_is_sanitized_and_allow_listed() -> None:
    allowed = {"due_date": Task.due_date}

    assert sanitize_sort_field("due_date; DROP TABLE tasks") == "due_dateDROPTABLEtasks"
    assert resolve_sort("due_date; DROP TABLE tasks", "asc", allowed) is None
    assert resolve_sort("title", "asc", allowed) is None

    ordering = resolve_sort("due_date", "DESC", allowed)
    assert ordering is not None
    assert str(ordering[0]) == "tasks.due_date DESC"


def test_split_values_drops_blanks() -> None:
    assert split_values("new, to_do,,") == ["new", "to_do"]
    assert split_values(["high", " "]) == ["high"]
