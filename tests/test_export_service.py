from __future__ import annotations

import csv
from datetime import UTC, date, datetime
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi import HTTPException
from openpyxl import load_workbook

from app.services import export_service
from app.services.export_service import (
    EXPORT_FILENAME_PATTERN,
    ReportExporter,
    export_timestamp,
    header_label,
    normalize_export_format,
)

ROWS = [
    {"task_id": 1, "task_title": "Design, review", "due_date": date(2026, 3, 10), "actual_hours": Decimal("2.50")},
    {"task_id": 2, "task_title": 'Quote "this"', "due_date": None, "actual_hours": None},
]


def test_csv_header_round_trips_row_keys(tmp_path: Path) -> None:
    exported = ReportExporter(tmp_path).export(ROWS, "tasks", "csv")

    with exported.path.open(newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        rows = list(reader)

    assert reader.fieldnames == list(ROWS[0].keys())
    assert rows[0]["task_title"] == "Design, review"
    assert rows[0]["due_date"] == "2026-03-10"
    assert rows[0]["actual_hours"] == "2.5"
    assert rows[1]["task_title"] == 'Quote "this"'
    assert rows[1]["due_date"] == ""


def test_empty_csv_is_an_empty_file(tmp_path: Path) -> None:
    exported = ReportExporter(tmp_path).export([], "user-logs", "csv")

    assert exported.path.read_text(encoding="utf-8") == ""


def test_xlsx_has_bold_humanized_header(tmp_path: Path) -> None:
    exported = ReportExporter(tmp_path).export(ROWS, "tasks", "xlsx")

    sheet = load_workbook(exported.path).active
    header = [cell.value for cell in sheet[1]]

    assert header == ["Task id", "Task title", "Due date", "Actual hours"]
    assert all(cell.font.bold for cell in sheet[1])
    assert sheet.max_row == 3
    assert sheet.cell(row=2, column=4).value == 2.5


def test_empty_xlsx_has_no_header_and_no_rows(tmp_path: Path) -> None:
    exported = ReportExporter(tmp_path).export([], "tasks", "xlsx")

    sheet = load_workbook(exported.path).active

    assert sheet.max_row == 1
    assert sheet.cell(row=1, column=1).value is None


def test_nested_values_are_serialized_as_json(tmp_path: Path) -> None:
    rows = [{"user_id": 1, "daily_updates": [{"date": date(2026, 3, 1), "hours": 2.0}]}]

    exported = ReportExporter(tmp_path).export(rows, "user-performance", "csv")

    with exported.path.open(newline="", encoding="utf-8") as handle:
        row = next(csv.DictReader(handle))
    assert row["daily_updates"] == '[{"date": "2026-03-01", "hours": 2.0}]'


def test_export_filename_format(tmp_path: Path) -> None:
    exported = ReportExporter(tmp_path).export(ROWS, "project-status", "xlsx")

    assert EXPORT_FILENAME_PATTERN.match(exported.filename)
    assert exported.filename.startswith("project-status_report_")
    assert exported.path.parent == tmp_path


def test_exports_in_the_same_millisecond_do_not_collide(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(export_service, "export_timestamp", lambda: "2026-03-10T14-05-09-123Z")
    exporter = ReportExporter(tmp_path)

    first = exporter.export(ROWS[:1], "tasks", "csv")
    second = exporter.export(ROWS[1:], "tasks", "csv")

    assert first.filename != second.filename
    assert EXPORT_FILENAME_PATTERN.match(second.filename)
    assert len(list(tmp_path.iterdir())) == 2
    assert "Design, review" in first.path.read_text(encoding="utf-8")


def test_export_timestamp_is_file_safe() -> None:
    moment = datetime(2026, 3, 10, 14, 5, 9, 123456, tzinfo=UTC)

    assert export_timestamp(moment) == "2026-03-10T14-05-09-123Z"


def test_header_label() -> None:
    assert header_label("completion_percentage") == "Completion percentage"


@pytest.mark.parametrize("format_name", ["pdf", "json", ""])
def test_unsupported_format_is_rejected(format_name: str) -> None:
    with pytest.raises(HTTPException) as error:
        normalize_export_format(format_name or "  ")

    assert error.value.status_code == 422


def test_format_defaults_to_csv_and_is_case_insensitive() -> None:
    assert normalize_export_format(None) == "csv"
    assert normalize_export_format("XLSX") == "xlsx"


def test_resolve_rejects_unknown_and_traversal_names(tmp_path: Path) -> None:
    exporter = ReportExporter(tmp_path)
    exported = exporter.export(ROWS, "tasks", "csv")

    assert exporter.resolve(exported.filename) == exported.path
    for name in ("../secrets.csv", "tasks_report_2026-03-10T14-05-09-123Z_0123abcd.csv"):
        with pytest.raises(HTTPException) as error:
            exporter.resolve(name)
        assert error.value.status_code == 404
