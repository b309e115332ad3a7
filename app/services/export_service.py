"""Report export to CSV and XLSX files."""

from __future__ import annotations

import csv
import enum
import json
import logging
import re
import secrets
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from pathlib import Path

from fastapi import HTTPException, status
from openpyxl import Workbook
from openpyxl.styles import Font

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "xlsx")
EXPORT_FILENAME_PATTERN = re.compile(r"^[a-z-]+_report_[0-9T-]+Z_[0-9a-f]{8}\.(csv|xlsx)$")

MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


@dataclass(slots=True)
class ExportedReport:
    filename: str
    path: Path


def normalize_export_format(format_name: str | None) -> str:
    """Validate an export format; raises 422 for anything but csv/xlsx."""

    normalized = (format_name or "csv").strip().lower()
    if normalized not in EXPORT_FORMATS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Unsupported export format. Use csv or xlsx.",
        )
    return normalized


def export_timestamp(moment: datetime | None = None) -> str:
    """UTC ISO timestamp with millisecond precision, ``:`` and ``.`` made file-safe."""

    moment = moment or datetime.now(UTC)
    iso = moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def header_label(key: str) -> str:
    return key[:1].upper() + key[1:].replace("_", " ")


def cell_value(value: object) -> object:
    if value is None:
        return ""
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, default=_json_default)
    return value


def _json_default(value: object) -> object:
    converted = cell_value(value)
    if converted is value:
        return str(value)
    return converted


class ReportExporter:
    """Writes report rows to files under ``export_dir``."""

    def __init__(self, export_dir: str | Path) -> None:
        self.export_dir = Path(export_dir)

    def export(
        self,
        rows: Sequence[Mapping[str, object]],
        report_type: str,
        format_name: str = "csv",
    ) -> ExportedReport:
        normalized_format = normalize_export_format(format_name)
        self.export_dir.mkdir(parents=True, exist_ok=True)

        # Random suffix keeps two exports within the same millisecond apart.
        filename = f"{report_type}_report_{export_timestamp()}_{secrets.token_hex(4)}.{normalized_format}"
        path = self.export_dir / filename
        fieldnames = list(rows[0].keys()) if rows else []

        if normalized_format == "csv":
            self._write_csv(path, rows, fieldnames)
        else:
            self._write_xlsx(path, rows, fieldnames, sheet_title=report_type)

        logger.info("Exported %d %s rows to %s", len(rows), report_type, path)
        return ExportedReport(filename=filename, path=path)

    @staticmethod
    def _write_csv(path: Path, rows: Sequence[Mapping[str, object]], fieldnames: list[str]) -> None:
        with path.open("x", newline="", encoding="utf-8") as handle:
            if not fieldnames:
                return
            writer = csv.DictWriter(handle, fieldnames=fieldnames, extrasaction="ignore")
            writer.writeheader()
            for row in rows:
                writer.writerow({key: cell_value(row.get(key)) for key in fieldnames})

    @staticmethod
    def _write_xlsx(
        path: Path,
        rows: Sequence[Mapping[str, object]],
        fieldnames: list[str],
        *,
        sheet_title: str,
    ) -> None:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = sheet_title[:31]

        if fieldnames:
            sheet.append([header_label(key) for key in fieldnames])
            for cell in sheet[1]:
                cell.font = Font(bold=True)
            for row in rows:
                sheet.append([cell_value(row.get(key)) for key in fieldnames])

        workbook.save(path)

    def resolve(self, filename: str) -> Path:
        """Locate a previously exported file; raises 404 for unknown names."""

        if not EXPORT_FILENAME_PATTERN.match(filename):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Export file not found.")
        path = self.export_dir / filename
        if not path.is_file():
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Export file not found.")
        return path
