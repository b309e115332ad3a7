"""Typed builder for optional report filters.

Field names are mapped to columns in code; user input only ever reaches the
database as bound parameters. Sort fields are the one place where input picks
a column, so they go through :func:`sanitize_sort_field` and an explicit
allow-list.
"""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timedelta

from fastapi import HTTPException, status
from sqlalchemy import Date, Select, and_, func, literal
from sqlalchemy.engine.default import DefaultDialect
from sqlalchemy.sql.elements import ColumnElement

from app.services.scope import ConsultantScope

SORT_FIELD_DISALLOWED = re.compile(r"[^A-Za-z0-9_.]")


def sanitize_sort_field(value: str | None) -> str:
    """Strip every character outside ``[A-Za-z0-9_.]``."""

    if not value:
        return ""
    return SORT_FIELD_DISALLOWED.sub("", value)


def resolve_sort(
    sort_by: str | None,
    sort_order: str | None,
    allowed: Mapping[str, ColumnElement],
) -> list[ColumnElement] | None:
    """Map a requested sort field onto an allowed column.

    Returns ``None`` when the field is absent or not allowed so the caller keeps
    its default ordering.
    """

    column = allowed.get(sanitize_sort_field(sort_by))
    if column is None:
        return None
    if (sort_order or "").strip().lower() == "desc":
        return [column.desc()]
    return [column.asc()]


def split_values(raw: object) -> list[str]:
    """Split a comma-separated filter value; blanks are dropped."""

    if isinstance(raw, (list, tuple)):
        parts = [str(item) for item in raw]
    else:
        parts = str(raw).split(",")
    return [part.strip() for part in parts if part.strip()]


class FilterBuilder:
    """Accumulates WHERE criteria for a whitelisted set of filter fields."""

    def __init__(self, values: Mapping[str, object] | None, allowed: Iterable[str]) -> None:
        self.allowed = frozenset(allowed)
        self.values = {key: value for key, value in (values or {}).items() if key in self.allowed}
        self.conditions: list[ColumnElement[bool]] = []
        self.no_results = False

    def _value(self, field_name: str) -> object | None:
        if field_name not in self.allowed:
            raise ValueError(f"Filter field {field_name!r} is not whitelisted for this report.")
        value = self.values.get(field_name)
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return value

    def where(self, condition: ColumnElement[bool]) -> FilterBuilder:
        self.conditions.append(condition)
        return self

    def equals(self, field_name: str, column: ColumnElement) -> FilterBuilder:
        value = self._value(field_name)
        if value is not None:
            self.conditions.append(column == literal(value, column.type))
        return self

    def one_or_many(self, field_name: str, column: ColumnElement, enum_cls: type[enum.Enum]) -> FilterBuilder:
        """``= value`` for a single value, ``IN (...)`` for a comma-separated list."""

        raw = self._value(field_name)
        if raw is None:
            return self
        parsed = []
        for item in split_values(raw):
            try:
                parsed.append(enum_cls(item))
            except ValueError:
                allowed_values = ", ".join(member.value for member in enum_cls)
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=f"Invalid {field_name} value '{item}'. Allowed: {allowed_values}.",
                ) from None
        if not parsed:
            return self
        if len(parsed) == 1:
            self.conditions.append(column == literal(parsed[0], column.type))
        else:
            self.conditions.append(column.in_([literal(value, column.type) for value in parsed]))
        return self

    def on_or_after(self, field_name: str, column: ColumnElement, *, include_null: bool = False) -> FilterBuilder:
        value = self._value(field_name)
        if value is not None:
            self._append_date_bound(func.date(column, type_=Date) >= literal(value, Date), column, include_null)
        return self

    def on_or_before(self, field_name: str, column: ColumnElement, *, include_null: bool = False) -> FilterBuilder:
        value = self._value(field_name)
        if value is not None:
            self._append_date_bound(func.date(column, type_=Date) <= literal(value, Date), column, include_null)
        return self

    def _append_date_bound(
        self,
        condition: ColumnElement[bool],
        column: ColumnElement,
        include_null: bool,
    ) -> None:
        if include_null:
            condition = condition | column.is_(None)
        self.conditions.append(condition)

    def since(self, field_name: str, column: ColumnElement) -> FilterBuilder:
        """Raw timestamp lower bound at midnight of the given date."""

        value = self._value(field_name)
        if isinstance(value, date):
            self.conditions.append(column >= literal(datetime.combine(value, time.min), column.type))
        return self

    def through_end_of_day(self, field_name: str, column: ColumnElement) -> FilterBuilder:
        """Raw timestamp upper bound at midnight following the given date."""

        value = self._value(field_name)
        if isinstance(value, date):
            boundary = datetime.combine(value + timedelta(days=1), time.min)
            self.conditions.append(column <= literal(boundary, column.type))
        return self

    def contains(self, field_name: str, column: ColumnElement) -> FilterBuilder:
        value = self._value(field_name)
        if value is not None:
            self.conditions.append(column.contains(str(value), autoescape=True))
        return self

    def within_scope(self, column: ColumnElement, scope: ConsultantScope) -> FilterBuilder:
        """Restrict ``column`` to the scope's user ids.

        An empty scope sets :attr:`no_results` instead of emitting ``IN ()``.
        """

        if scope.unrestricted:
            return self
        if not scope.user_ids:
            self.no_results = True
            return self
        self.conditions.append(column.in_([literal(user_id, column.type) for user_id in sorted(scope.user_ids)]))
        return self

    def clause(self) -> ColumnElement[bool] | None:
        """Combined criteria, for use in join conditions."""

        if not self.conditions:
            return None
        return and_(*self.conditions)

    def apply(self, stmt: Select) -> Select:
        if not self.conditions:
            return stmt
        return stmt.where(*self.conditions)

    def render(self) -> tuple[str, list[object]]:
        """Render the accumulated criteria as positional SQL and parameters."""

        if not self.conditions:
            return "", []
        compiled = and_(*self.conditions).compile(dialect=DefaultDialect(paramstyle="qmark"))
        params = compiled.params
        return str(compiled), [params[name] for name in compiled.positiontup]
