"""Dialect-aware SQL expressions used by report aggregates."""

from __future__ import annotations

from sqlalchemy import Float
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import GenericFunction


class elapsed_days(GenericFunction):
    """Fractional days between two timestamps: ``elapsed_days(end, start)``."""

    type = Float()
    inherit_cache = True


@compiles(elapsed_days)
def _elapsed_days_default(element, compiler, **kw):
    end, start = list(element.clauses)
    return "EXTRACT(EPOCH FROM (%s - %s)) / 86400.0" % (
        compiler.process(end, **kw),
        compiler.process(start, **kw),
    )


@compiles(elapsed_days, "sqlite")
def _elapsed_days_sqlite(element, compiler, **kw):
    end, start = list(element.clauses)
    return "(julianday(%s) - julianday(%s))" % (
        compiler.process(end, **kw),
        compiler.process(start, **kw),
    )
