"""Compilation of SQLAlchemy statements into positional libSQL queries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy.dialects import sqlite
from sqlalchemy.sql import ClauseElement

# libSQL speaks SQLite; qmark gives positional args in statement order
_dialect = sqlite.dialect(paramstyle="qmark")


@dataclass(frozen=True)
class CompiledQuery:
    """SQL text plus positional parameters, ready for ``client.execute``."""

    sql: str
    parameters: tuple[Any, ...] = ()

    @classmethod
    def raw(cls, sql: str) -> CompiledQuery:
        return cls(sql)


def compile_query(statement: ClauseElement | str) -> CompiledQuery:
    """Compile a statement or DDL element for libSQL.

    Expanding parameters (``IN`` lists) are rendered into individual
    placeholders so the parameter tuple lines up with the ``?`` markers.
    """
    if isinstance(statement, str):
        return CompiledQuery.raw(statement)

    compiled = statement.compile(
        dialect=_dialect,
        compile_kwargs={"render_postcompile": True},
    )
    positions = getattr(compiled, "positiontup", None)
    if not positions:
        return CompiledQuery(str(compiled))

    params = compiled.params
    return CompiledQuery(str(compiled), tuple(params[name] for name in positions))
