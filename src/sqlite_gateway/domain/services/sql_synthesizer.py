"""SQL statement synthesis from structured inputs.

Pure functions: no I/O, deterministic given their inputs. Every embedded
value goes through the value codec; by default through the escaping
renderer, with an explicit unsafe variant for callers who pre-escape.

Identifiers (table and column names) are emitted unquoted. Callers must
choose identifiers that need no quoting under the engine's bare-identifier
rules; names are not quoted or rewritten here.

Statement shapes:
    CREATE TABLE t (c TYPE [PRIMARY KEY [ASC|DESC] [AUTOINCREMENT]] [UNIQUE] [NOT NULL] [DEFAULT lit], ...)
    INSERT INTO t (c1, c2) VALUES (lit1, lit2)
    UPDATE t SET c1 = lit1, c2 = lit2 WHERE k = lit
    SELECT c1, c2 | * FROM t [WHERE k = lit]
    DELETE FROM t WHERE k = lit
    DROP TABLE t
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Sequence

from sqlite_gateway.domain.errors import InvalidValueError
from sqlite_gateway.domain.services.value_codec import render, render_unsafe
from sqlite_gateway.domain.value_objects.schema import (
    ColumnDescriptor,
    ColumnSpec,
    Default,
    NotNull,
    PrimaryKey,
    TableSchema,
    Unique,
)


def _renderer(unsafe: bool) -> Callable[[Any], str]:
    return render_unsafe if unsafe else render


def _identifier(name: str) -> str:
    if not isinstance(name, str) or not name:
        raise InvalidValueError(f"Invalid identifier: {name!r}")
    return name


def _column_sql(column: ColumnDescriptor, literal: Callable[[Any], str]) -> str:
    parts = [_identifier(column.name)]
    if column.type:
        parts.append(column.type.upper())

    for constraint in column.constraints:
        if isinstance(constraint, PrimaryKey):
            parts.append("PRIMARY KEY")
            if constraint.order is not None:
                parts.append(constraint.order.value)
            if constraint.autoincrement:
                parts.append("AUTOINCREMENT")
        elif isinstance(constraint, Unique):
            parts.append("UNIQUE")
        elif isinstance(constraint, NotNull):
            parts.append("NOT NULL")
        elif isinstance(constraint, Default):
            parts.append(f"DEFAULT {literal(constraint.value)}")

    return " ".join(parts)


def create_table_sql(
    table: str,
    columns: TableSchema | Iterable[ColumnSpec],
    unsafe: bool = False,
) -> str:
    """Build a CREATE TABLE statement.

    Args:
        table: Table name.
        columns: Schema, or column specs accepted by TableSchema.coerce().
        unsafe: Render DEFAULT text values without escaping.

    Returns:
        The statement text.
    """
    try:
        schema = TableSchema.coerce(columns)
    except ValueError as e:
        raise InvalidValueError(str(e)) from e
    if not schema.columns:
        raise InvalidValueError(f"Table '{table}' needs at least one column")

    literal = _renderer(unsafe)
    column_list = ", ".join(_column_sql(c, literal) for c in schema)
    return f"CREATE TABLE {_identifier(table)} ({column_list})"


def _assignments(data: Mapping[str, Any]) -> Sequence[tuple[str, Any]]:
    items = list(data.items())
    if not items:
        raise InvalidValueError("At least one column value is required")
    return [(_identifier(column), value) for column, value in items]


def insert_sql(table: str, data: Mapping[str, Any], unsafe: bool = False) -> str:
    """Build an INSERT statement; columns follow the mapping's order."""
    literal = _renderer(unsafe)
    items = _assignments(data)
    columns = ", ".join(column for column, _ in items)
    values = ", ".join(literal(value) for _, value in items)
    return f"INSERT INTO {_identifier(table)} ({columns}) VALUES ({values})"


def update_sql(
    table: str,
    key: str,
    key_value: Any,
    data: Mapping[str, Any],
    unsafe: bool = False,
) -> str:
    """Build an UPDATE statement targeting rows where key = key_value."""
    literal = _renderer(unsafe)
    assignments = ", ".join(
        f"{column} = {literal(value)}" for column, value in _assignments(data)
    )
    return (
        f"UPDATE {_identifier(table)} SET {assignments} "
        f"WHERE {_identifier(key)} = {literal(key_value)}"
    )


def select_sql(
    table: str,
    key: str | None = None,
    key_value: Any = None,
    columns: Sequence[str] | None = None,
    unsafe: bool = False,
) -> str:
    """Build a SELECT statement.

    Args:
        table: Table name.
        key: Predicate column; None selects every row.
        key_value: Predicate value.
        columns: Projected columns; None or empty selects *.
        unsafe: Render the predicate value without escaping.
    """
    projection = ", ".join(_identifier(c) for c in columns) if columns else "*"
    sql = f"SELECT {projection} FROM {_identifier(table)}"
    if key is not None:
        sql += f" WHERE {_identifier(key)} = {_renderer(unsafe)(key_value)}"
    return sql


def delete_sql(table: str, key: str, key_value: Any, unsafe: bool = False) -> str:
    """Build a DELETE statement targeting rows where key = key_value."""
    literal = _renderer(unsafe)
    return f"DELETE FROM {_identifier(table)} WHERE {_identifier(key)} = {literal(key_value)}"


def drop_table_sql(table: str) -> str:
    return f"DROP TABLE {_identifier(table)}"
