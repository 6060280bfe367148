"""SQLite implementation of the SQL engine port.

This adapter drives the standard library sqlite3 module in autocommit mode
(isolation_level=None), so statements take effect as the engine executes
them and transactions are only what callers spell out in SQL.

Parameter resolution:
    Placeholders are discovered by the lexical scanner and numbered the
    way the engine numbers them. Caller parameters (positional, or keyed
    by index or name) are resolved to those indices and unbound indices
    are NULL. sqlite3 takes either a list (one value per index) or a dict
    keyed by placeholder name:

        - no named placeholders: a list
        - every index named, names distinct without their prefix: a dict
        - otherwise (nameless ? beside :name, or :a beside @a) each
          placeholder is spelled ?N with its own index N and a list is
          bound, so every slot is still bound by index

Prepared statements:
    sqlite3 has no public prepare/step API. A statement is compiled once
    with EXPLAIN to surface syntax and catalog errors at prepare time;
    stepping runs it on a cursor and fetches one row at a time; reset
    discards the cursor.

Error codes:
    The engine's (possibly extended) result code is taken from
    sqlite3.Error.sqlite_errorcode. Errors raised by sqlite3 itself
    without an engine code are reported as SQLITE_MISUSE.

Thread Safety:
    None. An engine is opened, used and closed by a single thread.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Mapping

from sqlite_gateway.domain.entities.wire import Parameters
from sqlite_gateway.domain.errors import (
    SQLITE_MISUSE,
    SQLITE_RANGE,
    EngineError,
    InvalidValueError,
)
from sqlite_gateway.domain.services.sql_lexer import StatementScan, scan, split_statements
from sqlite_gateway.domain.services.value_codec import to_bindable
from sqlite_gateway.domain.value_objects import SCRIPT_OK, ResultSet, Row, ScriptOutcome, SQLValue
from sqlite_gateway.infrastructure.config import get_config

MEMORY_PATH = ":memory:"

EMPTY_STATEMENT = "empty statement"

# Leading keywords of statements that produce a result set
_QUERY_KEYWORDS = frozenset({"SELECT", "VALUES", "EXPLAIN", "WITH"})

_LIST_TABLES_SQL = "SELECT name FROM sqlite_master WHERE type = 'table'"
_TABLE_DEFINITION_SQL = (
    "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ? COLLATE NOCASE"
)
_SAVEPOINT = "gateway_batch"


def engine_error(exc: sqlite3.Error | sqlite3.Warning) -> EngineError:
    """Translate a sqlite3 exception into an EngineError."""
    code = getattr(exc, "sqlite_errorcode", None)
    if code is None:
        code = SQLITE_MISUSE
    return EngineError.from_code(code, str(exc))


def resolve_parameters(
    statement_scan: StatementScan, params: Parameters
) -> list[SQLValue] | dict[str, SQLValue]:
    """Resolve caller parameters to the bindings sqlite3 expects.

    Args:
        statement_scan: Scan of the statement the parameters belong to.
        params: None, positional values, or values keyed by index or name.

    Returns:
        A list with one value per index, or a dict keyed by placeholder
        name without its prefix.

    Raises:
        EngineError: SQLITE_RANGE for surplus values or unknown keys.
        InvalidValueError: If a value cannot be bound.
    """
    count = statement_scan.parameter_count
    values: dict[int, SQLValue] = {}

    if params is None:
        pass
    elif isinstance(params, Mapping):
        for key, value in params.items():
            if isinstance(key, bool) or not isinstance(key, (int, str)):
                raise InvalidValueError(f"Invalid parameter key: {key!r}")
            index = statement_scan.index_of(key)
            if index is None:
                raise EngineError(SQLITE_RANGE, f"column index out of range: {key!r}")
            values[index] = to_bindable(value)
    else:
        if isinstance(params, (str, bytes, bytearray)):
            raise InvalidValueError("Parameters must be a sequence or mapping of values")
        items = list(params)
        if len(items) > count:
            raise EngineError(
                SQLITE_RANGE,
                f"column index out of range: {len(items)} values for {count} parameters",
            )
        for index, value in enumerate(items, start=1):
            values[index] = to_bindable(value)

    if binds_by_name(statement_scan):
        return {statement_scan.name_of(i)[1:]: values.get(i) for i in range(1, count + 1)}
    return [values.get(index) for index in range(1, count + 1)]


def binds_by_name(statement_scan: StatementScan) -> bool:
    """Whether sqlite3 can bind the statement from a dict keyed by name."""
    if not statement_scan.has_named:
        return False
    names = [statement_scan.name_of(i) for i in range(1, statement_scan.parameter_count + 1)]
    if None in names:
        return False
    keys = {name[1:] for name in names}
    return len(keys) == len(names)


def engine_sql(sql: str, statement_scan: StatementScan) -> str:
    """Statement text as handed to sqlite3.

    Unchanged unless the statement mixes placeholder styles in a way
    sqlite3 cannot bind by name; then every placeholder is respelled ?N
    with the index the engine would have given it.
    """
    if not statement_scan.has_named or binds_by_name(statement_scan):
        return sql

    pieces: list[str] = []
    last = 0
    for placeholder in statement_scan.placeholders:
        pieces.append(sql[last : placeholder.offset])
        pieces.append(f"?{placeholder.index}")
        last = placeholder.offset + len(placeholder.text)
    pieces.append(sql[last:])
    return "".join(pieces)


def _scan_statement(sql: str) -> StatementScan:
    statement_scan = scan(sql)
    if statement_scan.is_empty:
        raise EngineError(SQLITE_MISUSE, EMPTY_STATEMENT)
    return statement_scan


def _column_names(cursor: sqlite3.Cursor) -> list[str]:
    if cursor.description is None:
        return []
    return [description[0] for description in cursor.description]


class SQLitePreparedStatement:
    """A compiled statement over a sqlite3 connection.

    Implements the EngineStatement protocol.
    """

    def __init__(self, connection: sqlite3.Connection, sql: str, statement_scan: StatementScan) -> None:
        self._connection = connection
        self._sql = sql
        self._engine_sql = engine_sql(sql, statement_scan)
        self._scan = statement_scan
        self._bindings = resolve_parameters(statement_scan, None)
        self._cursor: sqlite3.Cursor | None = None
        self._done = False

    @property
    def sql(self) -> str:
        return self._sql

    @property
    def active(self) -> bool:
        """Whether the statement has been stepped since the last reset."""
        return self._cursor is not None or self._done

    def _run(self, sql: str, bindings: Any) -> sqlite3.Cursor:
        try:
            return self._connection.execute(sql, bindings)
        except (sqlite3.Error, sqlite3.Warning) as e:
            raise engine_error(e) from e

    def columns(self) -> list[str]:
        if self._cursor is not None:
            return _column_names(self._cursor)
        if self._scan.leading_keyword not in _QUERY_KEYWORDS:
            return []

        if self._scan.leading_keyword == "WITH":
            # A common table expression may lead into INSERT, UPDATE or DELETE
            subquery = f"SELECT * FROM ({self._engine_sql.rstrip().rstrip(';')}) LIMIT 0"
            try:
                self._connection.execute(subquery, self._bindings).close()
            except (sqlite3.Error, sqlite3.Warning):
                return []

        cursor = self._run(self._engine_sql, self._bindings)
        try:
            return _column_names(cursor)
        finally:
            cursor.close()

    def bind(self, params: Parameters) -> None:
        if self.active:
            raise EngineError(SQLITE_MISUSE, "bind on a busy statement; reset it first")
        self._bindings = resolve_parameters(self._scan, params)

    def step(self) -> Row | None:
        if self._done:
            return None
        if self._cursor is None:
            self._cursor = self._run(self._engine_sql, self._bindings)

        try:
            row = self._cursor.fetchone()
        except (sqlite3.Error, sqlite3.Warning) as e:
            self._close_cursor()
            self._done = True
            raise engine_error(e) from e

        if row is None:
            self._close_cursor()
            self._done = True
            return None
        return tuple(row)

    def reset(self) -> None:
        self._close_cursor()
        self._done = False

    def finalize(self) -> None:
        self._close_cursor()

    def _close_cursor(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None


class SQLiteEngine:
    """SQLite implementation of the SQLEngine protocol.

    Attributes:
        path: Database file path, or ":memory:".
    """

    def __init__(self, path: str | Path = MEMORY_PATH, busy_timeout: float | None = None) -> None:
        """Open a connection.

        Args:
            path: Database file path, or ":memory:" for a private in-memory
                database. Missing parent directories are created.
            busy_timeout: Seconds to wait on a locked database (default
                from config).

        Raises:
            EngineError: If the engine cannot open the database.
        """
        self.path = str(path)
        if busy_timeout is None:
            busy_timeout = get_config().database.busy_timeout_seconds

        if self.path != MEMORY_PATH:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._connection = sqlite3.connect(
                self.path, timeout=busy_timeout, isolation_level=None
            )
        except sqlite3.Error as e:
            raise engine_error(e) from e
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def execute(self, sql: str, params: Parameters = None) -> ResultSet:
        statement_scan = _scan_statement(sql)
        bindings = resolve_parameters(statement_scan, params)

        try:
            cursor = self._connection.execute(engine_sql(sql, statement_scan), bindings)
            try:
                rows = [tuple(row) for row in cursor.fetchall()]
                columns = _column_names(cursor)
                rowid = cursor.lastrowid
                changes = max(cursor.rowcount, 0)
            finally:
                cursor.close()
        except (sqlite3.Error, sqlite3.Warning) as e:
            raise engine_error(e) from e

        return ResultSet(
            columns=columns,
            rows=rows,
            rowid=rowid,
            changes=changes,
            has_rows=bool(columns),
        )

    def execute_many(self, statements: list[str]) -> list[int]:
        rowids: list[int] = []
        self.execute(f"SAVEPOINT {_SAVEPOINT}")
        try:
            for sql in statements:
                result = self.execute(sql)
                rowids.append(result.rowid if result.rowid is not None else self._last_rowid())
        except Exception:
            self.execute(f"ROLLBACK TO {_SAVEPOINT}")
            self.execute(f"RELEASE {_SAVEPOINT}")
            raise
        self.execute(f"RELEASE {_SAVEPOINT}")
        return rowids

    def _last_rowid(self) -> int:
        (rowid,) = self.execute("SELECT last_insert_rowid()").rows[0]
        return rowid

    def execute_script(self, script: str) -> list[ScriptOutcome]:
        outcomes: list[ScriptOutcome] = []
        pending = ""

        try:
            pieces = split_statements(script)
        except EngineError as e:
            return [ScriptOutcome(code=e.code, message=e.message)]

        statements: list[str] = []
        for piece in pieces:
            pending += piece
            # Semicolons inside a trigger body end a piece but not the statement
            if not sqlite3.complete_statement(pending):
                continue
            statements.append(pending)
            pending = ""
        if pending:
            statements.append(pending)

        for statement in statements:
            if scan(statement).is_empty:
                continue
            try:
                self.execute(statement)
            except EngineError as e:
                outcomes.append(ScriptOutcome(code=e.code, message=e.message))
                break
            outcomes.append(SCRIPT_OK)
        return outcomes

    def prepare(self, sql: str) -> SQLitePreparedStatement:
        statement_scan = _scan_statement(sql)
        bindings = resolve_parameters(statement_scan, None)

        text = engine_sql(sql, statement_scan)
        check = text if statement_scan.leading_keyword == "EXPLAIN" else f"EXPLAIN {text}"
        try:
            self._connection.execute(check, bindings).close()
        except (sqlite3.Error, sqlite3.Warning) as e:
            raise engine_error(e) from e

        return SQLitePreparedStatement(self._connection, sql, statement_scan)

    def list_tables(self) -> list[str]:
        return [name for (name,) in self.execute(_LIST_TABLES_SQL).rows]

    def table_definition(self, table: str) -> str | None:
        rows = self.execute(_TABLE_DEFINITION_SQL, [table]).rows
        if not rows:
            return None
        return rows[0][0]

    def close(self) -> None:
        if self._closed:
            return
        self._connection.close()
        self._closed = True
