"""Parser for the engine's stored CREATE TABLE text.

Turns the canonical table definition kept in the engine catalog back into
a TableSchema. Supported column constraints:

    PRIMARY KEY [ASC | DESC] [AUTOINCREMENT]
    UNIQUE
    NOT NULL
    DEFAULT literal

Steps: tokenize with sqlglot, split the column list on top-level commas,
take the column name and the declared type from the tokens, then cut the
rest into one clause per constraint keyword and parse each clause with
sqlglot. Each clause is parsed on its own, so the optional trailing parts
of one constraint (a UNIQUE key name, say) never swallow the next one.

The declared type is kept verbatim: the engine accepts any sequence of
names as a type ("double precision", "unsigned big int", "varchar(10)"),
which is wider than sqlglot's type grammar. DEFAULT values are read back
through the value codec.

Anything else fails closed with UnsupportedSchemaError instead of being
dropped: CHECK, REFERENCES, COLLATE, named constraints, table constraints
and non-literal defaults.
"""

from __future__ import annotations

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError
from sqlglot.tokens import Token, TokenType

from sqlite_gateway.domain.errors import InvalidValueError, UnsupportedSchemaError
from sqlite_gateway.domain.services.sql_lexer import DIALECT
from sqlite_gateway.domain.services.value_codec import parse_literal
from sqlite_gateway.domain.value_objects.schema import (
    ColumnDescriptor,
    Constraint,
    Default,
    NotNull,
    PrimaryKey,
    SortOrder,
    TableSchema,
    Unique,
)

# Words that open a column constraint and therefore end the declared type
_CONSTRAINT_WORDS = frozenset(
    {
        "CONSTRAINT", "PRIMARY", "PRIMARY KEY", "NOT", "NULL", "UNIQUE", "CHECK",
        "DEFAULT", "COLLATE", "REFERENCES", "GENERATED", "AS",
    }
)

# Words that open a table constraint in place of a column definition
_TABLE_CONSTRAINT_WORDS = frozenset(
    {"CONSTRAINT", "PRIMARY", "PRIMARY KEY", "UNIQUE", "CHECK", "FOREIGN", "FOREIGN KEY"}
)

_QUOTED_TOKENS = frozenset({TokenType.STRING, TokenType.IDENTIFIER, TokenType.HEX_STRING})


def _word(token: Token) -> str:
    """Upper-cased keyword text of a token, or "" for quoted content."""
    if token.token_type in _QUOTED_TOKENS:
        return ""
    return " ".join(token.text.upper().split())


class _ColumnTokens:
    """Token span of one column definition."""

    def __init__(self, sql: str, tokens: list[Token]) -> None:
        self.sql = sql
        self.tokens = tokens
        self.words = [_word(t) for t in tokens]

    def text(self, start: int, end: int) -> str:
        if start >= end:
            return ""
        return self.sql[self.tokens[start].start : self.tokens[end - 1].end + 1]

    @property
    def name(self) -> str:
        return self.tokens[0].text

    def clauses(self) -> tuple[str, list[tuple[int, int]]]:
        """Split the definition into its declared type and constraint clauses.

        Returns:
            The type text and the (start, end) token ranges of each clause.
        """
        starts = []
        for i in range(1, len(self.tokens)):
            # The token after NOT or DEFAULT belongs to that clause
            if self.words[i] in _CONSTRAINT_WORDS and self.words[i - 1] not in ("NOT", "DEFAULT"):
                starts.append(i)
        if not starts:
            return self.text(1, len(self.tokens)), []

        bounds = starts + [len(self.tokens)]
        return self.text(1, starts[0]), list(zip(bounds, bounds[1:]))

    def ascending(self, start: int, end: int) -> bool:
        """Whether a PRIMARY KEY clause spells out ASC."""
        words = self.words[start:end]
        offset = 1 if words[0] == "PRIMARY KEY" else 2
        return words[offset : offset + 1] == ["ASC"]


def _tokenize(sql: str) -> list[Token]:
    try:
        return sqlglot.tokenize(sql, read=DIALECT)
    except SqlglotError as e:
        raise UnsupportedSchemaError(f"Cannot tokenize table definition: {e}") from e


def _split_columns(sql: str, tokens: list[Token]) -> list[_ColumnTokens]:
    open_at = next((i for i, t in enumerate(tokens) if t.token_type == TokenType.L_PAREN), None)
    if open_at is None or any(_word(t) == "AS" for t in tokens[:open_at]):
        raise UnsupportedSchemaError(f"No column list in table definition: {sql!r}")

    groups: list[list[Token]] = [[]]
    depth = 0
    for token in tokens[open_at + 1 :]:
        if token.token_type == TokenType.L_PAREN:
            depth += 1
        elif token.token_type == TokenType.R_PAREN:
            if depth == 0:
                break
            depth -= 1
        elif token.token_type == TokenType.COMMA and depth == 0:
            groups.append([])
            continue
        groups[-1].append(token)
    else:
        raise UnsupportedSchemaError(f"Unterminated column list in table definition: {sql!r}")

    columns = []
    for group in groups:
        if not group:
            raise UnsupportedSchemaError(f"Empty column definition in: {sql!r}")
        column = _ColumnTokens(sql, group)
        if column.words[0] in _TABLE_CONSTRAINT_WORDS:
            raise UnsupportedSchemaError(
                f"Table constraints are not supported: {column.text(0, len(group))}"
            )
        columns.append(column)
    return columns


def _parse_clause(column: str, clause: str) -> list[exp.ColumnConstraint]:
    """Parse one constraint clause of a column with sqlglot."""
    try:
        statement = sqlglot.parse_one(f"CREATE TABLE t (c {clause})", read=DIALECT)
    except SqlglotError as e:
        raise UnsupportedSchemaError(f"Unsupported constraint for column '{column}': {clause}") from e

    schema = statement.this if isinstance(statement, exp.Create) else None
    column_def = schema.expressions[0] if isinstance(schema, exp.Schema) and schema.expressions else None
    if (
        not isinstance(column_def, exp.ColumnDef)
        or column_def.args.get("kind") is not None
        or not column_def.constraints
    ):
        raise UnsupportedSchemaError(f"Unsupported constraint for column '{column}': {clause}")
    return column_def.constraints


def _convert_clause(
    column: _ColumnTokens, start: int, end: int, constraints: list[Constraint]
) -> None:
    clause = column.text(start, end)
    if column.words[start] == "CONSTRAINT":
        raise UnsupportedSchemaError(
            f"Named constraints are not supported on column '{column.name}': {clause}"
        )

    for constraint in _parse_clause(column.name, clause):
        kind = constraint.args.get("kind")

        if isinstance(kind, exp.PrimaryKeyColumnConstraint) and not kind.args.get("options"):
            if kind.args.get("desc"):
                order = SortOrder.DESC
            elif column.ascending(start, end):
                order = SortOrder.ASC
            else:
                order = None
            constraints.append(PrimaryKey(order=order))

        elif isinstance(kind, exp.AutoIncrementColumnConstraint):
            if not constraints or not isinstance(constraints[-1], PrimaryKey):
                raise UnsupportedSchemaError(
                    f"AUTOINCREMENT without PRIMARY KEY on column '{column.name}'"
                )
            constraints[-1] = PrimaryKey(order=constraints[-1].order, autoincrement=True)

        elif isinstance(kind, exp.UniqueColumnConstraint) and kind.this is None:
            constraints.append(Unique())

        elif isinstance(kind, exp.NotNullColumnConstraint) and not kind.args.get("allow_null"):
            constraints.append(NotNull())

        elif isinstance(kind, exp.DefaultColumnConstraint):
            text = column.text(start + 1, end)
            try:
                constraints.append(Default(parse_literal(text)))
            except InvalidValueError as e:
                raise UnsupportedSchemaError(
                    f"Unsupported DEFAULT for column '{column.name}': {text}"
                ) from e

        else:
            raise UnsupportedSchemaError(
                f"Unsupported constraint for column '{column.name}': {clause}"
            )


def _convert_column(column: _ColumnTokens) -> ColumnDescriptor:
    col_type, clauses = column.clauses()
    constraints: list[Constraint] = []
    for start, end in clauses:
        _convert_clause(column, start, end, constraints)

    try:
        return ColumnDescriptor(column.name, col_type, tuple(constraints))
    except ValueError as e:
        raise UnsupportedSchemaError(str(e)) from e


def parse_column(definition: str) -> ColumnDescriptor:
    """Parse a single column definition, e.g. "name TEXT NOT NULL"."""
    schema = parse_table_definition(f"CREATE TABLE t ({definition})")
    if len(schema) != 1:
        raise UnsupportedSchemaError(f"Expected a single column definition: {definition!r}")
    return schema[0]


def parse_table_definition(sql: str) -> TableSchema:
    """Parse a stored CREATE TABLE statement into a TableSchema.

    Args:
        sql: The definition text as kept in the engine catalog.

    Returns:
        The table's columns in engine order.

    Raises:
        UnsupportedSchemaError: If the text falls outside the supported grammar.
    """
    columns = [_convert_column(c) for c in _split_columns(sql, _tokenize(sql))]
    try:
        return TableSchema(tuple(columns))
    except ValueError as e:
        raise UnsupportedSchemaError(str(e)) from e
