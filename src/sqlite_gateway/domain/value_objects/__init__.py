"""Value objects for the gateway domain.

Value objects are immutable types that represent domain concepts.

Exports:
    Values:
        - SQLValue: int | float | str | bytes | None
        - Predicate: single-column equality condition
        - INT64_MIN, INT64_MAX: engine integer bounds
    Schema:
        - ColumnDescriptor, TableSchema
        - PrimaryKey, Unique, NotNull, Default, SortOrder
    Results:
        - ResultSet, ScriptOutcome, SCRIPT_OK
    Identifiers:
        - StatementHandle
"""

from sqlite_gateway.domain.value_objects.identifiers import INVALID_HANDLE, StatementHandle
from sqlite_gateway.domain.value_objects.results import SCRIPT_OK, ResultSet, ScriptOutcome
from sqlite_gateway.domain.value_objects.schema import (
    ColumnDescriptor,
    ColumnSpec,
    Constraint,
    Default,
    NotNull,
    PrimaryKey,
    SortOrder,
    TableSchema,
    Unique,
)
from sqlite_gateway.domain.value_objects.values import (
    INT64_MAX,
    INT64_MIN,
    NULL_KEYWORD,
    Predicate,
    Row,
    SQLValue,
    fits_int64,
)

__all__ = [
    # Values
    "SQLValue",
    "Row",
    "Predicate",
    "INT64_MIN",
    "INT64_MAX",
    "NULL_KEYWORD",
    "fits_int64",
    # Schema
    "ColumnDescriptor",
    "ColumnSpec",
    "Constraint",
    "TableSchema",
    "PrimaryKey",
    "Unique",
    "NotNull",
    "Default",
    "SortOrder",
    # Results
    "ResultSet",
    "ScriptOutcome",
    "SCRIPT_OK",
    # Identifiers
    "StatementHandle",
    "INVALID_HANDLE",
]
