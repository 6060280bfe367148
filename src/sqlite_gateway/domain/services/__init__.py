"""Domain services.

Pure functions over the value model: value rendering and parsing, SQL
statement synthesis, lexical scanning of statement text and parsing of
stored table definitions.
"""

from sqlite_gateway.domain.services.schema_parser import parse_column, parse_table_definition
from sqlite_gateway.domain.services.sql_lexer import (
    Placeholder,
    StatementScan,
    scan,
    split_statements,
)
from sqlite_gateway.domain.services.sql_synthesizer import (
    create_table_sql,
    delete_sql,
    drop_table_sql,
    insert_sql,
    select_sql,
    update_sql,
)
from sqlite_gateway.domain.services.value_codec import (
    parse_literal,
    render,
    render_unsafe,
    to_bindable,
)

__all__ = [
    "render",
    "render_unsafe",
    "parse_literal",
    "to_bindable",
    "create_table_sql",
    "insert_sql",
    "update_sql",
    "select_sql",
    "delete_sql",
    "drop_table_sql",
    "parse_column",
    "parse_table_definition",
    "Placeholder",
    "StatementScan",
    "scan",
    "split_statements",
]
