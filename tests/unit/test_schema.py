"""Unit tests for schema value objects and the table definition parser."""

from __future__ import annotations

import pytest

from sqlite_gateway.domain.errors import UnsupportedSchemaError
from sqlite_gateway.domain.services.schema_parser import parse_column, parse_table_definition
from sqlite_gateway.domain.services.sql_synthesizer import create_table_sql
from sqlite_gateway.domain.value_objects import (
    ColumnDescriptor,
    Default,
    NotNull,
    PrimaryKey,
    SortOrder,
    TableSchema,
    Unique,
)


class TestColumnDescriptor:
    """Tests for column descriptors."""

    def test_type_is_lower_cased(self) -> None:
        """Declared types are stored lower-case."""
        assert ColumnDescriptor("id", "INTEGER").type == "integer"

    def test_constraints_are_normalized(self) -> None:
        """Constraints are de-duplicated and put in canonical order."""
        column = ColumnDescriptor("n", "text", (Default("x"), NotNull(), Unique(), NotNull()))

        assert column.constraints == (Unique(), NotNull(), Default("x"))
        assert column.not_null
        assert column.unique
        assert column.default == Default("x")
        assert column.primary_key is None

    def test_shorthand_constraints(self) -> None:
        """String shorthands map to constraint variants."""
        column = ColumnDescriptor("id", "integer", ("primary_key", "not_null"))

        assert column.constraints == (PrimaryKey(), NotNull())

    def test_at_most_one_primary_key(self) -> None:
        """Two primary key constraints are rejected."""
        with pytest.raises(ValueError):
            ColumnDescriptor("id", "integer", (PrimaryKey(), PrimaryKey(SortOrder.DESC)))

    def test_at_most_one_default(self) -> None:
        """Two defaults are rejected."""
        with pytest.raises(ValueError):
            ColumnDescriptor("a", "integer", (Default(1), Default(2)))

    def test_empty_name(self) -> None:
        """A column needs a name."""
        with pytest.raises(ValueError):
            ColumnDescriptor("", "integer")


class TestTableSchema:
    """Tests for table schemas."""

    def test_coerce_from_tuples(self) -> None:
        """Tuples become descriptors, keeping column order."""
        schema = TableSchema.coerce([("id", "integer", "primary_key"), ("name", "text")])

        assert schema.column_names == ["id", "name"]
        assert schema[0].primary_key == PrimaryKey()
        assert schema.get("name") == ColumnDescriptor("name", "text")
        assert schema.get("missing") is None
        assert len(schema) == 2

    def test_duplicate_columns(self) -> None:
        """Column names must be unique."""
        with pytest.raises(ValueError):
            TableSchema.coerce([("a", "int"), ("a", "text")])


class TestParseColumn:
    """Tests for single column definitions."""

    def test_name_and_type(self) -> None:
        """A bare column definition has no constraints."""
        assert parse_column("wage INTEGER") == ColumnDescriptor("wage", "integer")

    def test_untyped_column(self) -> None:
        """A column may declare no type."""
        assert parse_column("x") == ColumnDescriptor("x", "")
        assert parse_column("x NOT NULL") == ColumnDescriptor("x", "", (NotNull(),))

    def test_primary_key_options(self) -> None:
        """Sort order and AUTOINCREMENT are captured."""
        column = parse_column("id INTEGER PRIMARY KEY DESC AUTOINCREMENT")

        assert column.primary_key == PrimaryKey(SortOrder.DESC, autoincrement=True)

    def test_quoted_default_with_spaces(self) -> None:
        """Quoted defaults stay whole and are unescaped."""
        column = parse_column("s TEXT DEFAULT 'it''s a, b' NOT NULL")

        assert column.constraints == (NotNull(), Default("it's a, b"))

    def test_negative_default(self) -> None:
        """Signed numeric defaults parse."""
        assert parse_column("n INTEGER DEFAULT -5").default == Default(-5)

    @pytest.mark.parametrize(
        "definition",
        [
            "a INTEGER CHECK",
            "a INTEGER REFERENCES other",
            "a TEXT COLLATE NOCASE",
            "a INTEGER CONSTRAINT pk PRIMARY KEY",
            "a INTEGER DEFAULT CURRENT_TIMESTAMP",
            "a INTEGER CHECK (a > 0)",
            "a INTEGER DEFAULT (abs(-1))",
            "a INTEGER NULL",
            "PRIMARY KEY",
        ],
    )
    def test_unsupported_definitions(self, definition: str) -> None:
        """Anything outside the supported grammar fails closed."""
        with pytest.raises(UnsupportedSchemaError):
            parse_column(definition)


class TestParseTableDefinition:
    """Tests for whole table definitions."""

    def test_parses_stored_definition(self) -> None:
        """A catalog definition parses into an ordered schema."""
        schema = parse_table_definition(
            "CREATE TABLE user (id INTEGER PRIMARY KEY ASC AUTOINCREMENT, "
            "name TEXT UNIQUE NOT NULL, age INTEGER NOT NULL, wage INTEGER)"
        )

        assert schema == TableSchema(
            (
                ColumnDescriptor("id", "integer", (PrimaryKey(SortOrder.ASC, True),)),
                ColumnDescriptor("name", "text", (Unique(), NotNull())),
                ColumnDescriptor("age", "integer", (NotNull(),)),
                ColumnDescriptor("wage", "integer"),
            )
        )

    def test_round_trip_with_synthesizer(self) -> None:
        """A synthesized definition parses back to the same schema."""
        schema = TableSchema.coerce(
            [
                ("id", "integer", [PrimaryKey(SortOrder.DESC)]),
                ("tag", "text", [Unique(), Default("a'b, c")]),
                ("blob_col", "blob", [Default(b"\x00\xff")]),
                ("ratio", "double", [NotNull(), Default(1.5)]),
                ("plain", "integer"),
            ]
        )

        assert parse_table_definition(create_table_sql("t", schema)) == schema

    def test_typed_lengths(self) -> None:
        """Type arguments such as VARCHAR(10) stay part of the type."""
        schema = parse_table_definition(
            "CREATE TABLE t (name VARCHAR(10) NOT NULL, price DECIMAL(10, 2))"
        )

        assert schema == TableSchema(
            (
                ColumnDescriptor("name", "varchar(10)", (NotNull(),)),
                ColumnDescriptor("price", "decimal(10, 2)"),
            )
        )

    def test_multi_word_types_round_trip(self) -> None:
        """Types spelled with several words survive a round trip."""
        schema = TableSchema.coerce(
            [
                ("id", "integer", ["primary_key"]),
                ("x", "double precision"),
                ("n", "unsigned big int", [NotNull()]),
                ("c", "native character(70)", [Default("a")]),
            ]
        )

        assert parse_table_definition(create_table_sql("t", schema)) == schema

    def test_quoted_names(self) -> None:
        """Quoted column names are read without their quotes."""
        schema = parse_table_definition(
            'CREATE TABLE "t" ("first name" TEXT, [order] INTEGER UNIQUE, `x` REAL)'
        )

        assert schema.column_names == ["first name", "order", "x"]
        assert schema.get("order") == ColumnDescriptor("order", "integer", (Unique(),))

    def test_table_constraint_is_unsupported(self) -> None:
        """Table-level constraints are rejected."""
        with pytest.raises(UnsupportedSchemaError):
            parse_table_definition("CREATE TABLE t (a INTEGER, b INTEGER, UNIQUE (a))")

    def test_missing_column_list(self) -> None:
        """Text without a column list is rejected."""
        with pytest.raises(UnsupportedSchemaError):
            parse_table_definition("CREATE TABLE t AS SELECT 1")
