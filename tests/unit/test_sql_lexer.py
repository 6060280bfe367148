"""Unit tests for the SQL lexical scanner."""

from __future__ import annotations

import pytest

from sqlite_gateway.domain.errors import SQLITE_ERROR, EngineError
from sqlite_gateway.domain.services.sql_lexer import scan, split_statements


class TestPlaceholders:
    """Tests for placeholder discovery and numbering."""

    def test_nameless_placeholders_count_up(self) -> None:
        """Each ? takes the next index."""
        result = scan("INSERT INTO t (a, b) VALUES (?, ?)")

        assert [p.index for p in result.placeholders] == [1, 2]
        assert result.parameter_count == 2
        assert not result.has_named

    def test_numbered_placeholders(self) -> None:
        """?NNN takes index NNN; the count is the highest index."""
        result = scan("INSERT INTO t (a, b) VALUES (?3, ?5)")

        assert [p.index for p in result.placeholders] == [3, 5]
        assert result.parameter_count == 5
        assert result.index_of("?5") == 5
        assert result.index_of(4) == 4
        assert not result.has_named

    def test_nameless_after_numbered(self) -> None:
        """A ? following ?NNN takes NNN + 1."""
        result = scan("SELECT ?2, ?")

        assert [p.index for p in result.placeholders] == [2, 3]

    def test_named_placeholders(self) -> None:
        """:name, @name and $name get indices in order of first appearance."""
        result = scan("SELECT :id, @name, $x, :id")

        assert [p.index for p in result.placeholders] == [1, 2, 3, 1]
        assert result.parameter_count == 3
        assert result.has_named
        assert result.name_of(2) == "@name"

    def test_index_of_accepts_bare_and_prefixed_names(self) -> None:
        """Keys may carry their prefix or omit it."""
        result = scan("INSERT INTO t (a, b) VALUES (:id, @name)")

        assert result.index_of(":id") == 1
        assert result.index_of("id") == 1
        assert result.index_of("@name") == 2
        assert result.index_of("name") == 2
        assert result.index_of(":name") is None
        assert result.index_of("missing") is None
        assert result.index_of(3) is None
        assert result.index_of(0) is None

    def test_placeholders_in_literals_and_comments_are_ignored(self) -> None:
        """Question marks and colons inside quotes or comments are not parameters."""
        sql = """SELECT '?', "a:b", [c?], `:d` -- ? :e
                 /* ?1 :f */ FROM t WHERE x = ?"""
        result = scan(sql)

        assert len(result.placeholders) == 1
        assert result.parameter_count == 1

    def test_escaped_quote_in_literal(self) -> None:
        """A doubled quote does not end the literal."""
        result = scan("SELECT 'it''s ?' , ?")

        assert result.parameter_count == 1

    def test_dollar_inside_identifier(self) -> None:
        """A $ inside a word is part of the identifier, not a parameter."""
        result = scan("SELECT a$b, $x FROM t")

        assert [p.name for p in result.placeholders] == ["$x"]

    def test_placeholder_text(self) -> None:
        """Each placeholder knows the text it was written as."""
        sql = "SELECT ?, ?7, :id, @name"
        result = scan(sql)

        assert [p.text for p in result.placeholders] == ["?", "?7", ":id", "@name"]
        for placeholder in result.placeholders:
            assert sql[placeholder.offset :].startswith(placeholder.text)


class TestStatementShape:
    """Tests for empty detection, leading keyword and terminators."""

    def test_comment_only_is_empty(self) -> None:
        """Whitespace and comments hold no statement."""
        assert scan("-- Comment").is_empty
        assert scan("  /* block */  ").is_empty
        assert scan("").is_empty
        assert scan(";").is_empty

    def test_statement_is_not_empty(self) -> None:
        """Any significant token makes the text non-empty."""
        assert not scan("-- Comment\nSELECT 1").is_empty

    def test_leading_keyword(self) -> None:
        """The first word is reported upper-cased."""
        assert scan("  select * from t").leading_keyword == "SELECT"
        assert scan("-- c\nWITH x AS (SELECT 1) SELECT * FROM x").leading_keyword == "WITH"
        assert scan("(SELECT 1)").leading_keyword is None
        assert scan("").leading_keyword is None

    def test_terminators_skip_quoted_semicolons(self) -> None:
        """Only top-level semicolons are terminators."""
        result = scan("INSERT INTO t VALUES (';'); SELECT 1;")

        assert len(result.terminators) == 2


class TestSplitStatements:
    """Tests for splitting scripts into statements."""

    def test_split_keeps_terminators_and_tail(self) -> None:
        """Pieces keep their semicolon; trailing text is a final piece."""
        pieces = split_statements("SELECT 1; SELECT 2;\n  ")

        assert pieces == ["SELECT 1;", " SELECT 2;", "\n  "]

    def test_split_without_terminator(self) -> None:
        """A script without semicolons is a single piece."""
        assert split_statements("SELECT 1") == ["SELECT 1"]

    def test_split_ignores_semicolons_in_literals(self) -> None:
        """Semicolons inside string literals do not split."""
        pieces = split_statements("INSERT INTO t VALUES ('a;b'); SELECT 2")

        assert pieces == ["INSERT INTO t VALUES ('a;b');", " SELECT 2"]


class TestUnreadableText:
    """Tests for text the tokenizer rejects."""

    @pytest.mark.parametrize("sql", ["SELECT 'abc", 'SELECT "abc', "SELECT [abc"])
    def test_unterminated(self, sql: str) -> None:
        """Unterminated literals and identifiers are engine errors."""
        with pytest.raises(EngineError) as exc_info:
            scan(sql)

        assert exc_info.value.code == SQLITE_ERROR

    def test_split_reports_unterminated_literal(self) -> None:
        """Splitting a script fails the same way."""
        with pytest.raises(EngineError):
            split_statements("SELECT 1; SELECT 'abc")
