"""Lexical scan of SQL statement text.

Statement text is tokenized with sqlglot's SQLite dialect, so string
literals, quoted identifiers ("x", [x], `x`) and comments are read the way
the engine reads them. The scan then walks the tokens once and records:

    - placeholders, numbered the way the engine numbers them
    - top-level statement terminators (;)
    - whether the text holds any statement at all
    - the leading keyword

Placeholder numbering (SQLite rules):
    ?        takes the next index (highest index so far + 1)
    ?NNN     takes index NNN
    :name    the index of the first occurrence of the same name,
    @name    otherwise the next index
    $name

sqlglot splits a placeholder into several tokens (":" then "id"), so a
placeholder is recognized by the character a token starts with and its
name is read from the statement text that follows.

The scan never rewrites statement text.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import sqlglot
from sqlglot.errors import TokenError
from sqlglot.tokens import Token, TokenType

from sqlite_gateway.domain.errors import SQLITE_ERROR, EngineError

DIALECT = "sqlite"

_PARAMETER_PREFIXES = ":@$"

# Tokens whose text is literal content, never a keyword
_QUOTED_TOKENS = frozenset({TokenType.STRING, TokenType.IDENTIFIER, TokenType.HEX_STRING})


@dataclass(frozen=True, slots=True)
class Placeholder:
    """A parameter slot in statement text.

    Attributes:
        index: 1-based parameter index.
        name: The placeholder text ("?3", ":id", "@name", "$x"), or None
            for a nameless "?".
        offset: Character offset in the statement text.
    """

    index: int
    name: str | None
    offset: int

    @property
    def text(self) -> str:
        """The placeholder as written in the statement."""
        return self.name if self.name is not None else "?"


@dataclass(frozen=True)
class StatementScan:
    """Result of scanning statement text."""

    placeholders: tuple[Placeholder, ...] = ()
    terminators: tuple[int, ...] = ()
    is_empty: bool = True
    leading_keyword: str | None = None
    parameter_count: int = 0
    _names: dict[str, int] = field(default_factory=dict, repr=False, compare=False)

    @property
    def has_named(self) -> bool:
        """Whether any :name, @name or $name placeholder is present."""
        return any(
            p.name is not None and p.name[0] in _PARAMETER_PREFIXES
            for p in self.placeholders
        )

    def name_of(self, index: int) -> str | None:
        """Placeholder name bound to an index, or None if nameless."""
        for placeholder in self.placeholders:
            if placeholder.index == index and placeholder.name is not None:
                return placeholder.name
        return None

    def index_of(self, key: int | str) -> int | None:
        """Resolve a parameter key to its 1-based index.

        Args:
            key: An integer index, a full placeholder name (":id", "?2"),
                or a bare name ("id") matched against any prefix.

        Returns:
            The index, or None if the key matches no parameter.
        """
        if isinstance(key, int):
            return key if 1 <= key <= self.parameter_count else None

        if key and key[0] in _PARAMETER_PREFIXES + "?":
            candidates = [key]
        else:
            candidates = [prefix + key for prefix in _PARAMETER_PREFIXES + "?"]

        for candidate in candidates:
            if candidate in self._names:
                return self._names[candidate]
        return None


def _is_word_char(char: str) -> bool:
    return char.isalnum() or char in "_$" or ord(char) > 127


def _span(sql: str, pos: int, accept) -> int:
    """Return the end of the run of accepted characters starting at pos."""
    while pos < len(sql) and accept(sql[pos]):
        pos += 1
    return pos


def _is_keyword(sql: str, token: Token) -> bool:
    if token.token_type in _QUOTED_TOKENS:
        return False
    first = sql[token.start]
    return first.isalpha() or first == "_"


def tokenize(sql: str) -> list[Token]:
    """Tokenize statement text with the engine's dialect.

    Raises:
        EngineError: SQLITE_ERROR when the text holds an unreadable token,
            such as an unterminated string literal.
    """
    try:
        return sqlglot.tokenize(sql, read=DIALECT)
    except TokenError as e:
        raise EngineError(SQLITE_ERROR, f"unrecognized token: {e}") from e


def scan(sql: str) -> StatementScan:
    """Scan statement text for placeholders and statement boundaries.

    Args:
        sql: Statement or script text.

    Returns:
        A StatementScan describing the text.

    Raises:
        EngineError: If the text cannot be tokenized.
    """
    placeholders: list[Placeholder] = []
    terminators: list[int] = []
    names: dict[str, int] = {}
    leading_keyword: str | None = None
    is_empty = True
    max_index = 0
    # Text before this offset belongs to the last placeholder read
    consumed = 0

    for token in tokenize(sql):
        if token.start < consumed:
            continue

        if token.token_type == TokenType.SEMICOLON:
            terminators.append(token.start)
            continue

        if is_empty:
            is_empty = False
            if _is_keyword(sql, token):
                leading_keyword = token.text.upper()

        start = token.start
        char = sql[start]

        if char == "?":
            end = _span(sql, start + 1, str.isdigit)
            digits = sql[start + 1 : end]
            if digits:
                index = int(digits)
                name = f"?{digits}"
                names.setdefault(name, index)
            else:
                index = max_index + 1
                name = None
            max_index = max(max_index, index)
            placeholders.append(Placeholder(index, name, start))
            consumed = end
            continue

        if char in _PARAMETER_PREFIXES:
            # "$" inside an identifier such as a$b is part of the name
            if char == "$" and start > 0 and _is_word_char(sql[start - 1]):
                continue
            end = _span(sql, start + 1, _is_word_char)
            if end == start + 1:
                continue
            name = sql[start:end]
            if name not in names:
                max_index += 1
                names[name] = max_index
            placeholders.append(Placeholder(names[name], name, start))
            consumed = end

    return StatementScan(
        placeholders=tuple(placeholders),
        terminators=tuple(terminators),
        is_empty=is_empty,
        leading_keyword=leading_keyword,
        parameter_count=max_index,
        _names=names,
    )


def split_statements(script: str) -> list[str]:
    """Split script text at top-level semicolons.

    Each piece keeps its terminating semicolon. Trailing text after the last
    semicolon is returned as a final piece. Pieces may be empty of
    statements (whitespace or comments only); callers decide what to skip.
    Semicolons inside trigger bodies also split; the engine adapter rejoins
    pieces until they form a complete statement.
    """
    pieces: list[str] = []
    start = 0
    for terminator in scan(script).terminators:
        pieces.append(script[start : terminator + 1])
        start = terminator + 1
    if start < len(script):
        pieces.append(script[start:])
    return pieces
