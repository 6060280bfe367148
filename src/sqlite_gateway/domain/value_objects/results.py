"""Results returned by the engine and surfaced to callers."""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlite_gateway.domain.value_objects.values import Row


@dataclass(frozen=True)
class ResultSet:
    """Outcome of executing a single statement.

    A statement that produces a result set (SELECT, PRAGMA, RETURNING ...)
    carries its column names and materialized rows. Other statements carry
    the last inserted rowid and the number of changed rows.
    """

    columns: list[str] = field(default_factory=list)
    rows: list[Row] = field(default_factory=list)
    rowid: int | None = None
    changes: int = 0
    has_rows: bool = False

    def __len__(self) -> int:
        return len(self.rows)

    def as_dicts(self) -> list[dict]:
        """Rows as column -> value dictionaries."""
        return [dict(zip(self.columns, row)) for row in self.rows]


@dataclass(frozen=True)
class ScriptOutcome:
    """Outcome of one statement of a script: ok, or an engine error."""

    code: int | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.code is None

    def __repr__(self) -> str:
        if self.ok:
            return "ScriptOutcome(ok)"
        return f"ScriptOutcome(error={self.code}, {self.message!r})"


SCRIPT_OK = ScriptOutcome()
