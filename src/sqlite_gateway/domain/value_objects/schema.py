"""Table schema value objects.

A table schema is an ordered sequence of column descriptors. Each column
carries a declared type and a set of constraints drawn from a closed set
of variants: primary key (with optional sort order and autoincrement),
unique, not null and default.

Constraints are kept in canonical emission order (primary key, unique,
not null, default) so a schema created from descriptors and read back
from the engine catalog compares equal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Union

from sqlite_gateway.domain.value_objects.values import SQLValue


class SortOrder(Enum):
    """Sort order of a primary key column."""

    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True, slots=True)
class PrimaryKey:
    """PRIMARY KEY [ASC|DESC] [AUTOINCREMENT]."""

    order: SortOrder | None = None
    autoincrement: bool = False


@dataclass(frozen=True, slots=True)
class Unique:
    """UNIQUE."""


@dataclass(frozen=True, slots=True)
class NotNull:
    """NOT NULL."""


@dataclass(frozen=True, slots=True)
class Default:
    """DEFAULT <literal>."""

    value: SQLValue


Constraint = Union[PrimaryKey, Unique, NotNull, Default]

_CONSTRAINT_RANK: dict[type, int] = {
    PrimaryKey: 0,
    Unique: 1,
    NotNull: 2,
    Default: 3,
}

_CONSTRAINT_SHORTHAND: dict[str, Constraint] = {
    "primary_key": PrimaryKey(),
    "unique": Unique(),
    "not_null": NotNull(),
}


def _coerce_constraint(item: Constraint | str) -> Constraint:
    if isinstance(item, str):
        try:
            return _CONSTRAINT_SHORTHAND[item.lower()]
        except KeyError:
            raise ValueError(f"Unknown constraint shorthand: {item!r}") from None
    if type(item) not in _CONSTRAINT_RANK:
        raise ValueError(f"Not a column constraint: {item!r}")
    return item


@dataclass(frozen=True, slots=True)
class ColumnDescriptor:
    """A column definition: name, declared type and constraints.

    Attributes:
        name: Column identifier (emitted unquoted).
        type: Declared type, lower-case (e.g. "integer", "text", "double").
            Empty when the column declares no type.
        constraints: Constraints in canonical order.
    """

    name: str
    type: str = ""
    constraints: tuple[Constraint, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Column name must not be empty")

        constraints = [_coerce_constraint(c) for c in self.constraints]
        if sum(isinstance(c, PrimaryKey) for c in constraints) > 1:
            raise ValueError(f"Column '{self.name}' has more than one primary key")
        if sum(isinstance(c, Default) for c in constraints) > 1:
            raise ValueError(f"Column '{self.name}' has more than one default")

        # Ordered set: drop duplicates, then sort into emission order
        unique = list(dict.fromkeys(constraints))
        unique.sort(key=lambda c: _CONSTRAINT_RANK[type(c)])

        object.__setattr__(self, "type", self.type.lower())
        object.__setattr__(self, "constraints", tuple(unique))

    @property
    def primary_key(self) -> PrimaryKey | None:
        for constraint in self.constraints:
            if isinstance(constraint, PrimaryKey):
                return constraint
        return None

    @property
    def default(self) -> Default | None:
        for constraint in self.constraints:
            if isinstance(constraint, Default):
                return constraint
        return None

    @property
    def not_null(self) -> bool:
        return NotNull() in self.constraints

    @property
    def unique(self) -> bool:
        return Unique() in self.constraints


ColumnSpec = Union[
    ColumnDescriptor,
    tuple[str, str],
    tuple[str, str, Iterable[Union[Constraint, str]]],
]


@dataclass(frozen=True, slots=True)
class TableSchema:
    """Ordered sequence of column descriptors.

    Column order is significant: it defines the engine column order.
    """

    columns: tuple[ColumnDescriptor, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        names = [c.name for c in self.columns]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate column names in schema: {names}")

    @classmethod
    def coerce(cls, columns: TableSchema | Iterable[ColumnSpec]) -> TableSchema:
        """Build a schema from descriptors or (name, type[, constraints]) tuples."""
        if isinstance(columns, TableSchema):
            return columns

        descriptors = []
        for spec in columns:
            if isinstance(spec, ColumnDescriptor):
                descriptors.append(spec)
            elif len(spec) == 2:
                name, col_type = spec
                descriptors.append(ColumnDescriptor(name, col_type))
            elif len(spec) == 3:
                name, col_type, constraints = spec
                if isinstance(constraints, (str, PrimaryKey, Unique, NotNull, Default)):
                    constraints = [constraints]
                descriptors.append(ColumnDescriptor(name, col_type, tuple(constraints)))
            else:
                raise ValueError(f"Cannot build a column from {spec!r}")
        return cls(tuple(descriptors))

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def get(self, name: str) -> ColumnDescriptor | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def __iter__(self) -> Iterator[ColumnDescriptor]:
        return iter(self.columns)

    def __len__(self) -> int:
        return len(self.columns)

    def __getitem__(self, index: int) -> ColumnDescriptor:
        return self.columns[index]
