"""Data structures shared across the probe modules."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterator, Sequence, Union

# Whatever the driver hands back for a single field; never interpreted here.
Scalar = Union[str, int, float, Decimal, bool, None]


@dataclass(frozen=True, slots=True)
class Row:
    """One result row with positional access to its field values."""

    values: tuple[Scalar, ...]

    @classmethod
    def of(cls, values: Sequence[Scalar]) -> Row:
        return cls(tuple(values))

    def __getitem__(self, index: int) -> Scalar:
        return self.values[index]

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[Scalar]:
        return iter(self.values)


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Structured result set returned by the executor layer."""

    rows: tuple[Row, ...] = ()
    columns: tuple[str, ...] = ()

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @classmethod
    def from_values(
        cls,
        rows: Sequence[Sequence[Scalar]],
        columns: Sequence[str] = (),
    ) -> QueryResult:
        return cls(rows=tuple(Row.of(row) for row in rows), columns=tuple(columns))


class ProjectionMode(enum.Enum):
    """How a query result is turned into metrics."""

    COUNT_ROWS = "count_rows"
    SINGLE_ROW = "single_row"
    MULTI_ROW = "multi_row"

    @classmethod
    def from_flags(cls, *, count_tuples: bool, multirow: bool) -> ProjectionMode:
        """Collapse the raw CLI flags; row counting wins over multi-row."""
        if count_tuples:
            return cls.COUNT_ROWS
        if multirow:
            return cls.MULTI_ROW
        return cls.SINGLE_ROW


@dataclass(frozen=True, slots=True)
class NamingScheme:
    """Metric name prefix."""

    prefix: str

    def metric_name(self, suffix: str | None = None) -> str:
        if suffix is None:
            return self.prefix
        return f"{self.prefix}.{suffix}"

    def qualified(self, part: str) -> NamingScheme:
        return NamingScheme(self.metric_name(part))


@dataclass(frozen=True, slots=True)
class MetricEmission:
    """A named value ready to be written as a metric line."""

    name: str
    value: Scalar


@dataclass(frozen=True, slots=True)
class QueryDefinition:
    """A built-in query loaded from the manifest."""

    name: str
    description: str
    sql: str
    suffixes: tuple[str, ...] = field(default_factory=tuple)
    qualify_database: bool = False
