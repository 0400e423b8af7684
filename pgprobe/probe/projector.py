"""Map a tabular query result onto metric names.

The projector knows nothing about what the columns mean. Given the same
result, mode, scheme and suffixes it always returns the same emissions in the
same order:

* ``COUNT_ROWS`` - one emission carrying the row count.
* ``SINGLE_ROW`` - the first column of the first row, or nothing at all when
  the result is empty.
* ``MULTI_ROW`` - every column of every row, row by row, each named with the
  suffix at the same position.
"""

from __future__ import annotations

from collections.abc import Sequence

from pgprobe.shared.exceptions import ShapeMismatchError

from .types import MetricEmission, NamingScheme, ProjectionMode, QueryResult


def project(
    result: QueryResult,
    mode: ProjectionMode,
    scheme: NamingScheme,
    suffixes: Sequence[str] = (),
) -> list[MetricEmission]:
    """Return the ordered metric emissions for ``result``."""
    if mode is ProjectionMode.COUNT_ROWS:
        return [MetricEmission(scheme.metric_name(), result.row_count)]
    if mode is ProjectionMode.MULTI_ROW:
        return _project_rows(result, scheme, tuple(suffixes))
    return _project_first_value(result, scheme)


def _project_first_value(result: QueryResult, scheme: NamingScheme) -> list[MetricEmission]:
    if not result.rows or len(result.rows[0]) == 0:
        return []
    return [MetricEmission(scheme.metric_name(), result.rows[0][0])]


def _project_rows(
    result: QueryResult,
    scheme: NamingScheme,
    suffixes: tuple[str, ...],
) -> list[MetricEmission]:
    # Validate every row first so a mismatch never yields a partial series.
    for index, row in enumerate(result.rows):
        if len(row) != len(suffixes):
            raise ShapeMismatchError(
                f"Row {index} has {len(row)} column(s) but {len(suffixes)} metric "
                f"suffix(es) are configured ({', '.join(suffixes) or 'none'})."
            )

    names = [scheme.metric_name(suffix) for suffix in suffixes]
    return [
        MetricEmission(name, value)
        for row in result.rows
        for name, value in zip(names, row)
    ]
