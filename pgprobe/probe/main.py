"""Probe CLI entrypoints.

Each command connects once, runs one query, prints Graphite metric lines on
stdout and exits. Failures print a single message and exit with the UNKNOWN
status so the scheduler never records a bogus value.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Callable, IO

import click

from pgprobe.shared.cli import CLIContext, common_cli_options, handle_check_errors
from pgprobe.shared.exceptions import ConfigurationError

from . import executor, render
from .projector import project
from .types import NamingScheme, ProjectionMode, QueryDefinition


def run_probe(
    cli_ctx: CLIContext,
    *,
    query: str | None,
    builtin: str | None = None,
    suffixes: Sequence[str] = (),
    clock: Callable[[], float] = time.time,
    stream: IO[str] | None = None,
) -> int:
    """Execute the configured query and write its metrics; return lines written."""
    config = cli_ctx.config
    logger = cli_ctx.logger

    definition: QueryDefinition | None = executor.load_builtin_query(builtin) if builtin else None
    query_text = query or (definition.sql if definition else None)
    if not query_text or not query_text.strip():
        raise ConfigurationError("Query text must not be empty.")

    mode = ProjectionMode.from_flags(
        count_tuples=config.probe.count_tuples,
        multirow=config.probe.multirow,
    )
    metric_suffixes = tuple(suffixes) or (definition.suffixes if definition else ())
    if mode is ProjectionMode.MULTI_ROW and not metric_suffixes:
        raise ConfigurationError("Multi-row mode needs one --suffix per result column.")

    scheme = NamingScheme(config.probe.scheme)
    if mode is ProjectionMode.MULTI_ROW and definition and definition.qualify_database:
        scheme = scheme.qualified(config.connection.database or "")

    logger.debug(
        f"Querying {config.connection.host}:{config.connection.port}/{config.connection.database} "
        f"as {config.connection.user} ({mode.value})"
    )
    result = executor.execute_query(connection=config.connection, query=query_text)
    logger.debug(f"Query returned {result.row_count} row(s)")

    emissions = project(result, mode, scheme, metric_suffixes)
    if not emissions:
        logger.warning("Query produced no value; no metric emitted.")
    return render.render_metrics(emissions, timestamp=int(clock()), stream=stream)


def build_command(*, builtin: str | None, help_text: str) -> click.Command:
    """Return a probe command whose default query is the ``builtin`` one."""

    @click.command(help=help_text)
    @click.option(
        "-q",
        "--query",
        "query",
        type=str,
        required=builtin is None,
        help="Database query to execute."
        + (f"  [default: built-in {builtin} query]" if builtin else ""),
    )
    @click.option(
        "--suffix",
        "suffixes",
        multiple=True,
        metavar="NAME",
        help="Metric suffix for each result column in multi-row mode (repeatable, in column order).",
    )
    @common_cli_options
    @handle_check_errors
    def command(cli_ctx: CLIContext, query: str | None, suffixes: tuple[str, ...]) -> None:
        run_probe(cli_ctx, query=query, builtin=builtin, suffixes=suffixes)

    return command


table_bloat_cli = build_command(
    builtin="table-bloat",
    help_text="Collect metrics from the results of a postgres table bloat query.",
)
index_bloat_cli = build_command(
    builtin="index-bloat",
    help_text="Collect metrics from the results of a postgres index bloat query.",
)
query_cli = build_command(
    builtin=None,
    help_text="Collect metrics from the results of an arbitrary postgres query.",
)


def table_bloat_main() -> None:
    """Entry point for the metrics-postgres-table-bloat console script."""
    table_bloat_cli()


def index_bloat_main() -> None:
    """Entry point for the metrics-postgres-index-bloat console script."""
    index_bloat_cli()


def query_main() -> None:
    """Entry point for the metrics-postgres-query console script."""
    query_cli()


if __name__ == "__main__":  # pragma: no cover
    query_main()
