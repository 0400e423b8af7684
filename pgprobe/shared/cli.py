"""Shared CLI helpers and decorators."""

from __future__ import annotations

import enum
import functools
from dataclasses import dataclass
from typing import Any, Callable, NoReturn, TypeVar

import click

from .config import AppConfig, load_config
from .exceptions import ConfigurationError, PgProbeError
from .logging import Logger, get_logger
from .pgpass import resolve_connection

F = TypeVar("F", bound=Callable[..., Any])


class ExitStatus(enum.IntEnum):
    """Exit codes understood by Sensu/Nagios style schedulers."""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


@dataclass(slots=True)
class CLIContext:
    """Runtime context shared across a probe invocation."""

    config: AppConfig
    verbose: bool
    logger: Logger


def exit_unknown(message: str) -> NoReturn:
    """Print ``message`` for the scheduler and stop with the UNKNOWN status."""
    click.echo(message)
    raise click.exceptions.Exit(ExitStatus.UNKNOWN)


def common_cli_options(func: F) -> F:
    """Decorator injecting connection/naming options and context creation."""

    @click.option("--config", "config_path", type=click.Path(path_type=str), help="Path to config file.")
    @click.option("-f", "--pgpass", "pgpass", type=click.Path(path_type=str), help="Pgpass file.")
    @click.option("-u", "--user", "user", type=str, help="Postgres user.")
    @click.option("-p", "--password", "password", type=str, help="Postgres password.")
    @click.option("-h", "--hostname", "hostname", type=str, help="Hostname to login to.")
    @click.option("-P", "--port", "port", type=click.IntRange(min=1, max=65535), help="Database port.")
    @click.option("-d", "--db", "database", type=str, help="Database name.")
    @click.option(
        "-T",
        "--timeout",
        "timeout",
        type=click.IntRange(min=1),
        help="Connection and statement timeout (seconds).",
    )
    @click.option(
        "-s",
        "--scheme",
        "scheme",
        type=str,
        help="Metric naming scheme, text to prepend to metric.  [default: postgres]",
    )
    @click.option(
        "-t",
        "--tuples",
        "count_tuples",
        is_flag=True,
        help="Count the number of tuples (rows) returned by the query.",
    )
    @click.option("-m", "--multirow", is_flag=True, help="Emit every row instead of the first value.")
    @click.option("--verbose", is_flag=True, help="Enable verbose logging output.")
    @click.pass_context
    @functools.wraps(func)
    def wrapper(
        ctx: click.Context,
        *args: Any,
        config_path: str | None = None,
        pgpass: str | None = None,
        user: str | None = None,
        password: str | None = None,
        hostname: str | None = None,
        port: int | None = None,
        database: str | None = None,
        timeout: int | None = None,
        scheme: str | None = None,
        count_tuples: bool = False,
        multirow: bool = False,
        verbose: bool = False,
        **kwargs: Any,
    ) -> Any:
        logger = get_logger(verbose=verbose)
        try:
            app_config = load_config(config_path).with_overrides(
                host=hostname,
                port=port,
                database=database,
                user=user,
                password=password,
                pgpass=pgpass,
                timeout=timeout,
                scheme=scheme,
                count_tuples=True if count_tuples else None,
                multirow=True if multirow else None,
            )
            app_config = app_config.with_connection(resolve_connection(app_config.connection))
        except ConfigurationError as exc:
            exit_unknown(f"Configuration error: {exc}")
        except Exception as exc:  # pragma: no cover
            exit_unknown(f"Unexpected error: {exc}")

        logger.debug(f"Configuration loaded from {app_config.source_path}")
        cli_ctx = CLIContext(config=app_config, verbose=verbose, logger=logger)
        ctx.obj = cli_ctx
        kwargs["cli_ctx"] = cli_ctx
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def handle_check_errors(func: F) -> F:
    """Convert project exceptions into the UNKNOWN check status."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ConfigurationError as exc:
            exit_unknown(f"Configuration error: {exc}")
        except PgProbeError as exc:
            exit_unknown(str(exc))
        except click.exceptions.Exit:
            raise
        except click.ClickException:
            raise
        except Exception as exc:  # pragma: no cover
            exit_unknown(f"Unexpected error: {exc}")

    return wrapper  # type: ignore[return-value]
