from __future__ import annotations

import io
import re
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

import psycopg
from click.testing import CliRunner

from pgprobe.probe.main import index_bloat_cli, query_cli, run_probe, table_bloat_cli
from pgprobe.shared.cli import CLIContext
from pgprobe.shared.config import load_config

METRIC_LINE = re.compile(r"^(?P<name>[\w.]+) (?P<value>\S*) (?P<ts>\d+)$")

BLOAT_ROWS = [
    (Decimal("512.000"), Decimal("64.50"), Decimal("13")),
    (Decimal("8.000"), Decimal("0.00"), Decimal("0")),
]


def _metrics(output: str) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for line in output.splitlines():
        match = METRIC_LINE.match(line)
        if match:
            pairs.append((match["name"], match["value"]))
    return pairs


def test_table_bloat_emits_first_value(probe_env: Path, fake_db) -> None:
    handle = fake_db(rows=BLOAT_ROWS, columns=("total_mb", "wasted_mb", "bloat_pct"))

    result = CliRunner().invoke(table_bloat_cli, ["-h", "db.internal", "-d", "inventory"])

    assert result.exit_code == 0, result.output
    assert _metrics(result.output) == [("postgres", "512.000")]
    assert handle.cursor.executed[0].lstrip().startswith("WITH constants AS")
    assert handle.connection.closed is True


def test_table_bloat_multirow(probe_env: Path, fake_db) -> None:
    fake_db(rows=BLOAT_ROWS, columns=("total_mb", "wasted_mb", "bloat_pct"))

    result = CliRunner().invoke(table_bloat_cli, ["--multirow", "-s", "db01.postgres"])

    assert result.exit_code == 0, result.output
    assert _metrics(result.output) == [
        ("db01.postgres.total_MB", "512.000"),
        ("db01.postgres.wasted_MB", "64.50"),
        ("db01.postgres.bloat_pct", "13"),
        ("db01.postgres.total_MB", "8.000"),
        ("db01.postgres.wasted_MB", "0.00"),
        ("db01.postgres.bloat_pct", "0"),
    ]


def test_index_bloat_multirow_names_include_database(probe_env: Path, fake_db) -> None:
    handle = fake_db(rows=BLOAT_ROWS[:1], columns=("total_mb", "wasted_mb", "bloat_pct"))

    result = CliRunner().invoke(index_bloat_cli, ["-m", "-d", "inventory"])

    assert result.exit_code == 0, result.output
    assert [name for name, _ in _metrics(result.output)] == [
        "postgres.inventory.total_MB",
        "postgres.inventory.wasted_MB",
        "postgres.inventory.bloat_pct",
    ]
    assert "btree_index_atts" in handle.cursor.executed[0]


def test_tuple_count_overrides_multirow(probe_env: Path, fake_db) -> None:
    fake_db(rows=BLOAT_ROWS, columns=("total_mb", "wasted_mb", "bloat_pct"))

    result = CliRunner().invoke(table_bloat_cli, ["-t", "-m"])

    assert result.exit_code == 0, result.output
    assert _metrics(result.output) == [("postgres", "2")]


def test_empty_result_emits_no_metric(probe_env: Path, fake_db) -> None:
    fake_db(rows=[], columns=("value",))

    result = CliRunner().invoke(query_cli, ["-q", "SELECT 1 WHERE false"])

    assert result.exit_code == 0, result.output
    assert _metrics(result.output) == []


def test_connection_failure_exits_unknown(probe_env: Path, fake_db) -> None:
    fake_db(connect_error=psycopg.OperationalError("connection failed: Connection refused"))

    result = CliRunner().invoke(table_bloat_cli, [])

    assert result.exit_code == 3
    assert "Unable to query PostgreSQL: connection failed: Connection refused" in result.output
    assert _metrics(result.output) == []


def test_shape_mismatch_exits_unknown(probe_env: Path, fake_db) -> None:
    fake_db(rows=[(1, 2)], columns=("a", "b"))

    result = CliRunner().invoke(table_bloat_cli, ["-m", "-q", "SELECT 1, 2"])

    assert result.exit_code == 3
    assert "has 2 column(s) but 3 metric suffix(es)" in result.output
    assert _metrics(result.output) == []


def test_query_command_uses_custom_suffixes(probe_env: Path, fake_db) -> None:
    fake_db(rows=[(3, 40)], columns=("waiting", "active"))

    result = CliRunner().invoke(
        query_cli,
        [
            "-q",
            "SELECT 3, 40",
            "-m",
            "-s",
            "pg.connections",
            "--suffix",
            "waiting",
            "--suffix",
            "active",
        ],
    )

    assert result.exit_code == 0, result.output
    assert _metrics(result.output) == [("pg.connections.waiting", "3"), ("pg.connections.active", "40")]


def test_query_command_multirow_requires_suffixes(probe_env: Path, fake_db) -> None:
    handle = fake_db(rows=[(1,)])

    result = CliRunner().invoke(query_cli, ["-q", "SELECT 1", "-m"])

    assert result.exit_code == 3
    assert "Configuration error" in result.output
    assert handle.cursor.executed == []


def test_query_command_requires_query(probe_env: Path, fake_db) -> None:
    fake_db()

    result = CliRunner().invoke(query_cli, [])

    assert result.exit_code == 2
    assert "--query" in result.output


def test_credentials_come_from_pgpass(probe_env: Path, fake_db) -> None:
    pgpass = probe_env / "creds"
    pgpass.write_text("# monitoring\ndb.internal:5433:inventory:monitor:s3cr\\:et\n", encoding="utf-8")
    handle = fake_db(rows=[(1,)])

    result = CliRunner().invoke(query_cli, ["-q", "SELECT 1", "-f", str(pgpass)])

    assert result.exit_code == 0, result.output
    settings = handle.settings[0]
    assert (settings.host, settings.port, settings.database, settings.user, settings.password) == (
        "db.internal",
        5433,
        "inventory",
        "monitor",
        "s3cr:et",
    )


def test_config_file_sets_scheme(probe_env: Path, fake_db) -> None:
    (probe_env / "config.yaml").write_text(
        "probe:\n  scheme: staging.postgres\nconnection:\n  host: replica.internal\n",
        encoding="utf-8",
    )
    handle = fake_db(rows=[(7,)])

    result = CliRunner().invoke(query_cli, ["-q", "SELECT 7"])

    assert result.exit_code == 0, result.output
    assert _metrics(result.output) == [("staging.postgres", "7")]
    assert handle.settings[0].host == "replica.internal"


def test_invalid_config_exits_unknown(probe_env: Path, fake_db) -> None:
    (probe_env / "config.yaml").write_text("- not a mapping\n", encoding="utf-8")
    fake_db()

    result = CliRunner().invoke(query_cli, ["-q", "SELECT 1"])

    assert result.exit_code == 3
    assert "Configuration error" in result.output


def test_undecodable_pgpass_exits_unknown(probe_env: Path, fake_db) -> None:
    pgpass = probe_env / "creds"
    pgpass.write_bytes(b"db:5432:*:mon:\xff\xfe\n")
    handle = fake_db(rows=[(1,)])

    result = CliRunner().invoke(query_cli, ["-q", "SELECT 1", "-f", str(pgpass)])

    assert result.exit_code == 3
    assert "Configuration error: Unable to read pgpass file" in result.output
    assert handle.cursor.executed == []


def test_undecodable_config_exits_unknown(probe_env: Path, fake_db) -> None:
    (probe_env / "config.yaml").write_bytes(b"probe:\n  scheme: \xff\xfe\n")
    fake_db()

    result = CliRunner().invoke(query_cli, ["-q", "SELECT 1"])

    assert result.exit_code == 3
    assert "Configuration error" in result.output


def test_empty_scheme_flag_exits_unknown(probe_env: Path, fake_db) -> None:
    handle = fake_db(rows=[(1,)])

    result = CliRunner().invoke(query_cli, ["-q", "SELECT 1", "-s", ""])

    assert result.exit_code == 3
    assert "Metric scheme must not be empty" in result.output
    assert _metrics(result.output) == []
    assert handle.cursor.executed == []


def test_zero_column_row_warns_no_value(probe_env: Path, fake_db) -> None:
    fake_db(rows=[()], columns=())
    warnings: list[str] = []
    logger = SimpleNamespace(warning=warnings.append, debug=lambda message: None)
    cli_ctx = CLIContext(config=load_config(), verbose=False, logger=logger)
    stream = io.StringIO()

    written = run_probe(cli_ctx, query="SELECT", clock=lambda: 1_700_000_000, stream=stream)

    assert written == 0
    assert stream.getvalue() == ""
    assert warnings == ["Query produced no value; no metric emitted."]
