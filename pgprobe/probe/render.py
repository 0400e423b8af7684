"""Graphite metric-line output for the probes."""

from __future__ import annotations

import sys
import time
from typing import IO, Iterable

from .types import MetricEmission, Scalar


def format_value(value: Scalar) -> str:
    if value is None:
        return ""
    return str(value)


def format_metric_line(emission: MetricEmission, timestamp: int) -> str:
    """Return ``"<name> <value> <timestamp>"`` in the Graphite plaintext format."""
    return f"{emission.name} {format_value(emission.value)} {timestamp}"


def render_metrics(
    emissions: Iterable[MetricEmission],
    *,
    timestamp: int | None = None,
    stream: IO[str] | None = None,
) -> int:
    """Write one metric line per emission and return how many were written."""
    output_stream = stream or sys.stdout
    stamp = int(time.time()) if timestamp is None else timestamp
    written = 0
    for emission in emissions:
        print(format_metric_line(emission, stamp), file=output_stream)
        written += 1
    return written
