"""Project-wide custom exceptions."""

from __future__ import annotations


class PgProbeError(Exception):
    """Base exception for the PostgreSQL metrics probes."""


class ConfigurationError(PgProbeError):
    """Raised when configuration loading or validation fails."""


class DatabaseError(PgProbeError):
    """Raised for database-related issues."""


class QueryError(DatabaseError):
    """Raised when connecting to the database or executing the query fails."""


class ProjectionError(PgProbeError):
    """Raised when a query result cannot be mapped onto metric names."""


class ShapeMismatchError(ProjectionError):
    """Raised when a row's width differs from the configured metric suffixes."""
