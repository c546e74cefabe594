"""Domain exceptions for the metric store.

This module defines a hierarchy of exceptions for the metric store layer,
separating infrastructure errors (database issues) from domain errors
(missing records).
"""


class MetricStoreError(Exception):
    """Base exception for all metric store errors.

    All exceptions raised by the metric store inherit from this class
    so callers can handle store failures in one place.
    """


class ConnectionError(MetricStoreError):  # noqa: A001
    """Raised when the database connection is not established."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class PaperNotFoundError(MetricStoreError):
    """Raised when a metric references a paper that is not stored."""

    def __init__(self, paper_id: str) -> None:
        """Initialize the error with the missing paper ID.

        Args:
            paper_id: The paper ID that was not found.
        """
        self.paper_id = paper_id
        super().__init__(f"Paper not found: {paper_id}")


class MetricNotFoundError(MetricStoreError):
    """Raised when a score update targets a metric row that does not exist."""

    def __init__(self, metric_id: int) -> None:
        """Initialize the error with the missing metric row ID.

        Args:
            metric_id: The metric row ID that was not found.
        """
        self.metric_id = metric_id
        super().__init__(f"Metric not found: {metric_id}")


class MigrationError(MetricStoreError):
    """Raised when a schema migration fails."""

    def __init__(self, version: int, message: str) -> None:
        """Initialize the migration error.

        Args:
            version: The migration version that failed.
            message: Human-readable error message.
        """
        self.version = version
        super().__init__(f"Migration {version} failed: {message}")
