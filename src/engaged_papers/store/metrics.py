"""Metrics collection for the metric store."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class StoreMetrics:
    """Metrics for metric store operations.

    Attributes:
        papers_inserted_total: Papers created by upsert.
        papers_updated_total: Papers overwritten by upsert.
        metrics_inserted_total: Metric rows created by upsert.
        metrics_updated_total: Metric rows overwritten by upsert.
        scores_written_total: Engagement score updates applied.
        db_tx_duration_ms: Cumulative transaction duration in milliseconds.
        db_tx_count: Number of committed transactions.
    """

    papers_inserted_total: int = 0
    papers_updated_total: int = 0
    metrics_inserted_total: int = 0
    metrics_updated_total: int = 0
    scores_written_total: int = 0
    db_tx_duration_ms: float = 0.0
    db_tx_count: int = 0

    _instance: ClassVar["StoreMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "StoreMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_paper_upsert(self, *, inserted: bool) -> None:
        """Record a paper upsert.

        Args:
            inserted: True when the paper was new.
        """
        if inserted:
            self.papers_inserted_total += 1
        else:
            self.papers_updated_total += 1

    def record_metric_upsert(self, *, inserted: bool) -> None:
        """Record a metric row upsert.

        Args:
            inserted: True when the row was new.
        """
        if inserted:
            self.metrics_inserted_total += 1
        else:
            self.metrics_updated_total += 1

    def record_score_written(self) -> None:
        """Record one engagement score update."""
        self.scores_written_total += 1

    def record_tx_duration(self, duration_ms: float) -> None:
        """Record transaction duration.

        Args:
            duration_ms: Duration in milliseconds.
        """
        self.db_tx_duration_ms += duration_ms
        self.db_tx_count += 1

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "papers_inserted_total": self.papers_inserted_total,
            "papers_updated_total": self.papers_updated_total,
            "metrics_inserted_total": self.metrics_inserted_total,
            "metrics_updated_total": self.metrics_updated_total,
            "scores_written_total": self.scores_written_total,
            "db_tx_duration_ms": self.db_tx_duration_ms,
            "db_tx_count": self.db_tx_count,
        }


@dataclass
class TransactionContext:
    """Context for a single transaction with timing.

    Attributes:
        tx_id: Unique transaction identifier.
        start_time_ns: Start time in nanoseconds.
        operation: The operation being performed.
    """

    tx_id: str
    start_time_ns: int
    operation: str
    affected_rows: int = field(default=0)

    def add_affected_rows(self, rows: int) -> None:
        """Add to the affected row count.

        Args:
            rows: Number of rows affected.
        """
        self.affected_rows += rows
