"""Metrics collection for the scoring module."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class ScoringMetrics:
    """Metrics for scoring operations.

    Attributes:
        batches_scored: Number of batches scored.
        items_scored: Number of items scored across all batches.
        batches_by_path: Batch count per scoring path.
        scoring_duration_ms: Cumulative time spent scoring.
    """

    batches_scored: int = 0
    items_scored: int = 0
    batches_by_path: dict[str, int] = field(default_factory=dict)
    scoring_duration_ms: float = 0.0

    _instance: ClassVar["ScoringMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "ScoringMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_batch(self, path: str, items: int, duration_ms: float) -> None:
        """Record one scored batch.

        Args:
            path: Scoring path name.
            items: Number of items in the batch.
            duration_ms: Time spent scoring the batch.
        """
        self.batches_scored += 1
        self.items_scored += items
        self.batches_by_path[path] = self.batches_by_path.get(path, 0) + 1
        self.scoring_duration_ms += duration_ms

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "batches_scored": self.batches_scored,
            "items_scored": self.items_scored,
            "batches_by_path": dict(self.batches_by_path),
            "scoring_duration_ms": self.scoring_duration_ms,
        }
