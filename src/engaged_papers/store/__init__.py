"""SQLite metric store for papers and per-snapshot engagement scores.

This module provides persistent storage for:
- Paper identity and metadata from the paper source
- One metric row per (paper, snapshot date) with raw signals and score
- Keyed, per-row score updates used by recalculation
"""

from engaged_papers.store.errors import (
    ConnectionError,
    MetricNotFoundError,
    MetricStoreError,
    MigrationError,
    PaperNotFoundError,
)
from engaged_papers.store.metrics import StoreMetrics
from engaged_papers.store.models import (
    BatchRow,
    MetricUpsertResult,
    Paper,
    PaperMetric,
    PaperWithMetric,
    UpsertEvent,
)
from engaged_papers.store.store import MetricStore


__all__ = [
    # Errors
    "ConnectionError",
    "MetricNotFoundError",
    "MetricStoreError",
    "MigrationError",
    "PaperNotFoundError",
    # Metrics
    "StoreMetrics",
    # Models
    "BatchRow",
    "MetricUpsertResult",
    "Paper",
    "PaperMetric",
    "PaperWithMetric",
    "UpsertEvent",
    # Store
    "MetricStore",
]
