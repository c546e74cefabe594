"""Engagement scoring engine.

Normalizes citation counts across a snapshot batch and falls back to a
recency, time-of-day and positional cascade when citations carry no
signal, so every batch yields a complete ranking in [0, 1].
"""

from engaged_papers.scoring.metrics import ScoringMetrics
from engaged_papers.scoring.models import (
    RawMetric,
    ScoredBatch,
    ScoredMetric,
    ScoringConfig,
    ScoringPath,
)
from engaged_papers.scoring.normalize import normalize
from engaged_papers.scoring.scorer import (
    EngagementScorer,
    ScorerConfig,
    score_batch_pure,
)


__all__ = [
    "EngagementScorer",
    "RawMetric",
    "ScoredBatch",
    "ScoredMetric",
    "ScorerConfig",
    "ScoringConfig",
    "ScoringMetrics",
    "ScoringPath",
    "normalize",
    "score_batch_pure",
]
