"""Recalculation of batch-relative engagement scores for a snapshot date."""

from engaged_papers.recalculate.models import PersistenceFailure, RecalculationResult
from engaged_papers.recalculate.recalculator import ScoreRecalculator


__all__ = [
    "PersistenceFailure",
    "RecalculationResult",
    "ScoreRecalculator",
]
