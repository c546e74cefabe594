"""Result models for score recalculation."""

from datetime import date
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from engaged_papers.scoring.models import ScoringPath


class PersistenceFailure(BaseModel):
    """A score that could not be written back to the store.

    Failures are per row and never abort the rest of the batch.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    metric_id: int
    paper_id: str
    engagement_score: float
    message: str


class RecalculationResult(BaseModel):
    """Outcome of re-scoring one snapshot date."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    snapshot_date: date
    scoring_path: ScoringPath
    items_scored: Annotated[int, Field(ge=0)]
    items_updated: Annotated[int, Field(ge=0)]
    failures: list[PersistenceFailure] = Field(default_factory=list)
    duration_ms: Annotated[float, Field(ge=0.0)] = 0.0

    @property
    def success(self) -> bool:
        """Whether every score was written."""
        return not self.failures
