"""Data models for the engagement scorer."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from engaged_papers.scoring.constants import RECENCY_HALF_LIFE_HOURS


class ScoringPath(str, Enum):
    """Which rule of the scoring cascade produced a batch's scores.

    State order:
        PRIMARY -> FALLBACK_RECENCY -> FALLBACK_TIEBREAK -> FALLBACK_POSITIONAL

    - EMPTY: Batch had no items, nothing was scored
    - PRIMARY: Min-max normalized citation counts
    - FALLBACK_RECENCY: Citations all zero, normalized recency weights
    - FALLBACK_TIEBREAK: Recency tied, normalized time-of-day fractions
    - FALLBACK_POSITIONAL: Everything tied, rank by position after sorting
    """

    EMPTY = "EMPTY"
    PRIMARY = "PRIMARY"
    FALLBACK_RECENCY = "FALLBACK_RECENCY"
    FALLBACK_TIEBREAK = "FALLBACK_TIEBREAK"
    FALLBACK_POSITIONAL = "FALLBACK_POSITIONAL"

    @property
    def is_fallback(self) -> bool:
        """Whether the batch's primary signal was degenerate."""
        return self not in (ScoringPath.EMPTY, ScoringPath.PRIMARY)


class ScoringConfig(BaseModel):
    """Scorer tunables.

    Attributes:
        recency_half_life_hours: Age at which the recency weight drops to 0.5.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    recency_half_life_hours: Annotated[float, Field(gt=0.0)] = RECENCY_HALF_LIFE_HOURS


class RawMetric(BaseModel):
    """One paper's observed signals as of a snapshot date."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    paper_id: Annotated[str, Field(min_length=1, description="Paper identifier")]
    citation_count: Annotated[int, Field(ge=0, description="Citation count")] = 0
    repo_mention_count: Annotated[
        int, Field(ge=0, description="Repositories mentioning the paper")
    ] = 0
    published_at: datetime | None = Field(
        default=None, description="Publication timestamp (nullable)"
    )


class ScoredMetric(RawMetric):
    """A RawMetric with its batch-relative engagement score."""

    engagement_score: Annotated[
        float, Field(ge=0.0, le=1.0, description="Engagement score in [0, 1]")
    ]

    @classmethod
    def from_raw(cls, raw: RawMetric, engagement_score: float) -> "ScoredMetric":
        """Attach a score to a raw metric.

        Args:
            raw: Raw metric being scored.
            engagement_score: Score in [0, 1].

        Returns:
            ScoredMetric carrying the raw fields and the score.
        """
        fields = raw.model_dump(include=set(RawMetric.model_fields))
        return cls(**fields, engagement_score=engagement_score)


@dataclass(frozen=True)
class ScoredBatch:
    """Scores for one batch and the cascade rule that produced them.

    Attributes:
        path: Scoring path taken for the whole batch.
        metrics: Scored metrics, in input order.
    """

    path: ScoringPath
    metrics: list[ScoredMetric] = field(default_factory=list)

    def scores_by_paper(self) -> dict[str, float]:
        """Map paper ID to engagement score.

        Returns:
            Dictionary of paper_id to score.
        """
        return {m.paper_id: m.engagement_score for m in self.metrics}
