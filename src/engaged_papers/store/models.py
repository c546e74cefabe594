"""Data models for the SQLite metric store."""

from datetime import UTC, date, datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from engaged_papers.scoring.models import RawMetric


class UpsertEvent(str, Enum):
    """Outcome of an upsert.

    - NEW: Row was created
    - UPDATED: Row existed and was overwritten
    """

    NEW = "NEW"
    UPDATED = "UPDATED"


class Paper(BaseModel):
    """Stored paper identity and metadata."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[str, Field(min_length=1, description="Paper identifier (arXiv ID)")]
    title: str = ""
    abstract: str = ""
    authors: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    published_at: datetime | None = Field(
        default=None, description="Publication timestamp (nullable)"
    )
    updated_at: datetime | None = Field(
        default=None, description="Last revision timestamp (nullable)"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the paper was first stored",
    )


class PaperMetric(BaseModel):
    """Stored signals and score for one (paper, snapshot date)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[int, Field(ge=1, description="Row identifier")]
    paper_id: Annotated[str, Field(min_length=1, description="Paper identifier")]
    snapshot_date: date
    citation_count: Annotated[int, Field(ge=0)] = 0
    repo_mention_count: Annotated[int, Field(ge=0)] = 0
    engagement_score: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0


class BatchRow(BaseModel):
    """A stored metric joined with its paper's publish time."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    metric: PaperMetric
    published_at: datetime | None = None

    def to_raw_metric(self) -> RawMetric:
        """Convert to scorer input.

        Returns:
            RawMetric for this row.
        """
        return RawMetric(
            paper_id=self.metric.paper_id,
            citation_count=self.metric.citation_count,
            repo_mention_count=self.metric.repo_mention_count,
            published_at=self.published_at,
        )


class PaperWithMetric(BaseModel):
    """A paper together with one of its metric rows."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    paper: Paper
    metric: PaperMetric | None = None


class MetricUpsertResult(BaseModel):
    """Result of a metric upsert."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    event_type: UpsertEvent
    metric: PaperMetric
