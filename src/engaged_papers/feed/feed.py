"""New, rising and ranked paper listings built from stored scores."""

import math
from datetime import UTC, date, datetime, time, timedelta
from typing import Annotated

import structlog
from pydantic import BaseModel, ConfigDict, Field

from engaged_papers.feed.constants import (
    DEFAULT_RISING_FRACTION,
    LISTING_WINDOW_DAYS,
    NEW_PAPER_WINDOW_HOURS,
    RISING_WINDOW_DAYS,
)
from engaged_papers.store.models import PaperWithMetric
from engaged_papers.store.store import MetricStore


logger = structlog.get_logger()


class Feed(BaseModel):
    """Papers to surface at a point in time.

    Attributes:
        generated_at: Reference time of the listing.
        new_papers: Papers stored in the last day, newest first.
        rising_papers: Top fraction of positive scores of the last week.
        rising_threshold: Lowest score that made the rising list.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    generated_at: datetime
    new_papers: list[PaperWithMetric] = Field(default_factory=list)
    rising_papers: list[PaperWithMetric] = Field(default_factory=list)
    rising_threshold: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0


def select_rising(
    rows: list[PaperWithMetric], fraction: float = DEFAULT_RISING_FRACTION
) -> list[PaperWithMetric]:
    """Pick the top fraction of rows with a positive score.

    Args:
        rows: Candidate rows.
        fraction: Share of positive-score rows to keep, rounded up.

    Returns:
        Selected rows ordered by score descending.
    """
    positive = [
        r for r in rows if r.metric is not None and r.metric.engagement_score > 0
    ]
    positive.sort(
        key=lambda r: r.metric.engagement_score if r.metric else 0.0, reverse=True
    )
    keep = math.ceil(len(positive) * fraction)
    return positive[:keep]


def build_feed(
    store: MetricStore,
    now: datetime | None = None,
    rising_fraction: float = DEFAULT_RISING_FRACTION,
) -> Feed:
    """Build the new and rising listings.

    Args:
        store: Connected metric store.
        now: Reference time (defaults to current UTC time).
        rising_fraction: Share of positive scores shown as rising.

    Returns:
        Feed with both listings.
    """
    now = now or datetime.now(UTC)
    log = logger.bind(component="feed")

    new_since = now - timedelta(hours=NEW_PAPER_WINDOW_HOURS)
    new_papers = [
        PaperWithMetric(paper=paper, metric=store.get_latest_metric(paper.id))
        for paper in store.get_papers_created_since(new_since)
    ]

    rising_since = (now - timedelta(days=RISING_WINDOW_DAYS)).date()
    rising = select_rising(store.get_metrics_since(rising_since), rising_fraction)
    threshold = rising[-1].metric.engagement_score if rising and rising[-1].metric else 0.0

    log.info(
        "feed_built",
        new_papers=len(new_papers),
        rising_papers=len(rising),
        rising_threshold=threshold,
    )

    return Feed(
        generated_at=now,
        new_papers=new_papers,
        rising_papers=rising,
        rising_threshold=threshold,
    )


def list_papers(
    store: MetricStore,
    from_date: date | None = None,
    category: str | None = None,
    min_score: float = 0.0,
    now: datetime | None = None,
) -> list[PaperWithMetric]:
    """Rank recently published papers by their latest engagement score.

    Args:
        store: Connected metric store.
        from_date: Earliest publish date (defaults to one week before now).
        category: Only list papers in this category.
        min_score: When positive, drop papers scoring below it and papers
            without any metric.
        now: Reference time (defaults to current UTC time).

    Returns:
        Papers ordered by latest score descending. Equal scores keep
        newest-published first.
    """
    now = now or datetime.now(UTC)
    if from_date is None:
        from_date = (now - timedelta(days=LISTING_WINDOW_DAYS)).date()
    since = datetime.combine(from_date, time.min, tzinfo=UTC)

    rows = store.get_papers_with_latest_metric(since, category=category)
    if min_score > 0:
        rows = [
            r
            for r in rows
            if r.metric is not None and r.metric.engagement_score >= min_score
        ]
    rows.sort(
        key=lambda r: r.metric.engagement_score if r.metric else 0.0, reverse=True
    )

    logger.bind(component="feed").info(
        "papers_listed",
        from_date=from_date.isoformat(),
        category=category,
        min_score=min_score,
        papers=len(rows),
    )
    return rows
