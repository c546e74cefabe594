"""Engagement scoring engine for paper metric batches."""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from engaged_papers.scoring.constants import (
    MAX_SCORE,
    MIN_SCORE,
    SECONDS_PER_DAY,
    SECONDS_PER_HOUR,
)
from engaged_papers.scoring.metrics import ScoringMetrics
from engaged_papers.scoring.models import (
    RawMetric,
    ScoredBatch,
    ScoredMetric,
    ScoringConfig,
    ScoringPath,
)
from engaged_papers.scoring.normalize import normalize
from engaged_papers.scoring.timeutil import as_utc


logger = structlog.get_logger()


@dataclass
class ScorerConfig:
    """Configuration bundle for EngagementScorer.

    Attributes:
        scoring_config: Scorer tunables.
        now: Reference time for recency. Captured at construction when None.
    """

    scoring_config: ScoringConfig = field(default_factory=ScoringConfig)
    now: datetime | None = None


def _has_spread(values: Sequence[float]) -> bool:
    return max(values) > min(values)


def _normalize_all(values: Sequence[float]) -> list[float]:
    low = min(values)
    high = max(values)
    return [normalize(v, low, high) for v in values]


def _clamp(score: float) -> float:
    return min(MAX_SCORE, max(MIN_SCORE, score))


class EngagementScorer:
    """Computes batch-relative engagement scores in [0, 1].

    The scorer is a pure function of (batch, reference time). It walks a
    fixed cascade and stops at the first rule that differentiates the batch:

        PRIMARY: any citation count > 0
            score = normalize(citations, min(0, min), max(0, max))
        FALLBACK_RECENCY: recency weights differ
            w = 1 / (1 + hours_since_published / half_life), absent -> 0
        FALLBACK_TIEBREAK: weights tied and nonzero, all on one UTC date,
            time-of-day differs
            score = normalize(seconds_since_utc_midnight / 86400)
        FALLBACK_POSITIONAL: anything else
            sort by publish time descending, score = 1 - index / (n - 1)

    No branch raises; every input item gets a score and output order
    matches input order.
    """

    def __init__(
        self,
        run_id: str = "scorer",
        config: ScorerConfig | None = None,
        metrics: ScoringMetrics | None = None,
    ) -> None:
        """Initialize the scorer.

        Args:
            run_id: Run identifier for logging.
            config: Scorer configuration bundle.
            metrics: Optional metrics instance.
        """
        config = config or ScorerConfig()
        self._run_id = run_id
        self._scoring = config.scoring_config
        self._now = as_utc(config.now) if config.now else datetime.now(UTC)
        self._metrics = metrics or ScoringMetrics.get_instance()
        self._log = logger.bind(
            component="scoring",
            subcomponent="scorer",
            run_id=run_id,
        )

    @property
    def now(self) -> datetime:
        """Reference time used for recency weights."""
        return self._now

    def score_batch(self, metrics: Sequence[RawMetric]) -> list[ScoredMetric]:
        """Score a batch of raw metrics.

        Args:
            metrics: All raw metrics of one snapshot date.

        Returns:
            One ScoredMetric per input item, in input order.
        """
        return self.score_batch_detailed(metrics).metrics

    def score_batch_detailed(self, metrics: Sequence[RawMetric]) -> ScoredBatch:
        """Score a batch and report which cascade rule was used.

        Args:
            metrics: All raw metrics of one snapshot date.

        Returns:
            ScoredBatch with the scoring path and scored metrics.
        """
        start = time.perf_counter()
        batch = list(metrics)
        path, scores = self._compute_scores(batch)

        scored = [
            ScoredMetric.from_raw(raw, _clamp(score))
            for raw, score in zip(batch, scores, strict=True)
        ]

        duration_ms = (time.perf_counter() - start) * 1000
        self._metrics.record_batch(path.value, len(scored), duration_ms)

        if path.is_fallback:
            self._log.info(
                "degenerate_signal",
                scoring_path=path.value,
                items=len(scored),
            )

        self._log.info(
            "scoring_complete",
            scoring_path=path.value,
            items_scored=len(scored),
            min_score=min((s.engagement_score for s in scored), default=0.0),
            max_score=max((s.engagement_score for s in scored), default=0.0),
            duration_ms=round(duration_ms, 3),
        )

        return ScoredBatch(path=path, metrics=scored)

    def _compute_scores(
        self, batch: list[RawMetric]
    ) -> tuple[ScoringPath, list[float]]:
        """Walk the cascade and return raw scores for the batch.

        Args:
            batch: Raw metrics.

        Returns:
            Tuple of (scoring path, scores aligned with batch).
        """
        if not batch:
            return ScoringPath.EMPTY, []

        citations = [m.citation_count for m in batch]
        min_citation = min(0, min(citations))
        max_citation = max(0, max(citations))

        if max_citation > 0:
            return ScoringPath.PRIMARY, [
                normalize(c, min_citation, max_citation) for c in citations
            ]

        weights = [self.recency_weight(m.published_at) for m in batch]
        if _has_spread(weights):
            return ScoringPath.FALLBACK_RECENCY, _normalize_all(weights)

        if max(weights) > 0 and self._same_utc_date(batch):
            fractions = [self.time_of_day_fraction(m.published_at) for m in batch]
            if _has_spread(fractions):
                return ScoringPath.FALLBACK_TIEBREAK, _normalize_all(fractions)

        return ScoringPath.FALLBACK_POSITIONAL, self._positional_scores(batch)

    def recency_weight(self, published_at: datetime | None) -> float:
        """Compute the recency weight of a publish time.

        Future timestamps are treated as age zero.

        Args:
            published_at: Publication timestamp, or None.

        Returns:
            Weight in (0, 1], or 0.0 when the timestamp is absent.
        """
        if published_at is None:
            return 0.0

        age_seconds = (self._now - as_utc(published_at)).total_seconds()
        hours_since = max(0.0, age_seconds / SECONDS_PER_HOUR)
        return 1.0 / (1.0 + hours_since / self._scoring.recency_half_life_hours)

    @staticmethod
    def time_of_day_fraction(published_at: datetime | None) -> float:
        """Fraction of the UTC day elapsed at publish time.

        Args:
            published_at: Publication timestamp, or None.

        Returns:
            Value in [0, 1), or 0.0 when the timestamp is absent.
        """
        if published_at is None:
            return 0.0

        ts = as_utc(published_at)
        seconds = (
            ts.hour * SECONDS_PER_HOUR
            + ts.minute * 60
            + ts.second
            + ts.microsecond / 1_000_000
        )
        return seconds / SECONDS_PER_DAY

    @staticmethod
    def _same_utc_date(batch: list[RawMetric]) -> bool:
        """Whether every publish time falls on one UTC calendar date.

        Time of day only orders papers by recency within a single day.
        """
        dates = {
            as_utc(m.published_at).date() for m in batch if m.published_at is not None
        }
        return len(dates) == 1

    @staticmethod
    def _positional_scores(batch: list[RawMetric]) -> list[float]:
        """Score by rank after sorting newest first.

        Items without a publish time sort last. The sort is stable, so
        tied items keep their input order.

        Args:
            batch: Raw metrics.

        Returns:
            Scores aligned with batch.
        """
        n = len(batch)
        if n == 1:
            return [0.0]

        def sort_key(index: int) -> tuple[bool, float]:
            published_at = batch[index].published_at
            if published_at is None:
                return (True, 0.0)
            return (False, -as_utc(published_at).timestamp())

        order = sorted(range(n), key=sort_key)
        scores = [0.0] * n
        for rank, index in enumerate(order):
            scores[index] = 1.0 - rank / (n - 1)
        return scores


def score_batch_pure(
    metrics: Sequence[RawMetric],
    now: datetime | None = None,
    scoring_config: ScoringConfig | None = None,
    run_id: str = "pure",
) -> list[ScoredMetric]:
    """Pure function API for scoring a batch.

    Args:
        metrics: Raw metrics of one snapshot date.
        now: Reference time for recency weights.
        scoring_config: Scorer tunables.
        run_id: Run identifier.

    Returns:
        List of ScoredMetric objects in input order.
    """
    config = ScorerConfig(scoring_config=scoring_config or ScoringConfig(), now=now)
    scorer = EngagementScorer(run_id=run_id, config=config)
    return scorer.score_batch(metrics)
