"""Full re-scoring of a stored snapshot date."""

import sqlite3
import time
from datetime import date, datetime

import structlog

from engaged_papers.recalculate.models import PersistenceFailure, RecalculationResult
from engaged_papers.scoring.models import ScoringConfig, ScoringPath
from engaged_papers.scoring.scorer import EngagementScorer, ScorerConfig
from engaged_papers.store.errors import MetricStoreError
from engaged_papers.store.store import MetricStore


logger = structlog.get_logger()


class ScoreRecalculator:
    """Re-reads, re-scores, and rewrites every metric of a snapshot date.

    Scores are batch-relative, so any change to one row invalidates all
    others in the same date. There is no partial update: each call reads
    the whole batch and writes every score, one keyed update per row.
    Running it twice on unchanged data writes identical scores.
    """

    def __init__(
        self,
        store: MetricStore,
        run_id: str = "recalculate",
        scoring_config: ScoringConfig | None = None,
        now: datetime | None = None,
    ) -> None:
        """Initialize the recalculator.

        Args:
            store: Connected metric store.
            run_id: Run identifier for logging.
            scoring_config: Scorer tunables.
            now: Reference time for recency weights.
        """
        self._store = store
        self._run_id = run_id
        self._scoring_config = scoring_config or ScoringConfig()
        self._now = now
        self._log = logger.bind(component="recalculate", run_id=run_id)

    def recalculate(self, snapshot_date: date) -> RecalculationResult:
        """Recompute and persist all scores for a snapshot date.

        Args:
            snapshot_date: Snapshot date to re-score.

        Returns:
            RecalculationResult with per-row failures.
        """
        start = time.perf_counter()
        self._log.info("recalculation_started", snapshot_date=snapshot_date.isoformat())

        rows = self._store.get_batch(snapshot_date)
        if not rows:
            self._log.info(
                "recalculation_skipped_empty_batch",
                snapshot_date=snapshot_date.isoformat(),
            )
            return RecalculationResult(
                snapshot_date=snapshot_date,
                scoring_path=ScoringPath.EMPTY,
                items_scored=0,
                items_updated=0,
            )

        scorer = EngagementScorer(
            run_id=self._run_id,
            config=ScorerConfig(scoring_config=self._scoring_config, now=self._now),
        )
        scored = scorer.score_batch_detailed([row.to_raw_metric() for row in rows])

        updated = 0
        failures: list[PersistenceFailure] = []
        for row, metric in zip(rows, scored.metrics, strict=True):
            try:
                self._store.update_engagement_score(
                    row.metric.id, metric.engagement_score
                )
            except (MetricStoreError, sqlite3.Error) as e:
                self._log.warning(
                    "score_update_failed",
                    metric_id=row.metric.id,
                    paper_id=row.metric.paper_id,
                    error=str(e),
                )
                failures.append(
                    PersistenceFailure(
                        metric_id=row.metric.id,
                        paper_id=row.metric.paper_id,
                        engagement_score=metric.engagement_score,
                        message=str(e),
                    )
                )
                continue
            updated += 1

        duration_ms = (time.perf_counter() - start) * 1000
        self._log.info(
            "recalculation_complete",
            snapshot_date=snapshot_date.isoformat(),
            scoring_path=scored.path.value,
            items_scored=len(scored.metrics),
            items_updated=updated,
            failures=len(failures),
            duration_ms=round(duration_ms, 2),
        )

        return RecalculationResult(
            snapshot_date=snapshot_date,
            scoring_path=scored.path,
            items_scored=len(scored.metrics),
            items_updated=updated,
            failures=failures,
            duration_ms=duration_ms,
        )
