"""Snapshot ingestion and citation backfill from the external sources."""

import sqlite3
from collections.abc import Callable
from datetime import date, datetime
from typing import Annotated

import structlog
from pydantic import BaseModel, ConfigDict, Field

from engaged_papers.recalculate.models import RecalculationResult
from engaged_papers.recalculate.recalculator import ScoreRecalculator
from engaged_papers.scoring.models import ScoringConfig
from engaged_papers.sources.constants import (
    DEFAULT_REPO_COUNT_CAP,
    SOURCE_CITATIONS,
    SOURCE_PAPERS,
    SOURCE_REPO_MENTIONS,
)
from engaged_papers.sources.protocols import (
    CitationSource,
    PaperSource,
    RepoMentionSource,
)
from engaged_papers.store.errors import MetricStoreError
from engaged_papers.store.models import UpsertEvent
from engaged_papers.store.store import MetricStore


logger = structlog.get_logger()


class SourceFailure(BaseModel):
    """A collaborator call that failed."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    paper_id: str | None
    source: str
    message: str


class IngestResult(BaseModel):
    """Outcome of ingesting one snapshot date."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    snapshot_date: date
    papers_seen: Annotated[int, Field(ge=0)]
    papers_inserted: Annotated[int, Field(ge=0)]
    papers_updated: Annotated[int, Field(ge=0)]
    metrics_written: Annotated[int, Field(ge=0)]
    source_failures: list[SourceFailure] = Field(default_factory=list)
    recalculation: RecalculationResult


class BackfillResult(BaseModel):
    """Outcome of refreshing citation counts for every stored paper."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    snapshot_date: date
    papers_processed: Annotated[int, Field(ge=0)]
    metrics_written: Annotated[int, Field(ge=0)]
    write_errors: Annotated[int, Field(ge=0)] = 0
    source_failures: list[SourceFailure] = Field(default_factory=list)
    recalculation: RecalculationResult


class SnapshotIngestor:
    """Stores one snapshot of signals and re-scores the date.

    Flow:
        fetch papers -> upsert papers -> fetch counts -> upsert metrics
        -> recalculate the whole date

    Count sources are unreliable: a failing or empty answer becomes 0
    and is recorded, never aborting the snapshot.
    """

    def __init__(  # noqa: PLR0913
        self,
        store: MetricStore,
        paper_source: PaperSource,
        citation_source: CitationSource,
        repo_source: RepoMentionSource,
        run_id: str = "ingest",
        repo_count_cap: int = DEFAULT_REPO_COUNT_CAP,
        scoring_config: ScoringConfig | None = None,
        now: datetime | None = None,
    ) -> None:
        """Initialize the ingestor.

        Args:
            store: Connected metric store.
            paper_source: Source of papers.
            citation_source: Source of citation counts.
            repo_source: Source of repository mention counts.
            run_id: Run identifier for logging.
            repo_count_cap: Upper bound applied to repository counts.
            scoring_config: Scorer tunables for the recalculation.
            now: Reference time for recency weights.
        """
        self._store = store
        self._paper_source = paper_source
        self._citation_source = citation_source
        self._repo_source = repo_source
        self._run_id = run_id
        self._repo_count_cap = repo_count_cap
        self._recalculator = ScoreRecalculator(
            store, run_id=run_id, scoring_config=scoring_config, now=now
        )
        self._log = logger.bind(component="ingest", run_id=run_id)

    def ingest(self, snapshot_date: date) -> IngestResult:
        """Ingest current signals for a snapshot date.

        Args:
            snapshot_date: Snapshot date the counts belong to.

        Returns:
            IngestResult including the recalculation outcome.
        """
        failures: list[SourceFailure] = []

        try:
            papers = self._paper_source.fetch_papers()
        except Exception as e:  # noqa: BLE001
            self._log.warning("paper_source_failed", error=str(e))
            failures.append(
                SourceFailure(paper_id=None, source=SOURCE_PAPERS, message=str(e))
            )
            papers = []

        inserted = 0
        updated = 0
        written = 0

        for paper in papers:
            try:
                event = self._store.upsert_paper(paper)
            except (MetricStoreError, sqlite3.Error) as e:
                self._log.warning("paper_upsert_failed", paper_id=paper.id, error=str(e))
                continue

            if event == UpsertEvent.NEW:
                inserted += 1
            else:
                updated += 1

            citations = self._safe_count(
                SOURCE_CITATIONS,
                paper.id,
                self._citation_source.citation_count,
                failures,
            )
            repos = min(
                self._safe_count(
                    SOURCE_REPO_MENTIONS,
                    paper.id,
                    self._repo_source.repo_mention_count,
                    failures,
                ),
                self._repo_count_cap,
            )

            try:
                self._store.upsert_metric(
                    paper.id,
                    snapshot_date,
                    citation_count=citations,
                    repo_mention_count=repos,
                )
            except (MetricStoreError, sqlite3.Error) as e:
                self._log.warning(
                    "metric_upsert_failed", paper_id=paper.id, error=str(e)
                )
                continue
            written += 1

        recalculation = self._recalculator.recalculate(snapshot_date)

        self._log.info(
            "ingest_complete",
            snapshot_date=snapshot_date.isoformat(),
            papers_seen=len(papers),
            papers_inserted=inserted,
            papers_updated=updated,
            metrics_written=written,
            source_failures=len(failures),
        )

        return IngestResult(
            snapshot_date=snapshot_date,
            papers_seen=len(papers),
            papers_inserted=inserted,
            papers_updated=updated,
            metrics_written=written,
            source_failures=failures,
            recalculation=recalculation,
        )

    def backfill_citations(self, snapshot_date: date) -> BackfillResult:
        """Refresh citation counts of every stored paper for a snapshot date.

        Repository counts already stored for the date are kept. A paper whose
        citation lookup fails keeps its existing row (if any) and is recorded
        as a failure. The date is recalculated afterwards.

        Args:
            snapshot_date: Snapshot date to write.

        Returns:
            BackfillResult including the recalculation outcome.
        """
        papers = self._store.get_papers()
        self._log.info(
            "backfill_started",
            snapshot_date=snapshot_date.isoformat(),
            papers=len(papers),
        )

        failures: list[SourceFailure] = []
        written = 0
        write_errors = 0

        for paper in papers:
            try:
                count = self._citation_source.citation_count(paper.id)
            except Exception as e:  # noqa: BLE001
                self._log.warning(
                    "count_source_failed",
                    source=SOURCE_CITATIONS,
                    paper_id=paper.id,
                    error=str(e),
                )
                failures.append(
                    SourceFailure(
                        paper_id=paper.id, source=SOURCE_CITATIONS, message=str(e)
                    )
                )
                continue

            citations = max(0, int(count)) if count is not None else 0

            try:
                existing = self._store.get_metric_for_date(paper.id, snapshot_date)
                self._store.upsert_metric(
                    paper.id,
                    snapshot_date,
                    citation_count=citations,
                    repo_mention_count=existing.repo_mention_count if existing else 0,
                )
            except (MetricStoreError, sqlite3.Error) as e:
                self._log.warning(
                    "metric_upsert_failed", paper_id=paper.id, error=str(e)
                )
                write_errors += 1
                continue
            written += 1

        recalculation = self._recalculator.recalculate(snapshot_date)

        self._log.info(
            "backfill_complete",
            snapshot_date=snapshot_date.isoformat(),
            papers_processed=len(papers),
            metrics_written=written,
            write_errors=write_errors,
            source_failures=len(failures),
        )

        return BackfillResult(
            snapshot_date=snapshot_date,
            papers_processed=len(papers),
            metrics_written=written,
            write_errors=write_errors,
            source_failures=failures,
            recalculation=recalculation,
        )

    def _safe_count(
        self,
        source: str,
        paper_id: str,
        fetch: Callable[[str], int | None],
        failures: list[SourceFailure],
    ) -> int:
        """Call a count source, mapping failures and gaps to 0.

        Args:
            source: Source name for logging.
            paper_id: Paper identifier.
            fetch: Bound source method.
            failures: Failure list to append to.

        Returns:
            Non-negative count.
        """
        try:
            count = fetch(paper_id)
        except Exception as e:  # noqa: BLE001
            self._log.warning(
                "count_source_failed", source=source, paper_id=paper_id, error=str(e)
            )
            failures.append(SourceFailure(paper_id=paper_id, source=source, message=str(e)))
            return 0

        if count is None:
            return 0
        return max(0, int(count))

