"""SQLite metric store implementation."""

import json
import sqlite3
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path

import structlog

from engaged_papers.scoring.timeutil import as_utc
from engaged_papers.store.errors import (
    ConnectionError as StoreConnectionError,
    MetricNotFoundError,
    PaperNotFoundError,
)
from engaged_papers.store.metrics import StoreMetrics, TransactionContext
from engaged_papers.store.migrations import CURRENT_VERSION, MigrationManager
from engaged_papers.store.models import (
    BatchRow,
    MetricUpsertResult,
    Paper,
    PaperMetric,
    PaperWithMetric,
    UpsertEvent,
)


logger = structlog.get_logger()


def _iso(value: datetime | None) -> str | None:
    return as_utc(value).isoformat() if value is not None else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class MetricStore:
    """SQLite store for papers and per-snapshot engagement metrics.

    Every write runs in its own short transaction keyed by row id, so
    concurrent recalculations resolve to last writer wins per row.
    Uses WAL mode and applies schema migrations on connect.
    """

    def __init__(self, db_path: Path | str, run_id: str | None = None) -> None:
        """Initialize the metric store.

        Args:
            db_path: Path to SQLite database file.
            run_id: Optional run ID for logging context.
        """
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._run_id = run_id or str(uuid.uuid4())
        self._conn: sqlite3.Connection | None = None
        self._metrics = StoreMetrics.get_instance()
        self._log = logger.bind(
            component="store",
            run_id=self._run_id,
            db_path=str(self._db_path),
        )

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def run_id(self) -> str:
        """Get the current run ID."""
        return self._run_id

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open connection to database and apply migrations.

        Creates the database file and parent directories if they don't exist.
        """
        if self._conn is not None:
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._log.info("connecting_to_database")

        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.row_factory = sqlite3.Row

        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        migration_mgr = MigrationManager(self._conn)
        old_version = migration_mgr.get_current_version()
        applied = migration_mgr.apply_migrations()

        self._log.info(
            "database_connected",
            old_version=old_version,
            new_version=CURRENT_VERSION,
            migrations_applied=applied,
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._log.info("database_closed")

    def __enter__(self) -> "MetricStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Ensure database is connected.

        Returns:
            The database connection.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[TransactionContext]:
        """Context manager for transactions with timing and logging.

        Args:
            operation: Name of the operation for logging.

        Yields:
            Transaction context with timing information.
        """
        conn = self._ensure_connected()
        tx_id = str(uuid.uuid4())[:8]
        start_ns = time.perf_counter_ns()
        ctx = TransactionContext(
            tx_id=tx_id, start_time_ns=start_ns, operation=operation
        )

        try:
            yield ctx
            conn.commit()
        except Exception:
            conn.rollback()
            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            self._log.error(
                "transaction_failed",
                tx_id=tx_id,
                op=operation,
                duration_ms=round(duration_ms, 2),
            )
            raise

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._metrics.record_tx_duration(duration_ms)
        self._log.debug(
            "transaction_complete",
            tx_id=tx_id,
            op=operation,
            affected_rows=ctx.affected_rows,
            duration_ms=round(duration_ms, 2),
        )

    def get_schema_version(self) -> int:
        """Get the applied schema version."""
        return MigrationManager(self._ensure_connected()).get_current_version()

    # ===== Papers =====

    def upsert_paper(self, paper: Paper) -> UpsertEvent:
        """Insert a paper or overwrite its metadata.

        ``created_at`` is kept from the first insert.

        Args:
            paper: Paper to store.

        Returns:
            NEW if the paper was inserted, UPDATED otherwise.
        """
        with self._transaction("upsert_paper") as ctx:
            conn = self._ensure_connected()
            existing = conn.execute(
                "SELECT id FROM papers WHERE id = ?", (paper.id,)
            ).fetchone()

            if existing is None:
                conn.execute(
                    """
                    INSERT INTO papers (
                        id, title, abstract, authors_json, categories_json,
                        published_at, updated_at, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        paper.id,
                        paper.title,
                        paper.abstract,
                        json.dumps(paper.authors),
                        json.dumps(paper.categories),
                        _iso(paper.published_at),
                        _iso(paper.updated_at),
                        _iso(paper.created_at),
                    ),
                )
                event = UpsertEvent.NEW
            else:
                conn.execute(
                    """
                    UPDATE papers SET
                        title = ?, abstract = ?, authors_json = ?,
                        categories_json = ?, published_at = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        paper.title,
                        paper.abstract,
                        json.dumps(paper.authors),
                        json.dumps(paper.categories),
                        _iso(paper.published_at),
                        _iso(paper.updated_at),
                        paper.id,
                    ),
                )
                event = UpsertEvent.UPDATED
            ctx.add_affected_rows(1)

        self._metrics.record_paper_upsert(inserted=event == UpsertEvent.NEW)
        return event

    def get_paper(self, paper_id: str) -> Paper | None:
        """Get a paper by ID.

        Args:
            paper_id: Paper identifier.

        Returns:
            The Paper, or None if not found.
        """
        conn = self._ensure_connected()
        row = conn.execute("SELECT * FROM papers WHERE id = ?", (paper_id,)).fetchone()
        return self._row_to_paper(row) if row is not None else None

    def get_papers_created_since(self, since: datetime) -> list[Paper]:
        """Get papers first stored after a timestamp, newest first.

        Args:
            since: Lower bound (exclusive) on created_at.

        Returns:
            List of papers ordered by created_at descending.
        """
        conn = self._ensure_connected()
        cursor = conn.execute(
            """
            SELECT * FROM papers
            WHERE created_at > ?
            ORDER BY created_at DESC, id ASC
            """,
            (_iso(since),),
        )
        return [self._row_to_paper(row) for row in cursor.fetchall()]

    def get_papers(self) -> list[Paper]:
        """Get every stored paper, most recently published first.

        Undated papers come last.
        """
        conn = self._ensure_connected()
        cursor = conn.execute(
            """
            SELECT * FROM papers
            ORDER BY published_at IS NULL, published_at DESC, id ASC
            """
        )
        return [self._row_to_paper(row) for row in cursor.fetchall()]

    def get_papers_with_latest_metric(
        self, since: datetime, category: str | None = None
    ) -> list[PaperWithMetric]:
        """Get papers published since a timestamp with their newest metric.

        Papers without any metric row are included with ``metric=None``.
        Undated papers are never included.

        Args:
            since: Lower bound (inclusive) on published_at.
            category: Only keep papers listing this category.

        Returns:
            Rows ordered by published_at descending, then paper ID.
        """
        conn = self._ensure_connected()
        cursor = conn.execute(
            """
            SELECT p.*, m.id AS m_id, m.snapshot_date, m.citation_count,
                   m.repo_mention_count, m.engagement_score
            FROM papers p
            LEFT JOIN paper_metrics m ON m.id = (
                SELECT id FROM paper_metrics
                WHERE paper_id = p.id
                ORDER BY snapshot_date DESC
                LIMIT 1
            )
            WHERE p.published_at >= ?
            ORDER BY p.published_at DESC, p.id ASC
            """,
            (_iso(since),),
        )
        results: list[PaperWithMetric] = []
        for row in cursor.fetchall():
            paper = self._row_to_paper(row)
            if category is not None and category not in paper.categories:
                continue
            metric = None
            if row["m_id"] is not None:
                metric = PaperMetric(
                    id=row["m_id"],
                    paper_id=paper.id,
                    snapshot_date=date.fromisoformat(row["snapshot_date"]),
                    citation_count=row["citation_count"],
                    repo_mention_count=row["repo_mention_count"],
                    engagement_score=row["engagement_score"],
                )
            results.append(PaperWithMetric(paper=paper, metric=metric))
        return results

    def _row_to_paper(self, row: sqlite3.Row) -> Paper:
        """Convert a database row to a Paper.

        Args:
            row: Row from the papers table.

        Returns:
            Paper instance.
        """
        return Paper(
            id=row["id"],
            title=row["title"],
            abstract=row["abstract"],
            authors=json.loads(row["authors_json"]),
            categories=json.loads(row["categories_json"]),
            published_at=_parse(row["published_at"]),
            updated_at=_parse(row["updated_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # ===== Metrics =====

    def upsert_metric(
        self,
        paper_id: str,
        snapshot_date: date,
        citation_count: int = 0,
        repo_mention_count: int = 0,
    ) -> MetricUpsertResult:
        """Write one paper's raw signals for a snapshot date.

        The engagement score is reset to 0; callers recalculate the whole
        date afterwards because scores are batch-relative.

        Args:
            paper_id: Paper identifier.
            snapshot_date: Snapshot date.
            citation_count: Citation count.
            repo_mention_count: Repository mention count.

        Returns:
            Upsert outcome with the stored row.

        Raises:
            PaperNotFoundError: If the paper is not stored.
        """
        with self._transaction("upsert_metric") as ctx:
            conn = self._ensure_connected()
            if conn.execute(
                "SELECT 1 FROM papers WHERE id = ?", (paper_id,)
            ).fetchone() is None:
                raise PaperNotFoundError(paper_id)

            existing = conn.execute(
                """
                SELECT id FROM paper_metrics
                WHERE paper_id = ? AND snapshot_date = ?
                """,
                (paper_id, snapshot_date.isoformat()),
            ).fetchone()

            if existing is None:
                cursor = conn.execute(
                    """
                    INSERT INTO paper_metrics (
                        paper_id, snapshot_date, citation_count,
                        repo_mention_count, engagement_score
                    ) VALUES (?, ?, ?, ?, 0)
                    """,
                    (
                        paper_id,
                        snapshot_date.isoformat(),
                        citation_count,
                        repo_mention_count,
                    ),
                )
                metric_id = int(cursor.lastrowid or 0)
                event = UpsertEvent.NEW
            else:
                metric_id = int(existing["id"])
                conn.execute(
                    """
                    UPDATE paper_metrics SET
                        citation_count = ?, repo_mention_count = ?,
                        engagement_score = 0
                    WHERE id = ?
                    """,
                    (citation_count, repo_mention_count, metric_id),
                )
                event = UpsertEvent.UPDATED
            ctx.add_affected_rows(1)

        self._metrics.record_metric_upsert(inserted=event == UpsertEvent.NEW)
        return MetricUpsertResult(
            event_type=event,
            metric=PaperMetric(
                id=metric_id,
                paper_id=paper_id,
                snapshot_date=snapshot_date,
                citation_count=citation_count,
                repo_mention_count=repo_mention_count,
                engagement_score=0.0,
            ),
        )

    def get_metric(self, metric_id: int) -> PaperMetric | None:
        """Get a metric row by ID.

        Args:
            metric_id: Row identifier.

        Returns:
            The PaperMetric, or None if not found.
        """
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT * FROM paper_metrics WHERE id = ?", (metric_id,)
        ).fetchone()
        return self._row_to_metric(row) if row is not None else None

    def get_latest_metric(self, paper_id: str) -> PaperMetric | None:
        """Get a paper's metric row with the newest snapshot date.

        Args:
            paper_id: Paper identifier.

        Returns:
            The newest PaperMetric, or None if the paper has none.
        """
        conn = self._ensure_connected()
        row = conn.execute(
            """
            SELECT * FROM paper_metrics
            WHERE paper_id = ?
            ORDER BY snapshot_date DESC
            LIMIT 1
            """,
            (paper_id,),
        ).fetchone()
        return self._row_to_metric(row) if row is not None else None

    def get_metric_for_date(
        self, paper_id: str, snapshot_date: date
    ) -> PaperMetric | None:
        """Get a paper's metric row for one snapshot date.

        Args:
            paper_id: Paper identifier.
            snapshot_date: Snapshot date.

        Returns:
            The PaperMetric, or None if the paper has no row for the date.
        """
        conn = self._ensure_connected()
        row = conn.execute(
            """
            SELECT * FROM paper_metrics
            WHERE paper_id = ? AND snapshot_date = ?
            """,
            (paper_id, snapshot_date.isoformat()),
        ).fetchone()
        return self._row_to_metric(row) if row is not None else None

    def get_batch(self, snapshot_date: date) -> list[BatchRow]:
        """Read every metric row of a snapshot date with publish times.

        Args:
            snapshot_date: Snapshot date.

        Returns:
            Batch rows ordered by row ID.
        """
        conn = self._ensure_connected()
        cursor = conn.execute(
            """
            SELECT m.*, p.published_at AS paper_published_at
            FROM paper_metrics m
            LEFT JOIN papers p ON p.id = m.paper_id
            WHERE m.snapshot_date = ?
            ORDER BY m.id ASC
            """,
            (snapshot_date.isoformat(),),
        )
        return [
            BatchRow(
                metric=self._row_to_metric(row),
                published_at=_parse(row["paper_published_at"]),
            )
            for row in cursor.fetchall()
        ]

    def update_engagement_score(self, metric_id: int, score: float) -> None:
        """Overwrite one metric row's engagement score.

        Args:
            metric_id: Row identifier.
            score: Engagement score in [0, 1].

        Raises:
            MetricNotFoundError: If no row has this ID.
        """
        with self._transaction("update_engagement_score") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                "UPDATE paper_metrics SET engagement_score = ? WHERE id = ?",
                (score, metric_id),
            )
            if cursor.rowcount == 0:
                raise MetricNotFoundError(metric_id)
            ctx.add_affected_rows(cursor.rowcount)

        self._metrics.record_score_written()

    def get_metrics_since(self, since: date) -> list[PaperWithMetric]:
        """Get metric rows from a snapshot date onward with their papers.

        Args:
            since: Earliest snapshot date (inclusive).

        Returns:
            Rows ordered by engagement score descending, then row ID.
        """
        conn = self._ensure_connected()
        cursor = conn.execute(
            """
            SELECT m.*, p.id AS p_id, p.title, p.abstract, p.authors_json,
                   p.categories_json, p.published_at, p.updated_at, p.created_at
            FROM paper_metrics m
            JOIN papers p ON p.id = m.paper_id
            WHERE m.snapshot_date >= ?
            ORDER BY m.engagement_score DESC, m.id ASC
            """,
            (since.isoformat(),),
        )
        results: list[PaperWithMetric] = []
        for row in cursor.fetchall():
            paper = Paper(
                id=row["p_id"],
                title=row["title"],
                abstract=row["abstract"],
                authors=json.loads(row["authors_json"]),
                categories=json.loads(row["categories_json"]),
                published_at=_parse(row["published_at"]),
                updated_at=_parse(row["updated_at"]),
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            results.append(
                PaperWithMetric(paper=paper, metric=self._row_to_metric(row))
            )
        return results

    def get_snapshot_dates(self) -> list[date]:
        """List stored snapshot dates, newest first."""
        conn = self._ensure_connected()
        cursor = conn.execute(
            """
            SELECT DISTINCT snapshot_date FROM paper_metrics
            ORDER BY snapshot_date DESC
            """
        )
        return [date.fromisoformat(row["snapshot_date"]) for row in cursor.fetchall()]

    def get_stats(self) -> dict[str, object]:
        """Summarize table sizes and snapshot dates.

        Returns:
            Dictionary with row counts, schema version, and snapshot dates.
        """
        conn = self._ensure_connected()
        papers = conn.execute("SELECT COUNT(*) FROM papers").fetchone()[0]
        metrics = conn.execute("SELECT COUNT(*) FROM paper_metrics").fetchone()[0]
        return {
            "schema_version": self.get_schema_version(),
            "papers": papers,
            "paper_metrics": metrics,
            "snapshot_dates": [d.isoformat() for d in self.get_snapshot_dates()],
        }

    def _row_to_metric(self, row: sqlite3.Row) -> PaperMetric:
        """Convert a database row to a PaperMetric.

        Args:
            row: Row from the paper_metrics table.

        Returns:
            PaperMetric instance.
        """
        return PaperMetric(
            id=row["id"],
            paper_id=row["paper_id"],
            snapshot_date=date.fromisoformat(row["snapshot_date"]),
            citation_count=row["citation_count"],
            repo_mention_count=row["repo_mention_count"],
            engagement_score=row["engagement_score"],
        )
