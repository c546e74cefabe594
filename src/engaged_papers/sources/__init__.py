"""External collaborator interfaces, snapshot ingestion and citation backfill."""

from engaged_papers.sources.ingest import (
    BackfillResult,
    IngestResult,
    SnapshotIngestor,
    SourceFailure,
)
from engaged_papers.sources.protocols import (
    CitationSource,
    PaperSource,
    RepoMentionSource,
)


__all__ = [
    "BackfillResult",
    "CitationSource",
    "IngestResult",
    "PaperSource",
    "RepoMentionSource",
    "SnapshotIngestor",
    "SourceFailure",
]
