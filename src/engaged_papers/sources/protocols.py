"""Interfaces for the external collaborators that feed a snapshot.

Concrete clients (arXiv, Semantic Scholar, GitHub search) live outside
this package. They only need to satisfy these protocols.
"""

from typing import Protocol, runtime_checkable

from engaged_papers.store.models import Paper


@runtime_checkable
class PaperSource(Protocol):
    """Supplies paper identity, publish time, and categories."""

    def fetch_papers(self) -> list[Paper]:
        """Return the papers to track in the current snapshot."""
        ...


@runtime_checkable
class CitationSource(Protocol):
    """Supplies citation counts per paper.

    May be rate limited. None or an exception means "no data".
    """

    def citation_count(self, paper_id: str) -> int | None:
        """Return the citation count for a paper."""
        ...


@runtime_checkable
class RepoMentionSource(Protocol):
    """Supplies the number of code repositories mentioning a paper.

    May be rate limited. None or an exception means "no data".
    """

    def repo_mention_count(self, paper_id: str) -> int | None:
        """Return the repository mention count for a paper."""
        ...
