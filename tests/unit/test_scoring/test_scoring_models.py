"""Unit tests for scoring data models."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from engaged_papers.scoring.models import (
    RawMetric,
    ScoredBatch,
    ScoredMetric,
    ScoringConfig,
    ScoringPath,
)


class TestRawMetric:
    """Tests for RawMetric validation."""

    def test_defaults(self) -> None:
        """Counts default to 0 and publish time to None."""
        metric = RawMetric(paper_id="2401.00001")
        assert metric.citation_count == 0
        assert metric.repo_mention_count == 0
        assert metric.published_at is None

    def test_negative_citations_rejected(self) -> None:
        """Negative counts are invalid input."""
        with pytest.raises(ValidationError):
            RawMetric(paper_id="x", citation_count=-1)

    def test_negative_repo_mentions_rejected(self) -> None:
        """Negative repository counts are invalid input."""
        with pytest.raises(ValidationError):
            RawMetric(paper_id="x", repo_mention_count=-3)

    def test_empty_id_rejected(self) -> None:
        """Paper ID must be non-empty."""
        with pytest.raises(ValidationError):
            RawMetric(paper_id="")

    def test_frozen(self) -> None:
        """RawMetric is immutable."""
        metric = RawMetric(paper_id="x")
        with pytest.raises(ValidationError):
            metric.citation_count = 3  # type: ignore[misc]

    def test_parses_iso_timestamp(self) -> None:
        """ISO strings are parsed into datetimes."""
        metric = RawMetric.model_validate(
            {"paper_id": "x", "published_at": "2017-06-12T08:30:00+00:00"}
        )
        assert metric.published_at == datetime(2017, 6, 12, 8, 30, tzinfo=UTC)


class TestScoredMetric:
    """Tests for ScoredMetric."""

    def test_from_raw_keeps_fields(self) -> None:
        """Raw fields are copied alongside the score."""
        raw = RawMetric(paper_id="x", citation_count=4, repo_mention_count=2)
        scored = ScoredMetric.from_raw(raw, 0.75)

        assert scored.paper_id == "x"
        assert scored.citation_count == 4
        assert scored.repo_mention_count == 2
        assert scored.engagement_score == 0.75

    def test_from_scored_replaces_score(self) -> None:
        """A scored metric can be re-scored without a duplicate field."""
        previous = ScoredMetric(paper_id="x", citation_count=2, engagement_score=0.9)

        rescored = ScoredMetric.from_raw(previous, 0.1)

        assert rescored.engagement_score == 0.1
        assert rescored.citation_count == 2

    @pytest.mark.parametrize("score", [-0.01, 1.01])
    def test_score_out_of_range_rejected(self, score: float) -> None:
        """Scores outside [0, 1] are invalid."""
        with pytest.raises(ValidationError):
            ScoredMetric(paper_id="x", engagement_score=score)


class TestScoringPath:
    """Tests for ScoringPath."""

    def test_fallback_paths(self) -> None:
        """Only the fallback states report is_fallback."""
        assert not ScoringPath.EMPTY.is_fallback
        assert not ScoringPath.PRIMARY.is_fallback
        assert ScoringPath.FALLBACK_RECENCY.is_fallback
        assert ScoringPath.FALLBACK_TIEBREAK.is_fallback
        assert ScoringPath.FALLBACK_POSITIONAL.is_fallback


class TestScoredBatch:
    """Tests for ScoredBatch."""

    def test_scores_by_paper(self) -> None:
        """Scores are keyed by paper ID."""
        batch = ScoredBatch(
            path=ScoringPath.PRIMARY,
            metrics=[
                ScoredMetric(paper_id="a", engagement_score=1.0),
                ScoredMetric(paper_id="b", engagement_score=0.0),
            ],
        )
        assert batch.scores_by_paper() == {"a": 1.0, "b": 0.0}


class TestScoringConfig:
    """Tests for ScoringConfig."""

    def test_default_half_life(self) -> None:
        """Recency halves after one day by default."""
        assert ScoringConfig().recency_half_life_hours == 24.0

    def test_half_life_must_be_positive(self) -> None:
        """A zero half-life is rejected."""
        with pytest.raises(ValidationError):
            ScoringConfig(recency_half_life_hours=0)
