"""Unit tests for the engagement scoring engine."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from engaged_papers.scoring.metrics import ScoringMetrics
from engaged_papers.scoring.models import RawMetric, ScoringConfig, ScoringPath
from engaged_papers.scoring.scorer import (
    EngagementScorer,
    ScorerConfig,
    score_batch_pure,
)
from engaged_papers.scoring.timeutil import as_utc
from tests.helpers.time import FIXED_NOW


def _metric(
    paper_id: str,
    citations: int = 0,
    repos: int = 0,
    published_at: datetime | None = None,
) -> RawMetric:
    """Create a test RawMetric."""
    return RawMetric(
        paper_id=paper_id,
        citation_count=citations,
        repo_mention_count=repos,
        published_at=published_at,
    )


def _make_scorer(
    now: datetime = FIXED_NOW,
    scoring_config: ScoringConfig | None = None,
) -> EngagementScorer:
    """Create an EngagementScorer with a fixed reference time."""
    config = ScorerConfig(scoring_config=scoring_config or ScoringConfig(), now=now)
    return EngagementScorer(run_id="test", config=config, metrics=ScoringMetrics())


def _scores(batch: list[RawMetric]) -> dict[str, float]:
    return {m.paper_id: m.engagement_score for m in _make_scorer().score_batch(batch)}


class TestPrimaryPath:
    """Tests for citation-based scoring."""

    def test_reference_example(self) -> None:
        """Citations 10, 0, 5 score 1.0, 0.0, 0.5."""
        scores = _scores([_metric("A", 10), _metric("B", 0), _metric("C", 5)])
        assert scores == {"A": 1.0, "B": 0.0, "C": 0.5}

    def test_path_is_primary(self) -> None:
        """Any nonzero citation selects the primary path."""
        scored = _make_scorer().score_batch_detailed([_metric("A", 1), _metric("B")])
        assert scored.path == ScoringPath.PRIMARY

    def test_single_nonzero_citation(self) -> None:
        """One cited paper among uncited ones scores 1, the rest 0."""
        scores = _scores([_metric("A"), _metric("B", 3), _metric("C")])
        assert scores == {"A": 0.0, "B": 1.0, "C": 0.0}

    def test_range_is_floored_at_zero(self) -> None:
        """Citations normalize against 0, not the batch minimum."""
        scores = _scores([_metric("A", 5), _metric("B", 10)])
        assert scores == {"A": 0.5, "B": 1.0}

    def test_equal_nonzero_citations_score_one(self) -> None:
        """Equal nonzero citations all reach the maximum."""
        scores = _scores([_metric("A", 4), _metric("B", 4)])
        assert scores == {"A": 1.0, "B": 1.0}

    def test_recency_ignored_when_citations_present(self) -> None:
        """Publish time does not change primary scores."""
        scores = _scores(
            [
                _metric("old", 8, published_at=FIXED_NOW - timedelta(days=30)),
                _metric("new", 2, published_at=FIXED_NOW),
            ]
        )
        assert scores == {"old": 1.0, "new": 0.25}

    def test_repo_mentions_do_not_affect_score(self) -> None:
        """Repository mentions are carried through but not scored."""
        scored = _make_scorer().score_batch([_metric("A", 2, repos=900), _metric("B", 4)])
        assert scored[0].engagement_score == 0.5
        assert scored[0].repo_mention_count == 900

    @pytest.mark.parametrize(
        "citations",
        [
            [1, 2, 3, 4, 5],
            [100, 0, 7, 7, 3],
            [0, 0, 0, 1],
            [42, 17, 99, 1000, 0, 5],
        ],
    )
    def test_monotonic_in_citations(self, citations: list[int]) -> None:
        """Score order follows citation order."""
        batch = [_metric(f"p{i}", c) for i, c in enumerate(citations)]
        scored = _make_scorer().score_batch(batch)

        pairs = sorted(
            zip(citations, (s.engagement_score for s in scored), strict=True)
        )
        for (c1, s1), (c2, s2) in zip(pairs, pairs[1:], strict=False):
            assert s1 <= s2
            if c1 < c2:
                assert s1 < s2
        assert max(s.engagement_score for s in scored) == 1.0


class TestRecencyFallback:
    """Tests for the recency-weight fallback."""

    def test_three_days_apart(self) -> None:
        """Newest scores 1, oldest 0, middle strictly between."""
        batch = [
            _metric("newest", published_at=FIXED_NOW - timedelta(days=1)),
            _metric("middle", published_at=FIXED_NOW - timedelta(days=2)),
            _metric("oldest", published_at=FIXED_NOW - timedelta(days=3)),
        ]
        scored = _make_scorer().score_batch_detailed(batch)
        scores = scored.scores_by_paper()

        assert scored.path == ScoringPath.FALLBACK_RECENCY
        assert scores["newest"] == 1.0
        assert scores["oldest"] == 0.0
        assert 0.0 < scores["middle"] < 1.0
        # weights 1/2, 1/3, 1/4
        assert scores["middle"] == pytest.approx(1 / 3)

    def test_order_independent_of_input_order(self) -> None:
        """Shuffled input gives the same per-paper scores."""
        batch = [
            _metric("b", published_at=FIXED_NOW - timedelta(hours=30)),
            _metric("a", published_at=FIXED_NOW - timedelta(hours=2)),
            _metric("c", published_at=FIXED_NOW - timedelta(hours=90)),
        ]
        forward = _scores(batch)
        backward = _scores(list(reversed(batch)))
        assert forward == backward

    def test_absent_timestamp_scores_zero(self) -> None:
        """A paper without publish time has weight 0."""
        scores = _scores(
            [
                _metric("dated", published_at=FIXED_NOW - timedelta(days=1)),
                _metric("undated"),
            ]
        )
        assert scores == {"dated": 1.0, "undated": 0.0}

    def test_output_keeps_input_order(self) -> None:
        """Scored metrics come back in input order."""
        batch = [
            _metric("x", published_at=FIXED_NOW - timedelta(days=5)),
            _metric("y", published_at=FIXED_NOW - timedelta(days=1)),
        ]
        scored = _make_scorer().score_batch(batch)
        assert [s.paper_id for s in scored] == ["x", "y"]


class TestTimeOfDayTiebreak:
    """Tests for the time-of-day tiebreak."""

    def test_same_day_future_timestamps(self) -> None:
        """Equal weights on one UTC date fall back to time of day."""
        batch = [
            _metric("early", published_at=FIXED_NOW + timedelta(hours=1)),
            _metric("late", published_at=FIXED_NOW + timedelta(hours=5)),
        ]
        scored = _make_scorer().score_batch_detailed(batch)

        assert scored.path == ScoringPath.FALLBACK_TIEBREAK
        assert scored.scores_by_paper() == {"early": 0.0, "late": 1.0}

    def test_future_timestamps_across_days(self) -> None:
        """Equal weights on different dates are ranked by full timestamp."""
        batch = [
            _metric("newer", published_at=FIXED_NOW + timedelta(days=1, hours=1)),
            _metric("older", published_at=FIXED_NOW + timedelta(hours=23)),
        ]
        scored = _make_scorer().score_batch_detailed(batch)

        assert scored.path == ScoringPath.FALLBACK_POSITIONAL
        assert scored.scores_by_paper() == {"newer": 1.0, "older": 0.0}


class TestPositionalFallback:
    """Tests for the positional last resort."""

    def test_identical_timestamps(self) -> None:
        """Two identical publish times: first 1, second 0."""
        published = FIXED_NOW - timedelta(hours=6)
        batch = [
            _metric("first", published_at=published),
            _metric("second", published_at=published),
        ]
        scored = _make_scorer().score_batch_detailed(batch)

        assert scored.path == ScoringPath.FALLBACK_POSITIONAL
        assert scored.scores_by_paper() == {"first": 1.0, "second": 0.0}

    def test_single_item_without_timestamp(self) -> None:
        """A lone uncited, undated paper scores 0."""
        scored = _make_scorer().score_batch_detailed([_metric("only")])
        assert scored.path == ScoringPath.FALLBACK_POSITIONAL
        assert scored.metrics[0].engagement_score == 0.0

    def test_single_item_with_timestamp(self) -> None:
        """A lone uncited, dated paper also scores 0."""
        scored = _make_scorer().score_batch(
            [_metric("only", published_at=FIXED_NOW - timedelta(days=2))]
        )
        assert scored[0].engagement_score == 0.0

    def test_all_undated_ranked_by_position(self) -> None:
        """Undated papers are spread evenly in input order."""
        scores = _scores([_metric("a"), _metric("b"), _metric("c")])
        assert scores == {"a": 1.0, "b": 0.5, "c": 0.0}


class TestEmptyBatch:
    """Tests for empty input."""

    def test_empty_batch_is_noop(self) -> None:
        """Empty input yields empty output."""
        scored = _make_scorer().score_batch_detailed([])
        assert scored.path == ScoringPath.EMPTY
        assert scored.metrics == []


class TestScoreProperties:
    """Tests for properties that hold for every batch."""

    @pytest.mark.parametrize(
        "batch",
        [
            [_metric("a", 3), _metric("b", 0), _metric("c", 1000)],
            [_metric("a"), _metric("b", published_at=FIXED_NOW)],
            [
                _metric("a", published_at=FIXED_NOW - timedelta(days=400)),
                _metric("b", published_at=FIXED_NOW + timedelta(days=3)),
                _metric("c"),
            ],
            [_metric(f"p{i}") for i in range(7)],
        ],
    )
    def test_scores_in_unit_interval(self, batch: list[RawMetric]) -> None:
        """Every score lies in [0, 1]."""
        for scored in _make_scorer().score_batch(batch):
            assert 0.0 <= scored.engagement_score <= 1.0

    def test_idempotent(self) -> None:
        """Scoring the same batch twice gives identical scores."""
        batch = [
            _metric("a", published_at=FIXED_NOW - timedelta(hours=3)),
            _metric("b", published_at=FIXED_NOW - timedelta(hours=40)),
            _metric("c"),
        ]
        scorer = _make_scorer()
        assert scorer.score_batch(batch) == scorer.score_batch(batch)

    def test_one_output_per_input(self) -> None:
        """Output is one-to-one with input."""
        batch = [_metric(f"p{i}", i % 3) for i in range(10)]
        assert len(_make_scorer().score_batch(batch)) == 10


    def test_rescoring_scored_output(self) -> None:
        """Scored metrics can be fed back in and are scored afresh."""
        scorer = _make_scorer()
        first = scorer.score_batch([_metric("a", 3), _metric("b", 0)])

        second = scorer.score_batch(first)

        assert [m.engagement_score for m in second] == [1.0, 0.0]
        assert [m.paper_id for m in second] == ["a", "b"]


class TestRecencyWeight:
    """Tests for the recency weight helper."""

    def test_published_now(self) -> None:
        """A paper published at the reference time weighs 1."""
        assert _make_scorer().recency_weight(FIXED_NOW) == 1.0

    def test_one_day_old(self) -> None:
        """A day-old paper weighs 0.5."""
        assert _make_scorer().recency_weight(FIXED_NOW - timedelta(days=1)) == 0.5

    def test_future_is_clamped(self) -> None:
        """Future publish times weigh 1."""
        assert _make_scorer().recency_weight(FIXED_NOW + timedelta(days=2)) == 1.0

    def test_absent(self) -> None:
        """Absent publish time weighs 0."""
        assert _make_scorer().recency_weight(None) == 0.0

    def test_naive_timestamp_read_as_utc(self) -> None:
        """Naive timestamps are interpreted as UTC."""
        scorer = _make_scorer()
        naive = datetime(2017, 6, 12, 0, 0, 0)
        assert scorer.recency_weight(naive) == scorer.recency_weight(
            naive.replace(tzinfo=UTC)
        )

    def test_custom_half_life(self) -> None:
        """The half-life is configurable."""
        scorer = _make_scorer(scoring_config=ScoringConfig(recency_half_life_hours=12))
        assert scorer.recency_weight(FIXED_NOW - timedelta(hours=12)) == 0.5


class TestTimeOfDayFraction:
    """Tests for the time-of-day helper."""

    def test_noon(self) -> None:
        """Noon UTC is half the day."""
        noon = datetime(2017, 6, 1, 12, 0, 0, tzinfo=UTC)
        assert EngagementScorer.time_of_day_fraction(noon) == 0.5

    def test_converted_to_utc(self) -> None:
        """Offsets are converted before taking the time of day."""
        local = datetime(2017, 6, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))
        assert EngagementScorer.time_of_day_fraction(local) == 0.5

    def test_absent(self) -> None:
        """Absent timestamps map to 0."""
        assert EngagementScorer.time_of_day_fraction(None) == 0.0


class TestScorerState:
    """Tests for scorer configuration and metrics."""

    def test_now_defaults_to_construction_time(self) -> None:
        """Without an explicit now, the current UTC time is captured."""
        before = datetime.now(UTC)
        scorer = EngagementScorer(metrics=ScoringMetrics())
        assert before <= scorer.now <= datetime.now(UTC)

    def test_naive_now_read_as_utc(self) -> None:
        """A naive reference time is interpreted as UTC."""
        naive = datetime(2017, 6, 13, 0, 0, 0)
        scorer = EngagementScorer(
            config=ScorerConfig(now=naive), metrics=ScoringMetrics()
        )
        assert scorer.now == FIXED_NOW

    def test_metrics_recorded_per_path(self) -> None:
        """Each batch is counted under its scoring path."""
        metrics = ScoringMetrics()
        scorer = EngagementScorer(
            config=ScorerConfig(now=FIXED_NOW), metrics=metrics
        )
        scorer.score_batch([_metric("a", 1), _metric("b")])
        scorer.score_batch([_metric("c")])

        assert metrics.batches_scored == 2
        assert metrics.items_scored == 3
        assert metrics.batches_by_path == {
            "PRIMARY": 1,
            "FALLBACK_POSITIONAL": 1,
        }

    def test_singleton_metrics_reset(self) -> None:
        """The shared metrics instance can be reset."""
        ScoringMetrics.reset()
        first = ScoringMetrics.get_instance()
        assert first is ScoringMetrics.get_instance()
        ScoringMetrics.reset()
        assert ScoringMetrics.get_instance() is not first


class TestPureApi:
    """Tests for score_batch_pure()."""

    def test_matches_scorer(self) -> None:
        """The pure API gives the same scores as a scorer instance."""
        batch = [
            _metric("a", published_at=FIXED_NOW - timedelta(days=1)),
            _metric("b", published_at=FIXED_NOW - timedelta(days=4)),
        ]
        pure = score_batch_pure(batch, now=FIXED_NOW)
        assert pure == _make_scorer().score_batch(batch)


class TestAsUtc:
    """Tests for as_utc()."""

    def test_naive(self) -> None:
        """Naive values gain a UTC tzinfo."""
        assert as_utc(datetime(2017, 1, 1)).tzinfo is UTC

    def test_offset(self) -> None:
        """Aware values are converted to UTC."""
        local = datetime(2017, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))
        assert as_utc(local) == datetime(2017, 1, 1, 0, 0, tzinfo=UTC)
