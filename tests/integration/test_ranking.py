from datetime import datetime, timedelta

import pytest
import pytz

from core.deduplication import build_candidate
from core.models import NormalizedHeadline
from core.ranking import RankingWeights, parse_published_at, rank_candidates, recency_score

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=pytz.UTC)


def _candidate(index, title, source, published_at):
    headline = NormalizedHeadline(
        title=title,
        url=f"https://example.com/{index}",
        source=source,
        published_at=published_at,
    )
    return build_candidate(headline, index)


def test_source_diversity_penalizes_repeated_sources():
    """Two headlines from source A share diversity, the lone B headline ranks first."""
    published = NOW.isoformat()
    candidates = [
        _candidate(0, "Alpha bravo charlie", "A", published),
        _candidate(1, "Delta echo foxtrot", "A", published),
        _candidate(2, "Golf hotel india", "B", published),
    ]

    ranked = rank_candidates(candidates, now=NOW)

    assert [r.candidate.index for r in ranked] == [2, 0, 1]
    by_index = {r.candidate.index: r.ranking for r in ranked}
    assert by_index[0].source_diversity == pytest.approx(0.5)
    assert by_index[1].source_diversity == pytest.approx(0.5)
    assert by_index[2].source_diversity == pytest.approx(1.0)
    assert by_index[2].score == pytest.approx(1.0)
    assert by_index[0].score == pytest.approx(0.875)
    assert "Only headline from this source" in by_index[2].reasons


def test_recency_breaks_ties_before_position():
    """Equal scores fall back to age, and unknown ages go last."""
    candidates = [
        _candidate(0, "shared words here", "A", ""),
        _candidate(1, "shared words here", "B", ""),
    ]
    ranked = rank_candidates(candidates, now=NOW, weights=RankingWeights(0.0, 0.0, 0.0))
    assert [r.candidate.index for r in ranked] == [0, 1]
    assert ranked[0].ranking.reasons[0] == "Publication time unavailable"


def test_known_age_sorts_before_unknown_age_at_equal_score():
    """With equal scores a dated headline beats an undated one listed ahead of it."""
    candidates = [
        _candidate(0, "shared words here", "A", ""),
        _candidate(1, "shared words here", "B", (NOW - timedelta(hours=30)).isoformat()),
        _candidate(2, "shared words here", "C", (NOW - timedelta(hours=2)).isoformat()),
    ]
    ranked = rank_candidates(candidates, now=NOW, weights=RankingWeights(0.0, 0.0, 0.0))
    assert [r.candidate.index for r in ranked] == [2, 1, 0]
    assert all(r.ranking.score == 0.0 for r in ranked)


def test_ranking_is_deterministic():
    """Ranking the same batch twice yields the same order and scores."""
    published = (NOW - timedelta(hours=5)).isoformat()
    candidates = [
        _candidate(0, "senate passes budget bill", "A", published),
        _candidate(1, "senate rejects budget amendment", "A", ""),
        _candidate(2, "storm hits coast overnight", "B", published),
        _candidate(3, "storm hits coast overnight", "C", published),
    ]

    first = rank_candidates(candidates, now=NOW)
    second = rank_candidates(candidates, now=NOW)

    assert [r.candidate.index for r in first] == [r.candidate.index for r in second]
    assert [r.ranking.score for r in first] == [r.ranking.score for r in second]
    # 2 and 3 tie on every component, so input position decides
    order = [r.candidate.index for r in first]
    assert order.index(2) < order.index(3)


def test_topic_coverage_counts_unique_tokens():
    """Tokens shared with another candidate reduce topic coverage."""
    published = (NOW - timedelta(hours=1)).isoformat()
    candidates = [
        _candidate(0, "senate passes budget bill", "A", published),
        _candidate(1, "senate rejects budget amendment", "B", published),
    ]
    ranked = {r.candidate.index: r.ranking for r in rank_candidates(candidates, now=NOW)}
    assert ranked[0].topic_coverage == pytest.approx(0.5)
    assert ranked[1].topic_coverage == pytest.approx(0.5)


def test_ranking_metadata_serializes_components():
    """The ranking block exposes score, components, details and reasons."""
    ranked = rank_candidates([_candidate(0, "Alpha bravo", "A", NOW.isoformat())], now=NOW)
    data = ranked[0].to_dict()["ranking"]
    assert set(data) == {"score", "components", "details", "reasons"}
    assert set(data["components"]) == {"recency", "sourceDiversity", "topicCoverage"}
    assert data["details"]["sourceOccurrences"] == 1


@pytest.mark.parametrize("age,expected", [
    (0, 1.0),
    (36, 0.5),
    (72, 0.0),
    (500, 0.0),
    (None, 0.0),
])
def test_recency_score(age, expected):
    """Recency decays linearly to zero at the horizon."""
    assert recency_score(age, 72) == pytest.approx(expected)


def test_parse_published_at_relative_values():
    """Relative times are resolved against the reference time."""
    assert parse_published_at("2 hours ago", NOW) == NOW - timedelta(hours=2)
    assert parse_published_at("yesterday", NOW) == NOW - timedelta(days=1)
    assert parse_published_at("an hour ago", NOW) == NOW - timedelta(hours=1)
    assert parse_published_at("not a date", NOW) is None


def test_parse_published_at_treats_naive_as_utc():
    """Naive timestamps are assumed to be UTC."""
    parsed = parse_published_at("2024-05-01T08:00:00", NOW)
    assert parsed == datetime(2024, 5, 1, 8, 0, tzinfo=pytz.UTC)
