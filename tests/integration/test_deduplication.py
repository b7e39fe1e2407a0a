import logging

import pytest

from core.deduplication import (
    HeadlineAggregator,
    add_headline_if_unique,
    are_headlines_near_duplicate,
    build_candidate,
    token_overlap_ratio,
)
from core.models import NormalizedHeadline


def _headline(title, url, description="", source="Example"):
    return NormalizedHeadline(title=title, url=url, description=description, source=source)


def test_token_overlap_ratio_uses_smaller_set():
    """Overlap is measured against the smaller token set."""
    assert token_overlap_ratio({"a", "b"}, {"a", "b", "c", "d"}) == 1.0
    assert token_overlap_ratio({"a", "b", "c"}, {"a", "x", "y"}) == pytest.approx(1 / 3)
    assert token_overlap_ratio(set(), {"a"}) == 0.0


def test_near_duplicate_folds_and_keeps_longer_description():
    """A near-duplicate becomes a related link and donates its longer description."""
    aggregated = []
    first = _headline("Mars rover finds ancient lake evidence", "https://a.com/mars", "Short.", "Outlet A")
    second = _headline(
        "Mars rover finds ancient lake evidence scientists say",
        "https://b.com/mars-lake",
        "A much longer description of the discovery.",
        "Outlet B",
    )

    assert add_headline_if_unique(aggregated, first) is True
    assert add_headline_if_unique(aggregated, second) is False

    assert len(aggregated) == 1
    canonical = aggregated[0]
    assert canonical.headline.title == first.title
    assert canonical.headline.description == "A much longer description of the discovery."
    assert [r.url for r in canonical.related] == ["https://b.com/mars-lake"]
    assert "discovery" in canonical.tokens


def test_repeat_url_is_dropped_not_related():
    """A URL already in the candidate is dropped instead of listed as related."""
    aggregated = []
    add_headline_if_unique(aggregated, _headline("Rates held", "https://a.com/rates"))
    add_headline_if_unique(aggregated, _headline("Rates held again", "https://A.com/rates/?ref=rss"))

    assert len(aggregated) == 1
    assert aggregated[0].related == []


def test_repeat_of_related_url_is_dropped():
    """A URL already folded in as related is not added twice."""
    aggregated = []
    add_headline_if_unique(aggregated, _headline("Rates held steady by Fed", "https://a.com/rates"))
    add_headline_if_unique(aggregated, _headline("Rates held steady by Fed", "https://b.com/rates"))
    add_headline_if_unique(aggregated, _headline("Rates held steady by Fed", "https://b.com/rates"))

    assert [r.url for r in aggregated[0].related] == ["https://b.com/rates"]


def test_unrelated_headlines_stay_separate():
    """Headlines with little shared vocabulary are distinct candidates."""
    aggregated = []
    add_headline_if_unique(aggregated, _headline("Mars rover finds ancient lake evidence", "https://a.com/1"))
    add_headline_if_unique(aggregated, _headline("Stock markets rally after rate cut news", "https://a.com/2"))
    assert len(aggregated) == 2
    assert [c.index for c in aggregated] == [0, 1]


def test_exact_key_mode_ignores_token_overlap():
    """Without a threshold only exact URL, title or description keys match."""
    first = build_candidate(_headline("Mars rover finds ancient lake evidence", "https://a.com/1"), 0)
    second = build_candidate(_headline("Mars rover finds ancient lake evidence today", "https://b.com/2"), 1)

    assert are_headlines_near_duplicate(first, second, overlap_threshold=0.7) is True
    assert are_headlines_near_duplicate(first, second, overlap_threshold=None) is False


def test_aggregator_stats(caplog):
    """The aggregator counts what it saw and what it kept."""
    caplog.set_level(logging.DEBUG, logger="core.deduplication.deduplicator")
    aggregator = HeadlineAggregator(overlap_threshold=None)
    added = aggregator.add_many([
        _headline("One story", "https://a.com/1"),
        _headline("One story", "https://b.com/1"),
        _headline("Another story", "https://a.com/2"),
    ])

    assert added == 2
    assert len(aggregator) == 2
    assert aggregator.get_stats() == {'seen': 3, 'unique': 2, 'folded_or_dropped': 1, 'mode': 'default'}
    assert "Folded 'One story'" in caplog.text


def test_folded_tokens_respect_token_cap():
    """Folding a duplicate does not grow the canonical token set past the cap."""
    aggregator = HeadlineAggregator(token_cap=6)
    description = "Shared story text about the council vote."
    aggregator.add(_headline("Alpha bravo charlie delta", "https://a.com/1", description, "Outlet A"))
    aggregator.add(_headline("Echo foxtrot golf hotel", "https://b.com/2", description, "Outlet B"))

    assert len(aggregator) == 1
    canonical = aggregator.candidates[0]
    assert len(canonical.related) == 1
    assert len(canonical.tokens) == 6
    assert {"alpha", "bravo", "charlie", "delta"} <= canonical.tokens
