#!/usr/bin/env python3
"""
Headline aggregation with near-duplicate folding.

The first candidate seen for a story stays canonical. Later near-duplicates
contribute a richer description when they have one and are kept as related
links; literal repeats of an already-known URL are dropped.
"""

import logging
from typing import Any, Dict, List, Optional

from core.models import HeadlineCandidate, NormalizedHeadline, RelatedArticle
from core.text import build_token_set, normalize_headline_text, normalize_url_for_comparison
from .strategies import CompositeDeduplicationStrategy, default_strategies

logger = logging.getLogger(__name__)

DEFAULT_OVERLAP_THRESHOLD = 0.7


def build_candidate(headline: NormalizedHeadline, index: int, token_cap: int = 64) -> HeadlineCandidate:
    """Create a candidate with all comparison keys precomputed."""
    return HeadlineCandidate(
        headline=headline,
        url_key=normalize_url_for_comparison(headline.url),
        title_key=normalize_headline_text(headline.title),
        description_key=normalize_headline_text(headline.description),
        tokens=set(build_token_set(headline.title, headline.description, cap=token_cap)),
        index=index,
    )


def are_headlines_near_duplicate(first: HeadlineCandidate, second: HeadlineCandidate,
                                 overlap_threshold: Optional[float] = DEFAULT_OVERLAP_THRESHOLD) -> bool:
    """
    Decide whether two candidates report the same story.

    Args:
        first: Existing candidate
        second: Incoming candidate
        overlap_threshold: Token overlap needed for a match, None for exact keys only

    Returns:
        True when URL, title or description keys match or tokens overlap enough
    """
    composite = CompositeDeduplicationStrategy(default_strategies(overlap_threshold))
    return composite.match(first, second) is not None


def _is_repeat(existing: HeadlineCandidate, incoming: HeadlineCandidate) -> bool:
    if not incoming.url_key:
        return False
    if incoming.url_key == existing.url_key:
        return True
    return any(normalize_url_for_comparison(r.url) == incoming.url_key for r in existing.related)


def _fold_into(existing: HeadlineCandidate, incoming: HeadlineCandidate, token_cap: int = 64) -> None:
    incoming_description = incoming.headline.description
    if len(incoming_description) > len(existing.headline.description):
        existing.headline.description = incoming_description
        existing.description_key = incoming.description_key
    existing.related.append(RelatedArticle(
        title=incoming.headline.title,
        url=incoming.headline.url,
        source=incoming.headline.source,
        published_at=incoming.headline.published_at,
    ))
    for token in sorted(incoming.tokens - existing.tokens):
        if len(existing.tokens) >= token_cap:
            break
        existing.tokens.add(token)


def add_headline_if_unique(aggregated: List[HeadlineCandidate], headline: NormalizedHeadline,
                           overlap_threshold: Optional[float] = DEFAULT_OVERLAP_THRESHOLD,
                           token_cap: int = 64) -> bool:
    """
    Add a headline to the aggregate unless it duplicates an existing candidate.

    Args:
        aggregated: Candidates collected so far, mutated in place
        headline: Incoming normalized headline
        overlap_threshold: Token overlap needed for a match, None for exact keys only
        token_cap: Maximum tokens per candidate

    Returns:
        True if a new candidate was appended, False if it was folded or dropped
    """
    incoming = build_candidate(headline, len(aggregated), token_cap)
    composite = CompositeDeduplicationStrategy(default_strategies(overlap_threshold))

    for existing in aggregated:
        strategy_name = composite.match(existing, incoming)
        if strategy_name is None:
            continue
        if _is_repeat(existing, incoming):
            logger.debug(f"Dropped repeat of {existing.headline.url}")
        else:
            _fold_into(existing, incoming, token_cap)
            logger.debug(f"Folded '{headline.title[:60]}' into candidate {existing.index} ({strategy_name})")
        return False

    aggregated.append(incoming)
    return True


class HeadlineAggregator:
    """Collects headlines from several queries into deduplicated candidates."""

    def __init__(self, overlap_threshold: Optional[float] = DEFAULT_OVERLAP_THRESHOLD, token_cap: int = 64):
        self.overlap_threshold = overlap_threshold
        self.token_cap = token_cap
        self.candidates: List[HeadlineCandidate] = []
        self.seen_count = 0
        self.added_count = 0

    def add(self, headline: NormalizedHeadline) -> bool:
        self.seen_count += 1
        added = add_headline_if_unique(self.candidates, headline, self.overlap_threshold, self.token_cap)
        if added:
            self.added_count += 1
        return added

    def add_many(self, headlines: List[NormalizedHeadline]) -> int:
        """Add several headlines and return how many became new candidates."""
        return sum(1 for headline in headlines if self.add(headline))

    def __len__(self) -> int:
        return len(self.candidates)

    def get_stats(self) -> Dict[str, Any]:
        return {
            'seen': self.seen_count,
            'unique': self.added_count,
            'folded_or_dropped': self.seen_count - self.added_count,
            'mode': 'strict' if self.overlap_threshold is not None else 'default',
        }
