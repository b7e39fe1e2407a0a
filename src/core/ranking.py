#!/usr/bin/env python3
"""
Headline ranking.

Scores each candidate from recency, source rarity and how much of its
vocabulary is unique within the batch, then produces a deterministic
total order.
"""

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

import pytz
from dateutil import parser as date_parser

from core.models import HeadlineCandidate, RankedHeadline, RankingMetadata

logger = logging.getLogger(__name__)

DEFAULT_RECENCY_HORIZON_HOURS = 72.0

_RELATIVE_RE = re.compile(
    r'^(?P<count>\d+|an?|one)\s+(?P<unit>second|sec|minute|min|hour|hr|day|week|month|year)s?\s+ago$',
    re.IGNORECASE,
)
_UNIT_HOURS = {
    'second': 1 / 3600, 'sec': 1 / 3600,
    'minute': 1 / 60, 'min': 1 / 60,
    'hour': 1.0, 'hr': 1.0,
    'day': 24.0,
    'week': 24.0 * 7,
    'month': 24.0 * 30,
    'year': 24.0 * 365,
}


@dataclass(frozen=True)
class RankingWeights:
    """Weights for the three ranking components."""
    recency: float = 0.5
    source_diversity: float = 0.25
    topic_coverage: float = 0.25

    @classmethod
    def from_tuple(cls, values: Sequence[float]) -> 'RankingWeights':
        recency, diversity, coverage = values
        return cls(recency=float(recency), source_diversity=float(diversity), topic_coverage=float(coverage))

    def to_dict(self) -> Dict[str, float]:
        return {
            'recency': self.recency,
            'sourceDiversity': self.source_diversity,
            'topicCoverage': self.topic_coverage,
        }


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


def parse_published_at(value: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parse an upstream publication time.

    Accepts ISO-8601 and other dateutil-readable strings as well as relative
    forms such as ``"2 hours ago"`` or ``"yesterday"``. Naive values are
    treated as UTC.

    Args:
        value: Raw publication string
        now: Reference time for relative values

    Returns:
        Timezone-aware datetime, or None if the value cannot be understood
    """
    text = (value or '').strip()
    if not text:
        return None
    now = now or utc_now()

    lowered = text.lower()
    if lowered in ('just now', 'now'):
        return now
    if lowered == 'yesterday':
        return now - timedelta(days=1)

    match = _RELATIVE_RE.match(lowered)
    if match:
        count_text = match.group('count')
        count = 1 if count_text in ('a', 'an', 'one') else int(count_text)
        return now - timedelta(hours=count * _UNIT_HOURS[match.group('unit')])

    try:
        parsed = date_parser.parse(text)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = pytz.UTC.localize(parsed)
    return parsed


def age_in_hours(value: Optional[str], now: datetime) -> Optional[float]:
    """Hours since publication, clamped at zero; None when unknown."""
    published = parse_published_at(value, now)
    if published is None:
        return None
    return max(0.0, (now - published).total_seconds() / 3600.0)


def recency_score(age_hours: Optional[float], horizon_hours: float = DEFAULT_RECENCY_HORIZON_HOURS) -> float:
    if age_hours is None:
        return 0.0
    clamped = min(max(age_hours, 0.0), horizon_hours)
    return 1.0 - clamped / horizon_hours


def _build_reasons(recency: float, diversity: float, coverage: float,
                   age_hours: Optional[float], related_count: int) -> List[str]:
    reasons: List[str] = []
    if age_hours is None:
        reasons.append("Publication time unavailable")
    elif recency >= 0.75:
        reasons.append("Published within the last 18 hours")
    elif recency >= 0.5:
        reasons.append("Published within the last 36 hours")

    if diversity >= 1.0:
        reasons.append("Only headline from this source")
    elif diversity <= 0.25:
        reasons.append("Source appears multiple times")

    if coverage >= 0.5:
        reasons.append("Covers distinct topics in this batch")
    elif coverage <= 0.2:
        reasons.append("Overlaps heavily with other headlines")

    if related_count:
        outlets = "outlet" if related_count == 1 else "outlets"
        reasons.append(f"Reported by {related_count} additional {outlets}")
    return reasons


def rank_candidates(candidates: Sequence[HeadlineCandidate],
                    now: Optional[datetime] = None,
                    weights: Optional[RankingWeights] = None,
                    horizon_hours: float = DEFAULT_RECENCY_HORIZON_HOURS) -> List[RankedHeadline]:
    """
    Score and order candidates.

    Sorted by score descending, then by age ascending with unknown ages last,
    then by input position.

    Args:
        candidates: Aggregated candidates in insertion order
        now: Reference time, defaults to the current UTC time
        weights: Component weights, defaults to 0.5 / 0.25 / 0.25
        horizon_hours: Age at which recency reaches zero

    Returns:
        Ranked headlines with metadata attached
    """
    now = now or utc_now()
    weights = weights or RankingWeights()

    source_counts: Dict[str, int] = {}
    token_frequency: Dict[str, int] = {}
    for candidate in candidates:
        source_counts[candidate.source_key] = source_counts.get(candidate.source_key, 0) + 1
        for token in candidate.tokens:
            token_frequency[token] = token_frequency.get(token, 0) + 1

    scored = []
    for position, candidate in enumerate(candidates):
        age_hours = age_in_hours(candidate.headline.published_at, now)
        recency = recency_score(age_hours, horizon_hours)

        occurrences = source_counts[candidate.source_key]
        diversity = 1.0 / occurrences

        if candidate.tokens:
            unique_tokens = sum(1 for token in candidate.tokens if token_frequency.get(token, 0) <= 1)
            coverage = unique_tokens / len(candidate.tokens)
        else:
            coverage = 0.0

        score = (weights.recency * recency
                 + weights.source_diversity * diversity
                 + weights.topic_coverage * coverage)

        metadata = RankingMetadata(
            score=score,
            recency=recency,
            source_diversity=diversity,
            topic_coverage=coverage,
            age_hours=age_hours,
            source_occurrences=occurrences,
            unique_token_ratio=coverage,
            reasons=_build_reasons(recency, diversity, coverage, age_hours, len(candidate.related)),
        )
        sort_key = (-score, age_hours if age_hours is not None else math.inf, position)
        scored.append((sort_key, RankedHeadline(candidate=candidate, ranking=metadata)))

    scored.sort(key=lambda item: item[0])
    logger.debug(f"Ranked {len(scored)} candidates")
    return [ranked for _, ranked in scored]
