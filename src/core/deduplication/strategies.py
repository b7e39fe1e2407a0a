#!/usr/bin/env python3
"""
Deduplication Strategies

Each strategy answers one question about a pair of headline candidates.
A pair is a near-duplicate as soon as any strategy says so.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from core.models import HeadlineCandidate

logger = logging.getLogger(__name__)


class DeduplicationStrategy(ABC):
    """Abstract base class for deduplication strategies."""

    @abstractmethod
    def is_duplicate(self, first: HeadlineCandidate, second: HeadlineCandidate) -> bool:
        """
        Check if two candidates report the same story according to this strategy.

        Args:
            first: Candidate already aggregated
            second: Incoming candidate

        Returns:
            True if the candidates are considered duplicates
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Get human-readable name of this strategy."""
        pass


class ExactUrlStrategy(DeduplicationStrategy):
    """Normalized URLs match."""

    def is_duplicate(self, first: HeadlineCandidate, second: HeadlineCandidate) -> bool:
        return bool(first.url_key) and first.url_key == second.url_key

    def get_name(self) -> str:
        return "exact_url"


class ExactTitleStrategy(DeduplicationStrategy):
    """Normalized titles match."""

    def is_duplicate(self, first: HeadlineCandidate, second: HeadlineCandidate) -> bool:
        return bool(first.title_key) and first.title_key == second.title_key

    def get_name(self) -> str:
        return "exact_title"


class ExactDescriptionStrategy(DeduplicationStrategy):
    """Normalized descriptions match and are not empty."""

    def is_duplicate(self, first: HeadlineCandidate, second: HeadlineCandidate) -> bool:
        return bool(first.description_key) and first.description_key == second.description_key

    def get_name(self) -> str:
        return "exact_description"


def token_overlap_ratio(first: Iterable[str], second: Iterable[str]) -> float:
    """
    Overlap of two token sets measured against the smaller one.

    Returns:
        |intersection| / min(|first|, |second|), or 0.0 if either is empty
    """
    a = set(first)
    b = set(second)
    if not a or not b:
        return 0.0
    return len(a & b) / min(len(a), len(b))


class TokenOverlapStrategy(DeduplicationStrategy):
    """Token sets overlap at or above a threshold."""

    def __init__(self, threshold: float = 0.7):
        if threshold < 0 or threshold > 1:
            raise ValueError("Overlap threshold must be between 0 and 1")
        self.threshold = threshold

    def is_duplicate(self, first: HeadlineCandidate, second: HeadlineCandidate) -> bool:
        return token_overlap_ratio(first.tokens, second.tokens) >= self.threshold

    def get_name(self) -> str:
        return "token_overlap"


class CompositeDeduplicationStrategy:
    """Runs strategies in order and reports the first one that matches."""

    def __init__(self, strategies: Optional[List[DeduplicationStrategy]] = None):
        self.strategies = strategies if strategies is not None else default_strategies()

    def match(self, first: HeadlineCandidate, second: HeadlineCandidate) -> Optional[str]:
        """Return the name of the matching strategy, or None."""
        for strategy in self.strategies:
            if strategy.is_duplicate(first, second):
                return strategy.get_name()
        return None


def default_strategies(overlap_threshold: Optional[float] = 0.7) -> List[DeduplicationStrategy]:
    """Exact-key strategies, plus token overlap unless the threshold is None."""
    strategies: List[DeduplicationStrategy] = [
        ExactUrlStrategy(),
        ExactTitleStrategy(),
        ExactDescriptionStrategy(),
    ]
    if overlap_threshold is not None:
        strategies.append(TokenOverlapStrategy(overlap_threshold))
    return strategies
