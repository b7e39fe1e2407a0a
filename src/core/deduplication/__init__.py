#!/usr/bin/env python3
"""
Headline deduplication package.
"""

from .deduplicator import (
    DEFAULT_OVERLAP_THRESHOLD,
    HeadlineAggregator,
    add_headline_if_unique,
    are_headlines_near_duplicate,
    build_candidate,
)
from .strategies import (
    CompositeDeduplicationStrategy,
    DeduplicationStrategy,
    ExactDescriptionStrategy,
    ExactTitleStrategy,
    ExactUrlStrategy,
    TokenOverlapStrategy,
    token_overlap_ratio,
)

__all__ = [
    'DEFAULT_OVERLAP_THRESHOLD',
    'HeadlineAggregator',
    'add_headline_if_unique',
    'are_headlines_near_duplicate',
    'build_candidate',
    'CompositeDeduplicationStrategy',
    'DeduplicationStrategy',
    'ExactDescriptionStrategy',
    'ExactTitleStrategy',
    'ExactUrlStrategy',
    'TokenOverlapStrategy',
    'token_overlap_ratio',
]
