#!/usr/bin/env python3
"""
Core data models for content-studio.

Contains the per-request data structures shared across the pipelines.
"""

from .headline import (
    RawArticle,
    NormalizedHeadline,
    RelatedArticle,
    HeadlineCandidate,
    RankingMetadata,
    HeadlineSummary,
    RankedHeadline,
)
from .source import SourceArticle

__all__ = [
    'RawArticle',
    'NormalizedHeadline',
    'RelatedArticle',
    'HeadlineCandidate',
    'RankingMetadata',
    'HeadlineSummary',
    'RankedHeadline',
    'SourceArticle',
]
