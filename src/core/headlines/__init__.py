#!/usr/bin/env python3
"""
Headline search, aggregation and ranking.
"""

from .request import HeadlineQuery, parse_headline_request, NEWSAPI_CATEGORIES
from .planner import PlannedQuery, build_query_plan, build_keyword_query, quote_keyword
from .inference import InferredTerms, infer_terms, fallback_keywords, fallback_categories
from .pipeline import HeadlinePipeline, PipelineSettings

__all__ = [
    'HeadlineQuery',
    'parse_headline_request',
    'NEWSAPI_CATEGORIES',
    'PlannedQuery',
    'build_query_plan',
    'build_keyword_query',
    'quote_keyword',
    'InferredTerms',
    'infer_terms',
    'fallback_keywords',
    'fallback_categories',
    'HeadlinePipeline',
    'PipelineSettings',
]
