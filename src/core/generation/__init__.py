#!/usr/bin/env python3
"""
Article generation: prompt assembly, the draft-and-verify loop and the
optional fact-check pass.
"""

from .state import GenerationState, Transition, next_transition, CHECK_ORDER
from .checks import find_missing_sources, count_links, detect_link_clustering, count_words
from .budget import MODEL_CONTEXT_LIMITS, TokenBudget, calc_max_tokens, context_limit, listicle_budget
from .loop import GenerationLoop, GenerationResult
from .request import ArticleRequest, parse_article_request
from .verification import verify_output, derive_reference_iso
from .service import ArticleGenerator, GenerationSettings

__all__ = [
    'GenerationState',
    'Transition',
    'next_transition',
    'CHECK_ORDER',
    'find_missing_sources',
    'count_links',
    'detect_link_clustering',
    'count_words',
    'MODEL_CONTEXT_LIMITS',
    'TokenBudget',
    'calc_max_tokens',
    'context_limit',
    'listicle_budget',
    'GenerationLoop',
    'GenerationResult',
    'ArticleRequest',
    'parse_article_request',
    'verify_output',
    'derive_reference_iso',
    'ArticleGenerator',
    'GenerationSettings',
]
