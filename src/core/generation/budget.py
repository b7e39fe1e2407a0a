#!/usr/bin/env python3
"""
Token budgets for generation calls.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

MODEL_CONTEXT_LIMITS = {
    'gpt-4o': 128000,
    'gpt-4o-mini': 128000,
    'gpt-4': 8192,
    'gpt-3.5-turbo': 16000,
}
DEFAULT_CONTEXT_LIMIT = 8000
WORDS_PER_TOKEN = 0.75
DEFAULT_MAX_TOKENS = 2000

LISTICLE_DEFAULT_COUNT = 5
LISTICLE_WORDS_PER_ITEM = 100
LISTICLE_EXTRA_WORDS = 50
LISTICLE_BUFFER = 1.2
LISTICLE_MIN_WORD_RATIO = 0.8


def context_limit(model: Optional[str]) -> int:
    return MODEL_CONTEXT_LIMITS.get(model or '', DEFAULT_CONTEXT_LIMIT)


def calc_max_tokens(words: float, model: Optional[str]) -> int:
    """Tokens needed for ``words`` words, capped at the model's context limit."""
    return min(math.ceil(words / WORDS_PER_TOKEN), context_limit(model))


def listicle_budget(count: int, words_per_item: Optional[int], model: Optional[str]) -> Tuple[int, int]:
    """
    Budget for a listicle.

    Returns:
        Tuple of (max_tokens, min_words)
    """
    per_item = words_per_item or LISTICLE_WORDS_PER_ITEM
    desired = count * per_item + LISTICLE_EXTRA_WORDS
    max_tokens = min(math.ceil(desired * LISTICLE_BUFFER / WORDS_PER_TOKEN), context_limit(model))
    min_words = math.floor(count * per_item * LISTICLE_MIN_WORD_RATIO)
    return max_tokens, min_words


@dataclass
class TokenBudget:
    """Completion token budget that persists across the retries of one request."""
    tokens: int
    limit: int

    @classmethod
    def for_request(cls, base_tokens: int, model: Optional[str], estimate: Optional[int] = None) -> 'TokenBudget':
        """
        Start from the larger of the computed budget and the cached usage estimate.
        """
        limit = context_limit(model)
        tokens = max(base_tokens, estimate or 0)
        if estimate and estimate > base_tokens:
            logger.debug(f"Raising initial budget from {base_tokens} to cached estimate {estimate}")
        return cls(tokens=min(tokens, limit), limit=limit)

    @property
    def can_grow(self) -> bool:
        return self.tokens < self.limit

    def grow(self) -> int:
        """Double the budget, capped at the context limit."""
        self.tokens = min(self.tokens * 2, self.limit)
        return self.tokens
