#!/usr/bin/env python3
"""
Keyword and category inference from a free-text description.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, Field

from core.exceptions import UpstreamError
from .request import NEWSAPI_CATEGORIES

logger = logging.getLogger(__name__)

MAX_INFERRED_KEYWORDS = 5

STOPWORDS = {
    'the', 'and', 'for', 'with', 'from', 'that', 'this', 'these', 'those', 'into', 'onto',
    'about', 'over', 'under', 'after', 'before', 'between', 'their', 'there', 'they', 'them',
    'your', 'you', 'our', 'ours', 'are', 'was', 'were', 'will', 'would', 'should', 'could',
    'can', 'have', 'has', 'had', 'been', 'being', 'its', 'not', 'but', 'any', 'all', 'more',
    'most', 'some', 'such', 'than', 'then', 'also', 'just', 'only', 'very', 'what', 'when',
    'where', 'which', 'who', 'whom', 'why', 'how', 'news', 'latest', 'stories', 'story',
    'articles', 'article', 'headlines', 'headline', 'want', 'looking', 'like', 'include',
}

_WORD_RE = re.compile(r'[A-Za-z0-9]+')

KEYWORD_SYSTEM_PROMPT = (
    "You turn a description of the news someone wants into NewsAPI search terms. "
    "Respond with a JSON object: {\"keywords\": [up to 5 short search terms], "
    "\"categories\": [zero or more of business, entertainment, general, health, "
    "science, sports, technology]}."
)


class KeywordInferenceResult(BaseModel):
    keywords: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)


@dataclass
class InferredTerms:
    keywords: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    used_llm: bool = False


def fallback_keywords(description: str, limit: int = MAX_INFERRED_KEYWORDS) -> List[str]:
    """Pick the first distinct non-stopword words of three or more characters."""
    keywords: List[str] = []
    seen = set()
    for word in _WORD_RE.findall(description or ''):
        lowered = word.lower()
        if len(word) < 3 or lowered in STOPWORDS or lowered in seen:
            continue
        seen.add(lowered)
        keywords.append(word)
        if len(keywords) >= limit:
            break
    return keywords


def fallback_categories(description: str) -> List[str]:
    """NewsAPI categories mentioned as whole words in the description."""
    words = {w.lower() for w in _WORD_RE.findall(description or '')}
    return [category for category in NEWSAPI_CATEGORIES if category in words]


def _clean_keywords(values: List[str]) -> List[str]:
    cleaned: List[str] = []
    seen = set()
    for value in values:
        if not isinstance(value, str):
            continue
        term = value.strip()
        if term and term.lower() not in seen:
            seen.add(term.lower())
            cleaned.append(term)
    return cleaned[:MAX_INFERRED_KEYWORDS]


async def infer_terms(description: str, llm=None, model: Optional[str] = None) -> InferredTerms:
    """
    Infer search keywords and NewsAPI categories from a description.

    The LLM is asked first when available; anything it does not supply is
    filled in by the word-based fallback.

    Args:
        description: Free-text description of the desired coverage
        llm: Client exposing ``chat_json``
        model: Model name for the LLM call

    Returns:
        InferredTerms with keywords and categories
    """
    result = InferredTerms()
    if llm is not None:
        try:
            data = await llm.chat_json(
                [
                    {"role": "system", "content": KEYWORD_SYSTEM_PROMPT},
                    {"role": "user", "content": description},
                ],
                model=model,
                max_tokens=200,
                temperature=0,
                interaction_type="keyword_inference",
            )
            parsed = KeywordInferenceResult.model_validate(data)
            result.keywords = _clean_keywords(parsed.keywords)
            result.categories = [c.strip().lower() for c in parsed.categories
                                 if isinstance(c, str) and c.strip().lower() in NEWSAPI_CATEGORIES]
            result.used_llm = True
        except (UpstreamError, ValueError) as e:
            logger.warning(f"Keyword inference failed, using fallback: {e}")

    if not result.keywords:
        result.keywords = fallback_keywords(description)
    if not result.categories:
        result.categories = fallback_categories(description)
    result.categories = list(dict.fromkeys(result.categories))
    return result
