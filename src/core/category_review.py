#!/usr/bin/env python3
"""
Headline category review.

Matches headlines against a site's category taxonomy using label phrases,
per-category keyword overrides and tokens inherited from parent categories.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from core.exceptions import InvalidRequestError

logger = logging.getLogger(__name__)

CATEGORY_KEYWORD_OVERRIDES: Dict[str, List[str]] = {
    'global-affairs': [
        'geopolitics', 'foreign policy', 'international relations', 'security',
        'defense', 'nato', 'war', 'military',
    ],
    'geopolitics': ['foreign affairs', 'state visit', 'global politics'],
    'conflicts': ['war', 'battle', 'offensive', 'strike', 'attack', 'clash'],
    'diplomacy': ['talks', 'summit', 'negotiations', 'diplomatic', 'treaty'],
    'us-policy': [
        'washington', 'congress', 'white house', 'federal government', 'policy', 'regulation',
    ],
    'market-moves': [
        'markets', 'stocks', 'bonds', 'treasury', 'investors', 'dow jones', 'nasdaq', 's&p 500',
    ],
    'equities': ['stocks', 'shares', 'equity', 'stock market'],
    'fixed-income': ['bonds', 'treasury', 'yields', 'fixed income'],
    'commodities': ['commodity', 'oil', 'gold', 'energy', 'natural gas', 'metals'],
    'currencies': ['currency', 'forex', 'dollar', 'euro', 'crypto', 'bitcoin'],
    'corporate-tech': ['corporate', 'business', 'technology', 'startup'],
    'earnings': ['earnings', 'profit', 'quarter', 'merger', 'acquisition', 'deal'],
    'big-tech': ['apple', 'google', 'amazon', 'microsoft', 'meta', 'ai'],
    'startups': ['startup', 'venture', 'funding', 'seed', 'series a', 'series b'],
    'science-health': ['science', 'health', 'medical', 'climate', 'research'],
    'public-health': ['health', 'disease', 'vaccine', 'hospital', 'cdc', 'who'],
    'climate': ['climate', 'emissions', 'weather', 'extreme heat', 'global warming'],
    'space': ['space', 'nasa', 'spacex', 'astronaut', 'launch', 'satellite'],
    'culture-trends': ['culture', 'entertainment', 'sports', 'lifestyle'],
    'media': ['media', 'streaming', 'film', 'television', 'tv', 'hollywood'],
    'sports': ['sports', 'nba', 'nfl', 'mlb', 'soccer', 'olympics'],
    'lifestyle': ['travel', 'tourism', 'food', 'lifestyle', 'leisure'],
}

_LABEL_STRIP_RE = re.compile(r'[^a-z0-9\s]+')
_SPLIT_RE = re.compile(r'[^a-z0-9]+')
_HEADLINE_TOKEN_RE = re.compile(r'[a-z0-9]{3,}')


@dataclass
class FlattenedCategory:
    id: str
    label: str
    depth: int
    phrases: List[str] = field(default_factory=list)
    tokens: List[str] = field(default_factory=list)


def _unique(values) -> List[str]:
    return list(dict.fromkeys(values))


def _split_tokens(text: str) -> List[str]:
    return [token for token in _SPLIT_RE.split(text) if len(token) > 2]


def normalize_label(label: str):
    """Return the label's phrase list and its tokens longer than two characters."""
    normalized = label.lower().replace('&', 'and')
    normalized = _LABEL_STRIP_RE.sub(' ', normalized)
    normalized = re.sub(r'\s+', ' ', normalized).strip()
    if not normalized:
        return [], []
    tokens = _unique(token for token in normalized.split(' ') if len(token) > 2)
    return [normalized], tokens


def flatten_categories(categories: Optional[List[Dict[str, Any]]], depth: int = 0,
                       parent_tokens: Optional[List[str]] = None) -> List[FlattenedCategory]:
    """Flatten a category tree, pushing parent terms down to children."""
    if not categories:
        return []
    parent_tokens = parent_tokens or []
    flattened: List[FlattenedCategory] = []

    for category in categories:
        if not isinstance(category, dict):
            continue
        label = category.get('label') if isinstance(category.get('label'), str) else ''
        category_id = category.get('id') if isinstance(category.get('id'), str) else label.lower()

        phrases, tokens = normalize_label(label)
        overrides = [entry.lower() for entry in CATEGORY_KEYWORD_OVERRIDES.get(category_id, [])]

        all_tokens = _unique(
            list(parent_tokens) + tokens + [t for entry in overrides for t in _split_tokens(entry)]
        )
        all_phrases = _unique(phrases + overrides)
        flattened.append(FlattenedCategory(category_id, label, depth, all_phrases, all_tokens))

        children = category.get('children')
        if isinstance(children, list) and children:
            child_tokens = _unique(all_tokens + [t for phrase in phrases for t in _split_tokens(phrase)])
            flattened.extend(flatten_categories(children, depth + 1, child_tokens))

    return flattened


def _headline_text(headline: Dict[str, Any]) -> str:
    segments = [headline.get(key) for key in ('title', 'description', 'source')]
    return ' '.join(s for s in segments if isinstance(s, str) and s).lower()


def score_category(text: str, tokens: Set[str], category: FlattenedCategory):
    score = 0
    matched: List[str] = []
    for phrase in category.phrases:
        if phrase and phrase in text:
            matched.append(phrase)
            score += 3 if ' ' in phrase else 2
    for token in category.tokens:
        if token in tokens:
            matched.append(token)
            score += 1
    return score, _unique(matched)


def _unmatched(index: int) -> Dict[str, Any]:
    return {
        'index': index,
        'status': 'unmatched',
        'categoryId': None,
        'categoryLabel': None,
        'matchedTerms': [],
        'score': 0,
    }


def review_headlines(headlines: List[Dict[str, Any]],
                     categories: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """
    Assign each headline its best matching category.

    Ties between equal scores go to the deeper category.

    Args:
        headlines: Dicts with optional title, description and source
        categories: Category tree of ``{id, label, children}``

    Returns:
        One result dict per headline, in input order
    """
    if not headlines:
        return []

    flattened = flatten_categories(categories)
    results: List[Dict[str, Any]] = []

    for index, headline in enumerate(headlines):
        if not flattened:
            results.append(_unmatched(index))
            continue

        text = _headline_text(headline)
        tokens = set(_HEADLINE_TOKEN_RE.findall(text))

        best: Optional[FlattenedCategory] = None
        best_score = 0
        best_terms: List[str] = []
        for category in flattened:
            score, matched = score_category(text, tokens, category)
            if score == 0:
                continue
            if score > best_score or (score == best_score and best and category.depth > best.depth):
                best, best_score, best_terms = category, score, matched

        if best is None:
            results.append(_unmatched(index))
        else:
            results.append({
                'index': index,
                'status': 'matched',
                'categoryId': best.id,
                'categoryLabel': best.label,
                'matchedTerms': best_terms,
                'score': best_score,
            })
    return results


def normalize_review_headlines(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        raise InvalidRequestError("headlines must be an array", 'headlines')
    normalized = []
    for entry in value:
        entry = entry if isinstance(entry, dict) else {}
        normalized.append({
            key: entry[key] for key in ('title', 'description', 'source') if isinstance(entry.get(key), str)
        })
    return normalized


def normalize_review_categories(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        raise InvalidRequestError("categories must be an array", 'categories')

    normalized: List[Dict[str, Any]] = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        label = entry.get('label') if isinstance(entry.get('label'), str) else None
        if not label:
            continue
        category: Dict[str, Any] = {
            'id': entry['id'] if isinstance(entry.get('id'), str) else label.lower(),
            'label': label,
        }
        children = entry.get('children')
        if isinstance(children, list):
            normalized_children = normalize_review_categories(children)
            if normalized_children:
                category['children'] = normalized_children
        normalized.append(category)
    return normalized


def review_payload(payload: Any) -> Dict[str, Any]:
    """Validate a review request body and build the response."""
    if not isinstance(payload, dict):
        raise InvalidRequestError("Invalid JSON payload")
    headlines = normalize_review_headlines(payload.get('headlines'))
    categories = normalize_review_categories(payload.get('categories'))
    results = review_headlines(headlines, categories)
    unmatched = sum(1 for result in results if result['status'] == 'unmatched')
    logger.debug(f"Reviewed {len(results)} headlines, {unmatched} unmatched")
    return {'results': results, 'unmatchedCount': unmatched}
