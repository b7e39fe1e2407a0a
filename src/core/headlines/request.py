#!/usr/bin/env python3
"""
Validation of ``/api/headlines`` request bodies.

Turns the loosely typed JSON body into a HeadlineQuery or raises
InvalidRequestError with a message the client can act on.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pytz
from dateutil import parser as date_parser

from core.exceptions import InvalidRequestError

DEFAULT_LIMIT = 5
MAX_LIMIT = 50
MAX_CATEGORY_LIMIT = 100
MAX_FILTER_ITEMS = 20

SUPPORTED_LANGUAGES = {
    'ar', 'de', 'en', 'es', 'fr', 'he', 'it', 'nl', 'no', 'pt', 'ru', 'sv', 'ud', 'zh',
}
ANY_LANGUAGE = {'all', 'any'}
SORT_OPTIONS = {'publishedAt', 'relevancy', 'popularity'}
SEARCH_IN_OPTIONS = ('title', 'description', 'content')
NEWSAPI_CATEGORIES = (
    'business', 'entertainment', 'general', 'health', 'science', 'sports', 'technology',
)
DEDUPE_MODES = {'default', 'strict'}

_SOURCE_RE = re.compile(r'^[a-z0-9._-]+$')
_DOMAIN_RE = re.compile(r'^[a-z0-9.-]+$')
_COUNTRY_RE = re.compile(r'^[a-z]{2}$')
_LEADING_INT_RE = re.compile(r'^\s*([-+]?\d+)')


@dataclass
class HeadlineQuery:
    """Validated headline request."""
    query: str = ""
    keywords: List[str] = field(default_factory=list)
    description: str = ""
    category: Optional[str] = None
    country: str = "us"
    limit: int = DEFAULT_LIMIT
    language: Optional[str] = "en"
    sort_by: str = "publishedAt"
    from_date: Optional[str] = None
    to_date: Optional[str] = None
    search_in: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)
    domains: List[str] = field(default_factory=list)
    exclude_domains: List[str] = field(default_factory=list)
    rss_feeds: List[str] = field(default_factory=list)
    dedupe_mode: str = "default"
    summarize: bool = False

    @property
    def strict_dedupe(self) -> bool:
        return self.dedupe_mode == 'strict'

    def newsapi_filters(self) -> Dict[str, Any]:
        """Filters shared by every ``/v2/everything`` call."""
        filters: Dict[str, Any] = {}
        if self.language:
            filters['language'] = self.language
        if self.sort_by:
            filters['sortBy'] = self.sort_by
        if self.from_date:
            filters['from'] = self.from_date
        if self.to_date:
            filters['to'] = self.to_date
        if self.search_in:
            filters['searchIn'] = ','.join(self.search_in)
        if self.sources:
            filters['sources'] = ','.join(self.sources)
        if self.domains:
            filters['domains'] = ','.join(self.domains)
        if self.exclude_domains:
            filters['excludeDomains'] = ','.join(self.exclude_domains)
        return filters


def _string(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _string_list(value: Any, field_name: str) -> List[str]:
    """Accept a list of strings or a comma separated string."""
    if value is None or value == "":
        return []
    if isinstance(value, str):
        items = value.split(',')
    elif isinstance(value, list):
        items = value
    else:
        raise InvalidRequestError(f"{field_name} must be an array of strings", field_name)

    result: List[str] = []
    seen = set()
    for item in items:
        if not isinstance(item, str):
            raise InvalidRequestError(f"{field_name} must be an array of strings", field_name)
        cleaned = item.strip()
        key = cleaned.lower()
        if cleaned and key not in seen:
            seen.add(key)
            result.append(cleaned)
    return result


def _parse_limit(value: Any, maximum: int) -> int:
    """Clamp the requested limit to [1, maximum]; unusable values mean the default."""
    if isinstance(value, bool):
        return DEFAULT_LIMIT
    if isinstance(value, int):
        limit = value
    elif isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return DEFAULT_LIMIT
        limit = int(value)
    elif isinstance(value, str) and value.strip():
        match = _LEADING_INT_RE.match(value)
        if not match:
            return DEFAULT_LIMIT
        limit = int(match.group(1))
    else:
        return DEFAULT_LIMIT
    return min(maximum, max(1, limit))


def _require_string(value: Any, field_name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidRequestError(f"{field_name} must be a string value", field_name)
    return value.strip()


def _parse_language(value: Any) -> Optional[str]:
    language = _require_string(value, 'language').lower()
    if not language:
        return 'en'
    if language in ANY_LANGUAGE:
        return None
    if language not in SUPPORTED_LANGUAGES:
        raise InvalidRequestError(f"Unsupported language filter: {value}", 'language')
    return language


def _parse_date(value: Any, field_name: str):
    text = _string(value)
    if not text:
        return None, None
    try:
        parsed = date_parser.isoparse(text)
    except (ValueError, OverflowError):
        raise InvalidRequestError(f"{field_name} must be an ISO 8601 date", field_name)
    return text, parsed


def _comparable(parsed):
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=None)
    return parsed.astimezone(pytz.UTC).replace(tzinfo=None)


def _filter_list(value: Any, field_name: str, pattern: re.Pattern, needs_dot: bool) -> List[str]:
    items = [item.lower() for item in _string_list(value, field_name)]
    deduped = list(dict.fromkeys(items))
    for item in deduped:
        if not pattern.match(item) or (needs_dot and '.' not in item):
            raise InvalidRequestError(f"Invalid {field_name} entry: {item}", field_name)
    return deduped[:MAX_FILTER_ITEMS]


def parse_headline_request(payload: Any) -> HeadlineQuery:
    """
    Validate a headlines request body.

    Args:
        payload: Decoded JSON body

    Returns:
        HeadlineQuery with normalized values

    Raises:
        InvalidRequestError: If any field is missing, malformed or conflicting
    """
    if not isinstance(payload, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    query = _string(payload.get('query'))
    keywords = _string_list(payload.get('keywords'), 'keywords')
    description = _string(payload.get('description'))
    category = _string(payload.get('category')).lower() or None
    rss_feeds = _string_list(payload.get('rssFeeds'), 'rssFeeds')

    if not (query or keywords or description or category or rss_feeds):
        raise InvalidRequestError("Either query, keywords, or description must be provided")

    if category and category not in NEWSAPI_CATEGORIES:
        raise InvalidRequestError(f"Unsupported category: {category}", 'category')

    country = _string(payload.get('country')).lower() or 'us'
    if not _COUNTRY_RE.match(country):
        raise InvalidRequestError(f"Invalid country code: {country}", 'country')

    limit = _parse_limit(payload.get('limit'), MAX_CATEGORY_LIMIT if category else MAX_LIMIT)
    language = _parse_language(payload.get('language'))

    sort_by = _require_string(payload.get('sortBy'), 'sortBy') or 'publishedAt'
    if sort_by not in SORT_OPTIONS:
        raise InvalidRequestError(f"Unsupported sortBy value: {sort_by}", 'sortBy')

    from_text, from_parsed = _parse_date(payload.get('from'), 'from')
    to_text, to_parsed = _parse_date(payload.get('to'), 'to')
    if from_parsed and to_parsed and _comparable(from_parsed) > _comparable(to_parsed):
        raise InvalidRequestError("from must be earlier than or equal to to", 'from')

    search_in = [item.lower() for item in _string_list(payload.get('searchIn'), 'searchIn')]
    for item in search_in:
        if item not in SEARCH_IN_OPTIONS:
            raise InvalidRequestError(f"Unsupported searchIn value: {item}", 'searchIn')
    search_in = [option for option in SEARCH_IN_OPTIONS if option in search_in]

    sources = _filter_list(payload.get('sources'), 'sources', _SOURCE_RE, needs_dot=False)
    domains = _filter_list(payload.get('domains'), 'domains', _DOMAIN_RE, needs_dot=True)
    exclude_domains = _filter_list(payload.get('excludeDomains'), 'excludeDomains', _DOMAIN_RE, needs_dot=True)
    if sources and (domains or exclude_domains):
        raise InvalidRequestError("sources cannot be combined with domains or excludeDomains", 'sources')

    for feed in rss_feeds:
        if not re.match(r'^https?://', feed, re.IGNORECASE):
            raise InvalidRequestError(f"Invalid rssFeeds entry: {feed}", 'rssFeeds')

    dedupe_mode = _string(payload.get('dedupeMode')).lower() or 'default'
    if dedupe_mode not in DEDUPE_MODES:
        raise InvalidRequestError(f"Unsupported dedupeMode: {dedupe_mode}", 'dedupeMode')

    return HeadlineQuery(
        query=query,
        keywords=keywords,
        description=description,
        category=category,
        country=country,
        limit=limit,
        language=language,
        sort_by=sort_by,
        from_date=from_text,
        to_date=to_text,
        search_in=search_in,
        sources=sources,
        domains=domains,
        exclude_domains=exclude_domains,
        rss_feeds=rss_feeds,
        dedupe_mode=dedupe_mode,
        summarize=bool(payload.get('summarize')),
    )
