#!/usr/bin/env python3
"""
Recent reporting lookup for article generation.

NewsAPI is queried first and SerpAPI's ``google_news`` engine fills the rest.
Results are deduplicated by URL, publisher and headline so the generated
article cites a spread of outlets rather than one story syndicated five times.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from core.exceptions import UpstreamError
from core.models import RawArticle, SourceArticle
from core.ranking import parse_published_at, utc_now
from core.text import collapse_whitespace, normalize_publisher, normalize_title_key, normalize_url_for_comparison
from integrations.serpapi_client import freshness_to_tbs

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS = '6h'
FRESHNESS_TO_HOURS = {'1h': 1, '6h': 6, '7d': 24 * 7}
SERP_SOURCE_LIMIT = 8
NEWSAPI_PAGE_SIZE = 8
MAX_SOURCES = 5
SOURCE_RECENCY_DAYS = 14
MAX_FUTURE_DRIFT = timedelta(hours=1)


def resolve_freshness(freshness: Optional[str]) -> str:
    """Return a supported freshness label, defaulting to six hours."""
    value = (freshness or '').strip().lower()
    return value if value in FRESHNESS_TO_HOURS else DEFAULT_FRESHNESS


def freshness_start(freshness: str, now: Optional[datetime] = None) -> str:
    """ISO timestamp marking the start of the freshness window."""
    now = now or utc_now()
    start = now - timedelta(hours=FRESHNESS_TO_HOURS[resolve_freshness(freshness)])
    return start.strftime('%Y-%m-%dT%H:%M:%SZ')


def is_within_window(published_at: str, now: datetime, max_age_days: int = SOURCE_RECENCY_DAYS) -> bool:
    """
    Check a publication time against the recency window.

    Unknown or unparseable times are accepted; the upstream freshness filter
    already bounds them.
    """
    published = parse_published_at(published_at, now)
    if published is None:
        return True
    if published > now + MAX_FUTURE_DRIFT:
        return False
    return now - published <= timedelta(days=max_age_days)


def _to_source(article: RawArticle) -> SourceArticle:
    return SourceArticle(
        title=article.title or '',
        url=article.url or '',
        summary=collapse_whitespace(article.description),
        published_at=article.published_at or '',
        source=article.source or '',
    )


def select_sources(articles: Iterable[RawArticle], now: Optional[datetime] = None,
                   limit: int = MAX_SOURCES, max_age_days: int = SOURCE_RECENCY_DAYS,
                   unique_publishers: bool = True) -> List[SourceArticle]:
    """
    Deduplicate and filter candidate sources, keeping first-seen order.

    Args:
        articles: Candidates in priority order
        now: Reference time for the recency window
        limit: Maximum number of sources returned
        max_age_days: Older items are dropped
        unique_publishers: Allow only one source per publisher

    Returns:
        At most ``limit`` SourceArticle records
    """
    now = now or utc_now()
    seen_urls = set()
    seen_publishers = set()
    seen_titles = set()
    selected: List[SourceArticle] = []

    for article in articles:
        url = (article.url or '').strip()
        if not url:
            continue
        url_key = normalize_url_for_comparison(url)
        if url_key in seen_urls:
            continue

        publisher = normalize_publisher(article.source, url)
        if unique_publishers and publisher and publisher in seen_publishers:
            continue

        title_key = normalize_title_key(article.title)
        if title_key and title_key in seen_titles:
            continue

        if not is_within_window(article.published_at or '', now, max_age_days):
            logger.debug(f"Dropping stale source {url}")
            continue

        seen_urls.add(url_key)
        if publisher:
            seen_publishers.add(publisher)
        if title_key:
            seen_titles.add(title_key)
        selected.append(_to_source(article))
        if len(selected) >= limit:
            break

    return selected


async def _newsapi_articles(newsapi, query: str, freshness: str, now: datetime) -> List[RawArticle]:
    if newsapi is None:
        return []
    params = {
        'q': query,
        'from': freshness_start(freshness, now),
        'sortBy': 'publishedAt',
        'language': 'en',
        'pageSize': NEWSAPI_PAGE_SIZE,
    }
    try:
        page = await newsapi.everything(params)
    except UpstreamError as e:
        logger.warning(f"NewsAPI source lookup failed for '{query}': {e}")
        return []
    return page.articles


async def _serp_articles(serpapi, query: str, freshness: str) -> List[RawArticle]:
    if serpapi is None:
        return []
    extra = {}
    tbs = freshness_to_tbs(resolve_freshness(freshness))
    if tbs:
        extra['tbs'] = tbs
    try:
        return await serpapi.search(query, engine='google_news', limit=SERP_SOURCE_LIMIT, extra_params=extra)
    except UpstreamError as e:
        logger.warning(f"SerpAPI source lookup failed for '{query}': {e}")
        return []


async def fetch_sources(headline: str, freshness: Optional[str] = DEFAULT_FRESHNESS, newsapi=None,
                        serpapi=None, now: Optional[datetime] = None,
                        max_age_days: int = SOURCE_RECENCY_DAYS) -> List[SourceArticle]:
    """
    Find recent reporting for a headline.

    Args:
        headline: Article title used as the search query
        freshness: ``1h``, ``6h`` or ``7d``
        newsapi: NewsAPIClient for the ``NEWS_API_KEY`` account, optional
        serpapi: SerpAPIClient, optional
        now: Reference time
        max_age_days: Recency window

    Returns:
        Up to five sources from distinct publishers
    """
    now = now or utc_now()
    freshness = resolve_freshness(freshness)
    candidates = await _newsapi_articles(newsapi, headline, freshness, now)
    candidates += await _serp_articles(serpapi, headline, freshness)
    sources = select_sources(candidates, now=now, max_age_days=max_age_days)
    logger.info(f"Found {len(sources)} sources for '{headline}' ({len(candidates)} candidates)")
    return sources


async def fetch_news_articles(query: str, freshness: Optional[str] = DEFAULT_FRESHNESS,
                              serp_fallback: bool = False, newsapi=None, serpapi=None,
                              now: Optional[datetime] = None, limit: int = NEWSAPI_PAGE_SIZE) -> List[SourceArticle]:
    """
    Fetch news articles for a query, optionally falling back to SerpAPI.

    The fallback runs only when NewsAPI is unavailable or returned nothing.
    Publishers may repeat here; URLs and headlines may not.
    """
    now = now or utc_now()
    freshness = resolve_freshness(freshness)
    candidates = await _newsapi_articles(newsapi, query, freshness, now)
    if not candidates and serp_fallback:
        candidates = await _serp_articles(serpapi, query, freshness)
    return select_sources(candidates, now=now, limit=limit, unique_publishers=False)
