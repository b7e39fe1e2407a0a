#!/usr/bin/env python3
"""
SerpAPI client for the ``google_news`` and ``google`` engines.
"""

import logging
from typing import Any, Dict, List, Optional

from core.exceptions import UpstreamError
from core.models import RawArticle
from .http_client import JsonHttpClient, flatten_params
from .schemas import SerpResponse, SerpResult, parse_articles, parse_payload

logger = logging.getLogger(__name__)

SERPAPI_URL = "https://serpapi.com/search.json"

# Freshness label to Google's time-based search filter
FRESHNESS_TBS = {
    '1h': 'qdr:h',
    '6h': 'qdr:h6',
    '24h': 'qdr:d',
    '1d': 'qdr:d',
    '7d': 'qdr:w',
    '14d': 'qdr:w2',
}


def freshness_to_tbs(freshness: Optional[str]) -> Optional[str]:
    if not freshness:
        return None
    return FRESHNESS_TBS.get(freshness.strip().lower())


def _flatten_news_results(results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """google_news groups related coverage under ``stories``; lift those out."""
    flattened: List[Dict[str, Any]] = []
    for item in results:
        if not isinstance(item, dict):
            flattened.append(item)
            continue
        if item.get('link') or not item.get('stories'):
            flattened.append(item)
        for story in item.get('stories') or []:
            flattened.append(story)
    return flattened


class SerpAPIClient(JsonHttpClient):
    """Async SerpAPI client."""

    service_name = "SerpAPI"

    def __init__(self, api_key: str, **kwargs):
        super().__init__(**kwargs)
        if not api_key:
            raise ValueError("SerpAPI key is required")
        self.api_key = api_key

    async def search(self, query: str, engine: str = 'google_news', limit: Optional[int] = None,
                     extra_params: Optional[Dict[str, Any]] = None) -> List[RawArticle]:
        """
        Run a search and return validated articles.

        Args:
            query: Search query
            engine: ``google_news`` or ``google``
            limit: Maximum number of articles returned
            extra_params: Additional SerpAPI parameters such as ``tbs``

        Returns:
            Articles in upstream order

        Raises:
            UpstreamError: If the request fails or SerpAPI reports an error
        """
        params: Dict[str, Any] = {'engine': engine, 'q': query, 'api_key': self.api_key}
        if extra_params:
            params.update(extra_params)

        logger.info(f"SerpAPI {engine} search: {query}")
        payload = await self._get_json(SERPAPI_URL, params=flatten_params(params))
        response = parse_payload(self.service_name, payload, SerpResponse)
        if response.error:
            raise UpstreamError(self.service_name, response.error)

        if engine == 'google_news':
            items = _flatten_news_results(response.news_results)
        else:
            items = response.organic_results or response.news_results

        articles, _ = parse_articles(items, SerpResult)
        if limit is not None:
            articles = articles[:limit]
        return articles

    async def test_connection(self) -> bool:
        try:
            await self.search('news', limit=1)
            return True
        except UpstreamError as e:
            logger.error(f"SerpAPI connection test failed: {e}")
            return False
