#!/usr/bin/env python3
"""
NewsAPI client for ``/v2/everything`` and ``/v2/top-headlines``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.exceptions import UpstreamError
from core.models import RawArticle
from .http_client import JsonHttpClient, flatten_params
from .schemas import NewsApiArticle, NewsApiResponse, parse_articles, parse_payload

logger = logging.getLogger(__name__)

NEWSAPI_BASE_URL = "https://newsapi.org/v2"


@dataclass
class NewsApiPage:
    """One page of NewsAPI results after validation."""
    articles: List[RawArticle]
    total_results: int = 0
    rejected: List[str] = field(default_factory=list)
    raw_count: int = 0


class NewsAPIClient(JsonHttpClient):
    """Async NewsAPI client."""

    service_name = "NewsAPI"

    def __init__(self, api_key: str, base_url: str = NEWSAPI_BASE_URL, **kwargs):
        super().__init__(**kwargs)
        if not api_key:
            raise ValueError("NewsAPI key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')

    async def _fetch(self, endpoint: str, params: Dict[str, Any]) -> NewsApiPage:
        url = f"{self.base_url}/{endpoint}"
        logger.info(f"NewsAPI {endpoint} request: {params.get('q') or params.get('category') or ''}")
        payload = await self._get_json(url, params=flatten_params(params), headers={'X-Api-Key': self.api_key})

        if isinstance(payload, dict) and payload.get('status') == 'error':
            message = payload.get('message') or "NewsAPI request failed"
            raise UpstreamError(self.service_name, message)

        response = parse_payload(self.service_name, payload, NewsApiResponse)
        if response.status != 'ok':
            raise UpstreamError(self.service_name, "Unexpected response from NewsAPI")

        articles, rejected = parse_articles(response.articles, NewsApiArticle)
        return NewsApiPage(
            articles=articles,
            total_results=response.total_results or 0,
            rejected=rejected,
            raw_count=len(response.articles),
        )

    async def everything(self, params: Dict[str, Any]) -> NewsApiPage:
        """Search all articles (``/v2/everything``)."""
        return await self._fetch('everything', params)

    async def top_headlines(self, params: Dict[str, Any]) -> NewsApiPage:
        """Fetch top headlines (``/v2/top-headlines``)."""
        return await self._fetch('top-headlines', params)

    async def test_connection(self) -> bool:
        try:
            await self.top_headlines({'country': 'us', 'pageSize': 1})
            return True
        except UpstreamError as e:
            logger.error(f"NewsAPI connection test failed: {e}")
            return False


def build_everything_params(query: str, page_size: int, page: int = 1, language: Optional[str] = None,
                            sort_by: Optional[str] = None, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    params: Dict[str, Any] = {'q': query, 'pageSize': page_size, 'page': page}
    if language:
        params['language'] = language
    if sort_by:
        params['sortBy'] = sort_by
    if extra:
        params.update(extra)
    return params
