#!/usr/bin/env python3
"""
Async RSS/Atom feed client.

Fetches feeds in parallel with aiohttp and parses them with feedparser.
"""

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

import aiohttp
import feedparser

from core.config import DEFAULT_USER_AGENT
from core.exceptions import UpstreamError
from core.models import RawArticle

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r'<[^>]*>')
_WHITESPACE_RE = re.compile(r'\s+')


def strip_html(value: Optional[str]) -> str:
    if not value:
        return ''
    return _WHITESPACE_RE.sub(' ', _TAG_RE.sub(' ', value)).strip()


@dataclass
class FeedResult:
    """A parsed feed."""
    url: str
    title: str
    articles: List[RawArticle] = field(default_factory=list)


def _entry_published(entry) -> str:
    for key in ('published', 'updated', 'created'):
        value = entry.get(key)
        if value:
            return value
    return ''


def parse_feed_document(url: str, content: Union[bytes, str]) -> FeedResult:
    """
    Parse raw feed content into RawArticle records.

    Raises:
        UpstreamError: If the document is not a usable feed
    """
    feed = feedparser.parse(content)
    if feed.bozo and not feed.entries:
        raise UpstreamError('RSS', f"Failed to parse feed {url}: {feed.get('bozo_exception')}")
    if feed.bozo:
        logger.warning(f"Feed parsing warning for {url}: {feed.get('bozo_exception')}")

    title = strip_html(feed.feed.get('title')) or url
    articles: List[RawArticle] = []
    for entry in feed.entries:
        articles.append(RawArticle(
            title=strip_html(entry.get('title')),
            url=(entry.get('link') or '').strip(),
            description=strip_html(entry.get('summary') or entry.get('description')),
            source=title,
            published_at=_entry_published(entry),
        ))
    return FeedResult(url=url, title=title, articles=articles)


class FeedClient:
    """Parallel RSS fetcher."""

    service_name = "RSS"

    def __init__(self, timeout: int = 10, max_concurrent: int = 5, user_agent: str = DEFAULT_USER_AGENT):
        """
        Args:
            timeout: Request timeout in seconds
            max_concurrent: Maximum concurrent requests
            user_agent: User-Agent header
        """
        self.timeout = timeout
        self.max_concurrent = max_concurrent
        self.user_agent = user_agent

    async def _fetch(self, session: aiohttp.ClientSession, url: str) -> FeedResult:
        try:
            logger.info(f"Fetching feed from: {url}")
            async with session.get(url) as response:
                response.raise_for_status()
                content = await response.read()
        except asyncio.TimeoutError as e:
            logger.error(f"Timeout fetching feed {url}")
            raise UpstreamError(self.service_name, f"Timed out fetching feed {url}", original_error=e) from e
        except aiohttp.ClientResponseError as e:
            logger.error(f"HTTP error fetching feed {url}: {e}")
            raise UpstreamError(self.service_name, f"Feed {url} returned status {e.status}",
                                status=e.status, original_error=e) from e
        except aiohttp.ClientError as e:
            logger.error(f"HTTP error fetching feed {url}: {e}")
            raise UpstreamError(self.service_name, f"Failed to fetch feed {url}: {e}", original_error=e) from e
        return parse_feed_document(url, content)

    async def fetch_feed(self, url: str) -> FeedResult:
        """Fetch and parse a single feed."""
        async with aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers={'User-Agent': self.user_agent},
        ) as session:
            return await self._fetch(session, url)

    async def fetch_feeds(self, urls: List[str]) -> List[Tuple[str, Union[FeedResult, UpstreamError]]]:
        """
        Fetch several feeds in parallel.

        Returns:
            ``(url, result)`` pairs in input order; failed feeds carry the error
        """
        if not urls:
            return []

        logger.info(f"Fetching {len(urls)} feeds in parallel")
        start_time = time.time()
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async with aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers={'User-Agent': self.user_agent},
        ) as session:
            async def fetch_with_semaphore(url: str):
                async with semaphore:
                    try:
                        return url, await self._fetch(session, url)
                    except UpstreamError as e:
                        return url, e

            results = await asyncio.gather(*(fetch_with_semaphore(url) for url in urls))

        successful = sum(1 for _, result in results if isinstance(result, FeedResult))
        logger.info(f"Fetched {successful}/{len(urls)} feeds in {time.time() - start_time:.2f}s")
        return list(results)
