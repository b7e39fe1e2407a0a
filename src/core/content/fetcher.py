"""
Source content fetcher for blog posts and YouTube transcripts.

Both kinds of content are reduced to plain text and cached briefly so a
prefetch request can warm the cache before generation starts.
"""

import time
import logging
from typing import Optional
from urllib.parse import parse_qs, urlparse

import requests
import trafilatura
from bs4 import BeautifulSoup

from core.cache import PrefetchCache
from core.config import DEFAULT_USER_AGENT
from core.text import collapse_whitespace

logger = logging.getLogger(__name__)

TRANSCRIPT_URL = "https://video.google.com/timedtext"


def extract_text(markup: str) -> str:
    """Strip markup and collapse whitespace."""
    if not markup:
        return ""
    soup = BeautifulSoup(markup, 'html.parser')
    for element in soup(["script", "style", "noscript"]):
        element.decompose()
    return collapse_whitespace(soup.get_text(" "))


def extract_article_text(html: str, url: Optional[str] = None) -> str:
    """Main article text via trafilatura, falling back to the whole page text."""
    if not html:
        return ""
    extracted = trafilatura.extract(html, url=url, include_comments=False, include_tables=True)
    if extracted:
        return collapse_whitespace(extracted)
    logger.debug(f"trafilatura found no article body in {url}, using page text")
    return extract_text(html)


def youtube_video_id(video_link: str) -> Optional[str]:
    """Return the ``v`` parameter of a YouTube watch URL, or the id of a youtu.be link."""
    try:
        parsed = urlparse(video_link.strip())
    except ValueError:
        return None
    video_id = parse_qs(parsed.query).get('v', [None])[0]
    if video_id:
        return video_id
    if parsed.hostname and parsed.hostname.endswith('youtu.be'):
        return parsed.path.strip('/') or None
    return None


class ContentFetcher:
    """Fetches blog HTML and video transcripts as plain text."""

    def __init__(self,
                 cache: Optional[PrefetchCache] = None,
                 max_retries: int = 2,
                 timeout: int = 20,
                 user_agent: str = DEFAULT_USER_AGENT):
        """
        Initialize content fetcher.

        Args:
            cache: Prefetch cache shared with the prefetch route
            max_retries: Maximum attempts per request
            timeout: Request timeout in seconds
            user_agent: User-Agent string for requests
        """
        self.cache = cache or PrefetchCache()
        self.max_retries = max_retries
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en;q=0.9",
        })

    def _get_text(self, url: str, params: Optional[dict] = None) -> Optional[str]:
        for attempt in range(self.max_retries):
            try:
                logger.debug(f"Fetching {url} (attempt {attempt + 1}/{self.max_retries})")
                response = self.session.get(url, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response.text
            except requests.exceptions.RequestException as e:
                logger.warning(f"Request failed for {url}: {e}")
                if attempt == self.max_retries - 1:
                    logger.error(f"Failed to fetch {url} after {self.max_retries} attempts")
                    return None
                time.sleep(2 ** attempt)
        return None

    def fetch_blog_content(self, blog_link: Optional[str]) -> str:
        """
        Fetch a blog post as plain text.

        Returns:
            Text content, or an empty string when the fetch fails
        """
        url = (blog_link or "").strip()
        if not url:
            return ""

        cached = self.cache.get('blog', url)
        if cached:
            return cached

        html = self._get_text(url)
        cleaned = extract_article_text(html or "", url)
        if cleaned:
            self.cache.set('blog', url, cleaned)
        return cleaned

    def fetch_transcript(self, video_link: Optional[str]) -> str:
        """
        Fetch an English transcript for a YouTube video.

        Returns:
            Transcript text, or an empty string when unavailable
        """
        url = (video_link or "").strip()
        if not url:
            return ""

        cached = self.cache.get('transcript', url)
        if cached:
            return cached

        video_id = youtube_video_id(url)
        if not video_id:
            return ""

        xml = self._get_text(TRANSCRIPT_URL, params={'lang': 'en', 'v': video_id})
        cleaned = extract_text(xml or "")
        if cleaned:
            self.cache.set('transcript', url, cleaned)
        return cleaned

    def prefetch(self, kind: str, url: str) -> bool:
        """Warm the cache for one URL; returns whether content was found."""
        if kind == 'blog':
            return bool(self.fetch_blog_content(url))
        if kind == 'transcript':
            return bool(self.fetch_transcript(url))
        raise ValueError(f"Unsupported type: {kind}")
