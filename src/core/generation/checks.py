#!/usr/bin/env python3
"""
Checks run against generated article HTML.
"""

import html
import re
from typing import List, Optional, Sequence, Set

from core.text import build_url_variants

_HREF_RE = re.compile(r'''<a\b[^>]*?\bhref\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))''', re.IGNORECASE)
_LINK_RE = re.compile(r'<a\s[^>]*href\s*=', re.IGNORECASE)
_BLOCK_RE = re.compile(r'<(p|li)\b[^>]*>(.*?)</\1\s*>', re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r'<[^>]+>')

CLUSTER_TAIL_FRACTION = 0.75
CLUSTER_TAIL_MIN_LINKS = 3


def normalize_href(value: str) -> str:
    """Decode HTML entities (``&amp;``) in an href attribute."""
    return html.unescape(value or '').strip()


def extract_hrefs(content: str) -> List[str]:
    hrefs = []
    for match in _HREF_RE.finditer(content or ''):
        value = next((group for group in match.groups() if group is not None), '')
        href = normalize_href(value)
        if href:
            hrefs.append(href)
    return hrefs


def find_missing_sources(content: str, sources: Sequence[str]) -> List[str]:
    """
    Return the source URLs the article never links to.

    Links and sources are compared through their URL variants, so scheme,
    ``www.``, trailing slash, query string and Google redirect wrapping do not
    hide a citation.

    Args:
        content: Article HTML
        sources: Required source URLs

    Returns:
        Missing sources in their original order
    """
    cited: Set[str] = set()
    for href in extract_hrefs(content):
        cited.update(build_url_variants(href))

    missing = []
    for source in sources:
        if not source:
            continue
        if build_url_variants(source).isdisjoint(cited):
            missing.append(source)
    return missing


def count_links(content: str) -> int:
    return len(_LINK_RE.findall(content or ''))


def detect_link_clustering(content: str, max_links_per_block: int = 2) -> Optional[str]:
    """
    Describe how links are clustered, or return None when they are spread out.

    Clustered means more than ``max_links_per_block`` links inside one
    paragraph or list item, or three or more links that all sit in the final
    quarter of the article.
    """
    text = content or ''
    for match in _BLOCK_RE.finditer(text):
        links = count_links(match.group(2))
        if links > max_links_per_block:
            return f"{links} links in a single <{match.group(1).lower()}> block"

    positions = [match.start() for match in _LINK_RE.finditer(text)]
    if len(positions) >= CLUSTER_TAIL_MIN_LINKS and text:
        tail_start = len(text) * CLUSTER_TAIL_FRACTION
        if all(position >= tail_start for position in positions):
            return f"all {len(positions)} links fall in the final quarter of the article"
    return None


def count_words(content: str) -> int:
    """Word count of the visible text."""
    text = html.unescape(_TAG_RE.sub(' ', content or ''))
    return len(text.split())
