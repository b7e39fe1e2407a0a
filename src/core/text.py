#!/usr/bin/env python3
"""
Text and URL normalization helpers.

Everything here is a pure function over strings. These helpers build the
comparison keys used by headline de-duplication and by the citation checker
that decides whether a generated article actually links its sources.
"""

import base64
import binascii
import logging
import re
from collections import deque
from typing import Iterable, List, Optional, Set
from urllib.parse import parse_qs, urlsplit, urlunsplit

logger = logging.getLogger(__name__)

_NON_ALNUM_RE = re.compile(r'[^a-z0-9]+')
_WHITESPACE_RE = re.compile(r'\s+')
_EMBEDDED_URL_RE = re.compile(r'(?:https?://|www\.)\S+')
_URL_IN_BYTES_RE = re.compile(rb'https?://[\x21-\x7e]+')
_URL_IN_TEXT_RE = re.compile(r'https?://[^\s"\'<>]+')

# Separators that introduce a trailing publisher name in a headline
PUBLISHER_SEPARATORS = (' - ', ' | ', ' — ', ' â€” ')

REDIRECT_PARAMS = ('url', 'u', 'q')
MAX_VARIANT_EXPANSIONS = 256


def collapse_whitespace(text: Optional[str]) -> str:
    """Collapse runs of whitespace into single spaces and trim."""
    if not text:
        return ''
    return _WHITESPACE_RE.sub(' ', text).strip()


def normalize_url_for_comparison(url: Optional[str]) -> str:
    """
    Reduce a URL to a lowercase comparison key.

    Parseable URLs become ``scheme://host/path`` with query, fragment and
    trailing slashes removed. Anything that does not parse into a scheme and
    host falls back to the trimmed, lowercased raw string without trailing
    slashes. The function is idempotent.

    Args:
        url: URL as supplied by an upstream API

    Returns:
        Comparison key, or an empty string for empty input
    """
    raw = (url or '').strip()
    if not raw:
        return ''

    try:
        parts = urlsplit(raw)
    except ValueError:
        return raw.lower().rstrip('/')

    if not parts.scheme or not parts.netloc:
        return raw.lower().rstrip('/')

    path = parts.path.rstrip('/')
    return f"{parts.scheme}://{parts.netloc}{path}".lower()


def normalize_headline_text(text: Optional[str]) -> str:
    """Lowercase text and fold every run of non-alphanumerics into one space."""
    if not text:
        return ''
    return _NON_ALNUM_RE.sub(' ', text.lower()).strip()


def build_token_set(title: Optional[str], description: Optional[str] = None, cap: int = 64) -> List[str]:
    """
    Build the bounded token list used for near-duplicate comparison.

    Args:
        title: Headline title
        description: Headline description or snippet
        cap: Maximum number of distinct tokens kept

    Returns:
        Distinct tokens of three or more characters in first-seen order
    """
    combined = f"{title or ''} {description or ''}".lower()
    combined = _EMBEDDED_URL_RE.sub(' ', combined)
    combined = _NON_ALNUM_RE.sub(' ', combined)

    tokens: dict = {}
    for token in combined.split():
        if len(token) < 3 or token in tokens:
            continue
        tokens[token] = None
        if len(tokens) >= cap:
            break
    return list(tokens)


def strip_publisher_suffix(title: str) -> str:
    """Drop a trailing ``" - Publisher"`` style suffix from a headline."""
    cut = -1
    for separator in PUBLISHER_SEPARATORS:
        index = title.rfind(separator)
        if index > cut:
            cut = index
    if cut > 0:
        return title[:cut].strip()
    return title


def normalize_title_key(title: Optional[str]) -> str:
    """Title key used when de-duplicating generation sources."""
    collapsed = collapse_whitespace(title).lower()
    if not collapsed:
        return ''
    return strip_publisher_suffix(collapsed)


def hostname_of(url: Optional[str]) -> str:
    """Lowercase hostname of a URL without a leading ``www.``."""
    try:
        host = urlsplit((url or '').strip()).hostname or ''
    except ValueError:
        return ''
    host = host.lower()
    if host.startswith('www.'):
        host = host[4:]
    return host


def normalize_publisher(source_name: Optional[str], url: Optional[str] = None) -> str:
    """Publisher key: the lowercased source name, else the URL's hostname."""
    name = collapse_whitespace(source_name).lower()
    if name:
        return name
    return hostname_of(url)


def _toggle_www(host: str) -> str:
    if host.startswith('www.'):
        return host[4:]
    return f"www.{host}"


def _is_redirector(host: str, path: str) -> bool:
    if host == 'news.google.com':
        return True
    return host in ('google.com', 'www.google.com') and path.startswith('/url')


def _decode_segment(segment: str) -> Optional[str]:
    """Try to pull an embedded URL out of a base64 path segment."""
    if len(segment) < 8:
        return None
    padded = segment + '=' * (-len(segment) % 4)
    for decoder in (base64.urlsafe_b64decode, base64.b64decode):
        try:
            decoded = decoder(padded)
        except (binascii.Error, ValueError):
            continue
        match = _URL_IN_BYTES_RE.search(decoded)
        if match:
            return match.group(0).decode('ascii', errors='ignore')
    return None


def unwrap_redirect_targets(url: str) -> List[str]:
    """
    Extract destination URLs hidden inside Google redirector links.

    Handles ``?url=``/``?u=``/``?q=`` parameters and the base64-encoded
    article ids used by Google News.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return []

    host = (parts.hostname or '').lower()
    if not _is_redirector(host, parts.path):
        return []

    targets: List[str] = []
    params = parse_qs(parts.query)
    for key in REDIRECT_PARAMS:
        for value in params.get(key, []):
            if _URL_IN_TEXT_RE.match(value):
                targets.append(value)

    for segment in parts.path.split('/'):
        decoded = _decode_segment(segment)
        if decoded:
            targets.append(decoded)
    return targets


def _neighbours(url: str) -> Iterable[str]:
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    netloc = parts.netloc.lower()

    yield urlunsplit((scheme, netloc, parts.path, parts.query, ''))
    if parts.query:
        yield urlunsplit((scheme, netloc, parts.path, '', ''))
    if scheme in ('http', 'https'):
        swapped = 'http' if scheme == 'https' else 'https'
        yield urlunsplit((swapped, netloc, parts.path, parts.query, ''))
    if netloc:
        yield urlunsplit((scheme, _toggle_www(netloc), parts.path, parts.query, ''))
    yield from unwrap_redirect_targets(url)


def build_url_variants(url: Optional[str]) -> Set[str]:
    """
    Expand a URL into the set of forms that should count as the same link.

    Starting from the trimmed input, a work queue explores hash and query
    stripping, the http/https swap, the ``www.`` toggle and Google redirector
    unwrapping. Every discovered URL is explored in turn, and every result is
    returned with and without a trailing slash.

    Args:
        url: Source or href URL

    Returns:
        Set of variant strings, always containing the input and its
        comparison key from normalize_url_for_comparison
    """
    start = (url or '').strip()
    if not start:
        return set()

    seen: Set[str] = set()
    queue = deque([start])
    while queue and len(seen) < MAX_VARIANT_EXPANSIONS:
        current = queue.popleft()
        if not current or current in seen:
            continue
        seen.add(current)
        try:
            parts = urlsplit(current)
        except ValueError:
            continue
        if not parts.scheme or not parts.netloc:
            continue
        for neighbour in _neighbours(current):
            if neighbour and neighbour not in seen:
                queue.append(neighbour)

    variants: Set[str] = set()
    for value in seen:
        variants.add(value)
        try:
            parts = urlsplit(value)
        except ValueError:
            variants.add(value.rstrip('/'))
            continue
        if parts.query or parts.fragment:
            continue
        trimmed = value.rstrip('/')
        variants.add(trimmed)
        variants.add(f"{trimmed}/")
    variants.add(start)
    normalized = normalize_url_for_comparison(start)
    if normalized:
        variants.add(normalized)
        variants.add(f"{normalized}/")
    return variants
