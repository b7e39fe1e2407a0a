import base64

import pytest

from core.text import (
    build_token_set,
    build_url_variants,
    normalize_headline_text,
    normalize_publisher,
    normalize_title_key,
    normalize_url_for_comparison,
    strip_publisher_suffix,
    unwrap_redirect_targets,
)


@pytest.mark.parametrize("raw,expected", [
    ("HTTPS://Example.com/Path/?utm_source=x#top", "https://example.com/path"),
    ("https://example.com/story/", "https://example.com/story"),
    ("  https://www.example.com  ", "https://www.example.com"),
    ("not a url/", "not a url"),
    ("", ""),
    (None, ""),
])
def test_normalize_url_for_comparison(raw, expected):
    """URLs reduce to a lowercase scheme://host/path key."""
    assert normalize_url_for_comparison(raw) == expected


@pytest.mark.parametrize("raw", [
    "https://Example.com/a/b/?x=1",
    "http://www.example.org/",
    "example.com/path/",
])
def test_normalize_url_for_comparison_is_idempotent(raw):
    """Normalizing a key again does not change it."""
    once = normalize_url_for_comparison(raw)
    assert normalize_url_for_comparison(once) == once


def test_normalize_headline_text_folds_punctuation():
    """Runs of punctuation collapse into a single space."""
    assert normalize_headline_text("NASA's Mars -- rover!!  finds water") == "nasa s mars rover finds water"


def test_build_token_set_skips_short_tokens_and_urls():
    """Tokens shorter than three characters and embedded URLs are ignored."""
    tokens = build_token_set("The Fed is holding rates", "see https://x.com/a for more")
    assert tokens == ["the", "fed", "holding", "rates", "see", "for", "more"]


def test_build_token_set_respects_cap():
    """The token list stops growing at the cap."""
    assert build_token_set("alpha beta gamma delta", cap=2) == ["alpha", "beta"]


@pytest.mark.parametrize("title,expected", [
    ("Fed holds rates steady - Reuters", "Fed holds rates steady"),
    ("Fed holds rates steady | The Times", "Fed holds rates steady"),
    ("Fed holds rates steady", "Fed holds rates steady"),
])
def test_strip_publisher_suffix(title, expected):
    """Trailing publisher names are dropped."""
    assert strip_publisher_suffix(title) == expected


def test_normalize_title_key_matches_syndicated_titles():
    """Syndicated copies of one headline share a title key."""
    first = normalize_title_key("Fed  Holds Rates Steady - Reuters")
    second = normalize_title_key("fed holds rates steady | Yahoo News")
    assert first == second == "fed holds rates steady"


def test_normalize_publisher_falls_back_to_hostname():
    """Without a source name the URL host identifies the publisher."""
    assert normalize_publisher("  BBC  News ", "https://bbc.co.uk/x") == "bbc news"
    assert normalize_publisher("", "https://www.bbc.co.uk/x") == "bbc.co.uk"


def test_build_url_variants_always_contains_input():
    """The trimmed input is always one of its own variants."""
    url = "https://www.example.com/story?utm=1"
    variants = build_url_variants(url)
    assert url in variants
    assert "https://www.example.com/story" in variants
    assert "http://example.com/story" in variants
    assert "https://example.com/story/" in variants


@pytest.mark.parametrize("url", [
    "HTTP://WWW.X.COM/A/B/",
    "HTTPS://Example.com/Path/",
    "Foo//",
    "https://news.example.com/Story?id=7",
])
def test_build_url_variants_contains_comparison_key(url):
    """Mixed-case and schemeless inputs still include their normalized form."""
    variants = build_url_variants(url)
    assert url.strip() in variants
    assert normalize_url_for_comparison(url) in variants


def test_build_url_variants_empty_input():
    """Blank input has no variants."""
    assert build_url_variants("   ") == set()


def test_unwrap_google_url_redirect():
    """google.com/url redirects expose their destination."""
    targets = unwrap_redirect_targets("https://www.google.com/url?q=https://example.com/a&sa=D")
    assert targets == ["https://example.com/a"]
    assert "https://example.com/a" in build_url_variants("https://www.google.com/url?q=https://example.com/a&sa=D")


def test_unwrap_google_news_base64_segment():
    """Google News article ids embed the destination URL in base64."""
    payload = b'\x08\x13"\x1bhttps://example.com/story-c\xd2\x01\x00'
    segment = base64.urlsafe_b64encode(payload).decode().rstrip('=')
    url = f"https://news.google.com/rss/articles/{segment}?oc=5"
    assert "https://example.com/story-c" in unwrap_redirect_targets(url)
    assert "https://example.com/story-c" in build_url_variants(url)


def test_unwrap_ignores_non_redirect_hosts():
    """Ordinary links are not treated as redirects."""
    assert unwrap_redirect_targets("https://example.com/url?q=https://other.com") == []
