import asyncio
from datetime import datetime

import pytest
import pytz

from core.exceptions import UpstreamError
from core.generation.verification import derive_reference_iso, verify_output
from core.models import SourceArticle
from core.prompts import build_recent_reporting_block, clean_model_output, get_word_bounds, length_instruction
from core.sources import fetch_news_articles, fetch_sources, freshness_start, resolve_freshness, select_sources

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=pytz.UTC)


def test_select_sources_dedupes_url_publisher_and_title(article_factory):
    """One source per URL, publisher and headline, in first-seen order."""
    articles = [
        article_factory(title="Trail closures announced", url="https://a.com/1", source="Outlet A"),
        article_factory(title="Different take", url="https://a.com/1/", source="Outlet B"),
        article_factory(title="Another Outlet A story", url="https://a.com/2", source="Outlet A"),
        article_factory(title="Trail closures announced - Reuters", url="https://c.com/3", source="Outlet C"),
        article_factory(title="Park reopening date set", url="https://d.com/4", source="Outlet D"),
    ]

    selected = select_sources(articles, now=NOW)

    assert [s.url for s in selected] == ["https://a.com/1", "https://d.com/4"]
    assert selected[0].summary == "Manufacturers shipped more battery-powered trucks than ever last quarter."


def test_select_sources_drops_stale_and_future_items(article_factory):
    """Items outside the recency window are skipped, undated items are kept."""
    articles = [
        article_factory(title="Old news", url="https://a.com/old", source="A", published_at="2024-03-01T00:00:00Z"),
        article_factory(title="From the future", url="https://b.com/f", source="B", published_at="2024-05-02T00:00:00Z"),
        article_factory(title="Undated", url="https://c.com/u", source="C", published_at=""),
    ]
    assert [s.url for s in select_sources(articles, now=NOW)] == ["https://c.com/u"]


def test_select_sources_respects_limit(article_factory):
    articles = [
        article_factory(title=f"Story number {i}", url=f"https://site{i}.com/x", source=f"Outlet {i}")
        for i in range(8)
    ]
    assert len(select_sources(articles, now=NOW)) == 5
    assert len(select_sources(articles, now=NOW, limit=2)) == 2


@pytest.mark.parametrize("value,expected", [
    ("1h", "1h"),
    ("7D", "7d"),
    ("24h", "6h"),
    (None, "6h"),
])
def test_resolve_freshness(value, expected):
    assert resolve_freshness(value) == expected


def test_freshness_start():
    assert freshness_start("6h", NOW) == "2024-05-01T06:00:00Z"


@pytest.mark.asyncio
async def test_fetch_sources_merges_newsapi_and_serpapi(
        article_factory, page_factory, newsapi_factory, serpapi_factory):
    """NewsAPI results come first and SerpAPI fills in."""
    newsapi = newsapi_factory(pages={"Trail news": [page_factory([
        article_factory(title="From NewsAPI", url="https://n.com/1", source="N"),
    ])]})
    serpapi = serpapi_factory({"google_news": [
        article_factory(title="From SerpAPI", url="https://s.com/1", source="S"),
    ]})

    sources = await fetch_sources("Trail news", "1h", newsapi=newsapi, serpapi=serpapi, now=NOW)

    assert [s.url for s in sources] == ["https://n.com/1", "https://s.com/1"]
    assert newsapi.calls[0]["from"] == "2024-05-01T11:00:00Z"
    assert newsapi.calls[0]["sortBy"] == "publishedAt"
    assert serpapi.calls[0]["extra_params"] == {"tbs": "qdr:h"}


@pytest.mark.asyncio
async def test_fetch_sources_survives_newsapi_failure(article_factory, newsapi_factory, serpapi_factory):
    """An upstream error from NewsAPI leaves SerpAPI results usable."""
    newsapi = newsapi_factory(pages={"Trail news": [UpstreamError("NewsAPI", "rate limited", status=429)]})
    serpapi = serpapi_factory({"google_news": [article_factory(url="https://s.com/1")]})

    sources = await fetch_sources("Trail news", newsapi=newsapi, serpapi=serpapi, now=NOW)
    assert [s.url for s in sources] == ["https://s.com/1"]


@pytest.mark.asyncio
async def test_fetch_news_articles_serp_fallback(article_factory, newsapi_factory, serpapi_factory):
    """SerpAPI is only consulted when NewsAPI comes back empty, and publishers may repeat."""
    serpapi = serpapi_factory({"google_news": [
        article_factory(title="First", url="https://s.com/1", source="Same"),
        article_factory(title="Second", url="https://s.com/2", source="Same"),
    ]})

    without = await fetch_news_articles("q", newsapi=newsapi_factory(), serpapi=serpapi, now=NOW)
    with_fallback = await fetch_news_articles(
        "q", serp_fallback=True, newsapi=newsapi_factory(), serpapi=serpapi, now=NOW
    )

    assert without == []
    assert [s.url for s in with_fallback] == ["https://s.com/1", "https://s.com/2"]


def test_recent_reporting_block():
    """Each source lists its title, timestamp, summary and URL."""
    block = build_recent_reporting_block([
        SourceArticle(title="Trail reopens", url="https://a.com/1", summary="  The trail   reopened today. ",
                      published_at="2024-05-01T10:00:00Z"),
        SourceArticle(title="", url="https://b.com/2"),
    ])
    lines = block.splitlines()

    assert lines[0] == "Recent reporting to reference:"
    assert lines[1] == '1. "Trail reopens" (2024-05-01T10:00:00.000Z)'
    assert lines[2] == "   Summary: The trail reopened today."
    assert lines[3] == "   URL: https://a.com/1"
    assert '2. "Untitled" (Unknown publication time)' in lines
    assert "   Summary: No summary provided." in lines


def test_recent_reporting_block_empty():
    assert build_recent_reporting_block([]) == ""


@pytest.mark.parametrize("raw,expected", [
    ("```html\n<p>x</p>\n```", "<p>x</p>"),
    ("```\n<p>x</p>\n```", "<p>x</p>"),
    ("  <p>x</p>  ", "<p>x</p>"),
    (None, ""),
])
def test_clean_model_output(raw, expected):
    """Markdown fences around HTML are removed."""
    assert clean_model_output(raw) == expected


def test_word_bounds_and_length_instruction():
    assert get_word_bounds("short", None) == (700, 1000)
    assert get_word_bounds("custom", 5) == (880, 1320)
    assert get_word_bounds(None, None) == (1750, 2050)
    assert "between 1000 and 1300 words" in length_instruction(None, None)
    assert "exactly 5 sections" in length_instruction("custom", 5)


def test_derive_reference_iso_uses_newest_plausible_source():
    """Sources slightly ahead of now move the reference, far-future ones do not."""
    sources = [
        SourceArticle(title="a", url="https://a.com", published_at="2024-05-01T10:00:00Z"),
        SourceArticle(title="b", url="https://b.com", published_at="2024-05-01T12:30:00Z"),
        SourceArticle(title="c", url="https://c.com", published_at="2024-05-01T18:00:00Z"),
    ]
    assert derive_reference_iso(sources, NOW) == "2024-05-01T12:30:00+00:00"
    assert derive_reference_iso([], NOW) == NOW.isoformat()


@pytest.mark.asyncio
async def test_verify_output_prefers_grok(llm_factory):
    """Grok runs the fact check when available and the reference time is sent as a system message."""
    grok = llm_factory(replies=['{"issues": ["  Wrong year  ", ""]}'])
    llm = llm_factory()

    warnings = await verify_output("<p>x</p>", [], grok=grok, llm=llm, now=NOW)

    assert warnings == ["Verification: Wrong year"]
    assert llm.calls == []
    assert grok.calls[0]["messages"][0] == {
        "role": "system", "content": f"The current date and time is {NOW.isoformat()}",
    }


@pytest.mark.asyncio
async def test_verify_output_reports_upstream_failure(llm_factory):
    llm = llm_factory(replies=[UpstreamError("OpenAI", "boom")])
    assert await verify_output("<p>x</p>", [], llm=llm, now=NOW) == ["Verification skipped: boom"]


@pytest.mark.asyncio
async def test_verify_output_reports_timeout(llm_factory):
    llm = llm_factory(replies=[asyncio.TimeoutError()])
    warnings = await verify_output("<p>x</p>", [], llm=llm, timeout=5, now=NOW)
    assert warnings == ["Verification skipped: timed out after 5s"]


@pytest.mark.asyncio
async def test_verify_output_without_clients():
    assert await verify_output("<p>x</p>", []) == []
