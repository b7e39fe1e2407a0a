from datetime import datetime

import pytest
import pytz

from core.exceptions import ConfigurationError, InvalidRequestError, UpstreamError
from core.headlines import HeadlinePipeline, PipelineSettings, build_query_plan, parse_headline_request
from core.headlines.inference import fallback_categories, fallback_keywords, infer_terms
from integrations.feed_client import FeedResult

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=pytz.UTC)


# ---------- request validation ----------

def test_parse_headline_request_defaults():
    """Only a query is needed; everything else has defaults."""
    request = parse_headline_request({"query": "electric trucks"})
    assert request.limit == 5
    assert request.country == "us"
    assert request.language == "en"
    assert request.dedupe_mode == "default"
    assert request.newsapi_filters() == {"language": "en", "sortBy": "publishedAt"}


@pytest.mark.parametrize("payload,message", [
    ([], "Request body must be a JSON object"),
    ({}, "Either query, keywords, or description must be provided"),
    ({"query": "x", "sources": ["bbc-news"], "domains": ["bbc.co.uk"]},
     "sources cannot be combined with domains or excludeDomains"),
    ({"query": "x", "dedupeMode": "fuzzy"}, "Unsupported dedupeMode: fuzzy"),
    ({"query": "x", "language": ["en"]}, "language must be a string value"),
    ({"query": "x", "sortBy": 1}, "sortBy must be a string value"),
    ({"query": "x", "from": "2024-05-02", "to": "2024-05-01"}, "from must be earlier than or equal to to"),
    ({"query": "x", "domains": ["localhost"]}, "Invalid domains entry: localhost"),
    ({"query": "x", "keywords": "a,b", "rssFeeds": ["ftp://feed"]}, "Invalid rssFeeds entry: ftp://feed"),
])
def test_parse_headline_request_rejects_bad_input(payload, message):
    """Malformed bodies raise InvalidRequestError with a readable message."""
    with pytest.raises(InvalidRequestError) as exc_info:
        parse_headline_request(payload)
    assert exc_info.value.message == message
    assert exc_info.value.status_code == 400


def test_parse_headline_request_category_allows_larger_limit():
    """Category requests accept up to one hundred results."""
    request = parse_headline_request({"category": "Science", "limit": 80})
    assert request.category == "science"
    assert request.limit == 80


@pytest.mark.parametrize("raw,expected", [
    (0, 1),
    (-3, 1),
    (500, 50),
    (7.9, 7),
    ("12 items", 12),
    ("abc", 5),
    ("   ", 5),
    (True, 5),
    ({"n": 3}, 5),
])
def test_parse_headline_request_clamps_limit(raw, expected):
    """Out-of-range limits are clamped and unreadable ones fall back to the default."""
    assert parse_headline_request({"query": "x", "limit": raw}).limit == expected


def test_parse_headline_request_category_limit_clamps_at_one_hundred():
    assert parse_headline_request({"category": "science", "limit": 500}).limit == 100


def test_filter_lists_keep_first_twenty_entries():
    """Long source lists are cut down rather than rejected."""
    sources = [f"source-{i}" for i in range(30)]
    request = parse_headline_request({"query": "x", "sources": sources + ["source-0"]})
    assert request.sources == sources[:20]


def test_keywords_accept_comma_separated_string():
    """Keywords may be sent as a comma separated string and are deduplicated."""
    request = parse_headline_request({"keywords": "NASA, Mars rover, nasa"})
    assert request.keywords == ["NASA", "Mars rover"]


# ---------- query planning ----------

def test_query_plan_shares_limit_between_primary_queries():
    """Manual and combined keyword queries split the limit; single keywords follow."""
    request = parse_headline_request({"query": "space", "keywords": ["NASA", "Mars rover"], "limit": 5})
    plan = build_query_plan(request)

    assert [p.query for p in plan] == ["space", 'NASA AND "Mars rover"', "NASA", '"Mars rover"']
    assert [p.target for p in plan] == [3, 3, 3, 3]
    assert [p.primary for p in plan] == [True, True, False, False]


def test_query_plan_single_keyword_has_no_extra_queries():
    request = parse_headline_request({"keywords": ["NASA"], "limit": 4})
    plan = build_query_plan(request)
    assert [(p.query, p.target) for p in plan] == [("NASA", 4)]


# ---------- keyword inference ----------

def test_fallback_keywords_skip_stopwords():
    """The word-based fallback keeps the first distinct meaningful words."""
    description = "I want the latest news about electric trucks and battery plants for technology fans"
    assert fallback_keywords(description) == ["electric", "trucks", "battery", "plants", "technology"]
    assert fallback_categories(description) == ["technology"]


@pytest.mark.asyncio
async def test_infer_terms_uses_llm_when_available(llm_factory):
    llm = llm_factory(json_replies=[{"keywords": ["EV trucks", "ev trucks", "Battery"], "categories": ["Business", "x"]}])
    inferred = await infer_terms("electric trucks", llm, "gpt-4o-mini")
    assert inferred.keywords == ["EV trucks", "Battery"]
    assert inferred.categories == ["business"]
    assert inferred.used_llm is True
    assert llm.json_calls[0]["temperature"] == 0


@pytest.mark.asyncio
async def test_infer_terms_falls_back_on_llm_failure(llm_factory):
    llm = llm_factory(json_replies=[UpstreamError("OpenAI", "boom")])
    inferred = await infer_terms("solar farms in texas", llm)
    assert inferred.keywords == ["solar", "farms", "texas"]
    assert inferred.used_llm is False


# ---------- pipeline ----------

def _pipeline(newsapi=None, serpapi=None, feeds=None, llm=None):
    return HeadlinePipeline(newsapi=newsapi, serpapi=serpapi, feeds=feeds, llm=llm, settings=PipelineSettings())


@pytest.mark.asyncio
async def test_pipeline_returns_ranked_headlines(article_factory, page_factory, newsapi_factory):
    """A single query fills the limit and the response carries ranking metadata."""
    articles = [
        article_factory(title="Electric trucks reach record sales", url="https://a.com/1", source="A",
                        description="Sales rose for a third quarter"),
        article_factory(title="Battery plant opens in Ohio", url="https://b.com/2", source="B",
                        description="The factory will employ 900 people"),
    ]
    newsapi = newsapi_factory(pages={"electric trucks": [page_factory(articles)]})
    request = parse_headline_request({"query": "electric trucks", "limit": 2})

    body = await _pipeline(newsapi=newsapi).run(request, now=NOW)

    assert body["totalResults"] == 2
    assert body["queriesAttempted"] == ["electric trucks"]
    assert body["successfulQueries"] == 1
    assert body["ranking"]["dedupeMode"] == "default"
    assert body["ranking"]["weights"] == {"recency": 0.5, "sourceDiversity": 0.25, "topicCoverage": 0.25}
    assert "warnings" not in body
    assert {h["url"] for h in body["headlines"]} == {"https://a.com/1", "https://b.com/2"}
    assert newsapi.calls[0] == {
        "language": "en", "sortBy": "publishedAt", "q": "electric trucks", "pageSize": 2, "page": 1,
    }


@pytest.mark.asyncio
async def test_pipeline_pages_until_target_reached(article_factory, page_factory, newsapi_factory):
    """A full page with duplicates triggers a smaller follow-up page."""
    first_page = page_factory([
        article_factory(title="Story one", url="https://a.com/1"),
        article_factory(title="Story one", url="https://a.com/1"),
        article_factory(title="Story two", url="https://a.com/2", description="Different text"),
    ])
    second_page = page_factory([article_factory(title="Story three", url="https://a.com/3", description="Other")])
    newsapi = newsapi_factory(pages={"ships": [first_page, second_page]})
    request = parse_headline_request({"query": "ships", "limit": 3})

    body = await _pipeline(newsapi=newsapi).run(request, now=NOW)

    assert [(c["page"], c["pageSize"]) for c in newsapi.calls] == [(1, 3), (2, 1)]
    assert body["totalResults"] == 3


@pytest.mark.asyncio
async def test_pipeline_requires_newsapi_key():
    request = parse_headline_request({"query": "ships"})
    with pytest.raises(ConfigurationError) as exc_info:
        await _pipeline().run(request, now=NOW)
    assert exc_info.value.message == "NEWSAPI_API_KEY is not configured"


@pytest.mark.asyncio
async def test_pipeline_raises_when_every_query_fails(newsapi_factory):
    """With no successful query the first upstream error propagates."""
    error = UpstreamError("NewsAPI", "rate limited", status=429)
    newsapi = newsapi_factory(pages={"ships": [error]})
    request = parse_headline_request({"query": "ships"})

    with pytest.raises(UpstreamError) as exc_info:
        await _pipeline(newsapi=newsapi).run(request, now=NOW)
    assert exc_info.value is error


@pytest.mark.asyncio
async def test_pipeline_reports_partial_failures(article_factory, page_factory, newsapi_factory):
    """A failed query becomes a warning while the others still contribute."""
    newsapi = newsapi_factory(pages={
        'NASA AND "Mars rover"': [page_factory([article_factory(title="Rover climbs crater rim", url="https://a.com/1")])],
        "NASA": [UpstreamError("NewsAPI", "timeout")],
        '"Mars rover"': [page_factory([article_factory(title="Rover samples rock", url="https://b.com/2",
                                                       description="A core sample was drilled")])],
    })
    request = parse_headline_request({"keywords": ["NASA", "Mars rover"], "limit": 4})

    body = await _pipeline(newsapi=newsapi).run(request, now=NOW)

    assert body["successfulQueries"] == 2
    assert body["queryErrors"] == [{"query": "NASA", "error": "timeout"}]
    assert body["warnings"] == ['Query "NASA" failed: timeout']
    assert body["totalResults"] == 2


@pytest.mark.asyncio
async def test_pipeline_strict_mode_folds_near_duplicates(article_factory, page_factory, newsapi_factory):
    articles = [
        article_factory(title="Mars rover finds ancient lake evidence", url="https://a.com/1",
                        description="", source="A"),
        article_factory(title="Mars rover finds ancient lake evidence say scientists", url="https://b.com/1",
                        description="", source="B"),
    ]
    newsapi = newsapi_factory(pages={"mars": [page_factory(articles, raw_count=1)]})
    request = parse_headline_request({"query": "mars", "limit": 5, "dedupeMode": "strict"})

    body = await _pipeline(newsapi=newsapi).run(request, now=NOW)

    assert body["totalResults"] == 1
    assert body["headlines"][0]["relatedArticles"][0]["url"] == "https://b.com/1"
    assert body["ranking"]["candidateCount"] == 1


@pytest.mark.asyncio
async def test_pipeline_falls_back_to_serpapi(article_factory, newsapi_factory, serpapi_factory):
    """An empty NewsAPI result triggers the SerpAPI engines in order."""
    newsapi = newsapi_factory()
    serpapi = serpapi_factory(results={
        "google_news": [article_factory(title="Ferry strike ends", url="https://c.com/ferry", source="C")],
        "google": UpstreamError("SerpAPI", "quota"),
    })
    request = parse_headline_request({"query": "ferry strike"})

    body = await _pipeline(newsapi=newsapi, serpapi=serpapi).run(request, now=NOW)

    assert [c["engine"] for c in serpapi.calls] == ["google_news", "google"]
    assert serpapi.calls[0]["extra_params"] == {"tbs": "qdr:w2"}
    assert body["headlines"][0]["url"] == "https://c.com/ferry"
    assert body["queriesAttempted"][1:] == [
        "SerpAPI (google_news): ferry strike",
        "SerpAPI (google): ferry strike",
    ]
    assert body["successfulQueries"] == 2


@pytest.mark.asyncio
async def test_pipeline_reads_rss_feeds(article_factory, feed_client_factory):
    """Feed results are merged and failed feeds become warnings."""
    feeds = feed_client_factory(results=[
        ("https://feeds.example.com/a.xml", FeedResult(
            url="https://feeds.example.com/a.xml",
            title="Example Feed",
            articles=[article_factory(title="Feed story", url="https://feeds.example.com/story")],
        )),
        ("https://broken.example.com/rss", UpstreamError("RSS", "HTTP 500")),
    ])
    request = parse_headline_request({"rssFeeds": ["https://feeds.example.com/a.xml", "https://broken.example.com/rss"]})

    body = await _pipeline(feeds=feeds).run(request, now=NOW)

    assert body["queriesAttempted"] == ["RSS: Example Feed", "RSS: https://broken.example.com/rss"]
    assert body["headlines"][0]["title"] == "Feed story"
    assert body["queryErrors"][0]["query"] == "RSS: https://broken.example.com/rss"


@pytest.mark.asyncio
async def test_pipeline_category_uses_top_headlines(article_factory, page_factory, newsapi_factory):
    newsapi = newsapi_factory(top_pages=[page_factory([article_factory()])])
    request = parse_headline_request({"category": "science", "country": "GB", "limit": 10})

    body = await _pipeline(newsapi=newsapi).run(request, now=NOW)

    assert newsapi.top_calls == [{"category": "science", "country": "gb", "pageSize": 10, "page": 1}]
    assert body["queriesAttempted"] == ["category:science"]


@pytest.mark.asyncio
async def test_pipeline_description_reports_inferred_keywords(article_factory, page_factory, newsapi_factory):
    newsapi = newsapi_factory(pages={"solar": [page_factory([article_factory()])]})
    request = parse_headline_request({"description": "solar"})

    body = await _pipeline(newsapi=newsapi).run(request, now=NOW)

    assert body["inferredKeywords"] == ["solar"]
    assert newsapi.calls[0]["q"] == "solar"


@pytest.mark.asyncio
async def test_pipeline_summaries(article_factory, page_factory, newsapi_factory, llm_factory):
    llm = llm_factory(json_replies=[{"summaries": [{"index": 0, "overview": "Trucks sell.", "bullets": ["Up 20%"]}]}])
    newsapi = newsapi_factory(pages={"trucks": [page_factory([article_factory()])]})
    request = parse_headline_request({"query": "trucks", "summarize": True})

    body = await _pipeline(newsapi=newsapi, llm=llm).run(request, now=NOW)

    assert body["headlines"][0]["summary"] == {"overview": "Trucks sell.", "bullets": ["Up 20%"]}


@pytest.mark.asyncio
async def test_pipeline_summaries_without_llm_warn(article_factory, page_factory, newsapi_factory):
    newsapi = newsapi_factory(pages={"trucks": [page_factory([article_factory()])]})
    request = parse_headline_request({"query": "trucks", "summarize": True})

    body = await _pipeline(newsapi=newsapi).run(request, now=NOW)

    assert body["warnings"] == ["Summaries unavailable: OPENAI_API_KEY is not configured"]
