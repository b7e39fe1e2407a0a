import pytest

from core.cache import UsageEstimateCache
from core.exceptions import InvalidRequestError, UpstreamError, VerificationError
from core.generation.budget import TokenBudget, calc_max_tokens, listicle_budget
from core.generation.checks import count_links, count_words, detect_link_clustering, find_missing_sources
from core.generation.loop import GenerationLoop
from core.generation.request import parse_article_request
from core.generation.service import ArticleGenerator
from core.generation.state import ADVANCE, FAIL, RETRY, GenerationState, next_transition
from integrations.openai_client import ChatResult

SOURCE = "https://a.com/1"
CITED = f'<p>Intro with <a href="{SOURCE}" target="_blank">a source</a>.</p><p>More text follows here.</p>'


# ---------- state machine ----------

def test_draft_advances_to_first_check():
    transition = next_transition(GenerationState.DRAFT)
    assert transition.next_state is GenerationState.CHECK_CITATIONS
    assert transition.action == ADVANCE


@pytest.mark.parametrize("state,expected", [
    (GenerationState.CHECK_CITATIONS, GenerationState.CHECK_LINK_COUNT),
    (GenerationState.CHECK_LINK_COUNT, GenerationState.CHECK_LINK_CLUSTERING),
    (GenerationState.CHECK_LINK_CLUSTERING, GenerationState.CHECK_WORD_COUNT),
    (GenerationState.CHECK_WORD_COUNT, GenerationState.DONE),
])
def test_passed_checks_advance_in_order(state, expected):
    """Each passing check hands over to the next one."""
    assert next_transition(state, passed=True).next_state is expected


def test_failed_check_retries_once_then_fails():
    """The first failure restarts the checks, the second ends the run."""
    retry = next_transition(GenerationState.CHECK_LINK_COUNT, passed=False, retry_used=False)
    assert retry.action == RETRY
    assert retry.next_state is GenerationState.CHECK_CITATIONS

    failed = next_transition(GenerationState.CHECK_LINK_COUNT, passed=False, retry_used=True)
    assert failed.action == FAIL
    assert failed.next_state is GenerationState.FAILED


@pytest.mark.parametrize("state", [GenerationState.DONE, GenerationState.FAILED])
def test_terminal_states_have_no_transition(state):
    with pytest.raises(ValueError):
        next_transition(state)


# ---------- checks ----------

def test_find_missing_sources_matches_url_variants():
    """Scheme, www and trailing slash differences still count as a citation."""
    content = '<p><a href="http://www.a.com/1/">one</a></p>'
    assert find_missing_sources(content, [SOURCE, "https://other.com/b"]) == ["https://other.com/b"]


def test_find_missing_sources_decodes_entities():
    """Escaped ampersands in hrefs match the raw source URL."""
    content = '<p><a href="https://a.com/story?id=1&amp;page=2">story</a></p>'
    assert find_missing_sources(content, ["https://a.com/story?id=1&page=2"]) == []


def test_find_missing_sources_unwraps_redirects():
    """A Google redirect link cites its destination."""
    content = '<p><a href="https://www.google.com/url?q=https://a.com/1&sa=D">story</a></p>'
    assert find_missing_sources(content, [SOURCE]) == []


def test_count_links():
    assert count_links('<p><a href="x">1</a> and <A HREF="y">2</A></p>') == 2
    assert count_links("<p>No links</p>") == 0


def test_link_clustering_in_one_block():
    """Too many links inside one paragraph are reported."""
    content = '<p><a href="1">a</a> <a href="2">b</a> <a href="3">c</a></p>'
    assert detect_link_clustering(content, 2) == "3 links in a single <p> block"


def test_link_clustering_in_final_quarter():
    """Links bunched at the end of the article are reported."""
    body = "<p>" + "word " * 200 + "</p>"
    links = "".join(f'<p><a href="https://e.com/{i}">link</a></p>' for i in range(3))
    assert detect_link_clustering(body + links, 2) == "all 3 links fall in the final quarter of the article"


def test_spread_links_are_not_clustered():
    links = "".join(f'<p>Point <a href="https://e.com/{i}">link</a></p><p>{"text " * 40}</p>' for i in range(3))
    assert detect_link_clustering(links, 2) is None


def test_count_words_ignores_markup():
    assert count_words("<p>Hello <b>world</b> &amp; friends</p>") == 4


# ---------- budget ----------

def test_calc_max_tokens_caps_at_context_limit():
    assert calc_max_tokens(1500, "gpt-4o-mini") == 2000
    assert calc_max_tokens(9000, "gpt-4") == 8192
    assert calc_max_tokens(9000, "unknown-model") == 8000


def test_listicle_budget():
    """Listicles budget per item with a buffer and a minimum word count."""
    assert listicle_budget(5, 100, "gpt-4o-mini") == (880, 400)
    assert listicle_budget(5, None, "gpt-4o-mini") == (880, 400)


def test_token_budget_grows_to_limit():
    """Cached estimates raise the starting budget, growth doubles up to the limit."""
    budget = TokenBudget.for_request(2000, "gpt-4", estimate=3000)
    assert budget.tokens == 3000
    assert budget.grow() == 6000
    assert budget.grow() == 8192
    assert budget.can_grow is False


# ---------- generation loop ----------

@pytest.mark.asyncio
async def test_loop_passes_first_draft(llm_factory):
    """A compliant draft finishes in one attempt."""
    llm = llm_factory(replies=[CITED])
    loop = GenerationLoop(llm, "gpt-4o-mini", TokenBudget(1000, 8000), sources=[SOURCE], min_links=1)

    result = await loop.run("Write it")

    assert result.content == CITED
    assert result.attempts == 1
    assert result.history[-1].next_state is GenerationState.DONE
    assert len(result.history) == 5


@pytest.mark.asyncio
async def test_loop_rewrites_missing_citation(llm_factory):
    """A missing source triggers one corrective rewrite naming the source."""
    llm = llm_factory(replies=["<p>No links at all.</p>", CITED])
    loop = GenerationLoop(llm, "gpt-4o-mini", TokenBudget(1000, 8000), sources=[SOURCE], min_links=1)

    result = await loop.run("Write it")

    assert result.attempts == 2
    assert result.content == CITED
    retry_prompt = llm.calls[1]["messages"][-1]["content"]
    assert retry_prompt.startswith("Write it")
    assert "did not cite these required sources" in retry_prompt
    assert SOURCE in retry_prompt


@pytest.mark.asyncio
async def test_loop_fails_after_second_missing_citation(llm_factory):
    """The same check failing after its rewrite raises VerificationError."""
    llm = llm_factory(replies=["<p>No links.</p>", "<p>Still no links.</p>"])
    loop = GenerationLoop(llm, "gpt-4o-mini", TokenBudget(1000, 8000), sources=[SOURCE], min_links=1)

    with pytest.raises(VerificationError) as exc_info:
        await loop.run("Write it")

    error = exc_info.value
    assert error.condition == "missing_sources"
    assert SOURCE in error.message
    assert error.to_response()["missingSources"] == [SOURCE]
    assert len(llm.calls) == 2


@pytest.mark.asyncio
async def test_loop_fails_on_too_few_links(llm_factory):
    llm = llm_factory(replies=["<p>Nothing.</p>", "<p>Nothing again.</p>"])
    loop = GenerationLoop(llm, "gpt-4o-mini", TokenBudget(1000, 8000), min_links=2)

    with pytest.raises(VerificationError) as exc_info:
        await loop.run("Write it")
    assert exc_info.value.condition == "link_count"


@pytest.mark.asyncio
async def test_loop_retries_truncated_draft_with_larger_budget(llm_factory):
    """A draft cut off by the token limit is requested again with double the budget."""
    llm = llm_factory(replies=[
        ChatResult(content="<p>Cut", finish_reason="length", usage={"completion_tokens": 1000}),
        "<p>Complete article.</p>",
    ])
    loop = GenerationLoop(llm, "gpt-4o-mini", TokenBudget(1000, 8000))

    result = await loop.run("Write it")

    assert [call["max_tokens"] for call in llm.calls] == [1000, 2000]
    assert result.content == "<p>Complete article.</p>"
    assert result.attempts == 1
    assert result.max_tokens == 2000


@pytest.mark.asyncio
async def test_loop_grows_budget_for_short_draft(llm_factory):
    """A word-count rewrite runs with a larger budget."""
    long_draft = "<p>" + "word " * 20 + "</p>"
    llm = llm_factory(replies=["<p>Too short</p>", long_draft])
    loop = GenerationLoop(llm, "gpt-4o-mini", TokenBudget(1000, 8000), min_words=10)

    result = await loop.run("Write it")

    assert llm.calls[1]["max_tokens"] == 2000
    assert "only 2 words" in llm.calls[1]["messages"][-1]["content"]
    assert result.attempts == 2


@pytest.mark.asyncio
async def test_loop_strips_code_fences_and_records_usage(llm_factory):
    """Fenced HTML is unwrapped and the completion size is remembered."""
    usage_cache = UsageEstimateCache()
    llm = llm_factory(replies=["```html\n<p>Hi</p>\n```"])
    loop = GenerationLoop(llm, "gpt-4o-mini", TokenBudget(1000, 8000), usage_cache=usage_cache)

    result = await loop.run("Write it")

    assert result.content == "<p>Hi</p>"
    assert usage_cache.get_estimate("blog") == 100


# ---------- request parsing ----------

def test_parse_article_request_defaults():
    request = parse_article_request({"title": "  7 Ways to Save  "})
    assert request.title == "7 Ways to Save"
    assert request.article_type == "Blog post"
    assert request.model_version == "gpt-4o-mini"
    assert request.include_links is True
    assert request.list_count == 7


def test_parse_article_request_aliases():
    request = parse_article_request({
        "title": "Best trails",
        "articleType": "Listicle/Gallery",
        "modelVersion": "",
        "listItemWordCount": 150,
        "useSerpApi": False,
    })
    assert request.article_type == "Listicle/Gallery"
    assert request.model_version == "gpt-4o-mini"
    assert request.list_item_word_count == 150
    assert request.use_serp_api is False
    assert request.list_count == 5


@pytest.mark.parametrize("payload,message", [
    (["title"], "Invalid JSON payload"),
    ({}, "Missing title"),
    ({"title": "   "}, "Missing title"),
])
def test_parse_article_request_rejects(payload, message):
    with pytest.raises(InvalidRequestError) as exc_info:
        parse_article_request(payload)
    assert exc_info.value.message == message


@pytest.mark.parametrize("field", ["listItemWordCount", "customSections"])
@pytest.mark.parametrize("value", [0, -50])
def test_parse_article_request_rejects_non_positive_counts(field, value):
    """Word counts and section counts must be positive."""
    with pytest.raises(InvalidRequestError) as exc_info:
        parse_article_request({"title": "5 things", "articleType": "Listicle/Gallery", field: value})
    assert exc_info.value.message.startswith(f"Invalid value for {field}")
    assert exc_info.value.status_code == 400


# ---------- generator ----------

@pytest.mark.asyncio
async def test_generator_youtube_with_sources(llm_factory, serpapi_factory, fetcher_factory, article_factory):
    """Sources from SerpAPI must be cited, and the transcript feeds the prompt."""
    serpapi = serpapi_factory({"google_news": [
        article_factory(title="Trail report one", url="https://a.com/1", source="Outlet A", published_at=""),
        article_factory(title="Park update two", url="https://b.com/2", source="Outlet B", published_at=""),
    ]})
    fetcher = fetcher_factory(transcript="Transcript about hiking trails")
    content = (
        '<p>Intro <a href="https://a.com/1">one</a></p>'
        '<p>Middle <a href="https://b.com/2">two</a></p>'
        f'<p>{"closing words " * 50}</p>'
    )
    llm = llm_factory(replies=[content])
    generator = ArticleGenerator(llm, content_fetcher=fetcher, serpapi=serpapi)

    body = await generator.generate(parse_article_request({
        "title": "Hiking the coast",
        "articleType": "YouTube video to blog post",
        "videoLink": "https://youtube.com/watch?v=abc",
    }))

    assert body == {"content": content, "sources": ["https://a.com/1", "https://b.com/2"]}
    assert ("transcript", "https://youtube.com/watch?v=abc") in fetcher.calls
    prompt = llm.calls[0]["messages"][-1]["content"]
    assert "Transcript about hiking trails" in prompt
    assert "Recent reporting to reference:" in prompt
    assert serpapi.calls[0]["extra_params"] == {"tbs": "qdr:h6"}


@pytest.mark.asyncio
async def test_generator_blog_without_sources(llm_factory):
    """Without SerpAPI the blog is drafted from an outline alone."""
    draft = "<p>" + "word " * 200 + "</p>"
    llm = llm_factory(replies=["1. Intro\n2. Body", draft])
    generator = ArticleGenerator(llm)

    body = await generator.generate(parse_article_request({
        "title": "Why trails matter",
        "lengthOption": "custom",
        "customSections": 1,
    }))

    assert body == {"content": draft, "sources": []}
    assert llm.calls[0]["interaction_type"] == "outline"
    assert "1. Intro" in llm.calls[1]["messages"][-1]["content"]


@pytest.mark.asyncio
async def test_generator_rejects_empty_outline(llm_factory):
    llm = llm_factory(replies=["   "])
    generator = ArticleGenerator(llm)

    with pytest.raises(UpstreamError) as exc_info:
        await generator.generate(parse_article_request({"title": "Anything"}))
    assert exc_info.value.message == "Outline generation failed"


@pytest.mark.asyncio
async def test_generator_adds_verification_warnings(llm_factory):
    """Fact-check issues are returned as warnings alongside the content."""
    draft = "<p>Short piece.</p>"
    llm = llm_factory(replies=[draft, '{"issues": ["Date is wrong"]}'])
    generator = ArticleGenerator(llm)

    body = await generator.generate(parse_article_request({
        "title": "Channel recap",
        "articleType": "YouTube video to blog post",
        "verifyOutput": True,
    }))

    assert body["warnings"] == ["Verification: Date is wrong"]
