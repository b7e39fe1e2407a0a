import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

# Also add the project root to handle absolute imports
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from core.config import ApplicationConfig, Config, IntegrationConfig  # noqa: E402
from core.container import Container, setup_default_services  # noqa: E402
from core.models import RawArticle  # noqa: E402
from integrations.newsapi_client import NewsApiPage  # noqa: E402
from integrations.openai_client import ChatResult  # noqa: E402
from integrations.schemas import AirtableRecord  # noqa: E402


class FakeLLM:
    """Scripted chat client. Exceptions in the script are raised in order."""

    def __init__(self, replies: Optional[List[Any]] = None, json_replies: Optional[List[Any]] = None,
                 embeddings: Optional[List[List[float]]] = None) -> None:
        self.replies = list(replies or [])
        self.json_replies = list(json_replies or [])
        self.embeddings = embeddings
        self.calls: List[Dict[str, Any]] = []
        self.json_calls: List[Dict[str, Any]] = []
        self.embed_calls: List[List[str]] = []

    async def chat(self, messages, model=None, max_tokens=None, temperature=None,
                   response_format=None, interaction_type: str = "general") -> ChatResult:
        self.calls.append({
            "messages": messages,
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "interaction_type": interaction_type,
        })
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, ChatResult):
            return reply
        return ChatResult(content=reply, finish_reason="stop", usage={"completion_tokens": 100}, model=model or "")

    async def chat_json(self, messages, model=None, max_tokens=None, temperature=None,
                        interaction_type: str = "general") -> Any:
        self.json_calls.append({"messages": messages, "model": model, "temperature": temperature})
        reply = self.json_replies.pop(0) if self.json_replies else {}
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def embed(self, texts: List[str], model: str = "text-embedding-3-small") -> List[List[float]]:
        self.embed_calls.append(list(texts))
        if isinstance(self.embeddings, Exception):
            raise self.embeddings
        return self.embeddings or [[1.0, 0.0] for _ in texts]


class FakeNewsAPI:
    """Returns pages keyed by query; records every parameter set."""

    def __init__(self, pages: Optional[Dict[str, List[Any]]] = None,
                 top_pages: Optional[List[Any]] = None) -> None:
        self.pages = {key: list(value) for key, value in (pages or {}).items()}
        self.top_pages = list(top_pages or [])
        self.calls: List[Dict[str, Any]] = []
        self.top_calls: List[Dict[str, Any]] = []

    async def everything(self, params: Dict[str, Any]) -> NewsApiPage:
        self.calls.append(dict(params))
        queue = self.pages.get(params.get("q"), [])
        page = queue.pop(0) if queue else NewsApiPage(articles=[])
        if isinstance(page, Exception):
            raise page
        return page

    async def top_headlines(self, params: Dict[str, Any]) -> NewsApiPage:
        self.top_calls.append(dict(params))
        page = self.top_pages.pop(0) if self.top_pages else NewsApiPage(articles=[])
        if isinstance(page, Exception):
            raise page
        return page


class FakeSerpAPI:
    def __init__(self, results: Optional[Dict[str, Any]] = None) -> None:
        self.results = results or {}
        self.calls: List[Dict[str, Any]] = []

    async def search(self, query: str, engine: str = "google_news", limit: Optional[int] = None,
                     extra_params: Optional[Dict[str, Any]] = None) -> List[RawArticle]:
        self.calls.append({"query": query, "engine": engine, "limit": limit, "extra_params": extra_params})
        result = self.results.get(engine, [])
        if isinstance(result, Exception):
            raise result
        return list(result)


class FakeFeedClient:
    def __init__(self, results: Optional[List[Tuple[str, Any]]] = None) -> None:
        self.results = results or []
        self.calls: List[List[str]] = []

    async def fetch_feeds(self, urls: List[str]):
        self.calls.append(list(urls))
        return list(self.results)


class FakeAirtable:
    def __init__(self, records: Optional[List[AirtableRecord]] = None) -> None:
        self.records = records or []
        self.calls: List[Dict[str, Any]] = []

    async def list_records(self, filter_formula: Optional[str] = None, max_records: Optional[int] = None,
                           fields: Optional[List[str]] = None) -> List[AirtableRecord]:
        self.calls.append({"filter_formula": filter_formula, "max_records": max_records, "fields": fields})
        records = list(self.records)
        return records[:max_records] if max_records else records


class FakeSupabaseStore:
    def __init__(self, profiles: Optional[Dict[str, Dict[str, Any]]] = None,
                 presets: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self.profiles = dict(profiles or {})
        self.presets = dict(presets or {})
        self.upserts: List[Tuple[str, Dict[str, Any]]] = []
        self.preset_error: Optional[Exception] = None

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.profiles.get(user_id)

    def upsert_profile(self, row: Dict[str, Any]) -> Dict[str, Any]:
        self.upserts.append(("site_profiles", dict(row)))
        self.profiles[row["user_id"]] = dict(row)
        return dict(row)

    def get_travel_preset(self, state: str) -> Optional[Dict[str, Any]]:
        if self.preset_error is not None:
            raise self.preset_error
        return self.presets.get(state)

    def upsert_travel_preset(self, row: Dict[str, Any]) -> Dict[str, Any]:
        self.upserts.append(("travel_presets", dict(row)))
        self.presets[row["state"]] = dict(row)
        return dict(row)


class FakeContentFetcher:
    def __init__(self, blog_text: str = "", transcript: str = "") -> None:
        self.blog_text = blog_text
        self.transcript = transcript
        self.calls: List[Tuple[str, str]] = []

    def fetch_blog_content(self, blog_link: Optional[str]) -> str:
        self.calls.append(("blog", blog_link or ""))
        return self.blog_text

    def fetch_transcript(self, video_link: Optional[str]) -> str:
        self.calls.append(("transcript", video_link or ""))
        return self.transcript

    def prefetch(self, kind: str, url: str) -> bool:
        self.calls.append((kind, url))
        return bool(self.blog_text if kind == "blog" else self.transcript)


def make_config(**integration_overrides) -> Config:
    return Config(integrations=IntegrationConfig(**integration_overrides), app=ApplicationConfig())


@pytest.fixture
def article_factory():
    def _create(**overrides: Any) -> RawArticle:
        payload = {
            "title": "Electric trucks reach record sales in Europe",
            "url": "https://example.com/news/electric-trucks",
            "description": "Manufacturers shipped more battery-powered trucks than ever last quarter.",
            "source": "Example News",
            "published_at": "2024-05-01T10:00:00Z",
        }
        payload.update(overrides)
        return RawArticle(**payload)

    return _create


@pytest.fixture
def page_factory():
    def _create(articles: List[RawArticle], raw_count: Optional[int] = None) -> NewsApiPage:
        count = len(articles) if raw_count is None else raw_count
        return NewsApiPage(articles=list(articles), total_results=count, raw_count=count)

    return _create


@pytest.fixture
def airtable_record_factory():
    def _create(record_id: str, **fields: Any) -> AirtableRecord:
        return AirtableRecord(id=record_id, fields=fields)

    return _create


@pytest.fixture
def container_factory():
    """Container with default registrations and the given fakes registered as instances."""

    def _create(config: Optional[Config] = None, **services: Any) -> Container:
        container = Container()
        setup_default_services(container)
        container.register_instance("config", config or make_config())
        defaults = {
            "openai_client": None,
            "grok_client": None,
            "supabase_store": None,
            "newsapi_client": None,
            "news_sources_client": None,
            "serpapi_client": None,
            "airtable_client": None,
            "feed_client": FakeFeedClient(),
            "content_fetcher": FakeContentFetcher(),
        }
        defaults.update(services)
        for name, instance in defaults.items():
            container.register_instance(name, instance)
        return container

    return _create


@pytest.fixture
def client_factory(container_factory):
    from fastapi.testclient import TestClient

    from api import create_app

    def _create(**services: Any) -> TestClient:
        return TestClient(create_app(container_factory(**services)))

    return _create


@pytest.fixture
def llm_factory():
    return FakeLLM


@pytest.fixture
def newsapi_factory():
    return FakeNewsAPI


@pytest.fixture
def serpapi_factory():
    return FakeSerpAPI


@pytest.fixture
def feed_client_factory():
    return FakeFeedClient


@pytest.fixture
def airtable_factory():
    return FakeAirtable


@pytest.fixture
def store_factory():
    return FakeSupabaseStore


@pytest.fixture
def fetcher_factory():
    return FakeContentFetcher


@pytest.fixture
def config_factory():
    return make_config
