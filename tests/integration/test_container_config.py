import pytest

from core.config import ApplicationConfig, ConfigManager, _parse_weights
from core.container import Container, setup_default_services
from core.env_loader import first_env_var, parse_env_lines
from core.exceptions import ConfigurationError
from core.generation import ArticleGenerator
from core.recipes import RecipeService


class TestContainer:
    """Registration and lookup behaviour of the DI container."""

    def test_singleton_is_created_once(self):
        container = Container()
        calls = []
        container.register_singleton("svc", lambda: calls.append(1) or object())

        assert container.get("svc") is container.get("svc")
        assert len(calls) == 1

    def test_factory_creates_new_instances(self):
        container = Container()
        container.register_factory("svc", object)
        assert container.get("svc") is not container.get("svc")

    def test_registered_instance_wins(self):
        container = Container()
        container.register_factory("svc", object)
        marker = object()
        container.register_instance("svc", marker)
        assert container.get("svc") is marker

    def test_unknown_service_raises(self):
        with pytest.raises(KeyError):
            Container().get("missing")

    def test_reset_singleton(self):
        container = Container()
        container.register_singleton("svc", object)
        first = container.get("svc")
        container.reset_singleton("svc")
        assert container.get("svc") is not first


def test_default_services_without_keys(config_factory):
    """Integrations without keys resolve to None while services still build."""
    container = Container()
    setup_default_services(container)
    container.register_instance("config", config_factory())

    assert container.get("openai_client") is None
    assert container.get("serpapi_client") is None
    assert container.get("airtable_client") is None
    assert container.get("supabase_store") is None

    generator = container.get("article_generator")
    assert isinstance(generator, ArticleGenerator)
    assert generator.serpapi is None
    assert generator.usage_cache is container.get("usage_cache")
    assert isinstance(container.get("recipe_service"), RecipeService)


def test_default_services_with_serpapi_key(config_factory):
    from integrations.serpapi_client import SerpAPIClient

    container = Container()
    setup_default_services(container)
    container.register_instance("config", config_factory(serpapi_key="serp-key"))

    client = container.get("serpapi_client")
    assert isinstance(client, SerpAPIClient)
    assert client.api_key == "serp-key"


def test_config_require(config_factory):
    """Missing keys raise a configuration error naming the variable."""
    config = config_factory(newsapi_api_key="abc")
    assert config.require("NEWSAPI_API_KEY") == "abc"
    with pytest.raises(ConfigurationError) as exc_info:
        config.require("SERPAPI_KEY")
    assert exc_info.value.message == "SERPAPI_KEY is not configured"


def test_config_integration_checks(config_factory):
    config = config_factory(airtable_api_key="k", airtable_base_id="b")
    assert config.has_airtable() is False
    assert config_factory(airtable_api_key="k", airtable_base_id="b", airtable_table_name="t").has_airtable()
    assert config_factory(supabase_url="https://x.supabase.co", supabase_key="s").has_supabase()


def test_validate_config_collects_errors(config_factory):
    """Every invalid value is reported in one error."""
    config = config_factory(supabase_url="x.supabase.co")
    config.app = ApplicationConfig(near_duplicate_threshold=1.5, log_level="LOUD")

    with pytest.raises(ValueError) as exc_info:
        ConfigManager()._validate_config(config)

    message = str(exc_info.value)
    assert message.startswith("Configuration validation failed:")
    assert "NEAR_DUPLICATE_THRESHOLD must be between 0 and 1" in message
    assert "SUPABASE_URL must be an http(s) URL" in message
    assert "LOG_LEVEL must be one of" in message


def test_build_config_reads_environment(monkeypatch):
    monkeypatch.setenv("RANKING_WEIGHTS", "1, 0, 0")
    monkeypatch.setenv("MIN_LINKS", "2")
    monkeypatch.setenv("SERPAPI_KEY", "serp")
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.setenv("NEXT_PUBLIC_SUPABASE_URL", "https://proj.supabase.co")

    config = ConfigManager().get_config()

    assert config.app.ranking_weights == (1.0, 0.0, 0.0)
    assert config.app.min_links == 2
    assert config.integrations.serpapi_key == "serp"
    assert config.integrations.supabase_url == "https://proj.supabase.co"


def test_parse_weights():
    assert _parse_weights(None) == (0.5, 0.25, 0.25)
    with pytest.raises(ValueError):
        _parse_weights("1,2")


def test_parse_env_lines(caplog):
    """Comments, exports and quotes are handled and bad lines are reported."""
    values = parse_env_lines([
        "# comment",
        "",
        "export OPENAI_API_KEY=sk-test",
        "NEWSAPI_API_KEY = 'quoted'",
        'SERPAPI_KEY="double=quoted"',
        "not a pair",
    ])

    assert values == {
        "OPENAI_API_KEY": "sk-test",
        "NEWSAPI_API_KEY": "quoted",
        "SERPAPI_KEY": "double=quoted",
    }
    assert "Invalid .env format at line 6" in caplog.text


def test_first_env_var(monkeypatch):
    monkeypatch.setenv("FIRST_KEY", "  ")
    monkeypatch.setenv("SECOND_KEY", " value ")
    assert first_env_var(["MISSING_KEY", "FIRST_KEY", "SECOND_KEY"]) == "value"
