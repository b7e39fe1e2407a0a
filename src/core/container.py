#!/usr/bin/env python3
"""
Dependency Injection Container

Provides a centralized way to manage dependencies and avoid scattered
instantiation throughout the codebase. Supports singleton and factory patterns.

Integration factories return None when their keys are not configured so a
route can decide whether the integration is required.
"""

import logging
from typing import Any, Dict, Callable, TypeVar, Optional
from functools import wraps
import threading

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Container:
    """Simple dependency injection container with lifecycle management."""

    def __init__(self):
        """Initialize empty container."""
        self._factories: Dict[str, Callable] = {}
        self._singletons: Dict[str, Any] = {}
        self._lock = threading.RLock()

    def register_singleton(self, service_name: str, factory: Callable[[], T]) -> None:
        """
        Register a service as singleton (created once, reused).

        Args:
            service_name: Unique name for the service
            factory: Function that creates the service instance
        """
        with self._lock:
            self._factories[service_name] = singleton(factory)
            # Remove any existing instance to force recreation
            self._singletons.pop(service_name, None)

    def register_factory(self, service_name: str, factory: Callable[[], T]) -> None:
        """
        Register a service as factory (new instance each time).

        Args:
            service_name: Unique name for the service
            factory: Function that creates service instances
        """
        with self._lock:
            self._factories[service_name] = factory
            self._singletons.pop(service_name, None)

    def register_instance(self, service_name: str, instance: T) -> None:
        """
        Register an existing instance as singleton.

        Args:
            service_name: Unique name for the service
            instance: Pre-created service instance
        """
        with self._lock:
            self._singletons[service_name] = instance

    def get(self, service_name: str) -> Any:
        """
        Get service instance by name.

        Args:
            service_name: Name of the service to retrieve

        Returns:
            Service instance

        Raises:
            KeyError: If service is not registered
        """
        if service_name in self._singletons:
            return self._singletons[service_name]

        if service_name not in self._factories:
            raise KeyError(f"Service '{service_name}' not registered")

        with self._lock:
            factory = self._factories[service_name]

            if getattr(factory, '_is_singleton', False):
                # Double-check pattern for thread safety
                if service_name not in self._singletons:
                    self._singletons[service_name] = factory()
                    logger.debug(f"Created singleton instance for '{service_name}'")
                return self._singletons[service_name]

            instance = factory()
            logger.debug(f"Created new instance for '{service_name}'")
            return instance

    def has(self, service_name: str) -> bool:
        """Check if service is registered."""
        return service_name in self._factories or service_name in self._singletons

    def clear(self) -> None:
        """Clear all registered services and instances."""
        with self._lock:
            self._factories.clear()
            self._singletons.clear()

    def reset_singleton(self, service_name: str) -> None:
        """Reset a singleton instance (will be recreated on next get())."""
        with self._lock:
            if service_name in self._singletons:
                del self._singletons[service_name]
                logger.debug(f"Reset singleton '{service_name}'")


def singleton(factory_func: Callable[[], T]) -> Callable[[], T]:
    """
    Decorator to mark a factory function as singleton.

    Usage:
        @singleton
        def create_cache():
            return PrefetchCache()
    """
    if getattr(factory_func, '_is_singleton', False):
        return factory_func

    @wraps(factory_func)
    def wrapper():
        return factory_func()

    wrapper._is_singleton = True
    return wrapper


# Global container instance
_container: Optional[Container] = None
_container_lock = threading.Lock()


def get_container() -> Container:
    """Get global container instance (thread-safe singleton)."""
    global _container
    if _container is None:
        with _container_lock:
            if _container is None:
                _container = Container()
                setup_default_services(_container)
    return _container


def reset_container() -> None:
    """Reset global container (useful for testing)."""
    global _container
    with _container_lock:
        if _container:
            _container.clear()
        _container = None


def setup_default_services(container: Container) -> None:
    """Set up default service registrations with configuration injection."""

    def config():
        return container.get('config')

    def create_config():
        from core.config import get_config
        return get_config()

    def create_usage_cache():
        from core.cache import UsageEstimateCache
        return UsageEstimateCache(ttl_seconds=config().app.usage_estimate_ttl_seconds)

    def create_prefetch_cache():
        from core.cache import PrefetchCache
        return PrefetchCache(ttl_seconds=config().app.prefetch_ttl_seconds)

    def create_content_fetcher():
        from core.content import ContentFetcher
        cfg = config()
        return ContentFetcher(
            cache=container.get('prefetch_cache'),
            timeout=cfg.app.http_timeout,
            user_agent=cfg.app.user_agent,
        )

    def create_openai_client():
        from integrations.openai_client import OpenAIClient
        cfg = config()
        if not cfg.has_openai():
            return None
        return OpenAIClient(api_key=cfg.integrations.openai_api_key, default_model=cfg.app.default_model)

    def _newsapi(api_key: Optional[str]):
        from integrations.newsapi_client import NewsAPIClient
        if not api_key:
            return None
        cfg = config()
        return NewsAPIClient(api_key, timeout=cfg.app.http_timeout, user_agent=cfg.app.user_agent)

    def create_newsapi_client():
        return _newsapi(config().integrations.newsapi_api_key)

    def create_news_sources_client():
        return _newsapi(config().integrations.news_api_key)

    def create_serpapi_client():
        from integrations.serpapi_client import SerpAPIClient
        cfg = config()
        if not cfg.has_serpapi():
            return None
        return SerpAPIClient(cfg.integrations.serpapi_key, timeout=cfg.app.http_timeout,
                             user_agent=cfg.app.user_agent)

    def create_feed_client():
        from integrations.feed_client import FeedClient
        cfg = config()
        return FeedClient(timeout=cfg.app.http_timeout, max_concurrent=cfg.app.max_concurrent_feeds,
                          user_agent=cfg.app.user_agent)

    def create_airtable_client():
        from integrations.airtable_client import AirtableClient
        cfg = config()
        if not cfg.has_airtable():
            return None
        i = cfg.integrations
        return AirtableClient(i.airtable_api_key, i.airtable_base_id, i.airtable_table_name,
                              timeout=cfg.app.http_timeout)

    def create_grok_client():
        from integrations.grok_client import GrokClient
        cfg = config()
        if not cfg.has_grok():
            return None
        return GrokClient(cfg.integrations.grok_api_key, model=cfg.integrations.grok_verification_model,
                          timeout=cfg.app.verification_timeout)

    def create_supabase_store():
        from integrations.supabase_store import SupabaseStore
        cfg = config()
        if not cfg.has_supabase():
            return None
        return SupabaseStore.from_credentials(cfg.integrations.supabase_url, cfg.integrations.supabase_key)

    def create_headline_pipeline():
        from core.headlines import HeadlinePipeline, PipelineSettings
        return HeadlinePipeline(
            newsapi=container.get('newsapi_client'),
            serpapi=container.get('serpapi_client'),
            feeds=container.get('feed_client'),
            llm=container.get('openai_client'),
            settings=PipelineSettings.from_config(config()),
        )

    def create_article_generator():
        from core.generation import ArticleGenerator, GenerationSettings
        return ArticleGenerator(
            llm=container.get('openai_client'),
            content_fetcher=container.get('content_fetcher'),
            newsapi=container.get('news_sources_client'),
            serpapi=container.get('serpapi_client'),
            grok=container.get('grok_client'),
            usage_cache=container.get('usage_cache'),
            settings=GenerationSettings.from_config(config()),
        )

    def create_recipe_service():
        from core.recipes import RecipeService
        return RecipeService(llm=container.get('openai_client'), airtable=container.get('airtable_client'))

    def create_travel_preset_service():
        from core.travel import TravelPresetService
        return TravelPresetService(store=container.get('supabase_store'))

    def create_profile_service():
        from core.profiles import ProfileService
        return ProfileService(
            llm=container.get('openai_client'),
            store=container.get('supabase_store'),
            model=config().integrations.headline_profile_model,
        )

    # Register services
    container.register_singleton('config', create_config)
    container.register_singleton('usage_cache', create_usage_cache)
    container.register_singleton('prefetch_cache', create_prefetch_cache)
    container.register_singleton('content_fetcher', create_content_fetcher)
    container.register_singleton('openai_client', create_openai_client)
    container.register_singleton('grok_client', create_grok_client)
    container.register_singleton('supabase_store', create_supabase_store)

    # Non-singletons
    container.register_factory('newsapi_client', create_newsapi_client)
    container.register_factory('news_sources_client', create_news_sources_client)
    container.register_factory('serpapi_client', create_serpapi_client)
    container.register_factory('feed_client', create_feed_client)
    container.register_factory('airtable_client', create_airtable_client)
    container.register_factory('headline_pipeline', create_headline_pipeline)
    container.register_factory('article_generator', create_article_generator)
    container.register_factory('recipe_service', create_recipe_service)
    container.register_factory('travel_preset_service', create_travel_preset_service)
    container.register_factory('profile_service', create_profile_service)

    logger.debug("Default services registered in container")


# Convenience functions for common usage patterns

def get_config():
    """Get configuration instance from container."""
    return get_container().get('config')


def get_openai_client():
    """Shared OpenAI client, or None without OPENAI_API_KEY."""
    return get_container().get('openai_client')


def get_content_fetcher():
    return get_container().get('content_fetcher')
