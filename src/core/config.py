#!/usr/bin/env python3
"""
Centralized Configuration Manager

Provides a single source of truth for all application configuration,
including environment variables, defaults, and validation. No variable is
required up front; features check for their keys when they are used.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Tuple

from core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; ContentStudio/1.0)"


@dataclass
class IntegrationConfig:
    """External integration configuration."""
    openai_api_key: Optional[str] = None
    newsapi_api_key: Optional[str] = None
    # fetch_sources reads a separately provisioned NewsAPI key
    news_api_key: Optional[str] = None
    serpapi_key: Optional[str] = None
    airtable_api_key: Optional[str] = None
    airtable_base_id: Optional[str] = None
    airtable_table_name: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    grok_api_key: Optional[str] = None
    grok_verification_model: str = "grok-4-fast"
    headline_profile_model: str = "gpt-4o-mini"


@dataclass
class ApplicationConfig:
    """Core application configuration."""
    # HTTP settings
    http_timeout: int = 15
    user_agent: str = DEFAULT_USER_AGENT
    max_concurrent_feeds: int = 5

    # Headline pipeline
    near_duplicate_threshold: float = 0.7
    ranking_weights: Tuple[float, float, float] = (0.5, 0.25, 0.25)
    recency_horizon_hours: float = 72.0
    token_set_cap: int = 64
    max_pages_per_query: int = 3

    # Generation checks
    min_links: int = 3
    max_links_per_block: int = 2
    source_recency_days: int = 14
    verification_timeout: int = 45
    default_model: str = "gpt-4o-mini"

    # Cache settings (in-memory only)
    prefetch_ttl_seconds: int = 300  # 5 minutes
    usage_estimate_ttl_seconds: int = 86400

    # Logging
    log_level: str = "INFO"
    verbose_logging: bool = False


@dataclass
class Config:
    """Master configuration container."""
    integrations: IntegrationConfig
    app: ApplicationConfig

    # Environment info
    environment: str = field(default_factory=lambda: os.getenv('ENVIRONMENT', 'development'))
    is_ci: bool = field(default_factory=lambda: bool(os.getenv('CI') or os.getenv('GITHUB_ACTIONS')))

    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() in ['dev', 'development', 'local']

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() in ['prod', 'production']

    def has_openai(self) -> bool:
        return bool(self.integrations.openai_api_key)

    def has_serpapi(self) -> bool:
        return bool(self.integrations.serpapi_key)

    def has_airtable(self) -> bool:
        i = self.integrations
        return bool(i.airtable_api_key and i.airtable_base_id and i.airtable_table_name)

    def has_supabase(self) -> bool:
        return bool(self.integrations.supabase_url and self.integrations.supabase_key)

    def has_grok(self) -> bool:
        return bool(self.integrations.grok_api_key)

    def require(self, env_key: str) -> str:
        """
        Return the configured value for an environment key.

        Args:
            env_key: Environment variable name, e.g. ``NEWSAPI_API_KEY``

        Returns:
            The non-empty value

        Raises:
            ConfigurationError: If the value is missing
        """
        attribute = ENV_KEY_ATTRIBUTES.get(env_key)
        value = getattr(self.integrations, attribute, None) if attribute else None
        if not value:
            raise ConfigurationError(env_key)
        return value


ENV_KEY_ATTRIBUTES: Dict[str, str] = {
    'OPENAI_API_KEY': 'openai_api_key',
    'NEWSAPI_API_KEY': 'newsapi_api_key',
    'NEWS_API_KEY': 'news_api_key',
    'SERPAPI_KEY': 'serpapi_key',
    'AIRTABLE_API_KEY': 'airtable_api_key',
    'AIRTABLE_BASE_ID': 'airtable_base_id',
    'AIRTABLE_TABLE_NAME': 'airtable_table_name',
    'SUPABASE_URL': 'supabase_url',
    'SUPABASE_SERVICE_KEY': 'supabase_key',
    'GROK_API_KEY': 'grok_api_key',
}


def _parse_weights(raw: Optional[str]) -> Tuple[float, float, float]:
    """Parse ``RANKING_WEIGHTS`` given as ``recency,diversity,coverage``."""
    if not raw:
        return (0.5, 0.25, 0.25)
    parts = [p.strip() for p in raw.split(',') if p.strip()]
    if len(parts) != 3:
        raise ValueError(f"RANKING_WEIGHTS must have three comma separated values, got: {raw}")
    return (float(parts[0]), float(parts[1]), float(parts[2]))


class ConfigManager:
    """Manages application configuration with validation and environment loading."""

    def __init__(self):
        self._config: Optional[Config] = None
        # Importing the loader pulls .env into os.environ
        import core.env_loader  # noqa: F401

    def get_config(self, force_reload: bool = False) -> Config:
        """
        Get application configuration.

        Args:
            force_reload: Force reloading configuration from environment

        Returns:
            Complete configuration object
        """
        if self._config is None or force_reload:
            self._config = self._build_config()
        return self._config

    def _build_config(self) -> Config:
        """Build configuration from environment variables."""
        from core.env_loader import first_env_var

        integration_config = IntegrationConfig(
            openai_api_key=os.getenv('OPENAI_API_KEY'),
            newsapi_api_key=os.getenv('NEWSAPI_API_KEY'),
            news_api_key=os.getenv('NEWS_API_KEY'),
            serpapi_key=os.getenv('SERPAPI_KEY'),
            airtable_api_key=os.getenv('AIRTABLE_API_KEY'),
            airtable_base_id=os.getenv('AIRTABLE_BASE_ID'),
            airtable_table_name=os.getenv('AIRTABLE_TABLE_NAME'),
            supabase_url=first_env_var(['SUPABASE_URL', 'NEXT_PUBLIC_SUPABASE_URL']),
            supabase_key=first_env_var([
                'SUPABASE_SERVICE_KEY',
                'SUPABASE_SERVICE_ROLE_KEY',
                'SUPABASE_ANON_KEY',
            ]),
            grok_api_key=os.getenv('GROK_API_KEY'),
            grok_verification_model=os.getenv('GROK_VERIFICATION_MODEL') or 'grok-4-fast',
            headline_profile_model=os.getenv('HEADLINE_PROFILE_MODEL') or 'gpt-4o-mini',
        )

        app_config = ApplicationConfig(
            http_timeout=int(os.getenv('HTTP_TIMEOUT', '15')),
            user_agent=os.getenv('HTTP_USER_AGENT', DEFAULT_USER_AGENT),
            max_concurrent_feeds=int(os.getenv('MAX_CONCURRENT_FEEDS', '5')),
            near_duplicate_threshold=float(os.getenv('NEAR_DUPLICATE_THRESHOLD', '0.7')),
            ranking_weights=_parse_weights(os.getenv('RANKING_WEIGHTS')),
            recency_horizon_hours=float(os.getenv('RECENCY_HORIZON_HOURS', '72')),
            token_set_cap=int(os.getenv('TOKEN_SET_CAP', '64')),
            max_pages_per_query=int(os.getenv('MAX_PAGES_PER_QUERY', '3')),
            min_links=int(os.getenv('MIN_LINKS', '3')),
            max_links_per_block=int(os.getenv('MAX_LINKS_PER_BLOCK', '2')),
            source_recency_days=int(os.getenv('SOURCE_RECENCY_DAYS', '14')),
            verification_timeout=int(os.getenv('VERIFICATION_TIMEOUT', '45')),
            default_model=os.getenv('DEFAULT_MODEL', 'gpt-4o-mini'),
            prefetch_ttl_seconds=int(os.getenv('PREFETCH_TTL', '300')),
            usage_estimate_ttl_seconds=int(os.getenv('USAGE_ESTIMATE_TTL', '86400')),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            verbose_logging=os.getenv('VERBOSE_LOGGING', 'false').lower() == 'true'
        )

        config = Config(
            integrations=integration_config,
            app=app_config
        )

        self._validate_config(config)
        return config

    def _validate_config(self, config: Config) -> None:
        """Validate configuration values."""
        errors = []
        app = config.app

        if app.near_duplicate_threshold < 0 or app.near_duplicate_threshold > 1:
            errors.append("NEAR_DUPLICATE_THRESHOLD must be between 0 and 1")

        if any(w < 0 for w in app.ranking_weights) or sum(app.ranking_weights) <= 0:
            errors.append("RANKING_WEIGHTS must be non-negative with a positive sum")

        if app.recency_horizon_hours <= 0:
            errors.append("RECENCY_HORIZON_HOURS must be positive")

        if app.token_set_cap < 1:
            errors.append("TOKEN_SET_CAP must be at least 1")

        if app.http_timeout < 1:
            errors.append("HTTP_TIMEOUT must be at least 1 second")

        if app.max_concurrent_feeds < 1 or app.max_concurrent_feeds > 20:
            errors.append("MAX_CONCURRENT_FEEDS must be between 1 and 20")

        if app.min_links < 0 or app.max_links_per_block < 1:
            errors.append("MIN_LINKS must be >= 0 and MAX_LINKS_PER_BLOCK >= 1")

        url = config.integrations.supabase_url
        if url and not url.startswith('https://') and not url.startswith('http://'):
            errors.append("SUPABASE_URL must be an http(s) URL")

        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if app.log_level not in valid_log_levels:
            errors.append(f"LOG_LEVEL must be one of: {', '.join(valid_log_levels)}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

        logger.debug("Configuration validation passed")

    def update_logging(self) -> None:
        """Configure logging based on current configuration."""
        config = self.get_config()

        numeric_level = getattr(logging, config.app.log_level)
        logging.getLogger().setLevel(numeric_level)

        if config.app.verbose_logging:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        else:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

        for handler in logging.getLogger().handlers:
            handler.setLevel(numeric_level)
            formatter = logging.Formatter(format_str, datefmt='%Y-%m-%d %H:%M:%S')
            handler.setFormatter(formatter)

    def get_integration_status(self) -> Dict[str, bool]:
        """Get status of all integrations."""
        config = self.get_config()
        return {
            'openai': config.has_openai(),
            'newsapi': bool(config.integrations.newsapi_api_key),
            'newsapi_sources': bool(config.integrations.news_api_key),
            'serpapi': config.has_serpapi(),
            'airtable': config.has_airtable(),
            'supabase': config.has_supabase(),
            'grok': config.has_grok(),
        }


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_config() -> Config:
    """Get application configuration."""
    return get_config_manager().get_config()


def reset_config() -> None:
    """Reset configuration manager (useful for testing)."""
    global _config_manager
    _config_manager = None
