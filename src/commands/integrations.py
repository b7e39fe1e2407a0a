#!/usr/bin/env python3
"""
Integrations command endpoints for managing external service connections.
"""

import logging
from argparse import Namespace
from typing import Dict

from core.config import ENV_KEY_ATTRIBUTES, get_config_manager
from .base import BaseCommand

logger = logging.getLogger(__name__)

# Container service name and display label for each testable integration
TESTABLE_SERVICES = {
    'openai_client': '🤖 OpenAI API',
    'newsapi_client': '📰 NewsAPI (headlines)',
    'news_sources_client': '📰 NewsAPI (article sources)',
    'serpapi_client': '🔎 SerpAPI',
    'airtable_client': '🍲 Airtable',
}


class IntegrationsCommand(BaseCommand):
    """Handle external integration operations."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute integrations subcommand."""
        try:
            if subcommand == "test":
                return self.test(args)
            elif subcommand == "status":
                return self.status(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"integrations {subcommand}")

    def _test_connections(self) -> Dict[str, bool]:
        results = {}
        for name, label in TESTABLE_SERVICES.items():
            client = self.service(name)
            if client is None:
                continue
            try:
                results[label] = self.run_async(client.test_connection())
            except Exception as e:
                self.logger.error(f"{label} connection test failed: {e}")
                results[label] = False
        return results

    def test(self, args: Namespace) -> int:
        """Test every configured integration."""
        print("🔍 Testing integrations...")
        results = self._test_connections()

        print(f"\n=== Integration Test Results ===")
        if not results:
            print("⚠️  No integrations configured")
            return 1
        for label, ok in results.items():
            print(f"{label}: {'✅ Connected' if ok else '❌ Failed'}")

        if all(results.values()):
            print("✅ All integrations working")
            return 0
        print("⚠️  Some integrations failed - check configuration")
        return 1

    def status(self, args: Namespace) -> int:
        """Show which integration keys are configured."""
        print("📊 Integration Status:")
        print(f"🔑 Environment Variables:")
        integrations = self.config.integrations
        for env_key, attribute in ENV_KEY_ATTRIBUTES.items():
            present = bool(getattr(integrations, attribute, None))
            print(f"   • {env_key}: {'✅ Set' if present else '❌ Missing'}")

        print(f"\n🧩 Features:")
        for feature, enabled in get_config_manager().get_integration_status().items():
            print(f"   • {feature}: {'✅' if enabled else '❌'}")
        return 0
