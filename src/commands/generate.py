#!/usr/bin/env python3
"""
Generate command: write an article from the shell.
"""

import logging
from argparse import Namespace
from pathlib import Path

from core.exceptions import ConfigurationError
from core.generation import parse_article_request
from .base import BaseCommand

logger = logging.getLogger(__name__)


class GenerateCommand(BaseCommand):
    """Generate articles."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        try:
            if subcommand == "article":
                return self.article(args)
            available = ", ".join(self.get_available_subcommands())
            self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
            return 1
        except Exception as e:
            return self.handle_error(e, f"generate {subcommand}")

    def article(self, args: Namespace) -> int:
        payload = {
            'title': args.title,
            'articleType': args.article_type,
            'lengthOption': getattr(args, 'length', None),
            'modelVersion': getattr(args, 'model', None),
            'videoLink': getattr(args, 'video_link', None),
            'blogLink': getattr(args, 'blog_link', None),
            'newsFreshness': getattr(args, 'freshness', None),
            'includeLinks': not getattr(args, 'no_links', False),
            'verifyOutput': getattr(args, 'verify', False),
        }
        request = parse_article_request({key: value for key, value in payload.items() if value is not None})

        generator = self.service('article_generator')
        if generator.llm is None:
            raise ConfigurationError('OPENAI_API_KEY')

        print(f"✍️  Generating {request.article_type}: {request.title}")
        result = self.run_async(generator.generate(request))

        output = getattr(args, 'output', None)
        if output:
            Path(output).write_text(result['content'], encoding='utf-8')
            print(f"✅ Saved article to {output}")
        else:
            print(result['content'])

        if result['sources']:
            print(f"\n🔗 Sources ({len(result['sources'])}):")
            for url in result['sources']:
                print(f"   • {url}")
        for warning in result.get('warnings', []):
            print(f"⚠️  {warning}")
        return 0
