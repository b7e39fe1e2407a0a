#!/usr/bin/env python3
"""
Headline commands: run the headline pipeline or a category review from the shell.
"""

import json
import logging
from argparse import Namespace
from pathlib import Path

from core.category_review import review_payload
from core.headlines import parse_headline_request
from .base import BaseCommand

logger = logging.getLogger(__name__)


class HeadlinesCommand(BaseCommand):
    """Search and review headlines."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        try:
            if subcommand == "search":
                return self.search(args)
            elif subcommand == "review":
                return self.review(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1
        except Exception as e:
            return self.handle_error(e, f"headlines {subcommand}")

    def search(self, args: Namespace) -> int:
        """Run the headline pipeline and print the response body."""
        payload = {
            'query': getattr(args, 'query', None),
            'keywords': getattr(args, 'keywords', None) or [],
            'limit': getattr(args, 'limit', None),
            'country': getattr(args, 'country', None),
            'dedupeMode': getattr(args, 'dedupe_mode', None),
            'summarize': getattr(args, 'summarize', False),
        }
        request = parse_headline_request({key: value for key, value in payload.items() if value not in (None, [])})

        pipeline = self.service('headline_pipeline')
        result = self.run_async(pipeline.run(request))

        if getattr(args, 'json', False):
            self.print_json(result)
            return 0

        print(f"📰 {result['totalResults']} headlines "
              f"({result['successfulQueries']}/{len(result['queriesAttempted'])} queries ok)")
        for position, item in enumerate(result['headlines'], 1):
            source = item.get('source') or 'unknown'
            print(f"{position:>3}. {item['title']} [{source}]")
            print(f"     {item['url']}")
        for warning in result.get('warnings', []):
            print(f"⚠️  {warning}")
        return 0

    def review(self, args: Namespace) -> int:
        """Review a JSON file of ``{headlines, categories}``."""
        path = Path(args.file)
        payload = json.loads(path.read_text(encoding='utf-8'))
        result = review_payload(payload)
        self.print_json(result)
        return 0
