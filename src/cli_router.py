#!/usr/bin/env python3
"""
CLI Router for Content Studio.

Routes ``run.py <command> <subcommand>`` to the command classes.
"""

import argparse
import logging
import sys
from typing import Optional, List

# Load environment variables first
import core.env_loader  # Auto-loads .env file

from commands import get_command, COMMANDS
from core.config import get_config_manager
from core.generation.request import BLOG, LISTICLE, REWRITE, YOUTUBE
from core.prompts import WORD_RANGES
from core.sources import FRESHNESS_TO_HOURS

logger = logging.getLogger(__name__)


class CLIRouter:
    """
    CLI router for content-studio commands.

    Command structure:
    - python run.py serve api --port 8000
    - python run.py headlines search --query "electric trucks" --limit 10
    - python run.py headlines review --file review.json
    - python run.py generate article --title "10 Ways to ..." --type "Listicle/Gallery"
    - python run.py integrations status
    """

    def __init__(self):
        """Initialize CLI router."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            description="Content Studio: headline discovery and article generation",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_examples_text()
        )

        subparsers = parser.add_subparsers(
            dest='command',
            help='Available commands',
            metavar='{command}'
        )

        self._add_serve_parser(subparsers)
        self._add_headlines_parser(subparsers)
        self._add_generate_parser(subparsers)
        self._add_integrations_parser(subparsers)

        return parser

    def _add_serve_parser(self, subparsers):
        """Add serve command parser."""
        serve_parser = subparsers.add_parser('serve', help='Run the HTTP API')
        serve_subparsers = serve_parser.add_subparsers(dest='subcommand', help='Serve operations', metavar='{api}')

        api_parser = serve_subparsers.add_parser('api', help='Serve the JSON API with uvicorn')
        api_parser.add_argument('--host', default='127.0.0.1', help='Bind address (default: 127.0.0.1)')
        api_parser.add_argument('--port', type=int, default=8000, help='Port (default: 8000)')

    def _add_headlines_parser(self, subparsers):
        """Add headlines command parser."""
        headlines_parser = subparsers.add_parser('headlines', help='Headline search and review')
        headlines_subparsers = headlines_parser.add_subparsers(
            dest='subcommand',
            help='Headline operations',
            metavar='{search,review}'
        )

        search_parser = headlines_subparsers.add_parser('search', help='Search, deduplicate and rank headlines')
        search_parser.add_argument('--query', help='Free-text search query')
        search_parser.add_argument('--keywords', nargs='+', help='Keywords searched one query each')
        search_parser.add_argument('--limit', type=int, help='Maximum headlines to return')
        search_parser.add_argument('--country', help='Two-letter country code (default: us)')
        search_parser.add_argument('--dedupe-mode', choices=['default', 'strict'], help='Deduplication mode')
        search_parser.add_argument('--summarize', action='store_true', help='Add LLM cluster summaries')
        search_parser.add_argument('--json', action='store_true', help='Print the raw response body')

        review_parser = headlines_subparsers.add_parser('review', help='Match headlines to a category tree')
        review_parser.add_argument('--file', required=True, help='JSON file with headlines and categories')

    def _add_generate_parser(self, subparsers):
        """Add generate command parser."""
        generate_parser = subparsers.add_parser('generate', help='Article generation')
        generate_subparsers = generate_parser.add_subparsers(
            dest='subcommand',
            help='Generate operations',
            metavar='{article}'
        )

        article_parser = generate_subparsers.add_parser('article', help='Generate an article')
        article_parser.add_argument('--title', required=True, help='Article title')
        article_parser.add_argument('--type', dest='article_type', default=BLOG,
                                    choices=[BLOG, LISTICLE, YOUTUBE, REWRITE], help='Article type')
        article_parser.add_argument('--length', choices=sorted(WORD_RANGES), help='Length option')
        article_parser.add_argument('--model', help='Model name (default: gpt-4o-mini)')
        article_parser.add_argument('--video-link', help='YouTube link for video articles')
        article_parser.add_argument('--blog-link', help='Blog link for rewrites')
        article_parser.add_argument('--freshness', choices=sorted(FRESHNESS_TO_HOURS), help='Source freshness window')
        article_parser.add_argument('--no-links', action='store_true', help='Skip source lookup and citations')
        article_parser.add_argument('--verify', action='store_true', help='Run the fact-check pass')
        article_parser.add_argument('--output', help='Write the article HTML to this file')

    def _add_integrations_parser(self, subparsers):
        """Add integrations command parser."""
        integrations_parser = subparsers.add_parser('integrations', help='External integration management')
        integrations_subparsers = integrations_parser.add_subparsers(
            dest='subcommand',
            help='Integration operations',
            metavar='{test,status}'
        )
        integrations_subparsers.add_parser('test', help='Test all configured integrations')
        integrations_subparsers.add_parser('status', help='Show integration status')

    def _get_examples_text(self) -> str:
        """Get examples text for help."""
        return """
Examples:
  python run.py serve api --port 8000
  python run.py headlines search --query "electric trucks" --limit 10
  python run.py headlines search --keywords "NASA" "Mars rover" --dedupe-mode strict --json
  python run.py generate article --title "What the Mars sample return delay means" --verify
  python run.py integrations status
"""

    def route_command(self, args: Optional[List[str]] = None) -> int:
        """
        Route command to appropriate handler.

        Args:
            args: Command line arguments (uses sys.argv if None)

        Returns:
            Exit code
        """
        try:
            if args is None:
                args = sys.argv[1:]

            parsed_args = self.parser.parse_args(args)

            if not parsed_args.command:
                self.parser.print_help()
                return 1

            return self._handle_command(parsed_args)

        except SystemExit as e:
            # argparse calls sys.exit() on error or help
            return e.code if e.code is not None else 0
        except Exception as e:
            logger.error(f"CLI routing error: {e}", exc_info=True)
            return 1

    def _handle_command(self, args: argparse.Namespace) -> int:
        """Handle command structure."""
        logger.debug(f"Handling command: {args.command}")

        if args.command not in COMMANDS:
            available = ', '.join(COMMANDS.keys())
            logger.error(f"Unknown command '{args.command}'. Available: {available}")
            return 1

        subcommand = getattr(args, 'subcommand', None)
        if not subcommand:
            logger.error(f"No subcommand specified for '{args.command}'")
            self.parser.parse_args([args.command, '--help'])  # Show help
            return 1

        try:
            command = get_command(args.command)
            return command.execute(subcommand, args)
        except Exception as e:
            logger.error(f"Error executing {args.command} {subcommand}: {e}", exc_info=True)
            return 1


def main(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        get_config_manager().update_logging()
    except ValueError as e:
        logger.error(str(e))
        return 1

    router = CLIRouter()
    return router.route_command(args)


if __name__ == '__main__':
    exit_code = main()
    sys.exit(exit_code)
