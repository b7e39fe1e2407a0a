#!/usr/bin/env python3
"""
Serve command: runs the HTTP API with uvicorn.
"""

import logging
from argparse import Namespace

import uvicorn

from .base import BaseCommand

logger = logging.getLogger(__name__)


class ServeCommand(BaseCommand):
    """Run the HTTP API."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        try:
            if subcommand == "api":
                return self.api(args)
            available = ", ".join(self.get_available_subcommands())
            self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
            return 1
        except Exception as e:
            return self.handle_error(e, f"serve {subcommand}")

    def api(self, args: Namespace) -> int:
        from api import create_app

        host = getattr(args, 'host', '127.0.0.1')
        port = getattr(args, 'port', 8000)
        app = create_app(self._container)
        print(f"🚀 Serving Content Studio API on http://{host}:{port}")
        uvicorn.run(app, host=host, port=port, log_level=self.config.app.log_level.lower())
        return 0
