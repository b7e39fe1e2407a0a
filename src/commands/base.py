#!/usr/bin/env python3
"""
Shared plumbing for CLI commands.

Commands resolve services from the same container the API uses, so a shell
run goes through the code paths an HTTP request would.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from argparse import Namespace
from typing import Any, List

from core.container import get_container
from core.exceptions import ContentStudioError

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_USAGE = 22
EXIT_INTERRUPTED = 130


class BaseCommand(ABC):
    """Base class for ``run.py <command> <subcommand>`` handlers."""

    def __init__(self, container=None):
        """
        Args:
            container: Service container, the process-wide one when omitted
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self._container = container or get_container()

    @property
    def config(self):
        return self._container.get('config')

    def service(self, name: str) -> Any:
        return self._container.get(name)

    @staticmethod
    def run_async(coro) -> Any:
        return asyncio.run(coro)

    @staticmethod
    def print_json(data: Any) -> None:
        print(json.dumps(data, indent=2, ensure_ascii=False))

    @abstractmethod
    def execute(self, subcommand: str, args: Namespace) -> int:
        """
        Run one subcommand.

        Args:
            subcommand: Name chosen on the command line
            args: Parsed arguments

        Returns:
            Process exit code
        """

    def get_available_subcommands(self) -> List[str]:
        """Public methods a subclass adds on top of BaseCommand."""
        inherited = set(dir(BaseCommand))
        return [
            name for name in dir(self)
            if not name.startswith('_') and name not in inherited and callable(getattr(self, name))
        ]

    def handle_error(self, error: BaseException, context: str = "") -> int:
        """
        Report a failed subcommand and pick its exit code.

        Request validation problems exit with 22, everything else with 1.
        """
        if isinstance(error, KeyboardInterrupt):
            self.logger.info("Interrupted")
            return EXIT_INTERRUPTED

        prefix = f"{context}: " if context else ""
        if isinstance(error, ContentStudioError):
            self.logger.error(f"{prefix}{error.message}")
            print(f"❌ {error.message}")
            return EXIT_USAGE if error.status_code == 400 else EXIT_FAILURE

        self.logger.error(f"{prefix}{error}", exc_info=True)
        if isinstance(error, (ValueError, FileNotFoundError)):
            return EXIT_USAGE
        return EXIT_FAILURE
