#!/usr/bin/env python3
"""
LLM Interaction Logger

Appends LLM prompts, responses and generation check outcomes to a debug
file. Disabled unless ``LLM_DEBUG_LOG`` names a file.
"""

import os
import json
import logging
from datetime import datetime
from typing import Dict, Any, Optional
from pathlib import Path

logger = logging.getLogger(__name__)


class LLMLogger:
    """Logs LLM interactions to a plain-text debug file."""

    def __init__(self, log_file_path: Optional[str] = None):
        """Initialize the LLM logger.

        Args:
            log_file_path: Debug log path, relative paths resolve against the
                project root. None disables logging.
        """
        self.log_file_path: Optional[Path] = None
        if log_file_path:
            path = Path(log_file_path)
            if not path.is_absolute():
                path = Path(__file__).parent.parent.parent / path
            self.log_file_path = path

    @property
    def enabled(self) -> bool:
        return self.log_file_path is not None

    def _write_section(self, title: str, content: str):
        """Write a section to the log file."""
        if not self.enabled:
            return
        try:
            with open(self.log_file_path, 'a', encoding='utf-8') as f:
                f.write(f"\n{'=' * 80}\n")
                f.write(f"{title}\n")
                f.write(f"{'=' * 80}\n")
                f.write(f"{content}\n")
        except OSError as e:
            logger.error(f"Failed to write to LLM log file: {e}")

    def log_llm_interaction(self,
                            system_prompt: str,
                            user_prompt: str,
                            response: str,
                            token_usage: Dict[str, int],
                            interaction_type: str = "Unknown",
                            model: str = ""):
        """Log complete LLM interaction."""
        content = f"Timestamp: {datetime.now().isoformat()}\n"
        content += f"Interaction Type: {interaction_type}\n"
        if model:
            content += f"Model: {model}\n"
        content += (
            f"Token Usage: {token_usage.get('prompt_tokens', 0)} prompt + "
            f"{token_usage.get('completion_tokens', 0)} completion = "
            f"{token_usage.get('total_tokens', 0)} total\n\n"
        )

        content += "SYSTEM PROMPT:\n"
        content += f"{system_prompt}\n\n"

        content += "USER PROMPT:\n"
        content += f"{user_prompt}\n\n"

        content += "LLM RESPONSE:\n"
        content += f"{response}\n"

        self._write_section(f"LLM INTERACTION ({interaction_type})", content)

    def log_generation_check(self, state: str, passed: bool, details: Dict[str, Any]):
        """Log the outcome of one generation check."""
        content = f"Timestamp: {datetime.now().isoformat()}\n"
        content += f"State: {state}\n"
        content += f"Passed: {'yes' if passed else 'no'}\n"
        if details:
            content += json.dumps(details, indent=2, ensure_ascii=False, default=str)
        self._write_section(f"GENERATION CHECK ({state})", content)


# Global logger instance
_llm_logger: Optional[LLMLogger] = None


def get_llm_logger() -> LLMLogger:
    """Get the global LLM logger instance."""
    global _llm_logger
    if _llm_logger is None:
        _llm_logger = LLMLogger(os.getenv('LLM_DEBUG_LOG') or None)
    return _llm_logger
