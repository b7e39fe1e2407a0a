#!/usr/bin/env python3
"""
Environment variable loader with .env file support.

Loads KEY=VALUE pairs from the project's .env file on import. Values that
are already present in the process environment always win.
"""

import os
from pathlib import Path
import logging
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent.parent


def parse_env_lines(lines: Iterable[str]) -> Dict[str, str]:
    """
    Parse .env style lines into a dictionary.

    Blank lines and comments are skipped, surrounding quotes are removed
    and an optional leading ``export`` is tolerated.

    Args:
        lines: Raw lines from an env file

    Returns:
        Mapping of variable name to value
    """
    values: Dict[str, str] = {}
    for line_num, line in enumerate(lines, 1):
        line = line.strip()

        if not line or line.startswith('#'):
            continue

        if line.startswith('export '):
            line = line[len('export '):].lstrip()

        if '=' not in line:
            logger.warning(f"Invalid .env format at line {line_num}: {line}")
            continue

        key, value = line.split('=', 1)
        key = key.strip()
        value = value.strip()

        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]

        if key:
            values[key] = value
    return values


def load_env_file(env_file_path: str = ".env") -> int:
    """
    Load environment variables from .env file if it exists.

    Args:
        env_file_path: Path to .env file relative to the project root

    Returns:
        Number of variables that were newly set
    """
    env_path = PROJECT_ROOT / env_file_path

    if not env_path.exists():
        logger.debug(f"No .env file found at {env_path}")
        return 0

    try:
        with open(env_path, 'r', encoding='utf-8') as f:
            parsed = parse_env_lines(f.readlines())
    except OSError as e:
        logger.error(f"Error loading .env file {env_path}: {e}")
        return 0

    loaded_count = 0
    for key, value in parsed.items():
        if key not in os.environ:
            os.environ[key] = value
            loaded_count += 1
            logger.debug(f"Loaded {key} from .env")
        else:
            logger.debug(f"Skipped {key} (already in environment)")

    logger.info(f"Loaded {loaded_count} variables from {env_path}")
    return loaded_count


def first_env_var(keys: List[str]) -> Optional[str]:
    """Return the first non-empty value among several variable names."""
    for key in keys:
        value = os.environ.get(key)
        if value and value.strip():
            return value.strip()
    return None


# Auto-load .env file when module is imported
load_env_file()
