#!/usr/bin/env python3
"""
JSON parsing for LLM output.

Models sometimes wrap JSON in markdown fences or add trailing commas even
when asked for a bare object. These helpers recover the object and validate
it against a pydantic model.
"""

import json
import logging
import re
from typing import Any, Dict, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=BaseModel)

_FENCE_RE = re.compile(r'^```(?:json)?\s*|\s*```$', re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r',\s*([}\]])')


class JSONValidationError(Exception):
    """LLM output could not be turned into the expected JSON object."""

    def __init__(self, message: str, errors: List[str] = None):
        super().__init__(message)
        self.errors = errors or []


def _extract_object(raw_output: str) -> str:
    """Extract the outermost JSON object from mixed text output."""
    start = raw_output.find('{')
    end = raw_output.rfind('}')
    if start == -1 or end <= start:
        raise JSONValidationError("No JSON object found in output")
    return raw_output[start:end + 1]


def parse_llm_json(raw_output: str) -> Dict[str, Any]:
    """
    Parse a JSON object from raw LLM output.

    Args:
        raw_output: Text returned by the model

    Returns:
        Parsed dictionary

    Raises:
        JSONValidationError: If no object can be recovered
    """
    text = (raw_output or '').strip()
    if not text:
        raise JSONValidationError("Empty output")

    text = _FENCE_RE.sub('', text).strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        candidate = _extract_object(text)
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            logger.warning("Attempting JSON repair of LLM output")
            try:
                data = json.loads(_TRAILING_COMMA_RE.sub(r'\1', candidate))
            except json.JSONDecodeError as e:
                logger.error(f"JSON parsing failed: {e}")
                logger.debug(f"First 300 chars: {candidate[:300]!r}")
                raise JSONValidationError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise JSONValidationError("Expected a JSON object")
    return data


def validate_llm_json(raw_output: str, model: Type[T]) -> T:
    """Parse LLM output and validate it against a pydantic model."""
    data = parse_llm_json(raw_output)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise JSONValidationError(f"JSON did not match {model.__name__}", errors) from e
