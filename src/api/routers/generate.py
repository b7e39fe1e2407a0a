#!/usr/bin/env python3
"""
Article generation route.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from core.exceptions import ConfigurationError
from core.generation import parse_article_request
from ..dependencies import get_article_generator, read_json

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/generate", tags=["generate"])


@router.post("")
async def generate_article(payload: Any = Depends(read_json),
                           generator=Depends(get_article_generator)) -> Dict[str, Any]:
    request = parse_article_request(payload)
    if generator.llm is None:
        raise ConfigurationError('OPENAI_API_KEY')
    logger.info(f"Generating {request.article_type} for '{request.title}' with {request.model_version}")
    return await generator.generate(request)
