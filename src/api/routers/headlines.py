#!/usr/bin/env python3
"""
Headline search and category review routes.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from core.category_review import review_payload
from core.headlines import parse_headline_request
from ..dependencies import get_headline_pipeline, read_json

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/headlines", tags=["headlines"])


@router.post("")
async def search_headlines(payload: Any = Depends(read_json),
                           pipeline=Depends(get_headline_pipeline)) -> Dict[str, Any]:
    """Search, deduplicate and rank headlines."""
    request = parse_headline_request(payload)
    return await pipeline.run(request)


@router.post("/review")
async def review_headlines(payload: Any = Depends(read_json)) -> Dict[str, Any]:
    """Match headlines against a category tree by keyword overlap."""
    return review_payload(payload)
