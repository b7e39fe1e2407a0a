#!/usr/bin/env python3
"""
Cache warm-up route for blog posts and video transcripts.
"""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from core.cache import PREFETCH_KINDS
from ..dependencies import get_content_fetcher, read_json

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/prefetch", tags=["prefetch"])


@router.post("")
async def prefetch(payload: Any = Depends(read_json), fetcher=Depends(get_content_fetcher)):
    body = payload if isinstance(payload, dict) else {}
    kind, url = body.get('type'), body.get('url')
    if not url or not isinstance(url, str):
        return JSONResponse(status_code=400, content={'ok': False, 'error': "Missing URL"})
    if kind not in PREFETCH_KINDS:
        return JSONResponse(status_code=400, content={'ok': False, 'error': "Unsupported type"})

    found = await asyncio.to_thread(fetcher.prefetch, kind, url)
    logger.debug(f"Prefetched {kind} {url}: {'hit' if found else 'empty'}")
    return {'ok': found}
