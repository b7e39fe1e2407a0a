#!/usr/bin/env python3
"""
Site profile routes.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request

from core.exceptions import InvalidRequestError
from ..dependencies import get_profile_service, read_json

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


async def read_profile_body(request: Request) -> Any:
    try:
        return await read_json(request)
    except InvalidRequestError as e:
        raise InvalidRequestError("Invalid JSON body") from e


@router.get("")
async def get_profile(user_id: Optional[str] = Query(default=None, alias="userId"),
                      service=Depends(get_profile_service)) -> Dict[str, Any]:
    """Stored profile for a user, ``{profile: null}`` when there is none."""
    return await service.get_profile(user_id)


@router.post("")
async def save_profile(payload: Any = Depends(read_profile_body),
                       service=Depends(get_profile_service)) -> Dict[str, Any]:
    """Extract a profile from the brief in ``rawText`` and store it."""
    return await service.save_profile(payload)
