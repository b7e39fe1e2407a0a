#!/usr/bin/env python3
"""
Travel preset routes.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from ..dependencies import get_travel_preset_service, read_json

router = APIRouter(prefix="/api/travel-presets", tags=["travel"])


@router.get("")
async def get_travel_preset(state: Optional[str] = None,
                            service=Depends(get_travel_preset_service)) -> Dict[str, Any]:
    return await service.get_preset(state)


@router.post("")
async def save_travel_preset(payload: Any = Depends(read_json),
                             service=Depends(get_travel_preset_service)) -> Dict[str, Any]:
    return await service.save_preset(payload)
