#!/usr/bin/env python3
"""
Recipe search and recipe round-up routes.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from core.recipes import parse_find_request
from ..dependencies import get_recipe_service, read_json

router = APIRouter(prefix="/api", tags=["recipes"])


@router.post("/findRecipes")
async def find_recipes(payload: Any = Depends(read_json),
                       service=Depends(get_recipe_service)) -> List[Dict[str, Any]]:
    headline, count = parse_find_request(payload)
    return await service.find_recipes(headline, count)


@router.post("/generate-recipe")
async def generate_recipe(payload: Any = Depends(read_json),
                          service=Depends(get_recipe_service)) -> Dict[str, str]:
    return await service.generate_roundup(payload)
