#!/usr/bin/env python3
"""
FastAPI dependency getters.

Services come from the container stored on ``app.state`` so tests can swap
in fakes with ``container.register_instance``.
"""

import json
from typing import Any

from fastapi import Depends, Request

from core.container import Container
from core.exceptions import InvalidRequestError


def get_container(request: Request) -> Container:
    return request.app.state.container


async def read_json(request: Request) -> Any:
    """Parse the request body, rejecting anything that is not JSON."""
    body = await request.body()
    try:
        return json.loads(body or b'null')
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidRequestError("Invalid JSON payload") from e


def get_config(container: Container = Depends(get_container)):
    return container.get('config')


def get_headline_pipeline(container: Container = Depends(get_container)):
    return container.get('headline_pipeline')


def get_article_generator(container: Container = Depends(get_container)):
    return container.get('article_generator')


def get_recipe_service(container: Container = Depends(get_container)):
    return container.get('recipe_service')


def get_travel_preset_service(container: Container = Depends(get_container)):
    return container.get('travel_preset_service')


def get_profile_service(container: Container = Depends(get_container)):
    return container.get('profile_service')


def get_content_fetcher(container: Container = Depends(get_container)):
    return container.get('content_fetcher')
