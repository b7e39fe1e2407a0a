#!/usr/bin/env python3
"""
FastAPI application factory.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.container import Container, get_container
from .errors import register_exception_handlers
from .routers import ROUTERS

logger = logging.getLogger(__name__)

APP_TITLE = "Content Studio API"
APP_VERSION = "1.0.0"


def create_app(container: Optional[Container] = None, allowed_origins=None) -> FastAPI:
    """
    Build the API application.

    Args:
        container: Service container; the global container when None
        allowed_origins: CORS origins, all origins when None
    """
    app = FastAPI(title=APP_TITLE, version=APP_VERSION)
    app.state.container = container or get_container()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(allowed_origins) if allowed_origins else ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    for router in ROUTERS:
        app.include_router(router)

    @app.get("/health")
    async def health():
        return {'status': 'ok'}

    logger.debug(f"API created with {len(ROUTERS)} routers")
    return app
