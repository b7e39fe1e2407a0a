#!/usr/bin/env python3
"""
Maps exceptions raised inside routes to JSON error responses.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.exceptions import ContentStudioError

logger = logging.getLogger(__name__)


async def handle_content_studio_error(request: Request, exc: ContentStudioError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.to_dict()}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    field = '.'.join(str(part) for part in first.get('loc', ()) if part not in ('body', 'query'))
    message = f"Invalid value for {field}: {first.get('msg')}" if field else "Invalid request"
    return JSONResponse(status_code=400, content={'error': message})


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error in {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={'error': "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ContentStudioError, handle_content_studio_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
