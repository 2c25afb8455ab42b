"""
FastAPI application entry point for the attivita backend.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from attivita.config import Settings, get_settings
from attivita.logging_setup import setup_logging
from attivita.routes import router

logger = logging.getLogger(__name__)


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    # Malformed or incomplete bodies are client errors, reported as 400.
    logger.info("Invalid request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the app. Explicit settings drive the prefix, CORS and log level,
    and replace ``get_settings`` for request-scoped dependencies.
    """
    explicit = settings is not None
    if settings is None:
        settings = get_settings()
    setup_logging(settings.log_level)
    app = FastAPI(title="Attivita Backend (FastAPI)", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    if explicit:
        app.dependency_overrides[get_settings] = lambda: settings
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
