"""
FastAPI application entrypoint for the mockup listing publisher.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mockup_publisher.api.routes import router as api_router
from mockup_publisher.core.config import get_settings
from mockup_publisher.core.errors import MockupPublisherError
from mockup_publisher.core.logging import configure_logging

logger = logging.getLogger(__name__)


async def _handle_domain_error(request: Request, exc: MockupPublisherError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Mockup Listing Publisher",
        version="0.1.0",
        description="Turn Google Drive mockups into Etsy or standalone digital listings.",
    )
    app.add_exception_handler(MockupPublisherError, _handle_domain_error)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
