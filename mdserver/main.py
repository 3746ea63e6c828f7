"""
mdserver - Main FastAPI Application

Browse a directory tree of markdown files, render them to styled HTML,
search file names, and optionally live-reload on filesystem changes.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from mdserver import __version__
from mdserver.api.routes import files_router, system_router, watch_router
from mdserver.config.server_config import ServerConfig
from mdserver.dependencies import get_components
from mdserver.exceptions import (
    MarkdownServerException,
    markdown_server_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from mdserver.middleware.rate_limit import RateLimitMiddleware
from mdserver.settings import Settings, get_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    components = get_components()
    root = components.config.scanner.root_path

    logger.info("Starting mdserver")
    logger.info(f"Serving markdown from: {root}")
    if not root.is_dir():
        logger.warning(f"Root directory does not exist: {root}")

    if components.config.watch.enabled:
        components.watcher.start()

    yield

    components.watcher.stop()
    logger.info("Shutting down mdserver")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings for middleware configuration; defaults to get_settings()

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    config = ServerConfig.from_settings(settings)

    application = FastAPI(
        title="mdserver",
        description="""
## Overview

Browse a directory of markdown files as rendered HTML.

## Endpoints

- `GET /api/tree` - directory tree (directories first, natural ordering)
- `GET /api/file/{path}` - rendered HTML, file path and table of contents
- `GET /api/search?q=` - filename search (at least 2 characters)
- `GET /api/metadata/{path}` - file stat information
- `GET /api/health` - uptime, memory and cache statistics
- `POST /api/cache/clear` - drop the tree and render caches
- `POST /api/watch/start`, `POST /api/watch/stop` - toggle live reload
- `GET /api/watch/events` - change events as Server-Sent Events
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_exception_handler(MarkdownServerException, markdown_server_exception_handler)
    application.add_exception_handler(RequestValidationError, validation_exception_handler)
    application.add_exception_handler(Exception, unhandled_exception_handler)

    # Configure CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(RateLimitMiddleware, config=config.rate_limit)

    # Include routers
    application.include_router(files_router, prefix="/api")
    application.include_router(system_router, prefix="/api")
    application.include_router(watch_router, prefix="/api")

    @application.get("/", tags=["root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "mdserver",
            "version": __version__,
            "description": "Markdown directory browser and renderer",
            "docs": "/docs",
            "health": "/api/health",
        }

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "mdserver.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
