"""
Operational API routes: health, cache control and stylesheet.
"""

import logging
import time

import psutil
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from mdserver import __version__
from mdserver.api.schemas import HealthResponse, MessageResponse
from mdserver.dependencies import get_components, get_renderer
from mdserver.factories.server_factory import ServerComponents
from mdserver.interfaces.components import IMarkdownRenderer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/health", response_model=HealthResponse)
async def health(components: ServerComponents = Depends(get_components)):
    """
    Health check endpoint.

    Reports process uptime and memory, the effective configuration, cache
    sizes and whether the watcher is running.
    """
    process = psutil.Process()
    memory = process.memory_info()
    scanner_config = components.config.scanner

    return HealthResponse(
        data={
            "status": "healthy",
            "version": __version__,
            "uptime": round(time.time() - process.create_time(), 3),
            "memory": {"rss": memory.rss, "vms": memory.vms},
            "config": {
                "rootPath": str(scanner_config.root_path),
                "rootExists": scanner_config.root_path.is_dir(),
                "supportedExtensions": list(scanner_config.supported_extensions),
            },
            "cache": {
                "scanner": components.scanner.cache_stats(),
                "renderer": components.renderer.cache_stats(),
            },
            "watcher": {"running": components.watcher.is_running},
        }
    )


@router.post("/cache/clear", response_model=MessageResponse)
async def clear_cache(components: ServerComponents = Depends(get_components)):
    """Clear the directory-tree cache and the render cache."""
    cleared = components.clear_caches()
    logger.info(f"Caches cleared: {cleared}")
    return MessageResponse(message="Cache cleared successfully", data={"cleared": cleared})


@router.get("/styles/highlight.css", response_class=PlainTextResponse)
async def highlight_css(renderer: IMarkdownRenderer = Depends(get_renderer)):
    """Stylesheet for syntax-highlighted code blocks."""
    return PlainTextResponse(renderer.highlight_css(), media_type="text/css")
