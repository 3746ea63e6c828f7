"""
API routes package.
"""

from mdserver.api.routes.files import router as files_router
from mdserver.api.routes.system import router as system_router
from mdserver.api.routes.watch import router as watch_router

__all__ = ["files_router", "system_router", "watch_router"]
