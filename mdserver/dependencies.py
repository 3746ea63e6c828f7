"""Dependency injection functions for FastAPI.

This module provides dependency injection for the application, including:
- Settings singleton
- ServerComponents singleton (scanner, renderer, watcher, event channel)
- Per-component accessors for use with Depends()
- Utility functions for testing (reset_dependencies)
"""

from typing import Optional

from mdserver.events import EventChannel
from mdserver.factories.server_factory import ServerComponents, ServerFactory
from mdserver.interfaces.components import IChangeWatcher, IDirectoryScanner, IMarkdownRenderer
from mdserver.settings import Settings, get_settings


# Components singleton
_components: Optional[ServerComponents] = None


def get_components() -> ServerComponents:
    """Get or create the process-wide component set.

    Built once from the cached settings; every request handler shares the
    same scanner and renderer caches through it.

    Returns:
        ServerComponents: The singleton component set
    """
    global _components
    if _components is None:
        _components = ServerFactory().create_from_settings(get_settings())
    return _components


def set_components(components: ServerComponents) -> None:
    """Install a prebuilt component set (CLI and tests)."""
    global _components
    _components = components


def get_scanner() -> IDirectoryScanner:
    """Directory scanner dependency."""
    return get_components().scanner


def get_renderer() -> IMarkdownRenderer:
    """Markdown renderer dependency."""
    return get_components().renderer


def get_watcher() -> IChangeWatcher:
    """Change watcher dependency."""
    return get_components().watcher


def get_event_channel() -> EventChannel:
    """Event channel dependency."""
    return get_components().channel


def reset_dependencies() -> None:
    """Reset all dependency singletons (for testing).

    Stops a running watcher, drops the component set and clears the
    settings cache so everything is rebuilt on next access.
    """
    global _components
    if _components is not None:
        _components.watcher.stop()
    _components = None

    # Clear lru_cache for settings
    get_settings.cache_clear()


__all__ = [
    "Settings",
    "get_settings",
    "get_components",
    "set_components",
    "get_scanner",
    "get_renderer",
    "get_watcher",
    "get_event_channel",
    "reset_dependencies",
]
