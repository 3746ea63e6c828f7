"""Factory pattern implementation for component creation.

This module provides factory classes for creating the scanner, renderer and
watcher with proper dependency injection and testability.
"""

from mdserver.factories.component_factory import (
    ComponentFactory,
    DefaultComponentFactory,
)
from mdserver.factories.server_factory import (
    ServerComponents,
    ServerFactory,
)

__all__ = [
    "ComponentFactory",
    "DefaultComponentFactory",
    "ServerComponents",
    "ServerFactory",
]
