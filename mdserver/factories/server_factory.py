"""
Server Factory for assembling the scanner, renderer and watcher.
Wires the cache-owning components to the watcher's event channel.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from mdserver.config.server_config import ServerConfig
from mdserver.events import EventChannel
from mdserver.factories.component_factory import ComponentFactory, DefaultComponentFactory
from mdserver.interfaces.components import IChangeWatcher, IDirectoryScanner, IMarkdownRenderer
from mdserver.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class ServerComponents:
    """The per-process set of collaborating components."""

    scanner: IDirectoryScanner
    renderer: IMarkdownRenderer
    watcher: IChangeWatcher
    channel: EventChannel
    config: ServerConfig

    def clear_caches(self) -> dict:
        """Drop both caches and report how many entries each held."""
        cleared = {
            "scanner": self.scanner.cache_stats()["size"],
            "renderer": self.renderer.cache_stats()["size"],
        }
        self.scanner.invalidate()
        self.renderer.invalidate_cache()
        return cleared


class ServerFactory:
    """Factory for creating ServerComponents with injected dependencies."""

    def __init__(self, component_factory: Optional[ComponentFactory] = None):
        """
        Initialize server factory.

        Args:
            component_factory: Factory for creating components (default: DefaultComponentFactory)
        """
        self.component_factory = component_factory or DefaultComponentFactory()

    def create(self, config: ServerConfig) -> ServerComponents:
        """
        Create fully wired components from config.

        The scanner and renderer subscribe to the channel before anything
        else, so caches are invalidated ahead of other listeners.

        Args:
            config: Server configuration

        Returns:
            Configured ServerComponents
        """
        channel = EventChannel()
        scanner = self.component_factory.create_scanner(config.scanner)
        renderer = self.component_factory.create_renderer(config.renderer)

        channel.subscribe(scanner.on_change)
        channel.subscribe(renderer.on_change)

        watcher = self.component_factory.create_watcher(config.watch, channel)

        logger.info(
            f"Components ready: root={config.scanner.root_path}, "
            f"cache_max_size={config.scanner.cache_max_size}, "
            f"cache_max_age={config.scanner.cache_max_age}"
        )
        return ServerComponents(
            scanner=scanner,
            renderer=renderer,
            watcher=watcher,
            channel=channel,
            config=config,
        )

    def create_from_settings(self, settings: Settings) -> ServerComponents:
        """
        Create components from application settings.

        Args:
            settings: Application settings

        Returns:
            Configured ServerComponents
        """
        return self.create(ServerConfig.from_settings(settings))
