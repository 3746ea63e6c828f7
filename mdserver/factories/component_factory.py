"""
Component Factory for creating server components.
Provides abstract factory pattern for dependency injection and testing.
"""

from abc import ABC, abstractmethod

from mdserver.config.server_config import RendererConfig, ScannerConfig, WatchConfig
from mdserver.events import EventChannel
from mdserver.interfaces.components import IChangeWatcher, IDirectoryScanner, IMarkdownRenderer
from mdserver.rendering.markdown_renderer import MarkdownRenderer
from mdserver.scanner.file_scanner import FileScanner
from mdserver.watcher.change_watcher import ChangeWatcher


class ComponentFactory(ABC):
    """Abstract factory for creating server components."""

    @abstractmethod
    def create_scanner(self, config: ScannerConfig) -> IDirectoryScanner:
        """
        Create directory scanner.

        Args:
            config: Scanner configuration

        Returns:
            Configured scanner implementing IDirectoryScanner
        """
        pass

    @abstractmethod
    def create_renderer(self, config: RendererConfig) -> IMarkdownRenderer:
        """
        Create markdown renderer.

        Args:
            config: Renderer configuration

        Returns:
            Configured renderer implementing IMarkdownRenderer
        """
        pass

    @abstractmethod
    def create_watcher(self, config: WatchConfig, channel: EventChannel) -> IChangeWatcher:
        """
        Create change watcher publishing on the given channel.

        Args:
            config: Watch configuration
            channel: Event channel shared with the caches

        Returns:
            Configured watcher implementing IChangeWatcher
        """
        pass


class DefaultComponentFactory(ComponentFactory):
    """Default factory implementation for production use."""

    def create_scanner(self, config: ScannerConfig) -> IDirectoryScanner:
        """Create production directory scanner."""
        return FileScanner(config)

    def create_renderer(self, config: RendererConfig) -> IMarkdownRenderer:
        """Create production markdown renderer."""
        return MarkdownRenderer(config)

    def create_watcher(self, config: WatchConfig, channel: EventChannel) -> IChangeWatcher:
        """Create production watchdog-based watcher."""
        return ChangeWatcher(config, channel=channel)
