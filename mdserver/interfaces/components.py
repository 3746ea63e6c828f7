"""
Component interfaces for the scanner, renderer and watcher.

Route handlers and the CLI depend on these abstractions; the concrete
implementations are built by the component factory.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from mdserver.events import ChangeEvent, ChangeListener
    from mdserver.scanner.models import SearchResult, TreeNode
    from mdserver.rendering.markdown_renderer import TocEntry


class IDirectoryScanner(ABC):
    """
    Abstract interface for the markdown directory scanner.

    Implementations:
        - FileScanner: recursive aiofiles-based walk with a tree cache
    """

    @property
    @abstractmethod
    def root_path(self) -> Path:
        """The directory this scanner browses."""
        pass

    @abstractmethod
    def is_markdown_supported(self, filename: str) -> bool:
        """Return True if filename carries a supported markdown extension."""
        pass

    @abstractmethod
    async def scan(self, root_path: Optional[Path] = None) -> List["TreeNode"]:
        """Walk the root (uncached) and return the sorted tree."""
        pass

    @abstractmethod
    async def get_tree(self) -> List["TreeNode"]:
        """Return the cached tree, rescanning when it has expired."""
        pass

    @abstractmethod
    async def search(self, query: str) -> List["SearchResult"]:
        """Return tree nodes whose names contain query."""
        pass

    @abstractmethod
    def invalidate(self) -> None:
        """Drop the cached tree."""
        pass

    @abstractmethod
    def on_change(self, event: "ChangeEvent") -> None:
        """EventChannel listener invalidating the tree."""
        pass

    @abstractmethod
    def cache_stats(self) -> dict:
        """Return cache statistics."""
        pass


class IMarkdownRenderer(ABC):
    """
    Abstract interface for the markdown renderer.

    Implementations:
        - MarkdownRenderer: markdown-it-py + Pygments with an mtime-gated cache
    """

    @abstractmethod
    async def render_file(self, relative_path: str) -> str:
        """Render a file under the root to HTML."""
        pass

    @abstractmethod
    def render_markdown(self, content: str, relative_path: str = "") -> str:
        """Render markdown text to wrapped HTML."""
        pass

    @abstractmethod
    def extract_table_of_contents(self, html: str) -> List["TocEntry"]:
        """Return the headings of rendered HTML in document order."""
        pass

    @abstractmethod
    def invalidate_cache(self, relative_path: Optional[str] = None) -> None:
        """Drop one cached render, or all of them."""
        pass

    @abstractmethod
    def on_change(self, event: "ChangeEvent") -> None:
        """EventChannel listener invalidating the changed file."""
        pass

    @abstractmethod
    def cache_stats(self) -> dict:
        """Return cache statistics."""
        pass

    @abstractmethod
    def highlight_css(self) -> str:
        """Return the stylesheet for highlighted code blocks."""
        pass


class IChangeWatcher(ABC):
    """
    Abstract interface for the filesystem change watcher.

    Implementations:
        - ChangeWatcher: watchdog observer publishing on an EventChannel
    """

    @property
    @abstractmethod
    def is_running(self) -> bool:
        """True while the watcher is observing the root."""
        pass

    @abstractmethod
    def start(self) -> None:
        """Begin observing. No-op when already running."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop observing. No-op when not running."""
        pass

    @abstractmethod
    def add_listener(self, listener: "ChangeListener") -> None:
        """Register a change listener."""
        pass

    @abstractmethod
    def remove_listener(self, listener: "ChangeListener") -> None:
        """Remove a change listener."""
        pass
