"""
Interfaces package for dependency inversion.

Route handlers and the CLI depend on these abstractions rather than on the
concrete scanner, renderer and watcher classes.
"""

from mdserver.interfaces.components import (
    IDirectoryScanner,
    IMarkdownRenderer,
    IChangeWatcher,
)

__all__ = [
    "IDirectoryScanner",
    "IMarkdownRenderer",
    "IChangeWatcher",
]
