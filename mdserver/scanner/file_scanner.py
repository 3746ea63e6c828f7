"""
Directory scanner for markdown trees.

Walks the content root with aiofiles, keeps only markdown files (and the
directories leading to them), and caches the resulting tree for a bounded
time. Also answers filename searches against the cached tree.
"""

import logging
import re
import stat
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

import aiofiles.os

from mdserver.cache.memory_cache import MemoryCache
from mdserver.config.server_config import ScannerConfig
from mdserver.events import ChangeEvent
from mdserver.interfaces.components import IDirectoryScanner
from mdserver.scanner.models import DirectoryNode, FileNode, SearchResult, TreeNode

logger = logging.getLogger(__name__)

TREE_CACHE_KEY = "directory-tree"
MIN_QUERY_LENGTH = 2

_DIGITS = re.compile(r"(\d+)")


def natural_sort_key(name: str) -> list:
    """
    Case-insensitive, numeric-aware sort key.

    "file2" sorts before "file10". Text and number chunks alternate, so
    element types line up position by position between any two keys.
    """
    parts = _DIGITS.split(name)
    return [int(part) if index % 2 else part.casefold() for index, part in enumerate(parts)]


def sort_nodes(nodes: List[TreeNode]) -> List[TreeNode]:
    """Directories before files, then natural name order."""
    return sorted(
        nodes,
        key=lambda node: (node.type != "directory", natural_sort_key(node.name), node.name),
    )


def _mtime(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


class FileScanner(IDirectoryScanner):
    """
    Recursive markdown directory scanner with a time-expiring tree cache.

    Implements the IDirectoryScanner interface.

    The cache keeps the configured capacity even though only the single
    ``directory-tree`` key is ever populated.

    Example:
        >>> scanner = FileScanner(ScannerConfig(root_path=Path("docs")))
        >>> tree = await scanner.get_tree()
        >>> results = await scanner.search("readme")
    """

    def __init__(self, config: ScannerConfig, clock: Callable[[], float] = time.time):
        """
        Initialize the scanner.

        Args:
            config: Scanner configuration
            clock: Wall-clock source for cache ages
        """
        self._config = config
        self._root = Path(config.root_path)
        self._extensions = tuple(ext.lower() for ext in config.supported_extensions)
        self._ignore_names = frozenset(config.ignore_names)
        self._clock = clock
        self._cache: MemoryCache[List[TreeNode]] = MemoryCache(
            max_size=config.cache_max_size,
            clock=clock,
        )
        # Bumped by invalidate(); a scan only caches if no invalidation raced it
        self._generation = 0
        self._generation_lock = threading.Lock()

    @property
    def root_path(self) -> Path:
        return self._root

    def is_markdown_supported(self, filename: str) -> bool:
        return filename.lower().endswith(self._extensions)

    def _is_ignored(self, name: str) -> bool:
        return name.startswith(".") or name in self._ignore_names

    async def scan(self, root_path: Optional[Path] = None) -> List[TreeNode]:
        """
        Walk a directory tree and return its markdown structure.

        Args:
            root_path: Directory to scan; defaults to the configured root

        Returns:
            Sorted list of top-level nodes. Empty if the root cannot be read.
        """
        root = Path(root_path) if root_path is not None else self._root
        started = time.perf_counter()
        tree = await self._scan_directory(root, "")
        logger.debug(f"Scanned {root} in {time.perf_counter() - started:.3f}s")
        return tree

    async def _scan_directory(self, root: Path, current: str) -> List[TreeNode]:
        full_path = root / current if current else root

        try:
            names = await aiofiles.os.listdir(full_path)
        except OSError as e:
            logger.error(f"Error scanning directory {full_path}: {e}")
            return []

        items: List[TreeNode] = []
        for name in names:
            if self._is_ignored(name):
                continue

            entry_path = full_path / name
            relative = f"{current}/{name}" if current else name

            try:
                stats = await aiofiles.os.stat(entry_path)
            except OSError as e:
                logger.warning(f"Skipping unreadable entry {entry_path}: {e}")
                continue

            if stat.S_ISDIR(stats.st_mode):
                if await aiofiles.os.path.islink(entry_path):
                    logger.debug(f"Not following symlinked directory {entry_path}")
                    continue
                children = await self._scan_directory(root, relative)
                items.append(DirectoryNode(
                    name=name,
                    path=relative,
                    children=children,
                    has_markdown=self._has_markdown(children),
                    last_modified=_mtime(stats.st_mtime),
                ))
            elif self.is_markdown_supported(name):
                items.append(FileNode(
                    name=name,
                    path=relative,
                    size=stats.st_size,
                    last_modified=_mtime(stats.st_mtime),
                ))

        return sort_nodes(items)

    @staticmethod
    def _has_markdown(children: List[TreeNode]) -> bool:
        return any(
            child.type == "file" or child.has_markdown
            for child in children
        )

    async def get_tree(self) -> List[TreeNode]:
        """
        Return the directory tree, rescanning once the cached copy expires.

        Returns:
            The cached tree if younger than cache_max_age, otherwise a fresh scan
        """
        entry = self._cache.get(TREE_CACHE_KEY)
        if entry is not None and entry.age(self._clock()) < self._config.cache_max_age:
            logger.debug("Tree cache HIT")
            return entry.value

        logger.debug("Tree cache MISS/EXPIRED")
        with self._generation_lock:
            generation = self._generation
        tree = await self.scan()
        with self._generation_lock:
            if generation == self._generation:
                self._cache.set(TREE_CACHE_KEY, tree)
            else:
                logger.debug("Tree changed during scan, result not cached")
        return tree

    async def search(self, query: str) -> List[SearchResult]:
        """
        Find files and directories whose names contain the query.

        Matching is case-insensitive. Results follow depth-first traversal
        order; a matching directory is reported without its children, and
        its children are searched as well.

        Args:
            query: Substring to look for; ignored if shorter than 2 characters

        Returns:
            At most search_max_results results
        """
        term = (query or "").strip().lower()
        if len(term) < MIN_QUERY_LENGTH:
            return []

        limit = self._config.search_max_results
        results: List[SearchResult] = []
        self._search_tree(await self.get_tree(), term, results, limit)
        return results

    def _search_tree(
        self,
        nodes: List[TreeNode],
        term: str,
        results: List[SearchResult],
        limit: int,
    ) -> None:
        for node in nodes:
            if len(results) >= limit:
                return
            if term in node.name.lower():
                results.append(SearchResult.from_node(node))
            if isinstance(node, DirectoryNode):
                self._search_tree(node.children, term, results, limit)

    def invalidate(self) -> None:
        with self._generation_lock:
            self._generation += 1
            count = self._cache.clear()
        if count:
            logger.debug("Tree cache INVALIDATED")

    def on_change(self, event: ChangeEvent) -> None:
        """EventChannel listener: any markdown change invalidates the tree."""
        self.invalidate()

    def cache_stats(self) -> dict:
        stats = self._cache.stats()
        stats["max_age"] = self._config.cache_max_age
        return stats

