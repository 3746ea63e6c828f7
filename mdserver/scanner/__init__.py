"""Directory scanning and filename search."""

from mdserver.scanner.models import DirectoryNode, FileNode, SearchResult, TreeNode
from mdserver.scanner.file_scanner import FileScanner, natural_sort_key

__all__ = [
    "DirectoryNode",
    "FileNode",
    "SearchResult",
    "TreeNode",
    "FileScanner",
    "natural_sort_key",
]
