"""Markdown rendering."""

from mdserver.rendering.markdown_renderer import (
    MarkdownRenderer,
    TocEntry,
    normalize_relative_path,
    slugify,
)

__all__ = [
    "MarkdownRenderer",
    "TocEntry",
    "normalize_relative_path",
    "slugify",
]
