"""
Markdown to HTML rendering with per-file caching.

Uses markdown-it-py for parsing with custom render rules for headings,
code blocks, tables, blockquotes and links, and Pygments for syntax
highlighting. Rendered pages are cached per relative path and reused for
as long as the source file's modification time has not advanced.
"""

import html
import logging
import posixpath
import re
import stat
from pathlib import Path
from typing import List, Optional

import aiofiles
import aiofiles.os
from markdown_it import MarkdownIt
from pydantic import BaseModel
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_by_name, guess_lexer
from pygments.util import ClassNotFound

from mdserver.cache.memory_cache import MemoryCache
from mdserver.config.server_config import RendererConfig
from mdserver.events import ChangeEvent
from mdserver.exceptions import (
    DocumentNotFoundException,
    FileSystemException,
    PathTraversalException,
    ValidationException,
)
from mdserver.interfaces.components import IMarkdownRenderer

logger = logging.getLogger(__name__)

_EXTERNAL_HREF = re.compile(r"^(?:https?:)?//", re.IGNORECASE)
_HEADING = re.compile(
    r'<h([1-6])\b[^>]*\sid="([^"]*)"[^>]*>(.*?)</h\1>',
    re.IGNORECASE | re.DOTALL,
)
_ANCHOR_LINK = re.compile(r'<a\b[^>]*class="anchor-link"[^>]*>.*?</a>', re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")

COPY_ICON = (
    '<svg width="16" height="16" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2">'
    '<rect x="9" y="9" width="13" height="13" rx="2" ry="2"></rect>'
    '<path d="M5 15H4a2 2 0 0 1-2-2V4a2 2 0 0 1 2-2h9a2 2 0 0 1 2 2v1"></path>'
    "</svg>"
)
TOC_ICON = (
    '<svg width="16" height="16" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2">'
    '<line x1="8" y1="6" x2="21" y2="6"></line>'
    '<line x1="8" y1="12" x2="21" y2="12"></line>'
    '<line x1="8" y1="18" x2="21" y2="18"></line>'
    '<line x1="3" y1="6" x2="3.01" y2="6"></line>'
    '<line x1="3" y1="12" x2="3.01" y2="12"></line>'
    '<line x1="3" y1="18" x2="3.01" y2="18"></line>'
    "</svg>"
)


class TocEntry(BaseModel):
    """One heading of a rendered document."""
    level: int
    id: str
    text: str


def slugify(text: str) -> str:
    """
    Build an anchor id from heading text.

    Lowercases, drops non-word characters (hyphens survive) and turns
    whitespace runs into single hyphens.
    """
    slug = re.sub(r"[^\w\s-]", "", text.lower()).strip()
    return re.sub(r"\s+", "-", slug)


def normalize_relative_path(relative_path: str) -> str:
    """
    Canonical '/'-separated form of a path under the content root.

    Raises:
        ValidationException: If the path is empty or contains a NUL byte
        PathTraversalException: If the path is absolute or escapes the root
    """
    candidate = (relative_path or "").replace("\\", "/").strip()
    if not candidate:
        raise ValidationException("File path is required")
    if "\x00" in candidate:
        raise ValidationException("Invalid file path", {"path": relative_path})
    if candidate.startswith("/") or re.match(r"^[A-Za-z]:", candidate):
        raise PathTraversalException(
            "Access denied: Invalid file path",
            {"path": relative_path},
        )
    normalized = posixpath.normpath(candidate)
    if normalized == ".." or normalized.startswith("../") or ".." in normalized.split("/"):
        raise PathTraversalException(
            "Access denied: Invalid file path",
            {"path": relative_path},
        )
    return normalized


class MarkdownRenderer(IMarkdownRenderer):
    """
    Render markdown files under the content root to styled HTML.

    Implements the IMarkdownRenderer interface.

    Rendered output is wrapped in a content shell with breadcrumbs and a
    table-of-contents toggle. Each file's HTML is cached together with the
    file's mtime; a later request re-reads the file only when its mtime has
    moved past the cached one.

    Example:
        >>> renderer = MarkdownRenderer(RendererConfig(root_path=Path("docs")))
        >>> page = await renderer.render_file("guide/intro.md")
        >>> toc = renderer.extract_table_of_contents(page)
    """

    def __init__(self, config: RendererConfig):
        self._config = config
        self._root = Path(config.root_path)
        self._cache: MemoryCache[str] = MemoryCache(max_size=config.cache_max_size)
        self._formatter = HtmlFormatter(nowrap=True)

        self.md = MarkdownIt(
            "commonmark",
            {
                "html": config.html,
                "breaks": config.breaks,
                "typographer": config.typographer,
            },
        )
        if config.gfm:
            self.md.enable(["table", "strikethrough"])
        if config.typographer:
            self.md.enable(["replacements", "smartquotes"])

        self.md.renderer.rules["heading_open"] = self._render_heading_open
        self.md.renderer.rules["fence"] = self._render_fence
        self.md.renderer.rules["code_block"] = self._render_code_block
        self.md.renderer.rules["table_open"] = self._render_table_open
        self.md.renderer.rules["table_close"] = self._render_table_close
        self.md.renderer.rules["blockquote_open"] = self._render_blockquote_open
        self.md.renderer.rules["link_open"] = self._render_link_open
        self.md.renderer.rules["link_close"] = self._render_link_close

    # ------------------------------------------------------------------
    # Render rules
    # ------------------------------------------------------------------

    def _render_heading_open(self, tokens, idx, options, env) -> str:
        token = tokens[idx]
        if not self._config.header_ids:
            return self.md.renderer.renderToken(tokens, idx, options, env)

        inline = tokens[idx + 1] if idx + 1 < len(tokens) else None
        children = inline.children if inline is not None and inline.children else []
        text = "".join(
            " " if child.type in ("softbreak", "hardbreak") else child.content
            for child in children
            if child.type in ("text", "code_inline", "softbreak", "hardbreak")
        )
        slug = self._unique_slug(slugify(text) or "section", env)
        return (
            f'<{token.tag} id="{slug}" class="heading-with-anchor">'
            f'<a href="#{slug}" class="anchor-link" aria-label="Link to section">'
            f'<span class="anchor-icon">#</span></a>'
        )

    @staticmethod
    def _unique_slug(slug: str, env: dict) -> str:
        seen = env.setdefault("slugs", {})
        count = seen.get(slug, 0)
        seen[slug] = count + 1
        return slug if count == 0 else f"{slug}-{count}"

    def _render_fence(self, tokens, idx, options, env) -> str:
        token = tokens[idx]
        info = token.info.strip() if token.info else ""
        language = info.split(maxsplit=1)[0] if info else ""
        return self._highlight_code(token.content, language)

    def _render_code_block(self, tokens, idx, options, env) -> str:
        return self._highlight_code(tokens[idx].content, "")

    def _highlight_code(self, code: str, language: str) -> str:
        """Highlight with the named lexer, else a guessed one, else plain text."""
        lexer = None
        label = "plaintext"
        if language:
            try:
                lexer = get_lexer_by_name(language)
                label = language.lower()
            except ClassNotFound:
                lexer = None
        if lexer is None:
            try:
                lexer = guess_lexer(code)
            except ClassNotFound:
                lexer = TextLexer()
            if not isinstance(lexer, TextLexer) and lexer.aliases:
                label = lexer.aliases[0]

        highlighted = highlight(code, lexer, self._formatter)
        label = html.escape(label)
        return (
            '<div class="code-block">'
            '<div class="code-header">'
            f'<span class="language-tag">{label}</span>'
            f'<button class="copy-btn" title="Copy code">{COPY_ICON} Copy</button>'
            "</div>"
            f'<pre><code class="hljs language-{label}">{highlighted}</code></pre>'
            "</div>\n"
        )

    def _render_table_open(self, tokens, idx, options, env) -> str:
        return '<div class="table-wrapper">\n<table class="markdown-table">\n'

    def _render_table_close(self, tokens, idx, options, env) -> str:
        return "</table>\n</div>\n"

    def _render_blockquote_open(self, tokens, idx, options, env) -> str:
        tokens[idx].attrSet("class", "markdown-blockquote")
        return self.md.renderer.renderToken(tokens, idx, options, env)

    def _render_link_open(self, tokens, idx, options, env) -> str:
        token = tokens[idx]
        href = token.attrGet("href") or ""
        external = bool(_EXTERNAL_HREF.match(str(href)))
        if external:
            token.attrSet("target", "_blank")
            token.attrSet("rel", "noopener noreferrer")
            token.attrSet("class", "external-link")
        else:
            token.attrSet("class", "internal-link")
        env.setdefault("links", []).append(external)
        return self.md.renderer.renderToken(tokens, idx, options, env)

    def _render_link_close(self, tokens, idx, options, env) -> str:
        links = env.get("links") or [False]
        external = links.pop()
        icon = ' <span class="external-link-icon">↗</span>' if external else ""
        return f"{icon}</a>"

    # ------------------------------------------------------------------
    # Page assembly
    # ------------------------------------------------------------------

    def render_markdown(self, content: str, relative_path: str = "") -> str:
        """
        Convert markdown text to HTML and wrap it in the content shell.

        A conversion failure is logged and returned as an inline error
        fragment so the caller still has something to display.
        """
        try:
            body = self.md.render(content, {})
        except Exception as e:
            logger.exception(f"Error rendering markdown {relative_path or '<string>'}: {e}")
            return f'<div class="error">Error rendering markdown: {html.escape(str(e))}</div>'
        return self.wrap_with_metadata(body, relative_path)

    def wrap_with_metadata(self, body: str, relative_path: str) -> str:
        breadcrumbs = self.generate_breadcrumbs(relative_path)
        return (
            f'<div class="markdown-content" data-file-path="{html.escape(relative_path)}">\n'
            '<div class="content-header">\n'
            f'<nav class="breadcrumbs" aria-label="File location">{breadcrumbs}</nav>\n'
            '<div class="content-actions">'
            f'<button class="toc-toggle" title="Toggle table of contents">{TOC_ICON} TOC</button>'
            "</div>\n"
            "</div>\n"
            f'<div class="content-body">\n{body}</div>\n'
            "</div>\n"
        )

    @staticmethod
    def generate_breadcrumbs(relative_path: str) -> str:
        """Home link followed by one crumb per path segment; the last is not a link."""
        if not relative_path:
            return '<span class="breadcrumb-item">Home</span>'

        parts = [part for part in relative_path.replace("\\", "/").split("/") if part]
        crumbs = ['<a href="#" class="breadcrumb-link" data-path="">Home</a>']
        current = []
        for index, part in enumerate(parts):
            current.append(part)
            label = html.escape(part)
            if index == len(parts) - 1:
                crumbs.append(f'<span class="breadcrumb-item current">{label}</span>')
            else:
                target = html.escape("/".join(current))
                crumbs.append(f'<a href="#" class="breadcrumb-link" data-path="{target}">{label}</a>')
        return '<span class="breadcrumb-separator">/</span>'.join(crumbs)

    def extract_table_of_contents(self, html_text: str) -> List[TocEntry]:
        """Headings carrying an id, in document order, with markup stripped."""
        entries = []
        for match in _HEADING.finditer(html_text):
            inner = _ANCHOR_LINK.sub("", match.group(3))
            text = html.unescape(_TAG.sub("", inner))
            entries.append(TocEntry(
                level=int(match.group(1)),
                id=html.unescape(match.group(2)),
                text=_WHITESPACE.sub(" ", text).strip(),
            ))
        return entries

    def highlight_css(self) -> str:
        return self._formatter.get_style_defs(".hljs")

    # ------------------------------------------------------------------
    # File rendering and cache
    # ------------------------------------------------------------------

    async def render_file(self, relative_path: str) -> str:
        """
        Render a markdown file under the content root.

        Args:
            relative_path: Path relative to the root

        Returns:
            Wrapped HTML, from cache when the file is unchanged

        Raises:
            ValidationException: Empty path, or the path is a directory
            PathTraversalException: Path is absolute or escapes the root
            DocumentNotFoundException: File does not exist
            FileSystemException: Any other stat/read failure
        """
        key = normalize_relative_path(relative_path)
        full_path = self._root / key

        try:
            stats = await aiofiles.os.stat(full_path)
        except (FileNotFoundError, NotADirectoryError) as e:
            raise DocumentNotFoundException("File not found", {"path": key}) from e
        except OSError as e:
            raise FileSystemException(
                f"Failed to render markdown file: {e.strerror or e}",
                {"path": key},
            ) from e

        if stat.S_ISDIR(stats.st_mode):
            raise ValidationException("Path is a directory, not a file", {"path": key})

        cached = self._cache.get(key)
        if cached is not None and cached.timestamp >= stats.st_mtime:
            logger.debug(f"Render cache HIT: {key}")
            return cached.value

        logger.debug(f"Render cache MISS/STALE: {key}")
        try:
            async with aiofiles.open(full_path, mode="r", encoding="utf-8", errors="replace") as f:
                content = await f.read()
        except FileNotFoundError as e:
            raise DocumentNotFoundException("File not found", {"path": key}) from e
        except OSError as e:
            raise FileSystemException(
                f"Failed to render markdown file: {e}",
                {"path": key},
            ) from e

        page = self.render_markdown(content, key)
        self._cache.set(key, page, timestamp=stats.st_mtime)
        return page

    def invalidate_cache(self, relative_path: Optional[str] = None) -> None:
        if relative_path is None:
            count = self._cache.clear()
            logger.debug(f"Render cache CLEARED ({count} entries)")
            return
        key = posixpath.normpath(relative_path.replace("\\", "/"))
        if self._cache.delete(key):
            logger.debug(f"Render cache INVALIDATED: {key}")

    def on_change(self, event: ChangeEvent) -> None:
        """EventChannel listener: drop the changed file's rendered page."""
        self.invalidate_cache(event.path)

    def cache_stats(self) -> dict:
        return self._cache.stats()
