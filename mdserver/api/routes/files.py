"""
Content API routes: tree, rendered files, search and metadata.
"""

import stat
from datetime import datetime, timezone
from typing import Optional

import aiofiles.os
from fastapi import APIRouter, Depends, Query

from mdserver.api.schemas import (
    FileMetadata,
    FileResponse,
    MetadataResponse,
    RenderedFile,
    SearchData,
    SearchResponse,
    TreeResponse,
)
from mdserver.dependencies import get_renderer, get_scanner
from mdserver.exceptions import (
    DocumentNotFoundException,
    FileSystemException,
    InvalidQueryException,
)
from mdserver.interfaces.components import IDirectoryScanner, IMarkdownRenderer
from mdserver.rendering.markdown_renderer import normalize_relative_path
from mdserver.scanner.file_scanner import MIN_QUERY_LENGTH

router = APIRouter(tags=["files"])


def _timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


@router.get("/tree", response_model=TreeResponse)
async def get_tree(scanner: IDirectoryScanner = Depends(get_scanner)):
    """
    Get the markdown directory tree.

    Directories come before files at every level. The tree is cached and
    rescanned once the cache entry expires or the watcher reports a change.
    """
    tree = await scanner.get_tree()
    return TreeResponse(data=tree, root_path=str(scanner.root_path))


@router.get("/file/{path:path}", response_model=FileResponse)
async def get_file(
    path: str,
    renderer: IMarkdownRenderer = Depends(get_renderer),
):
    """
    Render a markdown file to HTML.

    Paths containing ``..`` or absolute paths are rejected with 403 before
    the filesystem is touched.
    """
    file_path = normalize_relative_path(path)
    html = await renderer.render_file(file_path)
    return FileResponse(
        data=RenderedFile(
            html=html,
            file_path=file_path,
            table_of_contents=renderer.extract_table_of_contents(html),
        )
    )


@router.get("/search", response_model=SearchResponse)
async def search_files(
    q: Optional[str] = Query(None, description="Substring to match against file and directory names"),
    scanner: IDirectoryScanner = Depends(get_scanner),
):
    """
    Search file and directory names.

    Matching is a case-insensitive substring test on names only.
    """
    query = (q or "").strip()
    if len(query) < MIN_QUERY_LENGTH:
        raise InvalidQueryException(
            f"Search query must be at least {MIN_QUERY_LENGTH} characters long",
            {"query": query},
        )

    results = await scanner.search(query)
    return SearchResponse(data=SearchData(query=query, results=results, total=len(results)))


@router.get("/metadata/{path:path}", response_model=MetadataResponse)
async def get_metadata(
    path: str,
    scanner: IDirectoryScanner = Depends(get_scanner),
):
    """Get stat information for a file or directory under the root."""
    relative = normalize_relative_path(path)
    full_path = scanner.root_path / relative

    try:
        stats = await aiofiles.os.stat(full_path)
    except (FileNotFoundError, NotADirectoryError) as e:
        raise DocumentNotFoundException("File not found", {"path": relative}) from e
    except OSError as e:
        raise FileSystemException(f"Failed to read metadata: {e.strerror or e}", {"path": relative}) from e

    created = getattr(stats, "st_birthtime", stats.st_ctime)
    return MetadataResponse(
        data=FileMetadata(
            path=relative,
            size=stats.st_size,
            created=_timestamp(created),
            modified=_timestamp(stats.st_mtime),
            is_directory=stat.S_ISDIR(stats.st_mode),
            is_file=stat.S_ISREG(stats.st_mode),
        )
    )
