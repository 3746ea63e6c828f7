"""
Response models for the JSON API.

Every response carries ``success``; field names are camelCase on the wire.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from mdserver.rendering.markdown_renderer import TocEntry
from mdserver.scanner.models import CamelModel, SearchResult, TreeNode


class TreeResponse(CamelModel):
    """Directory tree of the content root."""
    success: bool = True
    data: List[TreeNode]
    root_path: str


class RenderedFile(CamelModel):
    """A rendered markdown page."""
    html: str
    file_path: str
    table_of_contents: List[TocEntry]


class FileResponse(CamelModel):
    success: bool = True
    data: RenderedFile


class SearchData(CamelModel):
    """Filename search results."""
    query: str
    results: List[SearchResult]
    total: int


class SearchResponse(CamelModel):
    success: bool = True
    data: SearchData


class FileMetadata(CamelModel):
    """Stat information for a path under the root."""
    path: str
    size: int
    created: datetime
    modified: datetime
    is_directory: bool
    is_file: bool


class MetadataResponse(CamelModel):
    success: bool = True
    data: FileMetadata


class MessageResponse(CamelModel):
    """Acknowledgement for state-changing endpoints."""
    success: bool = True
    message: str
    data: Optional[Dict[str, Any]] = None


class HealthResponse(CamelModel):
    success: bool = True
    data: Dict[str, Any]
