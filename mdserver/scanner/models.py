"""
Tree node models produced by the directory scanner.

Nodes are a tagged variant on ``type``: a DirectoryNode owns its children,
a FileNode carries its size. Both are frozen; a new tree is built on every
scan. JSON output uses camelCase field names.
"""

from datetime import datetime
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialising to camelCase while accepting snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class FileNode(CamelModel):
    """A markdown file."""

    model_config = ConfigDict(frozen=True)

    type: Literal["file"] = "file"
    name: str
    path: str
    size: int
    last_modified: datetime


class DirectoryNode(CamelModel):
    """A directory and its (filtered) contents."""

    model_config = ConfigDict(frozen=True)

    type: Literal["directory"] = "directory"
    name: str
    path: str
    last_modified: datetime
    children: List["TreeNode"] = Field(default_factory=list)
    has_markdown: bool = False


TreeNode = Annotated[Union[DirectoryNode, FileNode], Field(discriminator="type")]

DirectoryNode.model_rebuild()


class SearchResult(CamelModel):
    """Identifying fields of a matching node, without its subtree."""

    model_config = ConfigDict(frozen=True)

    type: Literal["file", "directory"]
    name: str
    path: str

    @classmethod
    def from_node(cls, node: Union[DirectoryNode, FileNode]) -> "SearchResult":
        return cls(type=node.type, name=node.name, path=node.path)
