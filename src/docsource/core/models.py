"""
Pydantic records for the docsource content graph.

Records fall into three groups:
- File reading (FileUnit), ephemeral and discarded after a node is built
- Graph entities (DocNode, StubNode, SidebarNode) registered in a collection
- Configuration and reporting values (ReferenceSpec, IngestReport)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..errors import FileReadError

# Node fields owned by the ingestor; frontmatter may not overwrite them.
RESERVED_FIELDS = frozenset(
    {"id", "path", "file_info", "internal", "version", "section", "next", "prev"}
)


class FileUnit(BaseModel):
    """A file read once from disk, relative to the source base directory."""

    origin: Path = Field(..., description="Absolute path of the file")
    relative_path: str = Field(..., description="POSIX path relative to base_dir")
    directory: str = Field("", description="Relative directory, '' for the base_dir itself")
    name: str = Field(..., description="Base name without extension")
    extension: str = Field("", description="Extension including the dot, or ''")
    content: str
    mime_type: str


class FileInfo(BaseModel):
    extension: str
    directory: str
    path: str
    name: str


class NodeInternal(BaseModel):
    mime_type: str
    content: str
    origin: str = Field(..., description="Absolute origin path, used to locate a node on removal")


class DocNode(BaseModel):
    """A file node in the content graph.

    Extra keys (frontmatter such as ``title``, ``weight`` or ``author``) are kept
    as top-level fields so that references and sidebar ordering can read them.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    path: str
    file_info: FileInfo
    internal: NodeInternal
    version: Optional[str] = None
    section: Optional[str] = None
    weight: Optional[float] = None
    next: Optional[str] = None
    prev: Optional[str] = None


class ReferenceSpec(BaseModel):
    """Normalized reference declaration for one node field."""

    model_config = ConfigDict(frozen=True)

    type_name: str
    create: bool = False
    route: Optional[str] = None


class StubNode(BaseModel):
    """Minimal node created to satisfy a reference target."""

    id: Any
    title: Any


class SidebarSection(BaseModel):
    title: str
    items: List[str] = Field(default_factory=list)


class SidebarNode(BaseModel):
    """One navigation record per version."""

    id: str
    sections: List[SidebarSection] = Field(default_factory=list)


class IngestReport(BaseModel):
    """Outcome of a bulk ingestion run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    discovered: int = 0
    nodes: List[DocNode] = Field(default_factory=list)
    errors: List[FileReadError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def summary(self) -> Dict[str, int]:
        return {
            "discovered": self.discovered,
            "registered": len(self.nodes),
            "failed": len(self.errors),
        }
