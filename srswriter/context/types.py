"""
types.py - Data types for gathered project context.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class DirEntry:
    """Raw directory entry as reported by a DirectoryLister."""

    name: str
    is_directory: bool


@dataclass(frozen=True)
class FileEntry:
    """A listed project entry with its `./`-prefixed forward-slash path."""

    name: str
    is_directory: bool
    relative_path: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "is_directory": self.is_directory,
            "relative_path": self.relative_path,
        }


@dataclass(frozen=True)
class EnvironmentContext:
    """Project directory listing given to the model for situational awareness."""

    root_dir: str
    entries: List[FileEntry] = field(default_factory=list)

    def display_lines(self) -> List[str]:
        if not self.entries:
            return ["- No files found in project directory"]
        return [
            f"- {e.relative_path}{' (directory)' if e.is_directory else ''}"
            for e in self.entries
        ]


@dataclass
class OutlineNode:
    """A heading of the working document with its stable section identifier."""

    title: str
    sid: str
    level: int
    start_line: int
    end_line: int
    children: List["OutlineNode"] = field(default_factory=list)

    def walk(self):
        """Pre-order traversal: self, then children in document order."""
        yield self
        for child in self.children:
            yield from child.walk()


def outline_node_from_dict(data: Dict[str, Any]) -> OutlineNode:
    """Parse an OutlineNode from a provider dict.

    Accepts both snake_case and the camelCase keys of external providers
    (stableId, startLine, endLine).
    """
    return OutlineNode(
        title=str(data.get("title", "")),
        sid=str(data.get("sid", data.get("stableId", ""))),
        level=int(data.get("level", 1)),
        start_line=int(data.get("start_line", data.get("startLine", 0))),
        end_line=int(data.get("end_line", data.get("endLine", 0))),
        children=[outline_node_from_dict(c) for c in data.get("children", [])],
    )


@dataclass(frozen=True)
class Outline:
    """Heading tree of the primary working document (empty when unavailable)."""

    nodes: List[OutlineNode] = field(default_factory=list)
    source: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.nodes
