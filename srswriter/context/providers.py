"""
providers.py - Interfaces of the external collaborators the pipeline consumes.

Each protocol has a filesystem-backed default so the engine works standalone;
an embedding host replaces them with its own project and session services.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from srswriter.prompts.types import BaseSelection

from .types import DirEntry, OutlineNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleRegistryEntry:
    """Registry view of a role: display alias and base-template overrides."""

    resolved_alias: Optional[str] = None
    template_overrides: Optional[BaseSelection] = None


class DirectoryLister(Protocol):
    def list_entries(self, path: str) -> List[DirEntry]:
        ...


class OutlineProvider(Protocol):
    def get_outline(self, document_path: str) -> Optional[List[OutlineNode]]:
        ...


class SpecialistRegistry(Protocol):
    def get_role_config(self, role_name: str) -> Optional[RoleRegistryEntry]:
        ...


class ToolSchemaProvider(Protocol):
    def get_tool_schema(self, caller_category: str) -> Optional[str]:
        ...


class ProjectMetadataProvider(Protocol):
    def get_active_project_root(self) -> Optional[str]:
        ...

    def get_session_id(self) -> str:
        ...


# =============================================================================
# Default implementations
# =============================================================================


class OsDirectoryLister:
    """List a directory with os.scandir. OSError propagates to the gatherer."""

    def list_entries(self, path: str) -> List[DirEntry]:
        with os.scandir(path) as it:
            return [DirEntry(name=e.name, is_directory=e.is_dir()) for e in it]


HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
FENCE_PATTERN = re.compile(r"^\s{0,3}(```|~~~)")


def slugify(title: str) -> str:
    """Lower-case, word characters and hyphens only."""
    slug = re.sub(r"[^\w\s-]", "", title.lower())
    slug = re.sub(r"[\s_]+", "-", slug).strip("-")
    return slug or "section"


class MarkdownOutlineProvider:
    """Build a heading tree from ATX headings outside fenced code blocks.

    Section identifiers are slug paths (`/introduction/purpose`); repeated
    sibling slugs get `-1`, `-2` suffixes.
    """

    def get_outline(self, document_path: str) -> Optional[List[OutlineNode]]:
        path = Path(document_path)
        if not path.is_file():
            return None
        text = path.read_text(encoding="utf-8")
        return self.parse(text)

    def parse(self, text: str) -> List[OutlineNode]:
        lines = text.splitlines()
        roots: List[OutlineNode] = []
        stack: List[OutlineNode] = []
        flat: List[OutlineNode] = []
        sibling_slugs: Dict[int, Dict[str, int]] = {}
        fence: Optional[str] = None

        for line_no, line in enumerate(lines, start=1):
            fence_match = FENCE_PATTERN.match(line)
            if fence_match:
                marker = fence_match.group(1)
                if fence is None:
                    fence = marker
                elif marker == fence:
                    fence = None
                continue
            if fence is not None:
                continue
            match = HEADING_PATTERN.match(line)
            if not match:
                continue

            level = len(match.group(1))
            title = match.group(2).strip()
            while stack and stack[-1].level >= level:
                stack.pop()
            parent = stack[-1] if stack else None

            used = sibling_slugs.setdefault(id(parent), {})
            slug = slugify(title)
            count = used.get(slug, 0)
            used[slug] = count + 1
            if count:
                slug = f"{slug}-{count}"
            prefix = parent.sid if parent else ""

            node = OutlineNode(
                title=title,
                sid=f"{prefix}/{slug}",
                level=level,
                start_line=line_no,
                end_line=len(lines),
            )
            if parent:
                parent.children.append(node)
            else:
                roots.append(node)
            stack.append(node)
            flat.append(node)

        # A section ends right before the next heading at the same or higher level
        for i, node in enumerate(flat):
            for later in flat[i + 1:]:
                if later.level <= node.level:
                    node.end_line = later.start_line - 1
                    break
        return roots


class StaticToolSchemaProvider:
    """Serve fixed schema text per caller category."""

    def __init__(self, schemas: Optional[Dict[str, str]] = None, default: Optional[str] = None):
        self._schemas = dict(schemas or {})
        self._default = default

    def get_tool_schema(self, caller_category: str) -> Optional[str]:
        return self._schemas.get(caller_category, self._default)


class StaticProjectMetadataProvider:
    """Fixed project root and session id."""

    def __init__(self, project_root: Optional[str] = None, session_id: str = ""):
        self._project_root = project_root
        self._session_id = session_id

    def get_active_project_root(self) -> Optional[str]:
        return self._project_root

    def get_session_id(self) -> str:
        return self._session_id
