"""
outline.py - Load the working document's heading tree and requirements data.

The outline is advisory: every failure becomes an empty outline plus a warning.
Nothing is cached across calls, so each assembly sees the current document.

Usage:
    from srswriter.context.outline import OutlineLoader, flatten_to_display_lines

    loader = OutlineLoader()
    outline = loader.load_outline("/path/to/project")
    toc = "\\n".join(flatten_to_display_lines(outline))
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

from srswriter.prompts.outcome import IssueKind, LoadOutcome
from srswriter.runtime.async_utils import run_blocking

from .providers import MarkdownOutlineProvider, OutlineProvider
from .types import Outline, OutlineNode

logger = logging.getLogger(__name__)

DEFAULT_OUTLINE_CANDIDATES = (
    "SRS.md",
    "srs.md",
    "Software_Requirements_Specification.md",
    "requirements.md",
)

DEFAULT_REQUIREMENTS_CANDIDATES = (
    "requirements.yaml",
    "requirements.yml",
    "Requirements.yaml",
    "Requirements.yml",
)


def flatten_to_display_lines(outline: Outline) -> List[str]:
    """Pre-order lines of the form `## Title  SID: /sid`."""
    lines = []
    for root in outline.nodes:
        for node in root.walk():
            lines.append(f"{'#' * node.level} {node.title}  SID: {node.sid}")
    return lines


class OutlineLoader:
    """Try candidate document names in order and return the first outline."""

    def __init__(
        self,
        provider: Optional[OutlineProvider] = None,
        candidates: Sequence[str] = DEFAULT_OUTLINE_CANDIDATES,
        requirements_candidates: Sequence[str] = DEFAULT_REQUIREMENTS_CANDIDATES,
    ):
        self.provider = provider or MarkdownOutlineProvider()
        self.candidates = tuple(candidates)
        self.requirements_candidates = tuple(requirements_candidates)

    def load_outline_outcome(self, project_root: str) -> LoadOutcome[Outline]:
        for name in self.candidates:
            document_path = os.path.join(project_root, name)
            try:
                nodes: Optional[List[OutlineNode]] = self.provider.get_outline(document_path)
            except Exception as e:  # provider is external; any failure means "try the next"
                logger.warning("Outline provider failed for %s: %s", document_path, e)
                continue
            if nodes:
                logger.debug("Loaded outline from %s (%d top-level headings)", document_path, len(nodes))
                return LoadOutcome.success(Outline(nodes=list(nodes), source=document_path))

        return LoadOutcome.degraded(
            Outline(),
            IssueKind.CONTEXT_SOURCE_UNAVAILABLE,
            project_root,
            f"no document outline found (tried {', '.join(self.candidates)})",
        )

    def load_outline(self, project_root: str) -> Outline:
        """Return the first non-empty outline among the candidates, else empty."""
        return self.load_outline_outcome(project_root).unwrap_or_log(logger)

    async def aload_outline(self, project_root: str) -> Outline:
        return await run_blocking(self.load_outline, project_root)

    def load_requirements_data(self, project_root: str) -> str:
        """Text of the first existing requirements YAML file, or ""."""
        for name in self.requirements_candidates:
            path = Path(project_root) / name
            if not path.is_file():
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Failed to read %s: %s", path, e)
                continue
            logger.debug("Loaded requirements data from %s (%d chars)", path, len(content))
            return content
        logger.debug("No requirements data under %s", project_root)
        return ""

    async def aload_requirements_data(self, project_root: str) -> str:
        return await run_blocking(self.load_requirements_data, project_root)
