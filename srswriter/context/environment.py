"""
environment.py - Project directory listing for the model's situational awareness.

Usage:
    from srswriter.context.environment import EnvironmentContextGatherer

    env = EnvironmentContextGatherer().gather("/path/to/project")
    for entry in env.entries:
        print(entry.relative_path)
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from srswriter.prompts.outcome import IssueKind, LoadOutcome
from srswriter.runtime.async_utils import run_blocking

from .providers import DirectoryLister, OsDirectoryLister
from .types import DirEntry, EnvironmentContext, FileEntry

logger = logging.getLogger(__name__)

DEFAULT_IGNORE = ("node_modules", "__pycache__", "dist", "build", "out", "venv", "target")


def _sort_key(entry: DirEntry):
    return (not entry.is_directory, entry.name.lower(), entry.name)


class EnvironmentContextGatherer:
    """Best-effort listing of a project root (hidden and build dirs skipped)."""

    def __init__(
        self,
        lister: Optional[DirectoryLister] = None,
        ignore: Iterable[str] = DEFAULT_IGNORE,
    ):
        self.lister = lister or OsDirectoryLister()
        self.ignore = frozenset(ignore)

    def _visible(self, entries: List[DirEntry]) -> List[DirEntry]:
        kept = [e for e in entries if not e.name.startswith(".") and e.name not in self.ignore]
        return sorted(kept, key=_sort_key)

    def _walk(self, root_dir: str, rel_parts: List[str], depth: int, max_depth: int) -> List[FileEntry]:
        path = "/".join([root_dir.rstrip("/\\")] + rel_parts) if rel_parts else root_dir
        result: List[FileEntry] = []
        for entry in self._visible(self.lister.list_entries(path)):
            parts = rel_parts + [entry.name]
            result.append(
                FileEntry(
                    name=entry.name,
                    is_directory=entry.is_directory,
                    relative_path="./" + "/".join(parts),
                )
            )
            if entry.is_directory and depth + 1 < max_depth:
                result.extend(self._walk(root_dir, parts, depth + 1, max_depth))
        return result

    def gather_outcome(self, root_dir: str, max_depth: int = 1) -> LoadOutcome[EnvironmentContext]:
        try:
            entries = self._walk(root_dir, [], 0, max(1, max_depth))
        except OSError as e:
            return LoadOutcome.degraded(
                EnvironmentContext(root_dir=root_dir),
                IssueKind.CONTEXT_SOURCE_UNAVAILABLE,
                root_dir,
                f"directory listing failed: {e}",
            )
        return LoadOutcome.success(EnvironmentContext(root_dir=root_dir, entries=entries))

    def gather(self, root_dir: str, max_depth: int = 1) -> EnvironmentContext:
        """List entries under root_dir.

        Args:
            root_dir: Project root.
            max_depth: 1 lists immediate entries only; deeper levels follow
                each directory directly after it.

        Returns:
            EnvironmentContext. Entries are empty (and a warning logged) on
            any filesystem error.
        """
        return self.gather_outcome(root_dir, max_depth).unwrap_or_log(logger)

    async def agather(self, root_dir: str, max_depth: int = 1) -> EnvironmentContext:
        return await run_blocking(self.gather, root_dir, max_depth)
