"""
store.py - Template lookup with in-memory caching.

Templates are addressed by logical keys without extension
(`base/output-format-schema`, `specialists/content/fr_writer`, `master`).

Search directories, in priority order:
1. explicit template root (constructor, SRSWRITER_TEMPLATE_ROOT, assembly.yaml)
2. development layout: <repo>/rules
3. installed layout: srswriter/rules (package data)
4. extension/installation path: $SRSWRITER_EXTENSION_PATH/rules
5. <cwd>/rules

Each store instance owns its cache; the engine constructs one and tests build
their own against a temporary tree.

Usage:
    from srswriter.prompts.store import TemplateStore

    store = TemplateStore()
    text = store.load("base/quality-guidelines")           # "" if missing
    master = store.load("master", mandatory=True)          # raises if missing
    parsed = store.load_parsed("specialists/content/fr_writer")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple

from srswriter.config.assembly_config import AssemblySettings, load_settings
from srswriter.runtime.async_utils import run_blocking

from .errors import MandatoryTemplateMissingError
from .frontmatter import parse_template
from .outcome import IssueKind, LoadOutcome
from .types import ParsedTemplate

logger = logging.getLogger(__name__)

_PACKAGE_DIR = Path(__file__).resolve().parent.parent
_REPO_DIR = _PACKAGE_DIR.parent

TEMPLATE_EXTENSIONS = (".md", ".poml")


@dataclass(frozen=True)
class TemplateStats:
    """Cache and inventory statistics."""

    cached_count: int
    average_size: float
    categories: Dict[str, int] = field(default_factory=dict)
    search_dirs: Tuple[str, ...] = ()


def default_search_dirs(settings: AssemblySettings, template_root: Optional[str] = None) -> List[Path]:
    """Get directories to search for templates, in priority order.

    Only existing directories are returned; duplicates keep their first position.
    """
    candidates: List[Path] = []
    root = template_root or settings.template_root
    if root:
        candidates.append(Path(root))
    candidates.append(_REPO_DIR / "rules")
    candidates.append(_PACKAGE_DIR / "rules")
    if settings.extension_path:
        candidates.append(Path(settings.extension_path) / "rules")
    candidates.append(Path.cwd() / "rules")

    dirs: List[Path] = []
    seen: Set[Path] = set()
    for candidate in candidates:
        try:
            resolved = candidate.resolve()
        except OSError:
            continue
        if resolved in seen or not resolved.is_dir():
            continue
        seen.add(resolved)
        dirs.append(resolved)
    return dirs


class TemplateStore:
    """Key to text lookup over the template search directories."""

    def __init__(
        self,
        template_root: Optional[str] = None,
        settings: Optional[AssemblySettings] = None,
        search_dirs: Optional[Sequence[Path]] = None,
    ):
        """
        Args:
            template_root: Explicit template root searched first.
            settings: Assembly settings; loaded from assembly.yaml if omitted.
            search_dirs: Exact directories to search. Replaces the default
                layout entirely (used by tests and embedding hosts).
        """
        self.settings = settings or load_settings()
        if search_dirs is not None:
            self.search_dirs = [Path(d) for d in search_dirs]
        else:
            self.search_dirs = default_search_dirs(self.settings, template_root)
        self._text_cache: Dict[str, str] = {}
        self._parsed_cache: Dict[str, ParsedTemplate] = {}

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def extensions_for(self, key: str) -> Tuple[str, ...]:
        """Extensions tried for a key without one (role templates prefer .poml)."""
        if key.startswith("specialist"):
            return self.settings.role_extensions
        return self.settings.base_extensions

    def candidate_paths(self, key: str) -> List[Path]:
        """All paths that would be tried for a key, in priority order."""
        key = key.replace("\\", "/").lstrip("/")
        if key.endswith(TEMPLATE_EXTENSIONS):
            relative = [key]
        else:
            relative = [f"{key}{ext}" for ext in self.extensions_for(key)]
        return [d / rel for d in self.search_dirs for rel in relative]

    def resolve(self, key: str) -> Optional[Path]:
        """Resolve a logical key to the first existing file, or None.

        Files outside every search directory (via `..` or symlinks) are never returned.
        """
        for path in self.candidate_paths(key):
            if not path.is_file():
                continue
            resolved = path.resolve()
            if not any(resolved.is_relative_to(d.resolve()) for d in self.search_dirs):
                logger.warning("Template key %r escapes the template directories; ignored", key)
                continue
            return resolved
        return None

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def _read(self, key: str) -> Tuple[Path, str]:
        path = self.resolve(key)
        if path is None:
            searched = [str(p) for p in self.candidate_paths(key)]
            raise FileNotFoundError(f"Template not found: {key}\nSearched in: {searched}")

        cache_key = str(path)
        cached = self._text_cache.get(cache_key)
        if cached is not None:
            return path, cached

        content = path.read_text(encoding="utf-8")
        self._text_cache[cache_key] = content
        logger.debug("Loaded template %s from %s (%d chars)", key, path, len(content))
        return path, content

    def load_outcome(self, key: str) -> LoadOutcome[str]:
        """Load a template as a LoadOutcome ("" plus an issue on a miss)."""
        try:
            _, content = self._read(key)
        except FileNotFoundError:
            return LoadOutcome.degraded(
                "", IssueKind.TEMPLATE_MISSING, key, "template not found in any search directory"
            )
        except (OSError, UnicodeDecodeError) as e:
            return LoadOutcome.degraded("", IssueKind.TEMPLATE_MISSING, key, f"unreadable template: {e}")
        return LoadOutcome.success(content)

    def load(self, key: str, mandatory: bool = False) -> str:
        """Load template text by logical key.

        Args:
            key: Logical key, e.g. "base/quality-guidelines".
            mandatory: Raise instead of returning "" when the template is absent.

        Returns:
            Template text, or "" for a missing optional template.

        Raises:
            MandatoryTemplateMissingError: If mandatory and not found.
        """
        if mandatory:
            try:
                return self._read(key)[1]
            except (OSError, UnicodeDecodeError) as e:
                searched = [str(p) for p in self.candidate_paths(key)]
                logger.error("Mandatory template '%s' could not be loaded: %s", key, e)
                raise MandatoryTemplateMissingError(key, searched) from e
        return self.load_outcome(key).unwrap_or_log(logger)

    def load_parsed(self, key: str, mandatory: bool = False) -> ParsedTemplate:
        """Load a template and split it into (config, body). Parsed once per path."""
        path = self.resolve(key)
        if path is not None and str(path) in self._parsed_cache:
            return self._parsed_cache[str(path)]

        text = self.load(key, mandatory=mandatory)
        parsed = parse_template(text, source=key)
        if path is not None and text:
            self._parsed_cache[str(path)] = parsed
        return parsed

    def load_first(self, keys: Sequence[str]) -> Tuple[Optional[str], ParsedTemplate]:
        """Load the first existing key of several; (None, empty) when none exist."""
        for key in keys:
            if self.resolve(key) is not None:
                return key, self.load_parsed(key)
        return None, parse_template("")

    async def aload(self, key: str, mandatory: bool = False) -> str:
        """Async form of load(); the read runs in the default executor."""
        return await run_blocking(self.load, key, mandatory)

    async def aload_parsed(self, key: str, mandatory: bool = False) -> ParsedTemplate:
        """Async form of load_parsed()."""
        return await run_blocking(self.load_parsed, key, mandatory)

    # -------------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------------

    def list_templates(self, category: Optional[str] = None) -> List[str]:
        """List logical keys of all templates, optionally under a category prefix.

        Returns:
            Sorted, de-duplicated keys (relative paths without extension).
        """
        keys: Set[str] = set()
        for template_dir in self.search_dirs:
            base = template_dir / category if category else template_dir
            if not base.is_dir():
                continue
            for path in base.rglob("*"):
                if path.is_file() and path.suffix in TEMPLATE_EXTENSIONS:
                    rel = path.relative_to(template_dir).with_suffix("")
                    keys.add(str(rel).replace("\\", "/"))
        return sorted(keys)

    def clear_cache(self) -> None:
        """Clear cached text and parsed templates."""
        self._text_cache.clear()
        self._parsed_cache.clear()

    def stats(self) -> TemplateStats:
        """Cache size and per-category template counts."""
        sizes = [len(v) for v in self._text_cache.values()]
        categories: Dict[str, int] = {}
        for key in self.list_templates():
            category = key.rsplit("/", 1)[0] if "/" in key else "root"
            categories[category] = categories.get(category, 0) + 1
        return TemplateStats(
            cached_count=len(sizes),
            average_size=(sum(sizes) / len(sizes)) if sizes else 0.0,
            categories=categories,
            search_dirs=tuple(str(d) for d in self.search_dirs),
        )
