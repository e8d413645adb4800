"""
specialist_registry.py - Discover specialists from their template frontmatter.

Scans `specialists/content/` and `specialists/process/` through a TemplateStore
and indexes every role by id (frontmatter `specialist_config.id`, else the file
stem). Implements the SpecialistRegistry protocol consumed by the engine.

Usage:
    from srswriter.config.specialist_registry import TemplateSpecialistRegistry

    registry = TemplateSpecialistRegistry(store)
    registry.list_specialists(category="content")
    registry.get_role_config("fr_writer")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from srswriter.context.providers import RoleRegistryEntry
from srswriter.prompts.store import TemplateStore
from srswriter.prompts.types import BaseSelection, RoleCategory, SelectionMode

logger = logging.getLogger(__name__)

SPECIALIST_DIRS = {
    RoleCategory.CONTENT: "specialists/content",
    RoleCategory.PROCESS: "specialists/process",
}


@dataclass(frozen=True)
class SpecialistDefinition:
    """A discovered specialist.

    Attributes:
        id: Role identifier used by callers.
        name: Display name (frontmatter name, else the id).
        category: content or process.
        enabled: Disabled roles are listed but not offered.
        template_key: Logical key of the role template.
        template_overrides: Base selection declared by the template, if any.
    """

    id: str
    name: str
    category: RoleCategory
    enabled: bool
    template_key: str
    template_overrides: Optional[BaseSelection] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "enabled": self.enabled,
            "template_key": self.template_key,
            "template_overrides": (
                {"mode": self.template_overrides.mode.value, "keys": list(self.template_overrides.keys)}
                if self.template_overrides
                else None
            ),
        }


class TemplateSpecialistRegistry:
    """Registry built lazily from the specialist templates in a store."""

    def __init__(self, store: TemplateStore):
        self.store = store
        self._specialists: Optional[Dict[str, SpecialistDefinition]] = None

    def scan(self) -> Dict[str, SpecialistDefinition]:
        """Scan the specialist directories. Later duplicates are logged and skipped."""
        found: Dict[str, SpecialistDefinition] = {}
        for category, prefix in SPECIALIST_DIRS.items():
            for key in self.store.list_templates(prefix):
                parsed = self.store.load_parsed(key)
                config = parsed.config
                stem = key.rsplit("/", 1)[-1]
                role_id = config.role_id or stem

                if config.category and config.category is not category:
                    logger.warning(
                        "Specialist %s declares category %s but lives under %s",
                        role_id,
                        config.category.value,
                        prefix,
                    )
                if role_id in found:
                    logger.warning(
                        "Duplicate specialist id '%s' in %s (already from %s)",
                        role_id,
                        key,
                        found[role_id].template_key,
                    )
                    continue

                selection = config.base_selection
                found[role_id] = SpecialistDefinition(
                    id=role_id,
                    name=config.role_alias or role_id,
                    category=config.category or category,
                    enabled=config.enabled,
                    template_key=key,
                    template_overrides=(
                        selection if selection.mode is not SelectionMode.DEFAULT else None
                    ),
                )
        logger.debug("Specialist registry scanned %d roles", len(found))
        return found

    def _all(self) -> Dict[str, SpecialistDefinition]:
        if self._specialists is None:
            self._specialists = self.scan()
        return self._specialists

    def get(self, role_id: str) -> Optional[SpecialistDefinition]:
        return self._all().get(role_id)

    def list_specialists(
        self,
        category: Optional[RoleCategory] = None,
        enabled: Optional[bool] = None,
    ) -> List[SpecialistDefinition]:
        """List specialists sorted by id, optionally filtered."""
        result = list(self._all().values())
        if category is not None:
            result = [s for s in result if s.category is category]
        if enabled is not None:
            result = [s for s in result if s.enabled == enabled]
        return sorted(result, key=lambda s: s.id)

    def get_role_config(self, role_name: str) -> Optional[RoleRegistryEntry]:
        """SpecialistRegistry protocol: alias and overrides for a role."""
        definition = self.get(role_name)
        if definition is None:
            return None
        return RoleRegistryEntry(
            resolved_alias=definition.name,
            template_overrides=definition.template_overrides,
        )

    def clear(self) -> None:
        """Forget the scan; the next lookup rescans."""
        self._specialists = None
