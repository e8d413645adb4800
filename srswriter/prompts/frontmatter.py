"""
frontmatter.py - Parse the YAML configuration block at the head of a template.

A specialist template may open with a frontmatter block:

    ---
    assembly_config:
      include_base: ["output-format-schema.md"]
      role_definition: "requirements analyst"
    specialist_config:
      name: "Functional Requirements Writer"
      category: content
      workflow_mode_config:
        greenfield: "GREEN"
        brownfield: "BROWN"
    ---
    # Body starts here

Both historical layouts (`assembly_config` and `specialist_config`) are merged
into a single AssemblyConfig. Authoring errors never raise: they are logged as
warnings and the offending key is ignored.

Usage:
    from srswriter.prompts.frontmatter import parse_template

    parsed = parse_template(raw_text)
    parsed.config.base_selection.resolve(DEFAULT_BASE_KEYS)
    parsed.body
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .types import (
    AssemblyConfig,
    BaseSelection,
    ParsedTemplate,
    RoleCategory,
    WorkflowMode,
)

logger = logging.getLogger(__name__)

# Frontmatter: a leading "---" line, the block, a closing "---" line.
FRONTMATTER_PATTERN = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)

_ASSEMBLY_KEYS = {"include_base", "exclude_base", "role_definition", "domain_template"}
_SPECIALIST_KEYS = {
    "id",
    "name",
    "category",
    "version",
    "description",
    "enabled",
    "role_definition",
    "template_config",
    "workflow_mode_config",
    "capabilities",
    "iteration_config",
    "task_completion_config",
    "tags",
}
_TOP_LEVEL_KEYS = {"assembly_config", "specialist_config"}


def split_frontmatter(text: str) -> Tuple[Optional[str], str]:
    """Split raw template text into (frontmatter_source, body).

    Returns (None, text) unchanged when the text does not open with a block.
    """
    match = FRONTMATTER_PATTERN.match(text)
    if not match:
        return None, text
    return match.group(1), text[match.end():]


def _string_list(value: Any, key: str, warnings: List[str]) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    warnings.append(f"{key} must be a list of strings, got {type(value).__name__}")
    return None


def _optional_str(value: Any, key: str, warnings: List[str]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    warnings.append(f"{key} must be a string, got {type(value).__name__}")
    return None


def _mapping(value: Any, key: str, warnings: List[str]) -> Dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    warnings.append(f"{key} must be a mapping, got {type(value).__name__}")
    return {}


def _warn_unknown(section: Dict[str, Any], allowed: set, prefix: str, warnings: List[str]) -> None:
    for key in section:
        if key not in allowed:
            warnings.append(f"unknown key '{prefix}{key}' ignored")


def _workflow_tags(value: Any, warnings: List[str]) -> Dict[str, str]:
    tags: Dict[str, str] = {}
    for mode_name, tag in _mapping(value, "workflow_mode_config", warnings).items():
        try:
            mode = WorkflowMode(str(mode_name))
        except ValueError:
            warnings.append(f"unknown workflow mode '{mode_name}' ignored")
            continue
        if not isinstance(tag, str) or not tag.strip():
            warnings.append(f"workflow_mode_config.{mode.value} must be a non-empty string")
            continue
        tags[mode.value] = tag.strip()
    return tags


def config_from_dict(data: Dict[str, Any], warnings: List[str]) -> AssemblyConfig:
    """Build an AssemblyConfig from decoded frontmatter.

    Problems are appended to `warnings`; the result always exists.
    """
    _warn_unknown(data, _TOP_LEVEL_KEYS, "", warnings)

    assembly = _mapping(data.get("assembly_config"), "assembly_config", warnings)
    specialist = _mapping(data.get("specialist_config"), "specialist_config", warnings)
    _warn_unknown(assembly, _ASSEMBLY_KEYS, "assembly_config.", warnings)
    _warn_unknown(specialist, _SPECIALIST_KEYS, "specialist_config.", warnings)

    include_base = _string_list(assembly.get("include_base"), "include_base", warnings)
    exclude_base = _string_list(assembly.get("exclude_base"), "exclude_base", warnings)

    # specialist_config.template_config wins over assembly_config for base lists
    template_config = _mapping(specialist.get("template_config"), "template_config", warnings)
    if template_config:
        include_base = _string_list(template_config.get("include_base"), "include_base", warnings)
        exclude_base = _string_list(template_config.get("exclude_base"), "exclude_base", warnings)

    role_definition = _optional_str(
        specialist.get("role_definition", assembly.get("role_definition")),
        "role_definition",
        warnings,
    )

    category: Optional[RoleCategory] = None
    category_str = specialist.get("category")
    if category_str is not None:
        try:
            category = RoleCategory(str(category_str))
        except ValueError:
            warnings.append(f"unknown category '{category_str}' ignored")

    enabled = specialist.get("enabled", True)
    if not isinstance(enabled, bool):
        warnings.append("specialist_config.enabled must be a boolean")
        enabled = True

    return AssemblyConfig(
        base_selection=BaseSelection.from_lists(include_base, exclude_base),
        role_definition=role_definition,
        workflow_mode_tags=_workflow_tags(specialist.get("workflow_mode_config"), warnings),
        role_alias=_optional_str(specialist.get("name"), "specialist_config.name", warnings),
        domain_template=_optional_str(
            assembly.get("domain_template"), "assembly_config.domain_template", warnings
        ),
        category=category,
        enabled=enabled,
        role_id=_optional_str(specialist.get("id"), "specialist_config.id", warnings),
    )


def parse_template(text: str, source: str = "<template>") -> ParsedTemplate:
    """Parse a template into its configuration and body.

    Args:
        text: Raw template text.
        source: Template key or path, used in log messages.

    Returns:
        ParsedTemplate. Without a frontmatter block the config is the default
        and the body is the original text unchanged.
    """
    block, body = split_frontmatter(text)
    if block is None:
        return ParsedTemplate(config=AssemblyConfig(), body=text)

    warnings: List[str] = []
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as e:
        warnings.append(f"invalid YAML frontmatter: {e}")
        data = None

    if data is None:
        config = AssemblyConfig()
    elif not isinstance(data, dict):
        warnings.append(f"frontmatter must be a mapping, got {type(data).__name__}")
        config = AssemblyConfig()
    else:
        config = config_from_dict(data, warnings)

    for message in warnings:
        logger.warning("Template %s: %s", source, message)

    return ParsedTemplate(
        config=config,
        body=body,
        has_config_block=True,
        config_warnings=tuple(warnings),
    )
