"""Prompt assembly settings.

Loads `assembly.yaml` next to this module. Environment variables take
precedence over YAML config.

Usage:
    from srswriter.config.assembly_config import load_settings, reset_settings

    settings = load_settings()
    settings.default_base_keys("content")
    settings.is_document_aware("requirement_syncer")
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

_CONFIG_PATH = Path(__file__).parent / "assembly.yaml"
_cached_settings: Optional["AssemblySettings"] = None

ENV_TEMPLATE_ROOT = "SRSWRITER_TEMPLATE_ROOT"
ENV_EXTENSION_PATH = "SRSWRITER_EXTENSION_PATH"
ENV_PROMPT_MIN_CHARS = "SRSWRITER_PROMPT_MIN_CHARS"
ENV_PROMPT_MAX_CHARS = "SRSWRITER_PROMPT_MAX_CHARS"

# =============================================================================
# Prompt length guardrails
# =============================================================================

# A prompt below this cannot hold the ten section markers and their fallbacks.
PROMPT_MIN_FLOOR = 100

# Anything above this is almost certainly a misconfiguration.
PROMPT_MAX_CEILING = 2_000_000

DEFAULT_MIN_CHARS = 500
DEFAULT_MAX_CHARS = 120_000

DEFAULT_BASE_TEMPLATES: Tuple[str, ...] = (
    "base/common-role-definition",
    "base/output-format-schema",
    "base/{category}-specialist-workflow",
    "base/quality-guidelines",
    "base/boundary-constraints",
)


def _clamp_length_bound(value: int, name: str) -> int:
    """Clamp a prompt length bound to sanity limits with logging."""
    if value < PROMPT_MIN_FLOOR:
        logger.warning(
            "Prompt bound '%s' value %d chars is below minimum %d. Clamping to %d.",
            name,
            value,
            PROMPT_MIN_FLOOR,
            PROMPT_MIN_FLOOR,
        )
        return PROMPT_MIN_FLOOR
    if value > PROMPT_MAX_CEILING:
        logger.warning(
            "Prompt bound '%s' value %d chars exceeds maximum %d. Clamping to %d.",
            name,
            value,
            PROMPT_MAX_CEILING,
            PROMPT_MAX_CEILING,
        )
        return PROMPT_MAX_CEILING
    return value


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid %s value '%s' (expected integer). Ignoring.", name, raw)
        return None


@dataclass(frozen=True)
class AssemblySettings:
    """Resolved assembly settings."""

    template_root: Optional[str] = None
    extension_path: Optional[str] = None
    role_extensions: Tuple[str, ...] = (".poml", ".md")
    base_extensions: Tuple[str, ...] = (".md",)
    master_template: str = "master"
    orchestrator_template: str = "orchestrator"
    default_base_templates: Tuple[str, ...] = DEFAULT_BASE_TEMPLATES
    load_domain_templates: bool = False
    document_aware_process_roles: Tuple[str, ...] = ("requirement_syncer",)
    outline_candidates: Tuple[str, ...] = (
        "SRS.md",
        "srs.md",
        "Software_Requirements_Specification.md",
        "requirements.md",
    )
    requirements_candidates: Tuple[str, ...] = (
        "requirements.yaml",
        "requirements.yml",
        "Requirements.yaml",
        "Requirements.yml",
    )
    environment_ignore: Tuple[str, ...] = (
        "node_modules",
        "__pycache__",
        "dist",
        "build",
        "out",
        "venv",
        "target",
    )
    environment_max_depth: int = 1
    min_chars: int = DEFAULT_MIN_CHARS
    max_chars: int = DEFAULT_MAX_CHARS
    recommended_keywords: Tuple[str, ...] = ("Role Definition", "Output Format", "Boundary")
    golden_pass_threshold: float = 0.8
    version: str = "5.0"
    source: str = "default"  # "default" | "yaml"
    extra: Dict[str, Any] = field(default_factory=dict)

    def default_base_keys(self, category: str) -> Tuple[str, ...]:
        """Canonical base template keys for a role category, in order."""
        return tuple(k.replace("{category}", category) for k in self.default_base_templates)

    def is_document_aware(self, role_name: str) -> bool:
        """True if a process role should still receive the document outline."""
        return role_name in self.document_aware_process_roles


def _tuple(value: Any, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return default
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    logger.warning("Expected a list in assembly.yaml, got %r; using default", value)
    return default


def settings_from_dict(data: Dict[str, Any], source: str = "yaml") -> AssemblySettings:
    """Build AssemblySettings from the decoded YAML document, applying env overrides."""
    defaults = AssemblySettings()
    templates = data.get("templates") or {}
    context = data.get("context") or {}
    validation = data.get("validation") or {}
    golden = data.get("golden") or {}

    template_root = os.environ.get(ENV_TEMPLATE_ROOT) or templates.get("template_root")
    extension_path = os.environ.get(ENV_EXTENSION_PATH) or templates.get("extension_path")

    min_chars = _env_int(ENV_PROMPT_MIN_CHARS)
    if min_chars is None:
        min_chars = int(validation.get("min_chars", DEFAULT_MIN_CHARS))
    max_chars = _env_int(ENV_PROMPT_MAX_CHARS)
    if max_chars is None:
        max_chars = int(validation.get("max_chars", DEFAULT_MAX_CHARS))

    min_chars = _clamp_length_bound(min_chars, "min_chars")
    max_chars = _clamp_length_bound(max_chars, "max_chars")
    if min_chars > max_chars:
        logger.warning(
            "min_chars (%d) exceeds max_chars (%d). Clamping min_chars to max_chars.",
            min_chars,
            max_chars,
        )
        min_chars = max_chars

    threshold = float(golden.get("pass_threshold", defaults.golden_pass_threshold))
    if not 0.0 < threshold <= 1.0:
        logger.warning("golden.pass_threshold %.3f out of range (0, 1]. Using 0.8.", threshold)
        threshold = defaults.golden_pass_threshold

    max_depth = int(context.get("environment_max_depth", defaults.environment_max_depth))
    if max_depth < 1:
        logger.warning("environment_max_depth %d is below 1. Clamping to 1.", max_depth)
        max_depth = 1

    known = {"version", "templates", "context", "validation", "golden"}

    return AssemblySettings(
        template_root=template_root,
        extension_path=extension_path,
        role_extensions=_tuple(templates.get("role_extensions"), defaults.role_extensions),
        base_extensions=_tuple(templates.get("base_extensions"), defaults.base_extensions),
        master_template=templates.get("master") or defaults.master_template,
        orchestrator_template=templates.get("orchestrator") or defaults.orchestrator_template,
        default_base_templates=_tuple(
            templates.get("default_base"), defaults.default_base_templates
        ),
        load_domain_templates=bool(templates.get("load_domain_templates", False)),
        document_aware_process_roles=_tuple(
            context.get("document_aware_process_roles"),
            defaults.document_aware_process_roles,
        ),
        outline_candidates=_tuple(context.get("outline_candidates"), defaults.outline_candidates),
        requirements_candidates=_tuple(
            context.get("requirements_candidates"), defaults.requirements_candidates
        ),
        environment_ignore=_tuple(context.get("environment_ignore"), defaults.environment_ignore),
        environment_max_depth=max_depth,
        min_chars=min_chars,
        max_chars=max_chars,
        recommended_keywords=_tuple(
            validation.get("recommended_keywords"), defaults.recommended_keywords
        ),
        golden_pass_threshold=threshold,
        version=str(data.get("version", defaults.version)),
        source=source,
        extra={k: v for k, v in data.items() if k not in known},
    )


def load_settings(config_path: Optional[Path] = None) -> AssemblySettings:
    """Load assembly settings, with caching for the packaged config.

    Args:
        config_path: Alternate YAML file. Not cached.

    Returns:
        AssemblySettings with environment overrides applied.
    """
    global _cached_settings
    if config_path is None and _cached_settings is not None:
        return _cached_settings

    path = config_path or _CONFIG_PATH
    if path.exists():
        with open(path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                logger.warning("Failed to parse %s: %s. Using defaults.", path, e)
                data = {}
        if not isinstance(data, dict):
            logger.warning("%s must contain a mapping. Using defaults.", path)
            data = {}
        settings = settings_from_dict(data, source="yaml" if data else "default")
    else:
        settings = settings_from_dict({}, source="default")

    if config_path is None:
        _cached_settings = settings
    return settings


def reset_settings() -> None:
    """Reset cached settings (for testing)."""
    global _cached_settings
    _cached_settings = None
