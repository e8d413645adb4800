"""
types.py - Dataclasses for specialist prompt assembly.

These types are the contract between callers and the assembly engine:
- RoleIdentifier / AssemblyContext: what the caller supplies
- AssemblyConfig / ParsedTemplate: what a role template declares about itself
- AssembledPrompt: what the engine returns
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from .errors import InvalidContextError, InvalidRoleNameError

if TYPE_CHECKING:
    from srswriter.validator.errors import ValidationResult

logger = logging.getLogger(__name__)

# Context keys ending with this suffix are chapter templates echoed into section 8.
CHAPTER_TEMPLATE_SUFFIX = "_TEMPLATE"

# Role names map straight onto template file names.
ROLE_NAME_PATTERN = re.compile(r"\w[\w-]*")

# Version tag of the ten-section layout rendered by the engine.
PROMPT_LAYOUT_VERSION = "5.0"


class RoleCategory(str, Enum):
    """Role family of a specialist."""

    CONTENT = "content"
    PROCESS = "process"


class WorkflowMode(str, Enum):
    """Project workflow mode used to select tagged template sections."""

    GREENFIELD = "greenfield"
    BROWNFIELD = "brownfield"


class IterationPhase(str, Enum):
    """Where the specialist is within its iteration budget."""

    EARLY = "early"
    MIDDLE = "middle"
    FINAL = "final"


class SelectionMode(str, Enum):
    """How the shared (base) template set is chosen."""

    DEFAULT = "default"
    WHITELIST = "whitelist"
    BLACKLIST = "blacklist"


def normalize_base_key(name: str) -> str:
    """Normalize a base template reference to its canonical key.

    "output-format-schema.md", "output-format-schema" and
    "base/output-format-schema" all become "base/output-format-schema".
    """
    key = name.strip().replace("\\", "/")
    if key.endswith(".md"):
        key = key[: -len(".md")]
    if not key.startswith("base/"):
        key = f"base/{key}"
    return key


# =============================================================================
# Template configuration
# =============================================================================


@dataclass(frozen=True)
class BaseSelection:
    """Tagged variant for the shared template set.

    WHITELIST: exactly `keys` are loaded.
    BLACKLIST: the default set minus `keys`.
    DEFAULT: the default set.
    """

    mode: SelectionMode = SelectionMode.DEFAULT
    keys: Tuple[str, ...] = ()

    @classmethod
    def from_lists(
        cls,
        include_base: Optional[List[str]] = None,
        exclude_base: Optional[List[str]] = None,
    ) -> "BaseSelection":
        """Build a selection; a non-empty include list always wins."""
        if include_base:
            return cls(SelectionMode.WHITELIST, tuple(normalize_base_key(k) for k in include_base))
        if exclude_base:
            return cls(SelectionMode.BLACKLIST, tuple(normalize_base_key(k) for k in exclude_base))
        return cls()

    def resolve(self, default_keys: Tuple[str, ...]) -> Tuple[str, ...]:
        """Return the ordered list of base template keys to load."""
        if self.mode is SelectionMode.WHITELIST:
            return self.keys
        if self.mode is SelectionMode.BLACKLIST:
            excluded = set(self.keys)
            return tuple(k for k in default_keys if k not in excluded)
        return tuple(default_keys)


@dataclass(frozen=True)
class AssemblyConfig:
    """Configuration declared in a template's frontmatter block."""

    base_selection: BaseSelection = field(default_factory=BaseSelection)
    role_definition: Optional[str] = None
    workflow_mode_tags: Dict[str, str] = field(default_factory=dict)
    role_alias: Optional[str] = None
    domain_template: Optional[str] = None
    category: Optional[RoleCategory] = None
    enabled: bool = True
    role_id: Optional[str] = None

    def with_overrides(
        self,
        base_selection: Optional[BaseSelection] = None,
        role_alias: Optional[str] = None,
    ) -> "AssemblyConfig":
        """Return a copy with registry-supplied overrides applied."""
        return AssemblyConfig(
            base_selection=base_selection or self.base_selection,
            role_definition=self.role_definition,
            workflow_mode_tags=dict(self.workflow_mode_tags),
            role_alias=role_alias or self.role_alias,
            domain_template=self.domain_template,
            category=self.category,
            enabled=self.enabled,
            role_id=self.role_id,
        )


@dataclass(frozen=True)
class WorkflowSection:
    """A span of template text starting at a second-level heading.

    `heading` is the heading line without its line terminator; `text` is the
    full span (heading line included) exactly as it appeared in the source.
    """

    heading: str
    text: str
    mode_tag: Optional[str] = None

    @property
    def body(self) -> str:
        return self.text[len(self.heading):]


@dataclass(frozen=True)
class ParsedTemplate:
    """A template split into its configuration and its body."""

    config: AssemblyConfig
    body: str
    has_config_block: bool = False
    config_warnings: Tuple[str, ...] = ()


# =============================================================================
# Caller context
# =============================================================================


@dataclass(frozen=True)
class RoleIdentifier:
    """Name and category of the specialist being assembled."""

    name: str
    category: RoleCategory = RoleCategory.CONTENT

    def __post_init__(self):
        if not isinstance(self.name, str) or not ROLE_NAME_PATTERN.fullmatch(self.name):
            raise InvalidRoleNameError(self.name)

    @classmethod
    def of(cls, name: str, category: str = "content") -> "RoleIdentifier":
        try:
            cat = RoleCategory(category)
        except ValueError:
            logger.warning("Unknown role category '%s' for %s, using content", category, name)
            cat = RoleCategory.CONTENT
        return cls(name=name, category=cat)


@dataclass(frozen=True)
class IterationState:
    """Iteration budget of the running specialist."""

    current: int
    maximum: int
    remaining: int
    phase: IterationPhase = IterationPhase.EARLY
    guidance: str = ""


@dataclass(frozen=True)
class ResumeGuidance:
    """What the specialist asked before pausing for the user."""

    continue_instructions: Tuple[str, ...] = ()
    user_question: Optional[str] = None


@dataclass(frozen=True)
class ChapterTemplate:
    """A chapter/section template echoed verbatim into section 8."""

    name: str
    content: str


@dataclass
class AssemblyContext:
    """Everything the caller knows about the current turn.

    At least one of `user_input` / `current_step` is required.
    Open-ended template variables go in `variables`, chapter templates in
    `chapter_templates` (ordered).
    """

    user_input: Optional[str] = None
    current_step: Optional[Dict[str, Any]] = None
    workflow_mode: Optional[WorkflowMode] = None
    iteration: Optional[IterationState] = None
    project_metadata: Optional[Dict[str, Any]] = None
    project_root: Optional[str] = None
    tool_schema_text: Optional[str] = None
    chapter_templates: List[ChapterTemplate] = field(default_factory=list)
    prior_thoughts: Optional[str] = None
    user_response: Optional[str] = None
    resume_guidance: Optional[ResumeGuidance] = None
    history_entries: List[str] = field(default_factory=list)
    variables: Dict[str, str] = field(default_factory=dict)
    language: Optional[str] = None

    def __post_init__(self):
        if not (self.user_input and self.user_input.strip()) and not self.current_step:
            raise InvalidContextError(
                "AssemblyContext requires user_input or current_step"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssemblyContext":
        """Parse the loosely-typed context bag. See assembly_context_from_dict."""
        return assembly_context_from_dict(data)


def _mapping_field(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    """Return data[key] as a mapping; absent or empty values become {}."""
    value = data.get(key)
    if not value:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidContextError(f"'{key}' must be an object, got {type(value).__name__}")
    return value


def _str_field(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None or isinstance(value, str):
        return value
    raise InvalidContextError(f"'{key}' must be a string, got {type(value).__name__}")


def _int_field(data: Mapping[str, Any], *keys: str) -> int:
    for key in keys:
        if data.get(key) is not None:
            try:
                return int(data[key])
            except (TypeError, ValueError):
                raise InvalidContextError(f"iterationInfo.{key} must be an integer, got {data[key]!r}")
    return 0


def _iteration_from_dict(data: Mapping[str, Any]) -> IterationState:
    phase_str = data.get("phase", "early")
    try:
        phase = IterationPhase(phase_str)
    except ValueError:
        phase = IterationPhase.EARLY
    return IterationState(
        current=_int_field(data, "currentIteration", "current"),
        maximum=_int_field(data, "maxIterations", "max"),
        remaining=_int_field(data, "remainingIterations", "remaining"),
        phase=phase,
        guidance=str(data.get("strategyGuidance", data.get("guidance", "")) or ""),
    )


def assembly_context_from_dict(data: Mapping[str, Any]) -> AssemblyContext:
    """Parse an AssemblyContext from the loosely-typed context bag.

    Accepts the legacy keys used by the editor host (userRequirements,
    workflow_mode, iterationInfo, structuredContext.currentStep, ...). Any key
    ending in `_TEMPLATE` becomes a chapter template, in encounter order; other
    string values are kept as template variables.

    Raises InvalidContextError when a nested value has the wrong shape, e.g.
    `resumeGuidance` given as a string or a non-numeric iteration count.
    """
    structured = _mapping_field(data, "structuredContext")

    mode_str = data.get("workflow_mode")
    workflow_mode: Optional[WorkflowMode] = None
    if mode_str:
        try:
            workflow_mode = WorkflowMode(mode_str)
        except ValueError:
            logger.warning("Unknown workflow_mode '%s' ignored", mode_str)

    iteration_data = _mapping_field(data, "iterationInfo")
    iteration = _iteration_from_dict(iteration_data) if iteration_data else None

    resume_data = _mapping_field(data, "resumeGuidance")
    resume = None
    if resume_data:
        instructions = resume_data.get("continueInstructions") or ()
        if isinstance(instructions, str):
            instructions = (instructions,)
        elif not isinstance(instructions, (list, tuple)):
            raise InvalidContextError("resumeGuidance.continueInstructions must be a list of strings")
        question = resume_data.get("userQuestion")
        resume = ResumeGuidance(
            continue_instructions=tuple(str(i) for i in instructions),
            user_question=str(question) if question is not None else None,
        )

    known = {
        "userRequirements", "userInput", "workflow_mode", "iterationInfo",
        "projectMetadata", "TOOLS_JSON_SCHEMA", "PREVIOUS_THOUGHTS",
        "userResponse", "resumeGuidance", "structuredContext", "language",
        "projectRoot",
    }

    chapters: List[ChapterTemplate] = []
    variables: Dict[str, str] = {}
    for key, value in data.items():
        if key in known:
            continue
        if key.endswith(CHAPTER_TEMPLATE_SUFFIX):
            chapters.append(ChapterTemplate(name=key, content=str(value or "")))
        elif isinstance(value, (str, int, float)):
            variables[key] = str(value)

    history = structured.get("internalHistory") or []
    if not isinstance(history, list):
        history = []

    current_step = structured.get("currentStep")
    if current_step is not None and not isinstance(current_step, Mapping):
        raise InvalidContextError("structuredContext.currentStep must be an object")

    tool_schema = data.get("TOOLS_JSON_SCHEMA")
    if tool_schema is not None and not isinstance(tool_schema, str):
        tool_schema = json.dumps(tool_schema, indent=2, ensure_ascii=False)

    metadata = _mapping_field(data, "projectMetadata")

    return AssemblyContext(
        user_input=_str_field(data, "userRequirements") or _str_field(data, "userInput"),
        current_step=dict(current_step) if current_step else None,
        workflow_mode=workflow_mode,
        iteration=iteration,
        project_metadata=dict(metadata) if metadata else None,
        project_root=_str_field(data, "projectRoot"),
        tool_schema_text=tool_schema,
        chapter_templates=chapters,
        prior_thoughts=_str_field(data, "PREVIOUS_THOUGHTS"),
        user_response=_str_field(data, "userResponse"),
        resume_guidance=resume,
        history_entries=[str(h) for h in history],
        variables=variables,
        language=_str_field(data, "language"),
    )


# =============================================================================
# Output
# =============================================================================


@dataclass(frozen=True)
class AssembledPrompt:
    """Result of prompt assembly with metadata."""

    content: str
    content_hash: str
    role_name: str
    layout_version: str = PROMPT_LAYOUT_VERSION
    base_templates: Tuple[str, ...] = ()
    validation: Optional["ValidationResult"] = None

    def __str__(self) -> str:
        return self.content
