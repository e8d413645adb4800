"""
engine.py - Assemble specialist prompts from layered templates and project context.

Pipeline for one call:
0. load the mandatory master template (the only fatal failure)
1. resolve the role template and its frontmatter config (+ registry overrides)
2. resolve the shared (base) template set from the config's include/exclude lists
3. filter the role body by workflow mode
4. gather environment listing, document outline, requirements data and tool
   schema concurrently
5. substitute {{NAME}} placeholders
6. render the ten fixed sections
7. run advisory validation

Every missing resource other than the master template degrades to its
fallback text plus a WARNING log line.

Usage:
    from srswriter.prompts.engine import TemplateAssemblyEngine
    from srswriter.prompts.types import AssemblyContext, RoleIdentifier

    engine = TemplateAssemblyEngine()
    prompt = engine.assemble_sync(
        RoleIdentifier.of("fr_writer", "content"),
        AssemblyContext(user_input="Write the functional requirements", project_root="."),
    )
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from srswriter.config.assembly_config import AssemblySettings, load_settings
from srswriter.context.environment import EnvironmentContextGatherer
from srswriter.context.outline import OutlineLoader, flatten_to_display_lines
from srswriter.context.providers import (
    ProjectMetadataProvider,
    SpecialistRegistry,
    ToolSchemaProvider,
)
from srswriter.context.types import EnvironmentContext, Outline
from srswriter.runtime.async_utils import run_async_safely, run_blocking
from srswriter.validator.errors import ValidationResult

from .outcome import IssueKind, LoadOutcome
from .sections import SectionInputs, render_prompt
from .store import TemplateStats, TemplateStore
from .types import (
    AssembledPrompt,
    AssemblyConfig,
    AssemblyContext,
    ParsedTemplate,
    RoleCategory,
    RoleIdentifier,
)
from .validation import PLACEHOLDER_PATTERN, log_validation, validate_prompt
from .workflow_filter import filter_by_workflow_mode

logger = logging.getLogger(__name__)

# Minimum body size for a base template to count as present in the consistency report.
MIN_BASE_TEMPLATE_CHARS = 50


def role_template_keys(role_name: str) -> List[str]:
    """Candidate keys for a role template, in priority order."""
    return [
        f"specialists/content/{role_name}",
        f"specialists/process/{role_name}",
        f"specialists/{role_name}",
        f"specialist/{role_name}-specific",
    ]


def substitute(text: str, variables: Dict[str, str]) -> str:
    """Replace {{NAME}} with variables[NAME]; unknown names stay literal. Single pass."""
    if "{{" not in text:
        return text
    return PLACEHOLDER_PATTERN.sub(lambda m: variables.get(m.group(1), m.group(0)), text)


@dataclass
class TemplateConsistencyReport:
    """Result of validate_template_consistency()."""

    result: ValidationResult
    template_count: int = 0
    specialists_checked: int = 0
    missing_templates: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.result.has_errors()

    def to_dict(self) -> Dict[str, object]:
        data = self.result.to_dict()
        data.update(
            {
                "template_count": self.template_count,
                "specialists_checked": self.specialists_checked,
                "missing_templates": list(self.missing_templates),
            }
        )
        return data


@dataclass
class _GatheredContext:
    environment: Optional[EnvironmentContext] = None
    outline: Outline = field(default_factory=Outline)
    requirements: str = ""
    tool_schema: Optional[str] = None
    session_id: str = ""


class TemplateAssemblyEngine:
    """Builds the ten-section prompt for a specialist role."""

    def __init__(
        self,
        store: Optional[TemplateStore] = None,
        registry: Optional[SpecialistRegistry] = None,
        environment: Optional[EnvironmentContextGatherer] = None,
        outline_loader: Optional[OutlineLoader] = None,
        tool_schema_provider: Optional[ToolSchemaProvider] = None,
        metadata_provider: Optional[ProjectMetadataProvider] = None,
        settings: Optional[AssemblySettings] = None,
    ):
        self.settings = settings or (store.settings if store else load_settings())
        self.store = store or TemplateStore(settings=self.settings)
        self.registry = registry
        self.environment = environment or EnvironmentContextGatherer(
            ignore=self.settings.environment_ignore
        )
        self.outline_loader = outline_loader or OutlineLoader(
            candidates=self.settings.outline_candidates,
            requirements_candidates=self.settings.requirements_candidates,
        )
        self.tool_schema_provider = tool_schema_provider
        self.metadata_provider = metadata_provider

    # -------------------------------------------------------------------------
    # Stage 1-3: templates
    # -------------------------------------------------------------------------

    def _resolve_role(self, role: RoleIdentifier) -> Tuple[Optional[str], ParsedTemplate, AssemblyConfig]:
        keys = role_template_keys(role.name)
        key, parsed = self.store.load_first(keys)
        if key is None:
            LoadOutcome.degraded(
                None,
                IssueKind.TEMPLATE_MISSING,
                role.name,
                f"role template not found (tried {', '.join(keys)})",
            ).unwrap_or_log(logger)

        config = parsed.config
        if self.registry is not None:
            try:
                entry = self.registry.get_role_config(role.name)
            except Exception as e:  # registry is external; assembly continues without it
                logger.warning("Specialist registry lookup failed for %s: %s", role.name, e)
                entry = None
            if entry is not None:
                config = config.with_overrides(
                    base_selection=entry.template_overrides,
                    role_alias=entry.resolved_alias,
                )
        return key, parsed, config

    def base_template_keys(self, config: AssemblyConfig, category: RoleCategory) -> Tuple[str, ...]:
        """Shared template keys for a role, in render order."""
        return config.base_selection.resolve(self.settings.default_base_keys(category.value))

    def _load_domain_template(self, config: AssemblyConfig, category: RoleCategory) -> str:
        if not self.settings.load_domain_templates:
            return ""
        if config.domain_template:
            name = config.domain_template
            if name.endswith(".md"):
                name = name[: -len(".md")]
            key = f"domain/{name}"
            if self.store.resolve(key) is not None:
                return self.store.load(key)
            logger.warning("Domain template %s not found, using default", key)
        return self.store.load(f"domain/{category.value}-specialist-base")

    # -------------------------------------------------------------------------
    # Stage 4: context
    # -------------------------------------------------------------------------

    def _project_root(self, context: AssemblyContext) -> Optional[str]:
        if context.project_root:
            return context.project_root
        if self.metadata_provider is not None:
            try:
                root = self.metadata_provider.get_active_project_root()
            except Exception as e:  # external provider
                logger.warning("Project metadata provider failed: %s", e)
                root = None
            if root:
                return root
        if context.project_metadata:
            base_dir = context.project_metadata.get("baseDir")
            if base_dir:
                return str(base_dir)
        return None

    def _needs_outline(self, role: RoleIdentifier) -> bool:
        return role.category is RoleCategory.CONTENT or self.settings.is_document_aware(role.name)

    def _tool_schema(self, role: RoleIdentifier, context: AssemblyContext) -> Optional[str]:
        if context.tool_schema_text:
            return context.tool_schema_text
        if self.tool_schema_provider is None:
            return None
        try:
            return self.tool_schema_provider.get_tool_schema(role.category.value)
        except Exception as e:  # external provider
            logger.warning("Tool schema provider failed for %s: %s", role.category.value, e)
            return None

    def _session_id(self) -> str:
        if self.metadata_provider is None:
            return ""
        try:
            return self.metadata_provider.get_session_id() or ""
        except Exception as e:  # external provider
            logger.warning("Session id lookup failed: %s", e)
            return ""

    async def _gather_context(self, role: RoleIdentifier, context: AssemblyContext) -> _GatheredContext:
        root = self._project_root(context)
        if root is None:
            LoadOutcome.degraded(
                None,
                IssueKind.CONTEXT_SOURCE_UNAVAILABLE,
                role.name,
                "no project root; environment and outline context skipped",
            ).unwrap_or_log(logger)

        async def none():
            return None

        async def empty_outline():
            return Outline()

        async def empty_text():
            return ""

        want_outline = root is not None and self._needs_outline(role)
        environment, outline, requirements, tool_schema, session_id = await asyncio.gather(
            self.environment.agather(root, self.settings.environment_max_depth) if root else none(),
            self.outline_loader.aload_outline(root) if want_outline else empty_outline(),
            self.outline_loader.aload_requirements_data(root) if want_outline else empty_text(),
            run_blocking(self._tool_schema, role, context),
            run_blocking(self._session_id),
        )
        return _GatheredContext(
            environment=environment,
            outline=outline,
            requirements=requirements,
            tool_schema=tool_schema,
            session_id=session_id,
        )

    # -------------------------------------------------------------------------
    # Stage 5: variables
    # -------------------------------------------------------------------------

    def build_variables(
        self,
        role: RoleIdentifier,
        config: AssemblyConfig,
        context: AssemblyContext,
        gathered: _GatheredContext,
        toc: str,
    ) -> Dict[str, str]:
        """Placeholder values: built-ins < chapter templates < caller variables.

        Empty values are left out so their placeholders stay literal.
        """
        display_name = config.role_alias or role.name
        builtins = {
            "USER_INPUT": context.user_input or "",
            "ROLE_NAME": display_name,
            "ROLE_DEFINITION": config.role_definition or f"{display_name} specialist",
            "WORKFLOW_MODE": context.workflow_mode.value if context.workflow_mode else "",
            "LANGUAGE": context.language or "",
            "TOOLS_JSON_SCHEMA": gathered.tool_schema or "",
            "SRS_TOC": toc,
            "CURRENT_SRS_TOC": toc,
            "REQUIREMENTS_YAML_CONTENT": gathered.requirements,
            "CURRENT_REQUIREMENTS_YAML": gathered.requirements,
            "SESSION_ID": gathered.session_id,
        }
        variables = {k: v for k, v in builtins.items() if v}
        for chapter in context.chapter_templates:
            if chapter.content:
                variables[chapter.name] = chapter.content
        variables.update({k: v for k, v in context.variables.items() if v})
        return variables

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def assemble_with_metadata(
        self, role: RoleIdentifier, context: AssemblyContext
    ) -> AssembledPrompt:
        """Assemble a prompt and return it with hash, base set and validation.

        Raises:
            MandatoryTemplateMissingError: If the master template is missing.
        """
        master = await self.store.aload_parsed(self.settings.master_template, mandatory=True)

        key, parsed, config = await run_blocking(self._resolve_role, role)
        base_keys = self.base_template_keys(config, role.category)
        base_texts, domain_text, gathered = await asyncio.gather(
            asyncio.gather(*(self.store.aload(k) for k in base_keys)),
            run_blocking(self._load_domain_template, config, role.category),
            self._gather_context(role, context),
        )

        body = parsed.body
        if context.workflow_mode and config.workflow_mode_tags:
            body = filter_by_workflow_mode(body, context.workflow_mode, config.workflow_mode_tags)

        toc = "\n".join(flatten_to_display_lines(gathered.outline))
        variables = self.build_variables(role, config, context, gathered, toc)

        inputs = SectionInputs(
            opening=substitute(master.body, variables),
            specialist_instructions=[substitute(domain_text, variables), substitute(body, variables)],
            base_templates=[substitute(t, variables) for t in base_texts],
            user_input=context.user_input,
            current_step=context.current_step,
            user_response=context.user_response,
            resume_guidance=context.resume_guidance,
            prior_thoughts=context.prior_thoughts,
            iteration=context.iteration,
            project_metadata=context.project_metadata,
            environment=gathered.environment,
            history_entries=context.history_entries,
            tool_schema_text=gathered.tool_schema,
            chapter_templates=context.chapter_templates,
            outline_toc=toc,
        )
        content = render_prompt(inputs)

        validation = validate_prompt(
            content,
            role.name,
            self.settings.min_chars,
            self.settings.max_chars,
            self.settings.recommended_keywords,
        )
        log_validation(validation)

        loaded_base = tuple(k for k, t in zip(base_keys, base_texts) if t.strip())
        logger.info(
            "Assembled prompt for %s (template %s): %d chars, base templates %s",
            role.name,
            key or "<none>",
            len(content),
            ", ".join(loaded_base) or "<none>",
        )
        return AssembledPrompt(
            content=content,
            content_hash=hashlib.sha256(content.encode("utf-8")).hexdigest()[:16],
            role_name=role.name,
            base_templates=loaded_base,
            validation=validation,
        )

    async def assemble(self, role: RoleIdentifier, context: AssemblyContext) -> str:
        """Assemble the prompt text for a role."""
        result = await self.assemble_with_metadata(role, context)
        return result.content

    def assemble_sync(self, role: RoleIdentifier, context: AssemblyContext) -> str:
        """Synchronous bridge for callers without an event loop."""
        return run_async_safely(self.assemble(role, context))

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def clear_cache(self) -> None:
        """Drop cached templates (and the registry scan, if it has one)."""
        self.store.clear_cache()
        clear = getattr(self.registry, "clear", None)
        if callable(clear):
            clear()

    def preload_templates(self) -> int:
        """Warm the template cache. Returns the number of templates loaded."""
        keys = [self.settings.master_template]
        for category in RoleCategory:
            keys.extend(self.settings.default_base_keys(category.value))
        keys.extend(self.store.list_templates("specialists"))
        keys.extend(self.store.list_templates("specialist"))

        loaded = 0
        for key in dict.fromkeys(keys):
            if self.store.resolve(key) is None:
                continue
            self.store.load_parsed(key)
            loaded += 1
        logger.info("Preloaded %d templates", loaded)
        return loaded

    def template_stats(self) -> TemplateStats:
        return self.store.stats()

    def validate_template_consistency(self) -> TemplateConsistencyReport:
        """Check that required templates exist and specialist configs parse cleanly."""
        result = ValidationResult()
        report = TemplateConsistencyReport(result=result)

        master = self.settings.master_template
        if self.store.resolve(master) is None:
            report.missing_templates.append(master)
            result.add_error(
                "MISSING_TEMPLATE",
                master,
                "mandatory master template not found",
                f"create rules/{master}.md",
            )

        required = []
        for category in RoleCategory:
            required.extend(self.settings.default_base_keys(category.value))
        for key in dict.fromkeys(required):
            path = self.store.resolve(key)
            if path is None:
                report.missing_templates.append(key)
                result.add_warning(
                    "MISSING_TEMPLATE", key, "base template not found", f"create rules/{key}.md"
                )
                continue
            if len(self.store.load(key).strip()) < MIN_BASE_TEMPLATE_CHARS:
                result.add_warning(
                    "TRIVIAL_TEMPLATE",
                    key,
                    f"base template has fewer than {MIN_BASE_TEMPLATE_CHARS} characters",
                    "fill in the template content",
                )

        specialist_keys = self.store.list_templates("specialists") + self.store.list_templates("specialist")
        for key in specialist_keys:
            parsed = self.store.load_parsed(key)
            report.specialists_checked += 1
            for message in parsed.config_warnings:
                result.add_warning("CONFIG_PARSE", key, message, "fix the frontmatter block")
            if not parsed.body.strip():
                result.add_warning("EMPTY_TEMPLATE", key, "template body is empty", "add instructions")

        report.template_count = len(self.store.list_templates())
        return report
