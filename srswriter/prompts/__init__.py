"""
srswriter/prompts - Specialist prompt assembly.

Modules:
- store: key -> template text lookup over the rules directories
- frontmatter: assembly/specialist config blocks in template headers
- workflow_filter: greenfield/brownfield section filtering
- engine: TemplateAssemblyEngine, the ten-section prompt builder
- orchestrator: planning prompt for the top-level orchestrator
- validation: advisory checks on assembled prompts
- golden: golden-case regression harness

Submodules are imported directly; this package does not re-export them
because the config and context packages import from it.

Usage:
    from srswriter.prompts.engine import TemplateAssemblyEngine
    from srswriter.prompts.types import AssemblyContext, RoleIdentifier
"""
