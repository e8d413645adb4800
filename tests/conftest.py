"""
Test fixtures for prompt assembly tests.

Every test gets its own template tree under tmp_path and a TemplateStore
pointed at exactly that tree, so the packaged rules never leak in.
"""

from pathlib import Path
from typing import Dict

import pytest

from srswriter.config.assembly_config import (
    ENV_EXTENSION_PATH,
    ENV_PROMPT_MAX_CHARS,
    ENV_PROMPT_MIN_CHARS,
    ENV_TEMPLATE_ROOT,
    AssemblySettings,
    reset_settings,
)
from srswriter.config.specialist_registry import TemplateSpecialistRegistry
from srswriter.prompts.engine import TemplateAssemblyEngine
from srswriter.prompts.store import TemplateStore

# ============================================================================
# Template tree
# ============================================================================

MASTER = (
    "You are a {{ROLE_DEFINITION}}. Below is the context information and the task "
    "you need to complete. Follow these instructions carefully:\n"
)

ORCHESTRATOR = """# Orchestrator

Request: {{USER_INPUT}}

Tools: {{TOOLS_JSON_SCHEMA}}

History: {{CONVERSATION_HISTORY}}

Results: {{TOOL_RESULTS_CONTEXT}}

Knowledge: {{RELEVANT_KNOWLEDGE}}
"""

BASE_TEMPLATES: Dict[str, str] = {
    "common-role-definition": (
        "## Role Definition\n\nYou are one specialist in a team writing an SRS. "
        "Stay inside your chapter.\n"
    ),
    "output-format-schema": (
        "## Output Format\n\nReply with a single JSON object holding thought and tool_calls.\n"
    ),
    "content-specialist-workflow": (
        "## Content Workflow\n\nRead the outline, draft the chapter, apply targeted edits.\n"
    ),
    "process-specialist-workflow": (
        "## Process Workflow\n\nGather inputs, perform the process task, report changes.\n"
    ),
    "quality-guidelines": (
        "## Quality Guidelines\n\nEach requirement states one testable behavior QUALITY-MARK.\n"
    ),
    "boundary-constraints": (
        "## Boundary Constraints\n\nDo not edit chapters owned by other specialists.\n"
    ),
}

FR_WRITER = """---
specialist_config:
  id: fr_writer
  name: "Functional Requirements Writer"
  category: content
  role_definition: "functional requirements writer"
  workflow_mode_config:
    greenfield: "GREEN"
    brownfield: "BROWN"
---
# Functional Requirements Writer

Write the functional requirements chapter for {{ROLE_NAME}}.

## GREEN Drafting new requirements

Derive requirements from the user stories.

## BROWN Recovering existing requirements

Start from the supplied source material.

## Requirement format

Each requirement has an id and a statement.
"""

REQUIREMENT_SYNCER = """---
specialist_config:
  id: requirement_syncer
  name: "Requirement Syncer"
  category: process
---
# Requirement Syncer

Keep requirements.yaml in sync.

Current data:
{{CURRENT_REQUIREMENTS_YAML}}
"""

EXPORTER = """---
specialist_config:
  id: exporter
  category: process
  enabled: false
---
# Exporter

Export the document.
"""

SRS_DOCUMENT = """# Introduction

## Purpose

Why this system exists.

# Functional Requirements

## Login

### FR-001

Users sign in.
"""

REQUIREMENTS_YAML = "functional_requirements:\n  - id: FR-001\n    summary: Users sign in\n"


def write_rules(root: Path) -> Path:
    """Write a complete template tree under root and return root."""
    (root / "base").mkdir(parents=True, exist_ok=True)
    (root / "specialists" / "content").mkdir(parents=True, exist_ok=True)
    (root / "specialists" / "process").mkdir(parents=True, exist_ok=True)
    (root / "master.md").write_text(MASTER, encoding="utf-8")
    (root / "orchestrator.md").write_text(ORCHESTRATOR, encoding="utf-8")
    for name, text in BASE_TEMPLATES.items():
        (root / "base" / f"{name}.md").write_text(text, encoding="utf-8")
    (root / "specialists" / "content" / "fr_writer.md").write_text(FR_WRITER, encoding="utf-8")
    (root / "specialists" / "process" / "requirement_syncer.md").write_text(
        REQUIREMENT_SYNCER, encoding="utf-8"
    )
    (root / "specialists" / "process" / "exporter.md").write_text(EXPORTER, encoding="utf-8")
    return root


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate tests from SRSWRITER_* variables and the settings cache."""
    for name in (ENV_TEMPLATE_ROOT, ENV_EXTENSION_PATH, ENV_PROMPT_MIN_CHARS, ENV_PROMPT_MAX_CHARS):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def rules_dir(tmp_path) -> Path:
    return write_rules(tmp_path / "rules")


@pytest.fixture
def project_dir(tmp_path) -> Path:
    """A project with an SRS, a requirements file, a docs dir and a hidden .git."""
    project = tmp_path / "project"
    project.mkdir()
    (project / "SRS.md").write_text(SRS_DOCUMENT, encoding="utf-8")
    (project / "README.md").write_text("# Demo\n", encoding="utf-8")
    (project / "requirements.yaml").write_text(REQUIREMENTS_YAML, encoding="utf-8")
    (project / "docs").mkdir()
    (project / ".git").mkdir()
    return project


@pytest.fixture
def settings() -> AssemblySettings:
    return AssemblySettings()


@pytest.fixture
def store(rules_dir, settings) -> TemplateStore:
    return TemplateStore(settings=settings, search_dirs=[rules_dir])


@pytest.fixture
def registry(store) -> TemplateSpecialistRegistry:
    return TemplateSpecialistRegistry(store)


@pytest.fixture
def engine(store, registry, settings) -> TemplateAssemblyEngine:
    return TemplateAssemblyEngine(store=store, registry=registry, settings=settings)
