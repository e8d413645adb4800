"""
sections.py - Render the ten-section specialist prompt.

Layout (version 5.0): an opening directive from the master template, a table
of contents, then ten numbered sections. Every section is always emitted; an
empty source renders its fixed fallback text.

    **# 1. SPECIALIST INSTRUCTIONS**
    **# 2. CURRENT TASK**
    ...
    **# 10. FINAL INSTRUCTION**
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from srswriter.context.types import EnvironmentContext

from .types import ChapterTemplate, IterationPhase, IterationState, ResumeGuidance

SECTION_TITLES: Tuple[str, ...] = (
    "SPECIALIST INSTRUCTIONS",
    "CURRENT TASK",
    "LATEST RESPONSE FROM USER",
    "YOUR PREVIOUS THOUGHTS",
    "DYNAMIC CONTEXT",
    "GUIDELINES AND SAMPLE OF TOOLS USING",
    "YOUR TOOLS LIST",
    "TEMPLATE FOR YOUR CHAPTERS",
    "TABLE OF CONTENTS OF CURRENT SRS (SRS.md)",
    "FINAL INSTRUCTION",
)


def section_marker(number: int, title: str) -> str:
    return f"**# {number}. {title}**"


SECTION_MARKERS: Tuple[str, ...] = tuple(
    section_marker(i, title) for i, title in enumerate(SECTION_TITLES, start=1)
)

TEMPLATE_SEPARATOR = "\n\n---\n\n"

NO_USER_RESPONSE = "No user response were required in last turn."
NO_CURRENT_STEP = "No current step available"
NO_PROJECT_METADATA = "No project metadata available"
NO_ENVIRONMENT = "Environment context not available"
NO_HISTORY = "No iterative history available"
NO_TOOLS = "No tools available"
NO_CHAPTER_TEMPLATES = "No chapter templates provided for this specialist"
NO_DOCUMENT_OUTLINE = (
    "No SRS document structure available - you may be working on a new document "
    "or the SRS file could not be located."
)

FINAL_INSTRUCTION = (
    "Based on all the instructions and context above, generate a valid JSON object "
    "that adheres to the required schema.\n\n"
    "**CRITICAL: Your entire response MUST be a single JSON object, starting with `{` "
    "and ending with `}`. Do not include any introductory text, explanations, or "
    "conversational filler.**"
)

_PHASE_TEXT = {
    IterationPhase.EARLY: "Early exploration (abundant resources available)",
    IterationPhase.MIDDLE: "Active development (moderate resources)",
    IterationPhase.FINAL: "Final phase (limited resources)",
}

# =============================================================================
# Iterative history
# =============================================================================

HISTORY_ENTRY_PATTERN = re.compile(r"^Iteration\s+(\d+)\s+-\s+(.+?):[ \t]*\n?(.*)$", re.DOTALL)

# Rendering order within one iteration. "Previous Tool Results" must be matched
# before "Tool Results".
HISTORY_TYPES: Tuple[str, ...] = (
    "Thought Summary",
    "User Reply",
    "Previous Tool Results",
    "AI Plan",
    "Tool Results",
)
_MATCH_ORDER = ("Previous Tool Results", "Thought Summary", "AI Plan", "Tool Results", "User Reply")


def _classify(entry_type: str) -> Optional[str]:
    for candidate in _MATCH_ORDER:
        if candidate.lower() in entry_type.lower():
            return candidate
    return None


def format_iterative_history(entries: List[str]) -> str:
    """Group history lines by iteration, newest first.

    Lines look like `Iteration 3 - AI Plan:\\n...`. Unrecognized lines are
    skipped. Within a group the parts follow HISTORY_TYPES order; groups are
    separated by a horizontal rule.
    """
    groups: Dict[int, Dict[str, str]] = {}
    for entry in entries:
        match = HISTORY_ENTRY_PATTERN.match(entry)
        if not match:
            continue
        kind = _classify(match.group(2).strip())
        if kind is None:
            continue
        groups.setdefault(int(match.group(1)), {})[kind] = match.group(3)

    if not groups:
        return NO_HISTORY

    rendered = []
    for number in sorted(groups, reverse=True):
        group = groups[number]
        parts = [f"### Iteration {number}:\n"]
        if "Thought Summary" in group:
            parts.append(f"{group['Thought Summary']}\n")
        if "User Reply" in group:
            parts.append(f"**User Reply**: {group['User Reply']}\n")
        if "Previous Tool Results" in group:
            parts.append(f"**Previous Tool Results**:\n{group['Previous Tool Results']}\n")
        if "AI Plan" in group:
            parts.append(f"**AI Plan**:\n{group['AI Plan']}\n")
        if "Tool Results" in group:
            parts.append(f"**Tool Results**:\n{group['Tool Results']}")
        rendered.append("\n".join(parts))
    return TEMPLATE_SEPARATOR.join(rendered)


# =============================================================================
# Section bodies
# =============================================================================


@dataclass
class SectionInputs:
    """Everything the renderer needs, already loaded and substituted."""

    opening: str
    specialist_instructions: List[str] = field(default_factory=list)
    base_templates: List[str] = field(default_factory=list)
    user_input: Optional[str] = None
    current_step: Optional[Dict[str, Any]] = None
    user_response: Optional[str] = None
    resume_guidance: Optional[ResumeGuidance] = None
    prior_thoughts: Optional[str] = None
    iteration: Optional[IterationState] = None
    project_metadata: Optional[Dict[str, Any]] = None
    environment: Optional[EnvironmentContext] = None
    history_entries: List[str] = field(default_factory=list)
    tool_schema_text: Optional[str] = None
    chapter_templates: List[ChapterTemplate] = field(default_factory=list)
    outline_toc: str = ""


def _json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def render_current_task(user_input: Optional[str], current_step: Optional[Dict[str, Any]]) -> str:
    parts = []
    if user_input and user_input.strip():
        parts.append(f"**User Request**: {user_input.strip()}")
    step = _json(current_step) if current_step else NO_CURRENT_STEP
    parts.append(f"```json\n{step}\n```")
    return "\n\n".join(parts)


def render_user_response(user_response: Optional[str], resume: Optional[ResumeGuidance]) -> str:
    if not user_response:
        return NO_USER_RESPONSE
    text = f"**User's latest response**: {user_response}"
    if resume is None:
        return text
    instructions = "\n".join(resume.continue_instructions) or "Continue based on user response"
    question = resume.user_question or "No previous question recorded"
    return (
        f"{text}\n\n"
        f"**Resume Instructions**:\n{instructions}\n\n"
        f"**Previous Question Asked**: {question}\n\n"
        "**Resume Context**: You were waiting for user input and now the user has responded. "
        "Please continue your work based on their response."
    )


def render_iteration_budget(iteration: IterationState) -> str:
    return (
        "## Resource Budget & Strategy\n"
        f"**Iteration Progress**: You are on iteration **{iteration.current}/{iteration.maximum}** "
        f"({iteration.remaining} attempts remaining)\n\n"
        f"**Current Phase**: {_PHASE_TEXT[iteration.phase]}\n"
        f"**Strategy**: {iteration.guidance}\n\n"
    )


def render_environment(environment: Optional[EnvironmentContext]) -> str:
    if environment is None:
        return NO_ENVIRONMENT
    listing = "\n".join(environment.display_lines())
    return (
        f"**Project Directory (Absolute Path)**: `{environment.root_dir}`\n\n"
        f"**Project Files (Relative to baseDir)**:\n{listing}"
    )


def render_dynamic_context(inputs: SectionInputs) -> str:
    budget = render_iteration_budget(inputs.iteration) if inputs.iteration else ""
    metadata = _json(inputs.project_metadata) if inputs.project_metadata else NO_PROJECT_METADATA
    history = format_iterative_history(inputs.history_entries) if inputs.history_entries else NO_HISTORY
    return (
        f"{budget}## Project Metadata\n```json\n{metadata}\n```\n\n"
        f"## Environment Context\n\n{render_environment(inputs.environment)}\n\n"
        f"## Iterative History\n\n{history}"
    )


def render_chapter_templates(chapters: List[ChapterTemplate]) -> str:
    if not chapters:
        return NO_CHAPTER_TEMPLATES
    return "\n\n".join(c.content or "Chapter template not available" for c in chapters)


def render_prompt(inputs: SectionInputs) -> str:
    """Compose the full prompt. Deterministic for identical inputs."""
    toc = "\n".join(f"{i}. {title}" for i, title in enumerate(SECTION_TITLES, start=1))
    bodies = (
        TEMPLATE_SEPARATOR.join(t for t in inputs.specialist_instructions if t.strip()),
        render_current_task(inputs.user_input, inputs.current_step),
        render_user_response(inputs.user_response, inputs.resume_guidance),
        inputs.prior_thoughts or "",
        render_dynamic_context(inputs),
        TEMPLATE_SEPARATOR.join(t for t in inputs.base_templates if t.strip()),
        f"```json\n{inputs.tool_schema_text or NO_TOOLS}\n```",
        render_chapter_templates(inputs.chapter_templates),
        inputs.outline_toc or NO_DOCUMENT_OUTLINE,
        FINAL_INSTRUCTION,
    )
    sections = [f"{marker}\n\n{body}" for marker, body in zip(SECTION_MARKERS, bodies)]
    return f"{inputs.opening.strip()}\n\nTable of Contents:\n\n{toc}\n\n" + "\n\n".join(sections)
