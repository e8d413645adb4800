"""
validation.py - Advisory checks on an assembled prompt.

Nothing here blocks assembly. Each finding becomes a ValidationResult warning
and is logged at WARNING by `log_validation`.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from srswriter.validator.errors import ValidationResult

from .sections import SECTION_MARKERS

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")

# Issue types
MISSING_KEYWORD = "MISSING_KEYWORD"
SECTION_MARKER = "SECTION_MARKER"
SECTION_ORDER = "SECTION_ORDER"
UNRESOLVED_PLACEHOLDER = "UNRESOLVED_PLACEHOLDER"
LENGTH_BOUNDS = "LENGTH_BOUNDS"


def validate_prompt(
    prompt: str,
    location: str,
    min_chars: int,
    max_chars: int,
    keywords: Sequence[str] = ("Role Definition", "Output Format", "Boundary"),
) -> ValidationResult:
    """Run structural and size checks on an assembled prompt.

    Args:
        prompt: The assembled prompt text.
        location: Role name, used as the issue location.
        min_chars: Soft lower bound on length.
        max_chars: Soft upper bound on length.
        keywords: Recommended keywords (case-insensitive).

    Returns:
        ValidationResult holding warnings only.
    """
    result = ValidationResult()
    lowered = prompt.lower()

    for keyword in keywords:
        if keyword.lower() not in lowered:
            result.add_warning(
                MISSING_KEYWORD,
                location,
                f"recommended keyword '{keyword}' not found",
                "include the base template that provides this section",
            )

    positions = []
    for marker in SECTION_MARKERS:
        count = prompt.count(marker)
        if count != 1:
            result.add_warning(
                SECTION_MARKER,
                location,
                f"section marker '{marker}' appears {count} times",
                "remove the duplicated marker from template or context content",
            )
        positions.append(prompt.find(marker))
    found = [p for p in positions if p >= 0]
    if found != sorted(found):
        result.add_warning(
            SECTION_ORDER,
            location,
            "section markers are out of order",
            "check template content for embedded section markers",
        )

    unresolved = list(dict.fromkeys(PLACEHOLDER_PATTERN.findall(prompt)))
    if unresolved:
        result.add_warning(
            UNRESOLVED_PLACEHOLDER,
            location,
            f"unresolved placeholders: {', '.join(unresolved)}",
            "supply these variables in the assembly context",
        )

    length = len(prompt)
    if length < min_chars:
        result.add_warning(
            LENGTH_BOUNDS,
            location,
            f"prompt is {length} chars, below soft minimum {min_chars}",
            "check that role and base templates were found",
        )
    elif length > max_chars:
        result.add_warning(
            LENGTH_BOUNDS,
            location,
            f"prompt is {length} chars, above soft maximum {max_chars}",
            "trim history, tool schema or chapter templates",
        )

    return result


def log_validation(result: ValidationResult) -> None:
    for issue in result.warnings:
        logger.warning("Prompt validation: %s: %s %s", issue.issue_type, issue.location, issue.problem)
    for issue in result.errors:
        logger.error("Prompt validation: %s: %s %s", issue.issue_type, issue.location, issue.problem)
