"""
workflow_filter.py - Select template sections by workflow mode.

A role template may tag its second-level sections for one workflow mode:

    ## GREEN Drafting from scratch
    ...
    ## BROWN Reverse-engineering an existing system
    ...
    ## Shared rules
    ...

With tag map {"greenfield": "GREEN", "brownfield": "BROWN"} and the greenfield
mode active, the BROWN section is dropped, the GREEN heading becomes
"## Drafting from scratch", and the untagged section is kept verbatim.

Usage:
    from srswriter.prompts.workflow_filter import filter_by_workflow_mode

    body = filter_by_workflow_mode(body, WorkflowMode.GREENFIELD, config.workflow_mode_tags)
"""

from __future__ import annotations

import logging
import re
from typing import List, Mapping, Optional, Tuple, Union

from .types import WorkflowMode, WorkflowSection

logger = logging.getLogger(__name__)

HEADING2_PATTERN = re.compile(r"^## ")
FENCE_PATTERN = re.compile(r"^\s{0,3}(```|~~~)")


def split_sections(text: str) -> Tuple[str, List[WorkflowSection]]:
    """Split text at every level-two heading outside fenced code.

    Segments are byte-exact: preface + "".join(s.text for s in sections) == text.

    Returns:
        (preface, sections). The preface is everything before the first heading.
    """
    lines = text.splitlines(keepends=True)
    preface_parts: List[str] = []
    spans: List[List[str]] = []
    fence: Optional[str] = None

    for line in lines:
        fence_match = FENCE_PATTERN.match(line)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker
            elif marker == fence:
                fence = None
        elif fence is None and HEADING2_PATTERN.match(line):
            spans.append([line])
            continue

        if spans:
            spans[-1].append(line)
        else:
            preface_parts.append(line)

    sections = []
    for span in spans:
        heading = span[0].rstrip("\r\n")
        sections.append(WorkflowSection(heading=heading, text="".join(span)))
    return "".join(preface_parts), sections


def _strip_tag(heading: str, tag: str) -> str:
    """Remove the first occurrence of tag plus one following whitespace char."""
    index = heading.find(tag)
    if index < 0:
        return heading
    end = index + len(tag)
    if end < len(heading) and heading[end] in " \t":
        end += 1
    stripped = heading[:index] + heading[end:]
    return stripped.rstrip(" \t")


def tag_sections(
    sections: List[WorkflowSection], active_tag: str, other_tags: List[str]
) -> List[WorkflowSection]:
    """Annotate each section with the tag found in its heading.

    The active tag is checked first so a heading carrying both is retained.
    """
    tagged = []
    for section in sections:
        mode_tag = None
        for tag in [active_tag] + other_tags:
            if tag in section.heading:
                mode_tag = tag
                break
        tagged.append(WorkflowSection(section.heading, section.text, mode_tag))
    return tagged


def filter_by_workflow_mode(
    text: str,
    active_mode: Optional[Union[WorkflowMode, str]],
    tag_map: Optional[Mapping[str, str]],
) -> str:
    """Keep sections for the active mode, drop sections for other modes.

    Args:
        text: Template body (frontmatter already removed).
        active_mode: Caller's workflow mode.
        tag_map: Mode name to literal heading tag.

    Returns:
        Filtered text. Unchanged when either argument is empty or the active
        mode has no tag.
    """
    if not active_mode or not tag_map:
        return text
    mode = active_mode.value if isinstance(active_mode, WorkflowMode) else str(active_mode)

    active_tag = tag_map.get(mode)
    if not active_tag:
        logger.debug("No tag configured for workflow mode %s; section filter skipped", mode)
        return text
    other_tags = [t for m, t in tag_map.items() if m != mode and t]

    preface, sections = split_sections(text)
    kept: List[str] = [preface]
    dropped = 0

    for section in tag_sections(sections, active_tag, other_tags):
        if section.mode_tag is None:
            kept.append(section.text)
        elif section.mode_tag == active_tag:
            kept.append(_strip_tag(section.heading, active_tag) + section.body)
        else:
            dropped += 1
            logger.debug("Dropped section %r (not for %s)", section.heading, mode)

    logger.debug(
        "Workflow filter (%s): %d sections, %d dropped", mode, len(sections), dropped
    )
    return "".join(kept)
