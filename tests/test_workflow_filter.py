"""Tests for workflow-mode section filtering."""

from srswriter.prompts.types import WorkflowMode
from srswriter.prompts.workflow_filter import filter_by_workflow_mode, split_sections

TAGS = {"greenfield": "GREEN", "brownfield": "BROWN"}

TEMPLATE = """# Writer

Intro paragraph.

## GREEN Drafting from scratch

Green body.

## BROWN Reverse-engineering

Brown body.

## Shared rules

Shared body.
"""


class TestSplitSections:
    def test_split_is_byte_exact(self):
        preface, sections = split_sections(TEMPLATE)
        assert preface + "".join(s.text for s in sections) == TEMPLATE

    def test_preface_and_headings(self):
        preface, sections = split_sections(TEMPLATE)
        assert preface == "# Writer\n\nIntro paragraph.\n\n"
        assert [s.heading for s in sections] == [
            "## GREEN Drafting from scratch",
            "## BROWN Reverse-engineering",
            "## Shared rules",
        ]

    def test_headings_inside_code_fences_do_not_split(self):
        text = "## Real\n\n```markdown\n## Not a heading\n```\n\nafter\n"
        _, sections = split_sections(text)
        assert len(sections) == 1
        assert "## Not a heading" in sections[0].text

    def test_third_level_headings_stay_in_section(self):
        _, sections = split_sections("## A\n### A.1\ntext\n## B\n")
        assert [s.heading for s in sections] == ["## A", "## B"]


class TestFilterByWorkflowMode:
    def test_greenfield_keeps_green_and_untagged(self):
        result = filter_by_workflow_mode(TEMPLATE, WorkflowMode.GREENFIELD, TAGS)
        assert "## Drafting from scratch\n" in result
        assert "Green body." in result
        assert "Brown body." not in result
        assert "## Shared rules" in result
        assert "GREEN" not in result

    def test_brownfield_keeps_brown_and_untagged(self):
        result = filter_by_workflow_mode(TEMPLATE, "brownfield", TAGS)
        assert "## Reverse-engineering\n" in result
        assert "Green body." not in result
        assert "Shared body." in result

    def test_active_mode_equals_text_with_tag_removed(self):
        result = filter_by_workflow_mode(TEMPLATE, WorkflowMode.GREENFIELD, TAGS)
        expected = TEMPLATE.replace("GREEN ", "").replace(
            "## BROWN Reverse-engineering\n\nBrown body.\n\n", ""
        )
        assert result == expected

    def test_preface_is_always_kept(self):
        result = filter_by_workflow_mode(TEMPLATE, WorkflowMode.BROWNFIELD, TAGS)
        assert result.startswith("# Writer\n\nIntro paragraph.\n\n")

    def test_no_mode_returns_text_unchanged(self):
        assert filter_by_workflow_mode(TEMPLATE, None, TAGS) == TEMPLATE

    def test_no_tags_returns_text_unchanged(self):
        assert filter_by_workflow_mode(TEMPLATE, WorkflowMode.GREENFIELD, {}) == TEMPLATE

    def test_mode_without_tag_returns_text_unchanged(self):
        assert filter_by_workflow_mode(TEMPLATE, "greenfield", {"brownfield": "BROWN"}) == TEMPLATE

    def test_heading_with_both_tags_is_retained_for_active_mode(self):
        text = "## GREEN BROWN Both\n\nbody\n"
        result = filter_by_workflow_mode(text, WorkflowMode.BROWNFIELD, TAGS)
        assert "body" in result
        assert "## GREEN Both" in result

    def test_tag_at_end_of_heading(self):
        text = "## Drafting GREEN\nbody\n"
        result = filter_by_workflow_mode(text, WorkflowMode.GREENFIELD, TAGS)
        assert result == "## Drafting\nbody\n"
