"""Tests for advisory prompt validation."""

import logging

from srswriter.prompts.sections import SECTION_MARKERS
from srswriter.prompts.validation import (
    LENGTH_BOUNDS,
    MISSING_KEYWORD,
    SECTION_MARKER,
    SECTION_ORDER,
    UNRESOLVED_PLACEHOLDER,
    log_validation,
    validate_prompt,
)

KEYWORDS = ("Role Definition", "Output Format", "Boundary")


def well_formed(extra: str = "") -> str:
    body = "\n\n".join(f"{m}\n\ntext" for m in SECTION_MARKERS)
    return f"Role Definition. Output Format. Boundary.\n\n{body}\n{extra}"


class TestValidatePrompt:
    def test_well_formed_prompt_has_no_warnings(self):
        result = validate_prompt(well_formed(), "fr_writer", 100, 100_000, KEYWORDS)
        assert result.warnings == []
        assert result.to_dict()["status"] == "PASS"

    def test_keywords_are_case_insensitive(self):
        prompt = well_formed().replace("Role Definition", "ROLE DEFINITION")
        result = validate_prompt(prompt, "r", 100, 100_000, KEYWORDS)
        assert MISSING_KEYWORD not in result.warning_types()

    def test_missing_keyword(self):
        prompt = well_formed().replace("Boundary.", "")
        result = validate_prompt(prompt, "r", 100, 100_000, KEYWORDS)
        assert result.warning_types() == [MISSING_KEYWORD]
        assert "'Boundary'" in result.warnings[0].problem

    def test_duplicate_marker(self):
        result = validate_prompt(well_formed(SECTION_MARKERS[2]), "r", 100, 100_000, KEYWORDS)
        assert SECTION_MARKER in result.warning_types()

    def test_missing_marker(self):
        prompt = well_formed().replace(SECTION_MARKERS[4], "")
        result = validate_prompt(prompt, "r", 100, 100_000, KEYWORDS)
        assert "appears 0 times" in result.warnings[0].problem

    def test_out_of_order_markers(self):
        prompt = well_formed().replace(SECTION_MARKERS[0], "@@").replace(SECTION_MARKERS[1], SECTION_MARKERS[0])
        prompt = prompt.replace("@@", SECTION_MARKERS[1])
        result = validate_prompt(prompt, "r", 100, 100_000, KEYWORDS)
        assert SECTION_ORDER in result.warning_types()

    def test_unresolved_placeholders_listed_once(self):
        result = validate_prompt(well_formed("{{A}} {{B}} {{A}}"), "r", 100, 100_000, KEYWORDS)
        issue = [w for w in result.warnings if w.issue_type == UNRESOLVED_PLACEHOLDER][0]
        assert issue.problem == "unresolved placeholders: A, B"

    def test_length_bounds(self):
        short = validate_prompt(well_formed(), "r", 100_000, 200_000, KEYWORDS)
        assert short.warning_types() == [LENGTH_BOUNDS]
        assert "below soft minimum" in short.warnings[0].problem

        long = validate_prompt(well_formed(), "r", 10, 100, KEYWORDS)
        assert "above soft maximum" in long.warnings[0].problem

    def test_warnings_never_become_errors(self):
        result = validate_prompt("", "r", 100, 200, KEYWORDS)
        assert result.warnings
        assert not result.has_errors()


class TestLogValidation:
    def test_warnings_are_logged(self, caplog):
        result = validate_prompt("tiny", "fr_writer", 100, 200, ())
        with caplog.at_level(logging.WARNING):
            log_validation(result)
        assert "Prompt validation: LENGTH_BOUNDS: fr_writer" in caplog.text
