"""Tests for the golden-case drift harness."""

import asyncio
import logging

import pytest

from srswriter.prompts.golden import (
    GoldenCase,
    GoldenTestHarness,
    length_ratio,
    load_golden_cases,
    score,
    structural_similarity,
    suite_health,
    tokenize,
    token_overlap,
)
from srswriter.prompts.types import AssemblyContext, RoleIdentifier

FR_WRITER = RoleIdentifier.of("fr_writer", "content")

EXPECTED = """## Login
- Users sign in with email and password
- Sessions expire after inactivity
"""


class TestSignals:
    def test_tokenize_filters_short_and_stop_words(self):
        assert tokenize("The user is at a Login-page, and it WORKS!") == ["user", "login-page", "works"]

    def test_partial_overlap_fails_threshold(self):
        scores = score("abc def ghi", "abc xyz uvw")
        assert scores.token_overlap == pytest.approx(0.2)
        assert scores.length_ratio == pytest.approx(1.0)
        assert scores.structural == pytest.approx(1.0)
        assert scores.combined == pytest.approx(0.6)

    def test_two_of_three_shared_words_still_fail(self):
        scores = score("abc def ghi", "abc def xyz")
        assert scores.token_overlap == pytest.approx(0.5)
        assert scores.combined == pytest.approx(0.75)
        assert not scores.combined > 0.8

    def test_identical_text_scores_one(self):
        assert score(EXPECTED, EXPECTED).combined == pytest.approx(1.0)

    def test_empty_inputs(self):
        assert token_overlap("", "") == 0.0
        assert length_ratio("words here", "") == 0.0

    def test_structural_counts(self):
        assert structural_similarity("plain", "also plain") == 1.0
        assert structural_similarity("# Head\n- item", "plain") == 0.0
        assert structural_similarity("# A\n# B\n- x", "# A\n- y") == pytest.approx(0.75)


class TestSuiteHealth:
    @pytest.mark.parametrize(
        "rate, health",
        [(1.0, "excellent"), (0.95, "excellent"), (0.8, "good"), (0.6, "warning"), (0.59, "critical")],
    )
    def test_thresholds(self, rate, health):
        assert suite_health(rate) == health


class TestLoadGoldenCases:
    def test_single_and_list_files(self, tmp_path):
        (tmp_path / "a.yaml").write_text(
            "id: one\nrole: {name: fr_writer, category: content}\n"
            "input: {userRequirements: Draft login}\nexpected_output: text\n",
            encoding="utf-8",
        )
        (tmp_path / "b.yml").write_text(
            "cases:\n"
            "  - {id: two, role: fr_writer, expected_output: x}\n"
            "  - {id: three, role: {name: requirement_syncer, category: process}, expected_output: y}\n",
            encoding="utf-8",
        )
        (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
        cases = load_golden_cases(tmp_path)
        assert [c.id for c in cases] == ["one", "two", "three"]
        assert cases[0].input == {"userRequirements": "Draft login"}
        assert cases[2].role.category.value == "process"

    def test_bad_file_is_skipped(self, tmp_path, caplog):
        (tmp_path / "bad.yaml").write_text("id: no_role\nexpected_output: x\n", encoding="utf-8")
        (tmp_path / "good.yaml").write_text("id: ok\nrole: fr_writer\nexpected_output: x\n", encoding="utf-8")
        with caplog.at_level(logging.WARNING):
            cases = load_golden_cases(tmp_path)
        assert [c.id for c in cases] == ["ok"]
        assert "missing 'role'" in caplog.text


class TestHarness:
    def test_sync_executor_matching_output_passes(self, engine):
        harness = GoldenTestHarness(engine, executor=lambda prompt: EXPECTED)
        case = GoldenCase("login", FR_WRITER, {"userRequirements": "Draft login"}, EXPECTED)
        report = harness.run_suite_sync([case])
        assert report.passed == 1
        assert report.health == "excellent"
        assert report.results[0].issues == []

    def test_async_executor(self, engine):
        async def executor(prompt: str) -> str:
            return "abc xyz uvw"

        harness = GoldenTestHarness(engine, executor=executor)
        report = harness.run_suite_sync(
            [GoldenCase("drift", FR_WRITER, {"userRequirements": "Draft"}, "abc def ghi")]
        )
        result = report.results[0]
        assert not result.passed
        assert result.scores.combined == pytest.approx(0.6)
        assert "content_mismatch" in [i.type for i in result.issues]
        assert report.health == "critical"
        assert report.recommendations[0] == "1 golden case(s) failed and need attention first"

    def test_no_executor_scores_the_prompt_itself(self, engine):
        harness = GoldenTestHarness(engine, threshold=0.1)
        report = harness.run_suite_sync(
            [GoldenCase("self", FR_WRITER, {"userRequirements": "Draft"}, "functional requirements writer")]
        )
        assert report.results[0].scores is not None

    def test_missing_master_is_execution_error(self, engine, rules_dir):
        (rules_dir / "master.md").unlink()
        harness = GoldenTestHarness(engine)
        report = harness.run_suite_sync(
            [GoldenCase("broken", FR_WRITER, {"userRequirements": "Draft"}, EXPECTED)]
        )
        result = report.results[0]
        assert not result.passed
        assert result.issues[0].type == "execution_error"
        assert result.issues[0].severity == "critical"
        assert "master" in result.error

    def test_invalid_case_context(self, engine):
        harness = GoldenTestHarness(engine)
        report = harness.run_suite_sync([GoldenCase("empty", FR_WRITER, {}, EXPECTED)])
        assert report.results[0].issues[0].type == "execution_error"

    def test_run_case_directly(self, engine):
        harness = GoldenTestHarness(engine, executor=lambda prompt: EXPECTED)
        result = asyncio.run(harness.run_case(FR_WRITER, AssemblyContext(user_input="Draft"), EXPECTED))
        assert result.case_id == "adhoc"
        assert result.to_dict()["scores"]["combined"] == 1.0

    def test_empty_suite(self, engine):
        report = GoldenTestHarness(engine).run_suite_sync([])
        assert report.total == 0
        assert report.health == "critical"

    def test_default_threshold_from_settings(self, engine):
        assert GoldenTestHarness(engine).threshold == 0.8
