"""Tests for the orchestrator planning prompt."""

import logging

import pytest

from srswriter.context.providers import StaticToolSchemaProvider
from srswriter.prompts.errors import MandatoryTemplateMissingError
from srswriter.prompts.orchestrator import (
    NO_HISTORY,
    NO_KNOWLEDGE,
    NO_TOOL_RESULTS,
    CallerCategory,
    OrchestratorPromptBuilder,
    detect_intent,
)


class TestDetectIntent:
    @pytest.mark.parametrize(
        "text, category",
        [
            ("Hello there", CallerCategory.GENERAL_CHAT),
            ("  thanks!", CallerCategory.GENERAL_CHAT),
            ("你好", CallerCategory.GENERAL_CHAT),
            ("What's the weather like", CallerCategory.GENERAL_CHAT),
            ("How are you today?", CallerCategory.GENERAL_CHAT),
            ("How do I write a good NFR?", CallerCategory.KNOWLEDGE_QA),
            ("什么是非功能需求", CallerCategory.KNOWLEDGE_QA),
            ("Show me best practices for use cases", CallerCategory.KNOWLEDGE_QA),
            ("Add a login requirement to the SRS", CallerCategory.TOOL_EXECUTION),
            ("", CallerCategory.TOOL_EXECUTION),
        ],
    )
    def test_categories(self, text, category):
        assert detect_intent(text) is category


class RaisingSchemaProvider:
    def get_tool_schema(self, caller_category: str) -> str:
        raise RuntimeError("schema service down")


class TestOrchestratorPromptBuilder:
    def test_fills_placeholders_with_fallbacks(self, store):
        prompt = OrchestratorPromptBuilder(store).build_planning_prompt("Add a login requirement")
        assert "Request: Add a login requirement" in prompt
        assert "Tools: []" in prompt
        assert f"History: {NO_HISTORY}" in prompt
        assert f"Results: {NO_TOOL_RESULTS}" in prompt
        assert f"Knowledge: {NO_KNOWLEDGE}" in prompt
        assert "{{" not in prompt

    def test_supplied_sections(self, store):
        prompt = OrchestratorPromptBuilder(store).build_planning_prompt(
            "Add a login requirement",
            history="- read SRS.md",
            tool_results="ok",
            knowledge="FR ids are FR-###",
        )
        assert "History: - read SRS.md" in prompt
        assert "Results: ok" in prompt
        assert "Knowledge: FR ids are FR-###" in prompt

    def test_tool_schema_follows_intent(self, store):
        provider = StaticToolSchemaProvider(
            schemas={CallerCategory.KNOWLEDGE_QA.value: '[{"name": "searchKnowledge"}]'},
            default='[{"name": "executeMarkdownEdits"}]',
        )
        builder = OrchestratorPromptBuilder(store, provider)
        assert 'searchKnowledge' in builder.build_planning_prompt("What is a use case?")
        assert 'executeMarkdownEdits' in builder.build_planning_prompt("Add FR-002")

    def test_failing_schema_provider_falls_back(self, store, caplog):
        builder = OrchestratorPromptBuilder(store, RaisingSchemaProvider())
        with caplog.at_level(logging.WARNING):
            prompt = builder.build_planning_prompt("Add FR-002")
        assert "Tools: []" in prompt
        assert "schema service down" in caplog.text

    def test_missing_template_raises(self, store, rules_dir):
        (rules_dir / "orchestrator.md").unlink()
        with pytest.raises(MandatoryTemplateMissingError) as exc:
            OrchestratorPromptBuilder(store).build_planning_prompt("Add FR-002")
        assert exc.value.key == "orchestrator"
