"""
orchestrator.py - Planning prompt for the top-level orchestrator.

The orchestrator template is mandatory like the master template: without it
the assistant cannot start a turn, so a miss raises
MandatoryTemplateMissingError.

Usage:
    from srswriter.prompts.orchestrator import OrchestratorPromptBuilder

    builder = OrchestratorPromptBuilder(store, tool_schema_provider)
    prompt = builder.build_planning_prompt("Add a login requirement", history="...")
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Optional

from srswriter.context.providers import ToolSchemaProvider

from .engine import substitute
from .store import TemplateStore

logger = logging.getLogger(__name__)

NO_HISTORY = "No actions have been taken yet."
NO_TOOL_RESULTS = "No tool results available."
NO_KNOWLEDGE = "No specific knowledge retrieved."


class CallerCategory(str, Enum):
    """Tool-set selector derived from the user's intent."""

    GENERAL_CHAT = "orchestrator_general_chat"
    KNOWLEDGE_QA = "orchestrator_knowledge_qa"
    TOOL_EXECUTION = "orchestrator_tool_execution"


CHAT_PATTERNS = (
    re.compile(r"^(hi|hello|hey|thanks|thank you)"),
    re.compile(r"^(你好|谢谢|感谢)"),
    re.compile(r"weather|天气"),
    re.compile(r"how are you|你好吗"),
    re.compile(r"^(good morning|good afternoon|good evening)"),
)

KNOWLEDGE_PATTERNS = (
    re.compile(r"^(how|what|why|when|where|which)"),
    re.compile(r"如何|怎么|什么是|为什么|怎样"),
    re.compile(r"best practices?|最佳实践"),
    re.compile(r"guidance|指导|建议"),
    re.compile(r"explanation|解释|说明"),
)


def detect_intent(user_input: str) -> CallerCategory:
    """Classify user input. Chat is checked before knowledge questions."""
    text = user_input.strip().lower()
    if any(p.search(text) for p in CHAT_PATTERNS):
        return CallerCategory.GENERAL_CHAT
    if any(p.search(text) for p in KNOWLEDGE_PATTERNS):
        return CallerCategory.KNOWLEDGE_QA
    return CallerCategory.TOOL_EXECUTION


class OrchestratorPromptBuilder:
    """Fill the orchestrator template for one planning turn."""

    def __init__(
        self,
        store: Optional[TemplateStore] = None,
        tool_schema_provider: Optional[ToolSchemaProvider] = None,
    ):
        self.store = store or TemplateStore()
        self.tool_schema_provider = tool_schema_provider

    def _tool_schema(self, category: CallerCategory) -> str:
        if self.tool_schema_provider is None:
            return "[]"
        try:
            return self.tool_schema_provider.get_tool_schema(category.value) or "[]"
        except Exception as e:  # external provider
            logger.warning("Tool schema provider failed for %s: %s", category.value, e)
            return "[]"

    def build_planning_prompt(
        self,
        user_input: str,
        history: Optional[str] = None,
        tool_results: Optional[str] = None,
        knowledge: Optional[str] = None,
    ) -> str:
        """Build the planning prompt.

        Raises:
            MandatoryTemplateMissingError: If the orchestrator template is missing.
        """
        template = self.store.load_parsed(
            self.store.settings.orchestrator_template, mandatory=True
        ).body

        category = detect_intent(user_input)
        logger.info("Detected %s intent", category.name)

        variables = {
            "USER_INPUT": user_input,
            "TOOLS_JSON_SCHEMA": self._tool_schema(category),
            "CONVERSATION_HISTORY": history or NO_HISTORY,
            "TOOL_RESULTS_CONTEXT": tool_results or NO_TOOL_RESULTS,
            "RELEVANT_KNOWLEDGE": knowledge or NO_KNOWLEDGE,
        }
        return substitute(template, variables)
