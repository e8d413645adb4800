"""
formatter.py - Human-readable summaries of tool execution.

Not part of the model-input path. These render "what happened" reports for the
chat surface and for the history fed back to the orchestrator.

Usage:
    from srswriter.results.formatter import ResultFormatter, ToolResultSummarizer

    report = ResultFormatter().format_tool_results(results)
    text = ToolResultSummarizer().format_for_context("executeMarkdownEdits", raw_result)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

MAX_LISTED_HEADINGS = 5


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool call."""

    tool_name: str
    success: bool
    output: Any = None
    error: Optional[str] = None
    duration_ms: Optional[int] = None


def tool_result_from_dict(data: Mapping[str, Any]) -> ToolResult:
    """Parse a ToolResult from snake_case or camelCase keys."""
    return ToolResult(
        tool_name=str(data.get("tool_name", data.get("toolName", "unknown"))),
        success=bool(data.get("success", False)),
        output=data.get("output", data.get("result")),
        error=data.get("error"),
        duration_ms=data.get("duration_ms", data.get("duration")),
    )


@dataclass(frozen=True)
class ExecutionStep:
    """One step of a turn as recorded by the executor."""

    tool_name: Optional[str] = None
    success: bool = True
    skipped: bool = False
    duration_ms: int = 0
    content: str = ""
    result: Optional[Dict[str, Any]] = None


def _json_block(value: Any) -> str:
    text = value if isinstance(value, str) else json.dumps(value, indent=2, ensure_ascii=False, default=str)
    return f"```json\n{text}\n```"


def _get(data: Any, *keys: str) -> Any:
    """First non-None value among `keys`; None when `data` is not a mapping."""
    if not isinstance(data, Mapping):
        return None
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _heading_level(heading: Mapping[str, Any]) -> int:
    try:
        return int(heading.get("level", 1))
    except (TypeError, ValueError):
        return 1


class ResultFormatter:
    """Counts header plus itemized success/failure lists."""

    def format_tool_results(self, results: List[ToolResult]) -> str:
        successful = [r for r in results if r.success]
        failed = [r for r in results if not r.success]

        lines = [f"**Tool execution report** ({len(successful)}/{len(results)} succeeded)", ""]
        if successful:
            lines.append("**Succeeded**:")
            lines.extend(f"  - {r.tool_name}: ok" for r in successful)
            lines.append("")
        if failed:
            lines.append("**Failed**:")
            lines.extend(f"  - {r.tool_name}: {r.error or 'unknown error'}" for r in failed)
            lines.append("")
        return "\n".join(lines) + "\n"

    def summarize_tool_results(self, results: List[ToolResult]) -> str:
        successful = sum(1 for r in results if r.success)
        failed = len(results) - successful
        if failed == 0:
            return f"Successfully executed {successful} operation(s)"
        if successful == 0:
            return f"{failed} operation(s) failed"
        return f"{successful} operation(s) succeeded, {failed} failed"

    def format_execution_summary(self, steps: List[ExecutionStep], iteration_count: int) -> str:
        """Per-turn totals: iterations, tool calls, skipped, success/failure, duration."""
        tool_steps = [s for s in steps if s.tool_name]
        skipped = sum(1 for s in tool_steps if s.skipped)
        executed = [s for s in tool_steps if not s.skipped]
        succeeded = sum(1 for s in executed if s.success)
        duration = sum(s.duration_ms for s in executed)

        lines = [
            "### Execution summary",
            "",
            f"**Iterations**: {iteration_count}",
            f"**Tool calls**: {len(executed)} (skipped: {skipped})",
            f"**Succeeded/Failed**: {succeeded} / {len(executed) - succeeded}",
        ]
        if duration > 0:
            lines.append(f"**Total duration**: {duration}ms")
        return "\n".join(lines) + "\n"


class ToolResultSummarizer:
    """Shape-aware rendering of a single tool result for the history context."""

    def format_for_context(self, tool_name: str, result: Any) -> str:
        if isinstance(result, Mapping):
            intents = _get(result, "applied_intents", "appliedIntents", "failed_intents", "failedIntents")
            if isinstance(intents, (list, tuple)):
                return self.format_batch_edit(result)
            if isinstance(_get(result, "structure", "semantic_map", "semanticMap"), Mapping):
                return self.format_document_structure(result)
            payload = _get(result, "output", "error")
            logger.debug("No shape renderer for %s; using generic JSON", tool_name)
            return _json_block(payload if payload is not None else dict(result))
        return _json_block(result)

    def format_batch_edit(self, result: Mapping[str, Any]) -> str:
        applied = _as_list(_get(result, "applied_intents", "appliedIntents"))
        failed = _as_list(_get(result, "failed_intents", "failedIntents"))
        total = len(applied) + len(failed)
        rate = f"{len(applied) / total * 100:.1f}" if total else "0"

        lines = [
            "**Edit execution result**",
            f"- Applied: {len(applied)} edit(s)",
            f"- Failed: {len(failed)} edit(s)",
            f"- Success rate: {rate}%",
        ]
        execution_time = _get(result.get("metadata"), "execution_time", "executionTime")
        if execution_time:
            lines.append(f"- Execution time: {execution_time}ms")

        if failed:
            lines.append("")
            lines.append("**Failed edits**:")
            for index, intent in enumerate(failed, start=1):
                if not isinstance(intent, Mapping):
                    lines.append(f"{index}. {intent}")
                    continue
                target = intent.get("target")
                section = _get(target, "section_name", "sectionName", "sid") or "unknown"
                lines.append(f'{index}. {intent.get("type", "edit")} -> "{section}"')

        semantic_errors = _get(result, "semantic_errors", "semanticErrors")
        if isinstance(semantic_errors, str):
            semantic_errors = [semantic_errors]
        semantic_errors = _as_list(semantic_errors)
        if semantic_errors:
            lines.append("")
            lines.append(f"**Semantic issues**: {', '.join(str(e) for e in semantic_errors)}")
        return "\n".join(lines) + "\n"

    def format_document_structure(self, result: Mapping[str, Any]) -> str:
        content = result.get("content")
        if not isinstance(content, str):
            content = ""
        structure = result.get("structure")
        if not isinstance(structure, Mapping):
            structure = {}
        headings = _as_list(structure.get("headings"))
        sections = _as_list(structure.get("sections"))

        lines = ["**Document structure analysis**", f"- Content: {len(content)} chars"]
        if structure:
            lines.append(f"- Headings: {len(headings)}")
            lines.append(f"- Sections: {len(sections)}")
            if headings:
                lines.append("")
                lines.append("**Outline**:")
                for heading in headings[:MAX_LISTED_HEADINGS]:
                    if not isinstance(heading, Mapping):
                        heading = {"text": str(heading)}
                    level = _heading_level(heading)
                    indent = "  " * max(0, level - 1)
                    lines.append(f"{indent}- {heading.get('text', '')} (H{level})")
                if len(headings) > MAX_LISTED_HEADINGS:
                    lines.append(f"  ... {len(headings) - MAX_LISTED_HEADINGS} more heading(s)")

        targets = _as_list(_get(_get(result, "semantic_map", "semanticMap"), "edit_targets", "editTargets"))
        if targets:
            lines.append("")
            lines.append(f"**Editable targets**: {len(targets)}")
        return "\n".join(lines) + "\n"

    def format_plan_execution(self, step: ExecutionStep) -> str:
        """One-line plan outcome: description, status, progress, failure point."""
        ctx = step.result or {}
        plan = _get(ctx, "original_execution_plan", "originalExecutionPlan")
        if not isinstance(plan, Mapping) or not plan:
            return f"- System Note: {step.content}"

        description = plan.get("description") or "Unknown Plan"
        completed = _get(ctx, "completed_steps", "completedSteps") or 0
        total = _get(ctx, "total_steps", "totalSteps") or 0
        progress = f"{completed}/{total}"

        if step.success:
            return f'- Plan Execution: "{description}" | Status: Completed | Progress: {progress} steps completed'

        failed_step = _get(ctx, "failed_step", "failedStep")
        failed_info = ""
        if failed_step:
            specialist = _get(ctx, "failed_specialist", "failedSpecialist") or "unknown"
            failed_info = f" at step {failed_step} ({specialist})"
        error = ctx.get("error")
        error_info = f" | Error: {error}" if error else ""
        return (
            f'- Plan Execution: "{description}" | Status: Failed{failed_info} '
            f"| Progress: {progress} steps{error_info}"
        )


@dataclass
class ToolResultReport:
    """Report bundle returned by the preview API."""

    report: str
    summary: str
    details: List[str] = field(default_factory=list)


def build_report(results: List[ToolResult]) -> ToolResultReport:
    """Full report, one-line summary and per-tool context blocks."""
    formatter = ResultFormatter()
    summarizer = ToolResultSummarizer()
    details = []
    for r in results:
        payload = r.output if r.success else {"error": r.error}
        details.append(f"**{r.tool_name}**\n{summarizer.format_for_context(r.tool_name, payload)}")
    return ToolResultReport(
        report=formatter.format_tool_results(results),
        summary=formatter.summarize_tool_results(results),
        details=details,
    )
