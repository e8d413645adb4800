"""
srswriter/results - Human-readable tool execution reports.

Usage:
    from srswriter.results import ResultFormatter, ToolResult
"""

from .formatter import (
    ExecutionStep,
    ResultFormatter,
    ToolResult,
    ToolResultReport,
    ToolResultSummarizer,
    build_report,
    tool_result_from_dict,
)

__all__ = [
    "ExecutionStep",
    "ResultFormatter",
    "ToolResult",
    "ToolResultReport",
    "ToolResultSummarizer",
    "build_report",
    "tool_result_from_dict",
]
