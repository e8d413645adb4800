"""Findings produced by prompt and template checks.

Prompt validation only ever adds warnings; the template consistency report
adds an error when the master template is missing. Issues are ordered by
location then type so reports are stable across runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """One finding.

    Attributes:
        issue_type: Machine-readable kind, e.g. "SECTION_MARKER".
        location: Role name or template key the finding is about.
        problem: Human-readable description.
        fix_action: Suggested remedy.
        severity: error or warning.
    """

    issue_type: str
    location: str
    problem: str
    fix_action: str
    severity: Severity = Severity.WARNING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.issue_type,
            "location": self.location,
            "problem": self.problem,
            "fix_action": self.fix_action,
            "severity": self.severity.value,
        }


@dataclass
class ValidationResult:
    """Errors and warnings collected by one check run."""

    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    def add_error(self, issue_type: str, location: str, problem: str, fix_action: str) -> None:
        self.errors.append(ValidationIssue(issue_type, location, problem, fix_action, Severity.ERROR))

    def add_warning(self, issue_type: str, location: str, problem: str, fix_action: str) -> None:
        """Record an advisory finding; warnings never block assembly."""
        self.warnings.append(ValidationIssue(issue_type, location, problem, fix_action))

    def has_errors(self) -> bool:
        return bool(self.errors)

    def warning_types(self) -> List[str]:
        """Issue types of all warnings, in collection order."""
        return [w.issue_type for w in self.warnings]

    @staticmethod
    def _ordered(issues: List[ValidationIssue]) -> List[ValidationIssue]:
        return sorted(issues, key=lambda i: (i.location, i.issue_type))

    def sorted_errors(self) -> List[ValidationIssue]:
        return self._ordered(self.errors)

    def sorted_warnings(self) -> List[ValidationIssue]:
        return self._ordered(self.warnings)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready summary with PASS/FAIL status."""
        return {
            "status": "FAIL" if self.errors else "PASS",
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "errors": [e.to_dict() for e in self.sorted_errors()],
            "warnings": [w.to_dict() for w in self.sorted_warnings()],
        }
