"""
outcome.py - Recoverable load results.

Every loader in the assembly pipeline returns a LoadOutcome instead of raising.
An outcome carries either a value or a recoverable issue plus the fallback to
use in its place; `unwrap_or_log` turns the issue into a single WARNING log
line and hands back the fallback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class IssueKind(str, Enum):
    """Recoverable failure categories."""

    TEMPLATE_MISSING = "template_missing"
    CONTEXT_SOURCE_UNAVAILABLE = "context_source_unavailable"
    CONFIG_PARSE_MALFORMED = "config_parse_malformed"


@dataclass(frozen=True)
class RecoverableIssue:
    """A failure that degrades output but never aborts assembly."""

    kind: IssueKind
    source: str
    message: str


@dataclass(frozen=True)
class LoadOutcome(Generic[T]):
    """Value-or-fallback result of a loader."""

    value: T
    issue: Optional[RecoverableIssue] = None

    @property
    def ok(self) -> bool:
        return self.issue is None

    @classmethod
    def success(cls, value: T) -> "LoadOutcome[T]":
        return cls(value=value)

    @classmethod
    def degraded(
        cls,
        fallback: T,
        kind: IssueKind,
        source: str,
        message: str,
    ) -> "LoadOutcome[T]":
        return cls(value=fallback, issue=RecoverableIssue(kind, source, message))

    def unwrap_or_log(self, logger: logging.Logger) -> T:
        """Return the value, logging the recoverable issue if there is one."""
        if self.issue is not None:
            logger.warning(
                "%s (%s): %s", self.issue.kind.value, self.issue.source, self.issue.message
            )
        return self.value
