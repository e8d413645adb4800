"""
srswriter/validator - Structured validation issues.
"""

from .errors import ValidationIssue, ValidationResult

__all__ = ["ValidationIssue", "ValidationResult"]
