"""Prompt assembly error types.

Only one failure crosses the assembly boundary as an exception: the master
template could not be found. Everything else degrades to a logged fallback.
"""

from __future__ import annotations

from typing import Sequence


class PromptAssemblyError(Exception):
    """Base class for prompt assembly errors."""

    pass


class MandatoryTemplateMissingError(PromptAssemblyError):
    """A template declared mandatory was not found in any search location.

    Raised for the master template of the specialist assembly and for the
    orchestrator planning template. Callers surface this as "the assistant
    could not start this turn".
    """

    def __init__(self, key: str, searched_paths: Sequence[str] = ()):
        self.key = key
        self.searched_paths = tuple(str(p) for p in searched_paths)
        message = f"Mandatory template not found: {key}"
        if self.searched_paths:
            message += f"\nSearched in: {list(self.searched_paths)}"
        super().__init__(message)


class InvalidContextError(PromptAssemblyError, ValueError):
    """The caller-supplied assembly context is missing required fields."""

    pass


class InvalidRoleNameError(PromptAssemblyError, ValueError):
    """A role name is not a plain identifier (word characters and hyphens)."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid role name: {name!r}")
