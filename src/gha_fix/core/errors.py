"""Error values shared by the rewrite engines.

Transforms never raise for problems in the file they were given. They return a
``Rewrite`` whose ``error`` names what went wrong, so callers can branch on
``error.kind`` instead of matching messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import NamedTuple


class RewriteErrorKind(StrEnum):
    FLOW_STYLE_NOT_SUPPORTED = "flow-style-not-supported"
    COMPACT_JOB_SYNTAX_NOT_SUPPORTED = "compact-job-syntax-not-supported"
    INDENT_NOT_CALCULATED = "indent-not-calculated"
    RESOLUTION_FAILED = "resolution-failed"
    UNREADABLE_FILE = "unreadable-file"


_DEFAULT_MESSAGES = {
    RewriteErrorKind.FLOW_STYLE_NOT_SUPPORTED: "flow style YAML is not supported for job definitions",
    RewriteErrorKind.COMPACT_JOB_SYNTAX_NOT_SUPPORTED: (
        "compact job syntax (job_name:runs-on: ...) is not supported, please use regular YAML syntax"
    ),
    RewriteErrorKind.INDENT_NOT_CALCULATED: "could not calculate indent for timeout-minutes line",
    RewriteErrorKind.RESOLUTION_FAILED: "failed to resolve action version",
    RewriteErrorKind.UNREADABLE_FILE: "file is not valid UTF-8",
}


@dataclass(frozen=True)
class RewriteError:
    kind: RewriteErrorKind
    message: str = ""
    line: int | None = None

    def __post_init__(self) -> None:
        if not self.message:
            object.__setattr__(self, "message", _DEFAULT_MESSAGES[self.kind])

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"line {self.line}: {self.message}"


class Rewrite(NamedTuple):
    """Result of one transform call: ``(content, changed, error)``."""

    content: str
    changed: bool
    error: RewriteError | None = None


class RewriteFailure(Exception):
    """Unwinds a transform to its entry point, where it becomes ``Rewrite.error``."""

    def __init__(self, error: RewriteError) -> None:
        super().__init__(str(error))
        self.error = error


class ResolutionError(Exception):
    """The version of an action reference could not be resolved."""


class AlreadyResolvedError(ResolutionError):
    """The reference already points at a commit SHA; there is nothing to pin."""
