import logging
from dataclasses import dataclass

from gha_fix.core.errors import Rewrite, RewriteError, RewriteErrorKind, RewriteFailure
from gha_fix.core.workflow import Job, find_insertion_jobs, parse_workflow

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MINUTES = 5

_JOB_PROPERTY_PREFIXES = (
    "runs-on:",
    "steps:",
    "permissions:",
    "strategy:",
    "timeout-minutes:",
    "needs:",
)
_FLOW_STYLE_MARKERS = ("runs-on:", "steps:", "uses:")


def _reject_unsupported_syntax(lines: list[str]) -> None:
    for number, line in enumerate(lines, start=1):
        if ": {" in line and any(marker in line for marker in _FLOW_STYLE_MARKERS):
            raise RewriteFailure(RewriteError(RewriteErrorKind.FLOW_STYLE_NOT_SUPPORTED, line=number))
        if ":runs-on:" in line:
            raise RewriteFailure(RewriteError(RewriteErrorKind.COMPACT_JOB_SYNTAX_NOT_SUPPORTED, line=number))


def _leading_whitespace(line: str) -> str:
    return line[: len(line) - len(line.lstrip(" \t"))]


def job_property_indent(lines: list[str], job_line: int, flow_style: bool = False) -> str:
    """Indentation for a property of the job whose key is on 1-based ``job_line``.

    Flow-style jobs indent two spaces past the key. Block jobs copy the
    indentation of the first recognizable job property after the key line.
    """
    if flow_style and 0 < job_line <= len(lines):
        return _leading_whitespace(lines[job_line - 1]) + "  "

    for line in lines[job_line:]:
        trimmed = line.strip()
        if trimmed.startswith(_JOB_PROPERTY_PREFIXES):
            indent = _leading_whitespace(line)
            if indent:
                return indent

    raise RewriteFailure(RewriteError(RewriteErrorKind.INDENT_NOT_CALCULATED, line=job_line))


@dataclass(frozen=True)
class TimeoutFixer:
    """Adds ``timeout-minutes`` to jobs that have none.

    Jobs calling a reusable workflow (a ``uses`` job) cannot take a timeout and are
    skipped, as are jobs that already set one, whatever its value.
    """

    timeout_minutes: int = DEFAULT_TIMEOUT_MINUTES

    def __post_init__(self) -> None:
        if self.timeout_minutes < 1:
            raise ValueError(f"timeout-minutes must be greater than 0, got {self.timeout_minutes}")

    def _timeout_line(self, job: Job, lines: list[str]) -> str:
        indent = job_property_indent(lines, job.position.line, flow_style=job.is_flow_style)
        line = f"{indent}timeout-minutes: {self.timeout_minutes}"
        if job.is_flow_style:
            # entries of a flow mapping are comma separated
            line += ","
        if lines[job.position.line - 1].endswith("\r"):
            line += "\r"
        return line

    def fix(self, content: str) -> Rewrite:
        if "jobs:" not in content or "runs-on:" not in content:
            return Rewrite(content, False)

        lines = content.split("\n")
        try:
            _reject_unsupported_syntax(lines)

            document = parse_workflow(content)
            if document is None or not document.is_github_workflow():
                return Rewrite(content, False)

            inserted = 0
            for job in reversed(find_insertion_jobs(document)):
                if not 0 < job.position.line <= len(lines):
                    continue
                lines.insert(job.position.line, self._timeout_line(job, lines))
                inserted += 1
                logger.debug("Added timeout-minutes to job %s", job.name)
        except RewriteFailure as exc:
            return Rewrite(content, False, exc.error)

        if not inserted:
            return Rewrite(content, False)
        return Rewrite("\n".join(lines), True)
