"""Read-only structural view of a workflow file.

The YAML is parsed with tree-sitter only to learn where jobs start and which
properties they carry. Nothing here ever produces YAML; the rewriters splice the
original text using the positions found here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from functools import cache
from typing import cast

from tree_sitter import Node, Parser
from tree_sitter_language_pack import SupportedLanguage, get_parser

from gha_fix.core.errors import RewriteError, RewriteErrorKind, RewriteFailure
from gha_fix.models import Position

logger = logging.getLogger(__name__)

VALID_TOP_LEVEL_KEYS = frozenset(
    {"name", "run-name", "on", "permissions", "env", "defaults", "concurrency", "jobs"}
)
WORKFLOW_JOB_KEYS = frozenset({"runs-on", "uses", "container"})

_WRAPPERS = frozenset({"block_node", "flow_node"})
_DECORATIONS = frozenset({"anchor", "tag", "comment"})
_MAPPINGS = frozenset({"block_mapping", "flow_mapping"})
_PAIRS = frozenset({"block_mapping_pair", "flow_pair"})
_QUOTED = frozenset({"double_quote_scalar", "single_quote_scalar"})


@cache
def _yaml_parser() -> Parser:
    return get_parser(cast(SupportedLanguage, "yaml"))


def _content(node: Node | None) -> Node | None:
    """Unwrap block/flow node wrappers down to the mapping, sequence or scalar."""
    while node is not None and node.type in _WRAPPERS:
        node = next((child for child in node.named_children if child.type not in _DECORATIONS), None)
    return node


def _row(node: Node) -> int:
    return node.start_point[0]


@dataclass(frozen=True)
class _Pair:
    key: str
    key_node: Node
    value: Node | None


class WorkflowDocument:
    """One parsed YAML stream; each YAML document in it may hold a workflow."""

    def __init__(self, source: bytes, roots: list[Node]) -> None:
        self._source = source
        self._roots = roots

    def _text(self, node: Node) -> str:
        text = self._source[node.start_byte : node.end_byte].decode("utf-8")
        if node.type in _QUOTED and len(text) >= 2:
            text = text[1:-1]
        return text.strip()

    def _pairs(self, mapping: Node | None) -> Iterator[_Pair]:
        if mapping is None or mapping.type not in _MAPPINGS:
            return
        for child in mapping.named_children:
            if child.type not in _PAIRS:
                continue
            key_node = child.child_by_field_name("key")
            key = _content(key_node)
            if key_node is None or key is None:
                continue
            yield _Pair(self._text(key), key_node, child.child_by_field_name("value"))

    def _keys(self, mapping: Node | None) -> set[str]:
        return {pair.key for pair in self._pairs(mapping)}

    def _job_pairs(self, root: Node) -> Iterator[_Pair]:
        for pair in self._pairs(root):
            if pair.key != "jobs":
                continue
            jobs = _content(pair.value)
            if jobs is not None and jobs.type in _MAPPINGS:
                yield from self._pairs(jobs)

    def is_github_workflow(self) -> bool:
        """Every top-level key is a workflow key and some job looks like a GitHub job."""
        for root in self._roots:
            if not self._keys(root) <= VALID_TOP_LEVEL_KEYS:
                return False
            for pair in self._job_pairs(root):
                if self._keys(_content(pair.value)) & WORKFLOW_JOB_KEYS:
                    return True
        return False

    def jobs(self) -> list[Job]:
        found: list[Job] = []
        for root in self._roots:
            for pair in self._job_pairs(root):
                job = self._job(pair)
                if job is not None:
                    found.append(job)
        return found

    def _job(self, pair: _Pair) -> Job | None:
        body = _content(pair.value)
        if body is None:
            return None
        flow_style = _row(pair.key_node) == _row(body)
        if not flow_style and body.type not in _MAPPINGS:
            return None
        keys = self._keys(body)
        return Job(
            name=pair.key,
            position=Position(line=_row(pair.key_node) + 1, column=pair.key_node.start_point[1] + 1),
            has_uses="uses" in keys,
            has_timeout="timeout-minutes" in keys,
            has_runs_on="runs-on" in keys,
            is_flow_style=flow_style,
            is_single_line=body.end_point[0] == _row(body),
            body_start_line=_row(body) + 1,
        )


class JobAction(Enum):
    INSERT = "insert"
    SKIP_REUSABLE = "skip-reusable"
    SKIP_HAS_TIMEOUT = "skip-has-timeout"
    SKIP_NOT_APPLICABLE = "skip-not-applicable"


@dataclass(frozen=True)
class Job:
    name: str
    position: Position
    has_uses: bool
    has_timeout: bool
    has_runs_on: bool
    is_flow_style: bool
    is_single_line: bool
    body_start_line: int


def classify_job(job: Job) -> JobAction:
    """Decide what the timeout rewriter does with a job.

    Raises ``RewriteFailure`` for a flow-style job whose whole body sits on the key
    line, since a new line cannot be spliced into it.
    """
    if job.has_uses:
        return JobAction.SKIP_REUSABLE
    if job.has_timeout:
        return JobAction.SKIP_HAS_TIMEOUT
    if not job.is_flow_style:
        return JobAction.INSERT
    if not job.has_runs_on:
        return JobAction.SKIP_NOT_APPLICABLE
    if job.is_single_line:
        raise RewriteFailure(
            RewriteError(RewriteErrorKind.FLOW_STYLE_NOT_SUPPORTED, line=job.position.line)
        )
    return JobAction.INSERT


def parse_workflow(content: str) -> WorkflowDocument | None:
    """Parse ``content``; None when it is not well-formed YAML."""
    source = content.encode("utf-8")
    tree = _yaml_parser().parse(source)
    if tree.root_node.has_error:
        logger.debug("Not parsing malformed YAML")
        return None
    documents = [child for child in tree.root_node.named_children if child.type == "document"]
    roots: list[Node] = []
    for document in documents or [tree.root_node]:
        root = _content(
            next((child for child in document.named_children if child.type in _WRAPPERS), None)
        )
        if root is not None and root.type in _MAPPINGS:
            roots.append(root)
    return WorkflowDocument(source, roots)


def find_insertion_jobs(document: WorkflowDocument) -> list[Job]:
    """Jobs needing ``timeout-minutes``, ordered by line."""
    eligible: list[Job] = []
    for job in document.jobs():
        action = classify_job(job)
        logger.debug(
            "Job %s at line %d (body from line %d): %s",
            job.name,
            job.position.line,
            job.body_start_line,
            action.value,
        )
        if action is JobAction.INSERT:
            eligible.append(job)
    return sorted(eligible, key=lambda job: job.position.line)