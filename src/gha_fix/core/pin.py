import logging
from collections.abc import Iterable

from gha_fix.core.errors import (
    AlreadyResolvedError,
    ResolutionError,
    Rewrite,
    RewriteError,
    RewriteErrorKind,
)
from gha_fix.core.ports.resolver import VersionResolver
from gha_fix.core.references import parse_line
from gha_fix.models import ActionReference, ResolvedVersion

logger = logging.getLogger(__name__)


class Pinner:
    """Pins ``uses:`` references in a workflow file to commit SHAs.

    Owner and repository ignores match the base repository (``owner/repo``). With
    ``strict_pinning`` the owner ignore list no longer protects composite or
    third-party actions, but reusable workflows and ignored repositories are still
    left alone.
    """

    def __init__(
        self,
        resolver: VersionResolver,
        ignore_owners: Iterable[str] = (),
        ignore_repos: Iterable[str] = (),
        strict_pinning: bool = False,
    ) -> None:
        self._resolver = resolver
        self._ignore_owners = frozenset(ignore_owners)
        self._ignore_repos = frozenset(ignore_repos)
        self._strict_pinning = strict_pinning

    def is_ignored(self, ref: ActionReference) -> bool:
        if ref.base in self._ignore_repos:
            return True
        if ref.owner not in self._ignore_owners:
            return False
        if self._strict_pinning and not ref.is_reusable_workflow():
            return False
        return True

    def replace_line(
        self,
        line: str,
        resolved: dict[ActionReference, ResolvedVersion | None] | None = None,
    ) -> tuple[str, bool]:
        """Rewrite a single line, returning ``(line, changed)``.

        ``resolved`` memoizes resolver answers across lines; None marks a reference
        that is already a commit SHA. Raises ``ResolutionError`` on resolver failure.
        """
        parsed = parse_line(line)
        if parsed is None:
            return line, False

        ref = parsed.definition
        if self.is_ignored(ref):
            logger.debug("Skipping ignored action %s", ref)
            return line, False

        if resolved is None:
            resolved = {}
        if ref not in resolved:
            try:
                resolved[ref] = self._resolver.resolve(ref)
            except AlreadyResolvedError:
                resolved[ref] = None
        version = resolved[ref]
        if version is None:
            return line, False

        comment = f"# {version.ref_comment}"
        if parsed.comment:
            comment = f"{comment} {parsed.comment}"
        new_line = parsed.render(f"{ref.full_name}@{version.commit_sha}", comment)
        return new_line, new_line != line

    def apply(self, content: str) -> Rewrite:
        lines = content.split("\n")
        resolved: dict[ActionReference, ResolvedVersion | None] = {}
        changed = False
        for index, line in enumerate(lines):
            try:
                new_line, line_changed = self.replace_line(line, resolved)
            except ResolutionError as exc:
                error = RewriteError(RewriteErrorKind.RESOLUTION_FAILED, str(exc), line=index + 1)
                return Rewrite(content, False, error)
            if line_changed:
                lines[index] = new_line
                changed = True

        if not changed:
            return Rewrite(content, False)
        return Rewrite("\n".join(lines), True)
