from typing import Protocol

from gha_fix.models import ActionReference, ResolvedVersion


class VersionResolver(Protocol):
    """Resolves an action reference to a commit SHA.

    Raises ``AlreadyResolvedError`` when the reference is already a commit SHA and
    ``ResolutionError`` for anything that must abort the file being pinned.
    Implementations shared between concurrently processed files must be thread-safe.
    """

    def resolve(self, ref: ActionReference) -> ResolvedVersion: ...
