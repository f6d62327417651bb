from collections.abc import Mapping

from gha_fix.core.errors import AlreadyResolvedError, ResolutionError
from gha_fix.models import ActionReference, ResolvedVersion


class InMemoryVersionResolver:
    """Resolves references from a fixed table keyed by ``owner/repo[/path]@ref``.

    A key without the subpath (``owner/repo@ref``) also answers for every path in
    that repository. Implements the ``VersionResolver`` protocol.
    """

    def __init__(self, versions: Mapping[str, ResolvedVersion] | None = None) -> None:
        self._versions = dict(versions or {})
        self.calls: list[ActionReference] = []

    def add(self, key: str, version: ResolvedVersion) -> None:
        self._versions[key] = version

    def resolve(self, ref: ActionReference) -> ResolvedVersion:
        self.calls.append(ref)
        if ref.has_commit_sha():
            raise AlreadyResolvedError(str(ref))
        for key in (str(ref), f"{ref.base}@{ref.ref_or_sha}"):
            if key in self._versions:
                return self._versions[key]
        raise ResolutionError(f"no version known for {ref}")

    def close(self) -> None:
        return None
