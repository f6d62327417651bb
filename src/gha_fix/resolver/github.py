from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterable
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx

from gha_fix.core.errors import AlreadyResolvedError, ResolutionError
from gha_fix.models import ActionReference, ResolvedVersion

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"

_COMMIT_SHA = re.compile(r"[0-9a-f]{40}")
_TAGS_PER_PAGE = 100


def _headers(token: str | None) -> dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": "gha-fix",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def most_specific_tag(ref: str, tags: Iterable[str]) -> str:
    """Pick the tag that best describes ``ref``, e.g. ``v4.2.2`` for ``v4``.

    Only tags equal to ``ref`` or extending it with ``.`` qualify; without any, the
    ref itself is the description.
    """
    matching = [tag for tag in tags if tag == ref or tag.startswith(f"{ref}.")]
    if not matching:
        return ref
    return max(matching, key=lambda tag: (tag.count("."), len(tag), tag))


class GitHubVersionResolver:
    """Resolves action refs through the GitHub REST API.

    Results are cached per ``(owner, repo, ref)``; concurrent lookups of the same
    key wait for a single request. Safe to share between threads.
    Implements the ``VersionResolver`` protocol.
    """

    def __init__(
        self,
        token: str | None = None,
        client: httpx.Client | None = None,
        base_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
        max_tag_pages: int = 10,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url, headers=_headers(token), timeout=timeout)
        self._max_tag_pages = max_tag_pages
        self._lock = threading.Lock()
        self._key_locks: dict[tuple[str, str, str], threading.Lock] = {}
        self._cache: dict[tuple[str, str, str], ResolvedVersion] = {}

    def __enter__(self) -> GitHubVersionResolver:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def resolve(self, ref: ActionReference) -> ResolvedVersion:
        if ref.has_commit_sha():
            raise AlreadyResolvedError(str(ref))

        key = (ref.owner.lower(), ref.repo.lower(), ref.ref_or_sha)
        with self._lock:
            key_lock = self._key_locks.setdefault(key, threading.Lock())
        with key_lock:
            cached = self._cache.get(key)
            if cached is None:
                cached = self._resolve(ref)
                self._cache[key] = cached
            return cached

    def _resolve(self, ref: ActionReference) -> ResolvedVersion:
        sha = self._commit_sha(ref)
        comment = most_specific_tag(ref.ref_or_sha, self._tags_at(ref, sha))
        logger.debug("Resolved %s@%s to %s (%s)", ref.base, ref.ref_or_sha, sha, comment)
        return ResolvedVersion(commit_sha=sha, ref_comment=comment)

    def _get(self, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.get(url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ResolutionError(f"GitHub API returned {exc.response.status_code} for {url}") from exc
        except httpx.HTTPError as exc:
            raise ResolutionError(f"GitHub API request to {url} failed: {exc}") from exc
        return response

    def _commit_sha(self, ref: ActionReference) -> str:
        url = f"/repos/{ref.owner}/{ref.repo}/commits/{quote(ref.ref_or_sha)}"
        response = self._get(url, headers={"Accept": "application/vnd.github.sha"})
        sha = response.text.strip().lower()
        if not _COMMIT_SHA.fullmatch(sha):
            raise ResolutionError(f"unexpected commit SHA {sha!r} for {ref.base}@{ref.ref_or_sha}")
        return sha

    def _tags_at(self, ref: ActionReference, sha: str) -> list[str]:
        """Names of the tags pointing at ``sha``."""
        names: list[str] = []
        for page in range(1, self._max_tag_pages + 1):
            response = self._get(
                f"/repos/{ref.owner}/{ref.repo}/tags",
                params={"per_page": _TAGS_PER_PAGE, "page": page},
            )
            tags = response.json()
            if not isinstance(tags, list) or not tags:
                break
            for tag in tags:
                commit = tag.get("commit") or {}
                if commit.get("sha") == sha and isinstance(tag.get("name"), str):
                    names.append(tag["name"])
            if names or len(tags) < _TAGS_PER_PAGE:
                break
        return names
