"""Apply a transform to workflow files on disk."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from gha_fix.core.errors import Rewrite, RewriteError, RewriteErrorKind

logger = logging.getLogger(__name__)

Transform = Callable[[str], Rewrite]

DEFAULT_IGNORE_DIRS: tuple[str, ...] = (
    ".git",
    "node_modules",
    "dist",
    "out",
    "vendor",
    ".idea",
    ".vscode",
    "bin",
    "build",
    "tmp",
    "coverage",
    ".cache",
    "__pycache__",
)
_WORKFLOW_SUFFIXES = frozenset({".yml", ".yaml"})
_DEFAULT_CONCURRENCY = 8


@dataclass(frozen=True)
class RewriteSummary:
    changed: bool
    file_count: int
    paths: tuple[Path, ...] = field(default=())


class RewriteAbortedError(Exception):
    """At least one file could not be rewritten; no file was written."""

    def __init__(self, failures: Sequence[tuple[Path, RewriteError]]) -> None:
        self.failures = list(failures)
        details = "; ".join(f"{path}: {error}" for path, error in self.failures)
        super().__init__(f"failed to rewrite {len(self.failures)} file(s): {details}")


def find_workflow_files(root: Path, ignore_dirs: Iterable[str] = DEFAULT_IGNORE_DIRS) -> list[Path]:
    """All ``.yml``/``.yaml`` files below ``root``, skipping ignored directory names."""
    ignored = set(ignore_dirs)
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [name for name in dirnames if name not in ignored]
        for filename in filenames:
            path = Path(dirpath) / filename
            if path.suffix.lower() in _WORKFLOW_SUFFIXES:
                found.append(path)
    return sorted(found)


def _stage(path: Path, content: str) -> Path:
    """Write ``content`` to a sibling temp file carrying ``path``'s mode."""
    temp_file = tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        newline="",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(temp_file.name)
    try:
        with temp_file:
            temp_file.write(content)
        shutil.copymode(path, temp_path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise
    return temp_path


def _commit(temp_path: Path, path: Path) -> None:
    try:
        os.replace(temp_path, path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise


def write_atomic(path: Path, content: str) -> None:
    """Replace ``path`` by writing a sibling temp file and renaming it over the original."""
    _commit(_stage(path, content), path)


def _read(path: Path) -> str:
    with path.open(encoding="utf-8", newline="") as fp:
        return fp.read()


async def rewrite_files(
    file_paths: Sequence[str | Path],
    ignore_dirs: Iterable[str],
    transform: Transform,
    root: Path | None = None,
    concurrency: int = _DEFAULT_CONCURRENCY,
) -> RewriteSummary:
    """Run ``transform`` over ``file_paths``, or over every workflow file below ``root``.

    Files are transformed concurrently on worker threads. Discovered files that
    are not UTF-8 are skipped; a named one is a failure. Changes are written only
    when every file succeeded: all new contents are staged as temp files first and
    renamed into place afterwards, so a transform or staging failure leaves the
    whole tree untouched.
    """
    base = root if root is not None else Path.cwd()
    explicit = bool(file_paths)
    if explicit:
        paths = [Path(p) if Path(p).is_absolute() else base / p for p in file_paths]
    else:
        paths = find_workflow_files(base, ignore_dirs)
    logger.debug("Rewriting %d file(s)", len(paths))

    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _run(path: Path) -> tuple[Path, Rewrite]:
        async with semaphore:
            try:
                original = await asyncio.to_thread(_read, path)
            except UnicodeDecodeError as exc:
                if not explicit:
                    logger.warning("Skipping %s: not valid UTF-8", path)
                    return path, Rewrite("", False)
                message = f"file is not valid UTF-8 (byte {exc.start}: {exc.reason})"
                return path, Rewrite("", False, RewriteError(RewriteErrorKind.UNREADABLE_FILE, message))
            return path, await asyncio.to_thread(transform, original)

    results = await asyncio.gather(*(_run(path) for path in paths))

    failures = [(path, result.error) for path, result in results if result.error is not None]
    if failures:
        for path, error in failures:
            logger.error("Failed to rewrite %s: %s", path, error)
        raise RewriteAbortedError(failures)

    changed = [(path, result.content) for path, result in results if result.changed]
    staged: list[tuple[Path, Path]] = []
    try:
        for path, content in changed:
            staged.append((path, await asyncio.to_thread(_stage, path, content)))
    except OSError:
        for _, temp_path in staged:
            temp_path.unlink(missing_ok=True)
        raise

    for path, temp_path in staged:
        _commit(temp_path, path)
        logger.info("Updated %s", path)

    return RewriteSummary(
        changed=bool(changed),
        file_count=len(changed),
        paths=tuple(path for path, _ in changed),
    )
