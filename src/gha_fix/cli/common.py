import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from gha_fix.config import LOG_LEVELS, Settings
from gha_fix.core.rewrite import RewriteAbortedError, RewriteSummary, Transform, rewrite_files

console = Console()

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(level: str) -> None:
    """Send the package's log records to stderr through rich."""
    name = level.strip().lower()
    package_logger = logging.getLogger("gha_fix")
    package_logger.handlers = [RichHandler(console=Console(stderr=True), show_path=False)]
    package_logger.setLevel(_LEVELS.get(name, logging.INFO))
    package_logger.propagate = False
    if name not in LOG_LEVELS:
        package_logger.warning("Invalid log level %r, using 'info'", level)


def fail(message: str) -> NoReturn:
    console.print(f"[red]{escape(message)}[/red]")
    raise typer.Exit(1)


def run_rewrite(settings: Settings, files: Sequence[Path] | None, transform: Transform) -> RewriteSummary:
    try:
        return asyncio.run(rewrite_files(list(files or []), settings.ignore_dirs, transform))
    except RewriteAbortedError as exc:
        console.print(f"[red]No files were changed; {len(exc.failures)} file(s) failed:[/red]")
        for path, error in exc.failures:
            console.print(escape(f"  {path}: {error}"), soft_wrap=True)
        raise typer.Exit(1) from exc
    except OSError as exc:
        fail(f"Cannot rewrite workflow files: {exc}")


def print_changed(summary: RewriteSummary) -> None:
    for path in summary.paths:
        console.print(escape(f"  {path}"), soft_wrap=True)
