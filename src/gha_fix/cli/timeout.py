from pathlib import Path
from typing import Annotated

import typer

from gha_fix.cli.common import console, fail, print_changed, run_rewrite
from gha_fix.config import Settings
from gha_fix.core.timeout import TimeoutFixer


def timeout(
    ctx: typer.Context,
    files: Annotated[
        list[Path] | None,
        typer.Argument(help="Workflow files to fix. Defaults to every .yml/.yaml file below the current directory."),
    ] = None,
    timeout_value: Annotated[
        int | None,
        typer.Option("--timeout-value", "-t", help="Timeout in minutes to add to jobs (default 5)."),
    ] = None,
) -> None:
    """Add timeout-minutes to jobs that don't have one.

    Jobs calling a reusable workflow (a 'uses' job) are skipped.
    """
    settings: Settings = ctx.obj
    minutes = settings.timeout.timeout_value if timeout_value is None else timeout_value
    if minutes < 1:
        fail("Timeout value must be greater than 0.")

    summary = run_rewrite(settings, files, TimeoutFixer(minutes).fix)

    if not summary.changed:
        console.print("No changes needed. All jobs already have timeout-minutes or no jobs found.")
        return
    console.print(f"[green]Added[/green] timeout-minutes: {minutes} to jobs in {summary.file_count} file(s)")
    print_changed(summary)
