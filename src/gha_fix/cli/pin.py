from pathlib import Path
from typing import Annotated

import typer

from gha_fix.cli.common import console, fail, print_changed, run_rewrite
from gha_fix.config import Settings, split_names
from gha_fix.core.pin import Pinner
from gha_fix.resolver.github import GitHubVersionResolver


def _get_resolver(token: str) -> GitHubVersionResolver:
    return GitHubVersionResolver(token)


def pin(
    ctx: typer.Context,
    files: Annotated[
        list[Path] | None,
        typer.Argument(help="Workflow files to pin. Defaults to every .yml/.yaml file below the current directory."),
    ] = None,
    github_token: Annotated[
        str | None,
        typer.Option(envvar="GITHUB_TOKEN", help="GitHub token used to look up tags and commit SHAs."),
    ] = None,
    ignore_owners: Annotated[
        str | None,
        typer.Option(help='Comma-separated owners to skip (e.g. "actions,github").'),
    ] = None,
    ignore_repos: Annotated[
        str | None,
        typer.Option(help='Comma-separated repositories to skip (e.g. "actions/checkout,docker/login-action").'),
    ] = None,
    strict_pinning: Annotated[
        bool | None,
        typer.Option(
            "--strict-pinning/--no-strict-pinning",
            help="Pin actions of ignored owners too; reusable workflows keep honoring the ignore lists.",
        ),
    ] = None,
) -> None:
    """Pin GitHub Actions to commit SHAs.

    Replaces references like 'owner/repo@v4' with 'owner/repo@<sha> # v4.2.2'.
    """
    settings: Settings = ctx.obj
    options = settings.pin

    token = github_token or options.github_token
    if not token:
        fail(
            "GitHub token is required. "
            "Use --github-token, GITHUB_TOKEN or github-token in the pin section of gha-fix.toml."
        )

    resolver = _get_resolver(token)
    pinner = Pinner(
        resolver,
        ignore_owners=options.ignore_owners if ignore_owners is None else split_names(ignore_owners),
        ignore_repos=options.ignore_repos if ignore_repos is None else split_names(ignore_repos),
        strict_pinning=options.strict_pinning if strict_pinning is None else strict_pinning,
    )
    try:
        summary = run_rewrite(settings, files, pinner.apply)
    finally:
        resolver.close()

    if not summary.changed:
        console.print("No changes needed. All GitHub Actions are already pinned or no actions found.")
        return
    console.print(f"[green]Pinned[/green] GitHub Actions to commit SHAs in {summary.file_count} file(s)")
    print_changed(summary)
