from pathlib import Path
from typing import Annotated

import typer

from gha_fix.cli.common import configure_logging, fail
from gha_fix.cli.pin import pin
from gha_fix.cli.timeout import timeout
from gha_fix.config import ConfigError, load_settings, split_names

app = typer.Typer(
    name="gha-fix",
    help="Fix GitHub Actions workflow files: pin actions to commit SHAs, add job timeouts.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def configure(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Config file (default is ./gha-fix.toml)."),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", "-l", help="Log level: debug, info, warn or error."),
    ] = None,
    ignore_dirs: Annotated[
        str | None,
        typer.Option(help="Comma-separated directory names to skip when searching for workflow files."),
    ] = None,
) -> None:
    try:
        settings = load_settings(config)
    except ConfigError as exc:
        fail(str(exc))

    if log_level is not None:
        settings.log_level = log_level
    if ignore_dirs is not None:
        settings.ignore_dirs = split_names(ignore_dirs)
    configure_logging(settings.log_level)
    ctx.obj = settings


app.command("pin")(pin)
app.command("timeout")(timeout)


def main() -> None:
    app()
