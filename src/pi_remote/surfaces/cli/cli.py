import logging

import typer

from .commands.bot import register_bot_commands
from .commands.utils import get_version
from .commands.utils import raise_exit as _raise_exit
from .commands.utils import require_config as _require_config

logger = logging.getLogger("pi_remote.cli")

app = typer.Typer(
    add_completion=False, help="Remote control for a Raspberry Pi over Telegram."
)


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(f"pi-remote {get_version()}")
    raise typer.Exit(code=0)


@app.callback()
def _root(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    # Subcommands implement behavior; `--version` is handled eagerly.
    return


def main() -> None:
    """Entrypoint for CLI execution."""
    app()


register_bot_commands(
    app,
    require_config=_require_config,
    raise_exit=_raise_exit,
)
