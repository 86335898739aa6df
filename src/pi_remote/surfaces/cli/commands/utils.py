from __future__ import annotations

from pathlib import Path
from typing import NoReturn, Optional

import typer

from ....core.config import BotConfig, load_config
from ....core.exceptions import ConfigError


def get_version() -> str:
    import importlib.metadata

    try:
        return importlib.metadata.version("pi-remote")
    except importlib.metadata.PackageNotFoundError:
        from .... import __version__

        return __version__


def raise_exit(message: str, *, cause: Optional[BaseException] = None) -> NoReturn:
    typer.echo(message, err=True)
    if cause is not None:
        raise typer.Exit(code=1) from cause
    raise typer.Exit(code=1)


def require_config(path: Optional[Path]) -> BotConfig:
    try:
        return load_config(path)
    except ConfigError as exc:
        raise_exit(f"Config error: {exc}", cause=exc)
