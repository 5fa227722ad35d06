"""
Script directory commands for vss.

Manages the external directories searched for `*.sh` scripts.

Copyright 2025 Ben Mensi
Licensed under the Apache License, Version 2.0
"""

from pathlib import Path
from typing import Optional

import typer

from vss.commands import get_state, load_global_config
from vss.config import GlobalConfig
from vss.scripts.manager import count_scripts


def _describe_dir(directory: str) -> str:
    path = Path(directory)
    if not path.exists():
        return typer.style("(not found)", fg=typer.colors.RED)
    if not path.is_dir():
        return typer.style("(not a directory)", fg=typer.colors.RED)
    count = count_scripts(path)
    if count == 0:
        return typer.style("→ no scripts", dim=True)
    return typer.style(f"→ {count} script{'s' if count != 1 else ''}", fg=typer.colors.GREEN)


def add_script_dir(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Directory containing .sh scripts"),
):
    """Register a directory of external scripts.

    Examples:
        vss add-script-dir ~/my-scripts
    """
    state = get_state(ctx)
    directory = path.expanduser()

    if not directory.exists():
        typer.echo(f"Error: Directory does not exist: {directory}", err=True)
        raise typer.Exit(1)
    if not directory.is_dir():
        typer.echo(f"Error: Not a directory: {directory}", err=True)
        raise typer.Exit(1)

    resolved = str(directory.resolve())
    config = load_global_config(state)
    if resolved in config.script_dirs:
        typer.secho(f"Warning: {resolved} is already registered", fg=typer.colors.YELLOW)
        return

    def _add(c: GlobalConfig) -> None:
        c.script_dirs.append(resolved)

    state.config.global_config.update(_add)

    count = count_scripts(resolved)
    typer.secho(f"Added script directory: {resolved}", fg=typer.colors.GREEN)
    typer.echo(f"Found {count} script{'s' if count != 1 else ''}")


def remove_script_dir(
    ctx: typer.Context,
    path: Optional[Path] = typer.Argument(None, help="Directory to remove"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Unregister a script directory.

    With no path, the single configured directory is chosen, or you pick one
    from a numbered list.
    """
    state = get_state(ctx)
    config = load_global_config(state)
    dirs = config.script_dirs

    if not dirs:
        typer.echo("No script directories configured.")
        return

    if path is not None:
        target = str(path.expanduser().resolve())
        if target not in dirs and str(path) in dirs:
            target = str(path)
        if target not in dirs:
            typer.echo(f"Error: {path} is not a configured script directory", err=True)
            typer.echo("Configured directories:", err=True)
            for directory in dirs:
                typer.echo(f"  - {directory}", err=True)
            raise typer.Exit(1)
    elif len(dirs) == 1:
        target = dirs[0]
    else:
        for i, directory in enumerate(dirs, 1):
            typer.echo(f"  {i}. {directory}")
        choice = typer.prompt("Directory to remove", type=int)
        if not 1 <= choice <= len(dirs):
            typer.echo(f"Error: Choose a number between 1 and {len(dirs)}", err=True)
            raise typer.Exit(1)
        target = dirs[choice - 1]

    if not yes and not typer.confirm(f"Remove {target}?", default=False):
        typer.echo("Cancelled.")
        return

    def _remove(c: GlobalConfig) -> None:
        c.script_dirs.remove(target)

    updated = state.config.global_config.update(_remove)

    remaining = len(updated.script_dirs)
    typer.secho(f"Removed script directory: {target}", fg=typer.colors.GREEN)
    typer.echo(f"{remaining} director{'ies' if remaining != 1 else 'y'} remaining")


def list_script_dirs(ctx: typer.Context):
    """List registered script directories."""
    config = load_global_config(get_state(ctx))

    if not config.script_dirs:
        typer.echo("No script directories configured.")
        typer.echo("\nAdd one with: vss add-script-dir <path>")
        return

    typer.echo("Script directories:\n")
    for i, directory in enumerate(config.script_dirs, 1):
        typer.echo(f"  {i}. {directory} {_describe_dir(directory)}")
