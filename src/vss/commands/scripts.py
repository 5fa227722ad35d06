"""
Script listing command for vss.

Copyright 2025 Ben Mensi
Licensed under the Apache License, Version 2.0
"""

import typer

from vss.commands import get_state, load_global_config
from vss.errors import VssError


def list_scripts(ctx: typer.Context):
    """List every discovered script with its inputs.

    Examples:
        vss list-scripts
        vss ls
    """
    state = get_state(ctx)
    config = load_global_config(state)

    try:
        scripts = state.manager.discover(config.script_dirs)
    except VssError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not scripts:
        typer.echo("No scripts found.")
        typer.echo("\nAdd a directory with: vss add-script-dir <path>")
        return

    typer.echo("Available scripts:\n")
    for script in scripts:
        typer.secho(f"  {script.name}", bold=True)
        if script.description:
            typer.echo(f"    {script.description}")
        source = "embedded" if script.embedded else str(script.absolute_pathname.parent)
        typer.echo(f"    Source: {source} ({script.filename})")
        for arg in script.args:
            typer.echo(f"    Arg: {arg.name} - {arg.description}")
        for opt in script.opts:
            extra = ", optional" if opt.optional else ""
            typer.echo(f"    Opt: {opt.name} ({opt.type.value}{extra}) - {opt.description}")
        typer.echo()

    embedded = sum(1 for s in scripts if s.embedded)
    typer.echo(f"Total: {len(scripts)} scripts ({embedded} embedded, {len(scripts) - embedded} external)")
