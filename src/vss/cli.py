# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Main CLI entry point for vss.

Running `vss` with no subcommand starts the interactive flow: pick scripts,
fill in their inputs, run them in dependency order.
"""

import logging

import typer

from vss import __version__
from vss.commands import AppState, get_state
from vss.commands import new, run, script_dirs, scripts
from vss.config import ConfigStore
from vss.scripts.manager import ScriptManager

app = typer.Typer(
    name="vss",
    help="Select and run dependent shell scripts",
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    replay: bool = typer.Option(False, "--replay", "-r", help="Rerun the previous selection without prompting"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """Select and run dependent shell scripts."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if ctx.obj is None:
        ctx.obj = AppState(config=ConfigStore(), manager=ScriptManager())
    ctx.obj.debug = debug

    if ctx.invoked_subcommand is None:
        run.run_interactive(get_state(ctx), replay=replay)


@app.command()
def version():
    """Show version information."""
    typer.echo(f"vss version {__version__}")


app.command("add-script-dir")(script_dirs.add_script_dir)
app.command("remove-script-dir")(script_dirs.remove_script_dir)
app.command("list-script-dirs")(script_dirs.list_script_dirs)
app.command("list-scripts")(scripts.list_scripts)
app.command("ls", hidden=True)(scripts.list_scripts)
app.command("new")(new.new_script)


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
