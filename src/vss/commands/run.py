"""
Interactive run flow for vss.

Discovers scripts, plans their order, asks which to run, collects their
inputs and executes them.

Copyright 2025 Ben Mensi
Licensed under the Apache License, Version 2.0
"""

import logging

import typer

from vss.commands import AppState
from vss.config import AppConfig, GlobalConfig
from vss.errors import (
    MissingExportsError,
    PlanningError,
    ScriptFailedError,
    UserInterrupted,
    VssError,
)
from vss.prompts import collect_args, collect_opts, select_scripts, validate_selection
from vss.scripts.graph import ScriptIndex, build_execution_order
from vss.scripts.runner import execute_scripts

logger = logging.getLogger(__name__)

EXPORT_HINT = (
    "Hint: Ensure that required scripts properly export their variables "
    "using 'export VARIABLE_NAME=value'"
)


def _run(state: AppState, replay: bool) -> None:
    global_config = state.config.global_config.get()
    app_config = state.config.app_config.get()
    script_dirs = global_config.script_dirs

    scripts = state.manager.discover(script_dirs)
    ordered = build_execution_order(scripts, script_dirs)
    if not ordered:
        typer.echo("No scripts found.")
        typer.echo("\nAdd a directory with: vss add-script-dir <path>")
        return

    index = ScriptIndex(ordered, script_dirs)
    if replay:
        remembered = set(app_config.selected)
        selected = [s for s in ordered if s.pathname in remembered]
        if not selected:
            typer.echo("No scripts selected.")
            return
        error = validate_selection(selected, index)
        if error:
            typer.echo(f"Error: Cannot replay previous selection: {error}", err=True)
            raise typer.Exit(1)
        logger.debug(f"Replaying selection: {[s.pathname for s in selected]}")
    else:
        selected = select_scripts(ordered, app_config.selected, index)
        pathnames = [s.pathname for s in selected]

        def _save_selection(c: AppConfig) -> None:
            c.selected = pathnames

        state.config.app_config.update(_save_selection)
        if not selected:
            typer.echo("No scripts selected.")
            return

    args = collect_args(selected, global_config.args)
    opts = collect_opts(selected, app_config.opts, args)

    if args:
        def _save_args(c: GlobalConfig) -> None:
            c.args.update(args)

        state.config.global_config.update(_save_args)

    if opts:
        def _save_opts(c: AppConfig) -> None:
            c.opts.update(opts)

        state.config.app_config.update(_save_opts)

    typer.echo()
    execute_scripts(selected, args, opts, state.manager, script_dirs, debug=state.debug)


def run_interactive(state: AppState, replay: bool = False) -> None:
    """Run the interactive flow and map failures to exit codes.

    Raises:
        typer.Exit: With the failing script's exit code, or 1 for any other
            error. A user interrupt exits silently with 0.
    """
    try:
        _run(state, replay)
    except UserInterrupted:
        raise typer.Exit(0)
    except ScriptFailedError as e:
        raise typer.Exit(e.exit_code)
    except MissingExportsError as e:
        typer.secho(
            f"Error: Script '{e.script_name}' failed due to missing required variables:",
            fg=typer.colors.RED,
            err=True,
        )
        for message in e.messages:
            typer.echo(f"  - {message}", err=True)
        typer.echo(EXPORT_HINT, err=True)
        raise typer.Exit(1)
    except PlanningError as e:
        typer.echo(f"Planning error: {e}", err=True)
        raise typer.Exit(1)
    except (VssError, OSError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
