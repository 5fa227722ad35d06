# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""CLI command implementations for vss."""

from dataclasses import dataclass

import typer

from vss.config import ConfigStore, GlobalConfig
from vss.errors import ConfigError
from vss.scripts.manager import ScriptManager


@dataclass
class AppState:
    """Objects shared by every command through `ctx.obj`."""

    config: ConfigStore
    manager: ScriptManager
    debug: bool = False


def get_state(ctx: typer.Context) -> AppState:
    if ctx.obj is None:
        ctx.obj = AppState(config=ConfigStore(), manager=ScriptManager())
    return ctx.obj


def load_global_config(state: AppState) -> GlobalConfig:
    """Read ~/.vss.json, exiting with status 1 if it is invalid."""
    try:
        return state.config.global_config.get()
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
