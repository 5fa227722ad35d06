"""
Script scaffolding command for vss.

Walks through a script's metadata and writes an annotated, executable
starter script.

Copyright 2025 Ben Mensi
Licensed under the Apache License, Version 2.0
"""

import re
from importlib import resources
from pathlib import Path
from typing import List, Optional, Sequence

import jinja2
import typer

from vss.commands import get_state, load_global_config
from vss.config import GlobalConfig
from vss.errors import DependencyPathError, UserInterrupted
from vss.prompts import _ask
from vss.scripts.parser import render_annotations, validate_dependency_path
from vss.scripts.types import (
    STDIN_INHERIT,
    BooleanOpt,
    OptType,
    ScriptArg,
    ScriptOpt,
    ScriptRequirement,
    StringOpt,
    WorktreeOpt,
)

SHELLS = ("zsh", "bash")
NAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


def validate_filename(filename: str, directory: Path) -> Optional[str]:
    """Check a new script's filename (entered without `.sh`).

    Returns:
        An error message, or None if the name is usable.
    """
    if not filename:
        return "Filename cannot be empty"
    if "/" in filename or "\\" in filename:
        return "Filename cannot contain path separators"
    if filename.endswith(".sh"):
        return "Enter the filename without the .sh extension"
    if (directory / f"{filename}.sh").exists():
        return f"{filename}.sh already exists in {directory}"
    return None


def render_script(
    name: str,
    shell: str = "bash",
    description: Optional[str] = None,
    after: Sequence[str] = (),
    requires: Sequence[ScriptRequirement] = (),
    args: Sequence[ScriptArg] = (),
    opts: Sequence[ScriptOpt] = (),
    stdin: Optional[str] = None,
) -> str:
    """Render a starter script through the bundled jinja2 template."""
    source = (resources.files("vss") / "templates" / "script.sh.j2").read_text()
    env = jinja2.Environment(autoescape=False, keep_trailing_newline=True)
    template = env.from_string(source)
    annotations = render_annotations(
        name,
        description=description,
        after=tuple(after),
        requires=tuple(requires),
        args=tuple(args),
        opts=tuple(opts),
        stdin=stdin,
    )
    return template.render(shell=shell, name=name, annotations=annotations, args=args, opts=opts)


def _prompt_references(message: str) -> List[str]:
    while True:
        raw = _ask(typer.prompt, message, default="", show_default=False)
        refs = raw.split()
        try:
            for ref in refs:
                validate_dependency_path(ref)
        except DependencyPathError as e:
            typer.secho(str(e), fg=typer.colors.RED)
            continue
        return refs


def _prompt_name(message: str) -> str:
    while True:
        value = _ask(typer.prompt, message).strip()
        if NAME_PATTERN.match(value):
            return value
        typer.secho("Use letters, digits and underscores only", fg=typer.colors.RED)


def _prompt_requires() -> List[ScriptRequirement]:
    requires = []
    while _ask(typer.confirm, "Add a required script (one whose exports this script uses)?", default=False):
        refs = _prompt_references("Script path and variables (e.g. ./deploy.sh ORIGIN)")
        if not refs:
            continue
        requires.append(ScriptRequirement(script=refs[0], variables=tuple(refs[1:])))
    return requires


def _prompt_args() -> List[ScriptArg]:
    args = []
    while _ask(typer.confirm, "Add an argument?", default=False):
        name = _prompt_name("Argument variable name")
        description = _ask(typer.prompt, "Argument description")
        args.append(ScriptArg(name=name, description=description))
    return args


def _prompt_opt() -> ScriptOpt:
    kinds = [t.value for t in OptType]
    while True:
        kind = _ask(typer.prompt, f"Option type ({'/'.join(kinds)})", default=OptType.STRING.value)
        if kind in kinds:
            break
        typer.secho(f"Choose one of: {', '.join(kinds)}", fg=typer.colors.RED)

    name = _prompt_name("Option variable name")
    description = _ask(typer.prompt, "Option description")
    optional = _ask(typer.confirm, "Is this option optional?", default=False)

    opt_type = OptType(kind)
    if opt_type is OptType.BOOLEAN:
        default = _ask(typer.confirm, "Default value", default=False)
        return BooleanOpt(name=name, description=description, default=default, optional=optional)

    if opt_type is OptType.STRING:
        default = _ask(typer.prompt, "Default value (optional)", default="", show_default=False) or None
        pattern = _ask(typer.prompt, "Validation regex (optional)", default="", show_default=False) or None
        pattern_help = None
        if pattern:
            pattern_help = _ask(typer.prompt, "Message shown on mismatch", default="", show_default=False) or None
        return StringOpt(
            name=name,
            description=description,
            default=default,
            optional=optional,
            pattern=pattern,
            pattern_help=pattern_help,
        )

    base_dir_arg = _prompt_name("Argument holding the repository directory")
    return WorktreeOpt(name=name, description=description, base_dir_arg=base_dir_arg, optional=optional)


def _prompt_opts() -> List[ScriptOpt]:
    opts = []
    while _ask(typer.confirm, "Add an option?", default=False):
        opts.append(_prompt_opt())
    return opts


def new_script(ctx: typer.Context):
    """Create a new annotated script interactively.

    Examples:
        vss new
    """
    state = get_state(ctx)
    config = load_global_config(state)
    try:
        _create_script(config)
    except UserInterrupted:
        raise typer.Exit(0)


def _create_script(config: GlobalConfig) -> None:
    default_dir = config.script_dirs[0] if config.script_dirs else str(Path.cwd())
    directory = Path(_ask(typer.prompt, "Directory", default=default_dir)).expanduser()
    if not directory.is_dir():
        typer.echo(f"Error: Not a directory: {directory}", err=True)
        raise typer.Exit(1)

    while True:
        filename = _ask(typer.prompt, "Filename (without .sh)").strip()
        error = validate_filename(filename, directory)
        if error is None:
            break
        typer.secho(error, fg=typer.colors.RED)

    name = _ask(typer.prompt, "Script name", default=filename)
    description = _ask(typer.prompt, "Description", default="", show_default=False) or None

    while True:
        shell = _ask(typer.prompt, f"Shell ({'/'.join(SHELLS)})", default=SHELLS[0])
        if shell in SHELLS:
            break
        typer.secho(f"Choose one of: {', '.join(SHELLS)}", fg=typer.colors.RED)

    after = _prompt_references("Run after (space-separated script paths, optional)")
    requires = _prompt_requires()
    args = _prompt_args()
    opts = _prompt_opts()
    stdin = STDIN_INHERIT if _ask(typer.confirm, "Does the script need interactive input?", default=False) else None

    content = render_script(
        name,
        shell=shell,
        description=description,
        after=after,
        requires=requires,
        args=args,
        opts=opts,
        stdin=stdin,
    )

    target = directory / f"{filename}.sh"
    target.write_text(content)
    target.chmod(0o755)

    typer.secho(f"Created {target}", fg=typer.colors.GREEN)
    if str(directory.resolve()) not in config.script_dirs:
        typer.echo(f"\nRegister the directory with: vss add-script-dir {directory}")
