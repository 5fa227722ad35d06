"""Interactive prompts: script selection and input collection.

Copyright 2025 Ben Mensi
Licensed under the Apache License, Version 2.0
"""

import logging
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import typer

from vss.errors import UserInterrupted
from vss.scripts.graph import ScriptIndex
from vss.scripts.types import BooleanOpt, ScriptDescriptor, ScriptOpt, StringOpt, WorktreeOpt
from vss.worktree import list_worktrees

logger = logging.getLogger(__name__)

INVALID_FORMAT = "Invalid input format"


def _ask(fn: Callable[..., Any], *args, **kwargs) -> Any:
    """Call a typer prompt, turning Ctrl-C/EOF into UserInterrupted."""
    try:
        return fn(*args, **kwargs)
    except typer.Abort:
        raise UserInterrupted()


def parse_selection(answer: str, count: int) -> List[int]:
    """Parse "1, 3 4" into zero-based indices.

    Raises:
        ValueError: If a token is not a number in 1..count.
    """
    indices = []
    for token in re.split(r"[\s,]+", answer.strip()):
        if not token:
            continue
        if not token.isdigit() or not 1 <= int(token) <= count:
            raise ValueError(f"'{token}' is not a number between 1 and {count}")
        if int(token) - 1 not in indices:
            indices.append(int(token) - 1)
    return sorted(indices)


def validate_selection(selected: Sequence[ScriptDescriptor], index: ScriptIndex) -> Optional[str]:
    """Check that a selection is non-empty and closed over `requires`.

    Returns:
        An error message, or None if the selection is valid.
    """
    if not selected:
        return "You must select at least one script"

    chosen = {script.pathname for script in selected}
    for script in selected:
        for requirement in script.requires:
            dependency = index.resolve(requirement.script, script)
            if dependency is not None and dependency.pathname not in chosen:
                return (
                    f"Script '{script.name}' requires '{dependency.name}' "
                    f"to be selected as well"
                )
    return None


def select_scripts(
    scripts: Sequence[ScriptDescriptor],
    previous: Sequence[str],
    index: ScriptIndex,
) -> List[ScriptDescriptor]:
    """Show a numbered checklist and return the chosen scripts in order.

    Args:
        scripts: Every script, in execution order.
        previous: Pathnames selected last time, used as the default.
        index: Lookup used to check `requires` dependencies.

    Raises:
        UserInterrupted: If the prompt is aborted.
    """
    remembered = set(previous)
    typer.echo("Select scripts to run:")
    defaults = []
    for i, script in enumerate(scripts, 1):
        mark = "x" if script.pathname in remembered else " "
        if script.pathname in remembered:
            defaults.append(str(i))
        line = f"  [{mark}] {i}. {script}"
        if script.description:
            line += f" - {script.description}"
        typer.echo(line)

    while True:
        answer = _ask(
            typer.prompt,
            "Scripts (comma-separated numbers)",
            default=",".join(defaults) if defaults else None,
        )
        try:
            chosen = [scripts[i] for i in parse_selection(answer, len(scripts))]
        except ValueError as e:
            typer.secho(f"Invalid selection: {e}", fg=typer.colors.RED)
            continue

        error = validate_selection(chosen, index)
        if error:
            typer.secho(error, fg=typer.colors.RED)
            continue
        return chosen


def collect_args(scripts: Sequence[ScriptDescriptor], known: Mapping[str, Any]) -> Dict[str, Any]:
    """Prompt for every declared arg that has no stored value.

    Returns:
        Known values plus the newly entered ones.
    """
    values = dict(known)
    for script in scripts:
        for arg in script.args:
            if values.get(arg.name) is not None:
                continue
            values[arg.name] = _ask(
                typer.prompt, f"{arg.description} ({arg.name})", default=str(Path.home())
            )
    return values


def prompt_boolean_opt(opt: BooleanOpt, args: Mapping[str, Any]) -> Optional[bool]:
    return _ask(typer.confirm, f"{opt.description} ({opt.name})", default=bool(opt.default))


def prompt_string_opt(opt: StringOpt, args: Mapping[str, Any]) -> Optional[str]:
    """Prompt until the answer matches the pattern, if any.

    An empty answer is accepted only for optional opts and stores nothing.
    """
    while True:
        value = _ask(
            typer.prompt,
            f"{opt.description} ({opt.name})",
            default=opt.default if opt.default is not None else "",
            show_default=opt.default is not None,
        ).strip()

        if not value:
            if opt.optional:
                return None
            typer.secho("A value is required", fg=typer.colors.RED)
            continue

        if opt.pattern and not re.search(opt.pattern, value):
            typer.secho(opt.pattern_help or INVALID_FORMAT, fg=typer.colors.RED)
            continue

        return value


def prompt_worktree_opt(opt: WorktreeOpt, args: Mapping[str, Any]) -> Optional[str]:
    """Choose one of the git worktrees under the opt's base directory arg."""
    base_dir = args.get(opt.base_dir_arg)
    if not base_dir:
        typer.secho(
            f"Warning: {opt.base_dir_arg} is not set; using the default for {opt.name}",
            fg=typer.colors.YELLOW,
        )
        return opt.default

    worktrees = list_worktrees(base_dir)
    logger.debug(f"Found {len(worktrees)} worktrees in {base_dir}")
    if not worktrees:
        if opt.optional:
            return opt.default
        return _ask(typer.prompt, f"{opt.description} ({opt.name})", default=opt.default or base_dir)

    typer.echo(f"{opt.description} ({opt.name}):")
    first = 1
    if opt.optional:
        typer.echo("  0. (none)")
        first = 0
    for i, worktree in enumerate(worktrees, 1):
        typer.echo(f"  {i}. {worktree}")

    default = 0 if opt.optional else 1
    for i, worktree in enumerate(worktrees, 1):
        if worktree.path == opt.default:
            default = i

    while True:
        choice = _ask(typer.prompt, "Worktree", default=default, type=int)
        if first <= choice <= len(worktrees):
            break
        typer.secho(f"Choose a number between {first} and {len(worktrees)}", fg=typer.colors.RED)

    if choice == 0:
        return None
    return worktrees[choice - 1].path


OPT_PROMPTS = {
    BooleanOpt: prompt_boolean_opt,
    StringOpt: prompt_string_opt,
    WorktreeOpt: prompt_worktree_opt,
}


def prompt_opt(opt: ScriptOpt, args: Mapping[str, Any]) -> Any:
    handler = OPT_PROMPTS.get(type(opt))
    if handler is None:
        raise TypeError(f"Unsupported option type: {type(opt).__name__}")
    return handler(opt, args)


def collect_opts(
    scripts: Sequence[ScriptDescriptor],
    known: Mapping[str, Any],
    args: Mapping[str, Any],
) -> Dict[str, Any]:
    """Prompt for every declared opt that has no stored value.

    Empty optional answers are left out of the result.
    """
    values = dict(known)
    for script in scripts:
        for opt in script.opts:
            if opt.name in values:
                continue
            value = prompt_opt(opt, args)
            if value is not None:
                values[opt.name] = value
    return values
