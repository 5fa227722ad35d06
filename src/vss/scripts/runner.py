"""Execution engine.

Runs ordered scripts one at a time through the bash runtime shim, streams
their output with a colored per-script prefix, and carries exported
variables forward to the scripts that require them.

Copyright 2025 Ben Mensi
Licensed under the Apache License, Version 2.0
"""

import logging
import os
import subprocess
import tempfile
import threading
from pathlib import Path
from typing import IO, Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import typer

from vss.errors import MissingExportsError, ScriptFailedError
from vss.scripts.exports import (
    POST_ENV_FILE_VAR,
    PRE_ENV_FILE_VAR,
    ExportParser,
    LineKind,
    read_exports_from_files,
)
from vss.scripts.graph import ScriptIndex
from vss.scripts.manager import ScriptManager
from vss.scripts.types import ScriptDescriptor

logger = logging.getLogger(__name__)

ExportMap = Dict[str, Dict[str, str]]

PALETTE = [
    typer.colors.GREEN,
    typer.colors.YELLOW,
    typer.colors.BLUE,
    typer.colors.MAGENTA,
    typer.colors.CYAN,
    typer.colors.RED,
]

DEFAULT_SHELL = "/bin/bash"

# Serializes output from concurrent drain threads.
_OUTPUT_LOCK = threading.Lock()


def stringify(value: Any) -> str:
    """Render an arg/opt value the way shell scripts expect it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_environment(
    script: ScriptDescriptor,
    args: Mapping[str, Any],
    opts: Mapping[str, Any],
    exports: ExportMap,
    index: ScriptIndex,
    debug: bool = False,
) -> Tuple[Dict[str, str], Dict[str, str]]:
    """Assemble the variables passed to one script.

    Args:
        script: The script about to run.
        args: Collected arg values, keyed by name.
        opts: Collected opt values, keyed by name.
        exports: Exports of the scripts that already ran.
        index: Lookup used to resolve `requires` references.
        debug: Whether to set VSS_DEBUG.

    Returns:
        (variables, origins) where origins maps each required variable to
        the name of the script it came from.

    Raises:
        MissingExportsError: If any required variable is unavailable.
    """
    env: Dict[str, str] = {}
    origins: Dict[str, str] = {}

    if debug:
        env["VSS_DEBUG"] = "1"

    for arg in script.args:
        if args.get(arg.name) is not None:
            env[arg.name] = stringify(args[arg.name])

    for opt in script.opts:
        if opts.get(opt.name) is not None:
            env[opt.name] = stringify(opts[opt.name])

    messages: List[str] = []
    for requirement in script.requires:
        dependency = index.resolve(requirement.script, script)
        dep_name = dependency.name if dependency else requirement.script
        dep_exports = exports.get(dependency.pathname) if dependency else None

        if not dep_exports:
            if requirement.variables:
                missing = ", ".join(requirement.variables)
                messages.append(
                    f"Script '{script.name}' requires variables from '{dep_name}', "
                    f"but that script did not export any variables (missing: {missing})"
                )
            continue

        for variable in requirement.variables:
            if variable in dep_exports:
                env[variable] = dep_exports[variable]
                origins[variable] = dep_name
            else:
                messages.append(
                    f"Variable '{variable}' required by script '{script.name}' "
                    f"was not exported by script '{dep_name}'"
                )

    if messages:
        raise MissingExportsError(script.name, messages)

    return env, origins


def _drain_stdout(stream: IO[str], parser: ExportParser, prefix: str) -> None:
    for raw in iter(stream.readline, ""):
        result = parser.process_line(raw.rstrip("\n"))
        if result.kind is LineKind.PASSTHROUGH:
            with _OUTPUT_LOCK:
                typer.echo(f"{prefix} {result.text}")


def _drain_stderr(stream: IO[str], prefix: str) -> None:
    for raw in iter(stream.readline, ""):
        line = raw.rstrip("\n")
        with _OUTPUT_LOCK:
            typer.echo(f"{prefix} {line}", err=True)


def _temp_file(prefix: str) -> Path:
    handle = tempfile.NamedTemporaryFile(prefix=prefix, suffix=".env", delete=False)
    handle.close()
    return Path(handle.name)


def _remove(path: Union[str, Path]) -> None:
    try:
        Path(path).unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.debug(f"Could not remove temp file {path}: {e}")


def run_script(
    script: ScriptDescriptor,
    variables: Mapping[str, str],
    manager: ScriptManager,
    color: str = PALETTE[0],
) -> Tuple[int, Dict[str, str]]:
    """Run one script to completion.

    Args:
        script: The script to run.
        variables: Extra environment variables for the script.
        manager: Stages the runtime and the script body.
        color: Prefix color for streamed lines.

    Returns:
        (exit_code, exports). A signal death is reported as exit code 1.

    Raises:
        OSError: If staging or spawning fails.
    """
    runtime = manager.prepare_runtime()
    script_path = manager.prepare_script(script)

    pre_file = _temp_file("vss-pre-")
    post_file = _temp_file("vss-post-")
    announced: Optional[Tuple[str, str]] = None

    env = dict(os.environ)
    env.update(variables)
    env.setdefault("SHELL", DEFAULT_SHELL)
    env[PRE_ENV_FILE_VAR] = str(pre_file)
    env[POST_ENV_FILE_VAR] = str(post_file)

    command = ["bash", str(runtime), str(script_path)]
    logger.debug(f"Spawning {command} (stdin: {script.stdin or 'null'})")

    try:
        parser = ExportParser()
        if script.inherits_stdio:
            process = subprocess.Popen(command, env=env)
            process.wait()
        else:
            prefix = typer.style(f"[{script.filename}]", fg=color)
            process = subprocess.Popen(
                command,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                bufsize=1,
                errors="replace",
            )
            threads = [
                threading.Thread(target=_drain_stdout, args=(process.stdout, parser, prefix)),
                threading.Thread(target=_drain_stderr, args=(process.stderr, prefix)),
            ]
            for thread in threads:
                thread.start()
            process.wait()
            for thread in threads:
                thread.join()
            process.stdout.close()
            process.stderr.close()

        exports = dict(parser.exports)
        exports.update(read_exports_from_files(pre_file, post_file))

        announced = parser.snapshot_files
        if announced and announced != (str(pre_file), str(post_file)):
            exports.update(read_exports_from_files(*announced))

        code = process.returncode
        if code is None or code < 0:
            logger.debug(f"Script {script.name} ended without an exit code ({code})")
            code = 1
        logger.debug(f"Script {script.name} exited with {code}, exports: {sorted(exports)}")
        return code, exports
    finally:
        _remove(pre_file)
        _remove(post_file)
        if announced:
            for path in announced:
                _remove(path)


def _print_header(script: ScriptDescriptor, color: str, env: Mapping[str, str], origins: Mapping[str, str]):
    typer.secho(f"✨ Running {script.name}...", fg=color, bold=True)
    for name, value in env.items():
        if name == "VSS_DEBUG":
            continue
        line = f"    {name}: {value}"
        if name in origins:
            line += typer.style(" (from dep)", dim=True)
        typer.echo(line)


def execute_scripts(
    scripts: Sequence[ScriptDescriptor],
    args: Mapping[str, Any],
    opts: Mapping[str, Any],
    manager: ScriptManager,
    external_dirs: Iterable[Union[str, Path]] = (),
    debug: bool = False,
) -> ExportMap:
    """Run scripts in the given order, stopping at the first failure.

    Args:
        scripts: Scripts in execution order.
        args: Collected arg values.
        opts: Collected opt values.
        manager: Stages the runtime and embedded scripts.
        external_dirs: Configured script directories, for `requires` lookup.
        debug: Set VSS_DEBUG=1 for every script.

    Returns:
        Exports of every script that exported something, keyed by pathname.

    Raises:
        MissingExportsError: If a script requires variables nobody exported.
        ScriptFailedError: If a script exits non-zero.
        OSError: If staging or spawning fails.
    """
    index = ScriptIndex(scripts, external_dirs)
    exports: ExportMap = {}

    for i, script in enumerate(scripts):
        color = PALETTE[i % len(PALETTE)]
        env, origins = build_environment(script, args, opts, exports, index, debug)

        _print_header(script, color, env, origins)
        code, script_exports = run_script(script, env, manager, color)

        if script_exports:
            exports[script.pathname] = script_exports

        if code != 0:
            typer.secho(
                f"Error: Script {script.name} failed with exit code: {code}",
                fg=typer.colors.RED,
                err=True,
            )
            raise ScriptFailedError(script.name, code)

        typer.echo()

    return exports
