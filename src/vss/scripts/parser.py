"""Script annotation parsing.

Reads `@vercel.*` comment annotations out of a shell script and builds the
matching ScriptDescriptor.

Copyright 2025 Ben Mensi
Licensed under the Apache License, Version 2.0
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from vss.errors import DependencyPathError, ScriptParseError
from vss.scripts.types import (
    OPT_CLASSES,
    STDIN_INHERIT,
    OptType,
    ScriptArg,
    ScriptDescriptor,
    ScriptKey,
    ScriptOpt,
    ScriptRequirement,
    opt_to_dict,
)

logger = logging.getLogger(__name__)

ARG_PATTERN = re.compile(r"@vercel\.arg\s+(?P<name>[A-Za-z0-9_]+)\s+(?P<description>.+)$", re.M)
OPT_PATTERN = re.compile(r"@vercel\.opt\s+(?P<json>.+)$", re.M)
REQUIRES_PATTERN = re.compile(r"@vercel\.requires\s+(?P<tokens>.+)$", re.M)


def normalize_dependency_path(dep: str) -> str:
    """Strip a leading "./" from a dependency reference."""
    if dep.startswith("./"):
        return dep[2:]
    return dep


def validate_dependency_path(dep: str) -> None:
    """Reject references that climb out of the script directory.

    Raises:
        DependencyPathError: If the reference starts with "../".
    """
    if dep.startswith("../"):
        raise DependencyPathError(
            f"Dependency '{dep}' uses parent directory reference which is not allowed"
        )


def get_attribute(content: str, attribute: str) -> Optional[str]:
    match = re.search(rf"@vercel\.{re.escape(attribute)}\s+(.+)", content)
    if match is None:
        return None
    return match.group(1).strip()


def get_after(content: str) -> Tuple[str, ...]:
    raw = get_attribute(content, "after")
    if not raw:
        return ()
    deps = tuple(raw.split())
    for dep in deps:
        validate_dependency_path(dep)
    return deps


def get_requires(content: str) -> Tuple[ScriptRequirement, ...]:
    requirements = []
    for match in REQUIRES_PATTERN.finditer(content):
        tokens = match.group("tokens").split()
        if not tokens:
            continue
        script = tokens[0]
        validate_dependency_path(script)
        requirements.append(ScriptRequirement(script=script, variables=tuple(tokens[1:])))
    return tuple(requirements)


def get_args(content: str) -> Tuple[ScriptArg, ...]:
    return tuple(
        ScriptArg(name=m.group("name"), description=m.group("description").strip())
        for m in ARG_PATTERN.finditer(content)
    )


def parse_opt(data: Dict[str, Any]) -> ScriptOpt:
    """Build an option variant from its decoded JSON mapping.

    Raises:
        ScriptParseError: If the type is unknown or required fields are missing.
    """
    if not isinstance(data, dict):
        raise ScriptParseError(f"option must be a JSON object, got: {data!r}")

    try:
        opt_type = OptType(data.get("type"))
    except ValueError:
        raise ScriptParseError(f"unknown option type: {data.get('type')!r}")

    fields = {k: v for k, v in data.items() if k != "type"}
    if "baseDirArg" in fields:
        fields["base_dir_arg"] = fields.pop("baseDirArg")
    if "optional" in fields and fields["optional"] is None:
        fields["optional"] = False

    try:
        return OPT_CLASSES[opt_type](**fields)
    except TypeError as e:
        raise ScriptParseError(f"invalid {opt_type.value} option {data!r}: {e}")


def get_opts(content: str) -> Tuple[ScriptOpt, ...]:
    opts = []
    for match in OPT_PATTERN.finditer(content):
        raw = match.group("json").strip()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ScriptParseError(f"Invalid script option: {e}: {raw}")
        opts.append(parse_opt(data))
    return tuple(opts)


def get_stdin(content: str) -> Optional[str]:
    if f"@vercel.stdin {STDIN_INHERIT}" in content:
        return STDIN_INHERIT
    return None


def parse_script(content: str, path: Path, key: ScriptKey) -> ScriptDescriptor:
    """Parse one script's annotations into a descriptor.

    Args:
        content: Full script text.
        path: Absolute (or synthetic, for embedded scripts) location.
        key: The script's identity.

    Returns:
        The parsed ScriptDescriptor.

    Raises:
        ScriptParseError: If an option is malformed.
        DependencyPathError: If a dependency uses "../".
    """
    logger.debug(f"Parsing script: {path}")

    if not path.name:
        raise ScriptParseError(f"Invalid path - cannot extract filename: {path}")

    descriptor = ScriptDescriptor(
        name=get_attribute(content, "name") or path.name,
        key=key,
        absolute_pathname=path,
        description=get_attribute(content, "description"),
        after=get_after(content),
        requires=get_requires(content),
        args=get_args(content),
        opts=get_opts(content),
        stdin=get_stdin(content),
    )

    logger.debug(
        f"Script metadata - name: {descriptor.name}, args: {len(descriptor.args)}, "
        f"opts: {len(descriptor.opts)}, requires: {len(descriptor.requires)}"
    )
    return descriptor


def render_annotations(
    name: str,
    description: Optional[str] = None,
    after: Tuple[str, ...] = (),
    requires: Tuple[ScriptRequirement, ...] = (),
    args: Tuple[ScriptArg, ...] = (),
    opts: Tuple[ScriptOpt, ...] = (),
    stdin: Optional[str] = None,
) -> List[str]:
    """Render metadata back into `# @vercel.*` comment lines."""
    lines = [f"# @vercel.name {name}"]
    if description:
        lines.append(f"# @vercel.description {description}")
    if after:
        lines.append(f"# @vercel.after {' '.join(after)}")
    for req in requires:
        lines.append(f"# @vercel.requires {' '.join((req.script,) + tuple(req.variables))}")
    for arg in args:
        lines.append(f"# @vercel.arg {arg.name} {arg.description}")
    for opt in opts:
        lines.append(f"# @vercel.opt {json.dumps(opt_to_dict(opt))}")
    if stdin:
        lines.append(f"# @vercel.stdin {stdin}")
    return lines
