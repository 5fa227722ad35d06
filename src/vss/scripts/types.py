"""Script descriptor model.

A descriptor is the parsed, read-only record of one discovered script:
identity, ordering and data dependencies, declared inputs and stdin mode.

Copyright 2025 Ben Mensi
Licensed under the Apache License, Version 2.0
"""

from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import typer

STDIN_INHERIT = "inherit"


class ScriptSource(Enum):
    """Where a script comes from."""

    EMBEDDED = "embedded"
    EXTERNAL = "external"


@dataclass(frozen=True)
class ScriptKey:
    """Normalized script identity.

    Embedded scripts are keyed by bare filename, external scripts by their
    absolute path. The two never collide because the source is part of the key.
    """

    source: ScriptSource
    value: str

    @classmethod
    def embedded(cls, filename: str) -> "ScriptKey":
        return cls(ScriptSource.EMBEDDED, filename)

    @classmethod
    def external(cls, path: Union[str, Path]) -> "ScriptKey":
        return cls(ScriptSource.EXTERNAL, str(path))


@dataclass(frozen=True)
class ScriptArg:
    """A required input collected once and shared across scripts."""

    name: str
    description: str


@dataclass(frozen=True)
class ScriptRequirement:
    """A data dependency: `script` must run first and export `variables`."""

    script: str
    variables: Tuple[str, ...] = ()


class OptType(Enum):
    """Supported @vercel.opt kinds."""

    BOOLEAN = "boolean"
    STRING = "string"
    WORKTREE = "worktree"


@dataclass(frozen=True)
class BooleanOpt:
    name: str
    description: str
    default: Optional[bool] = None
    optional: bool = False

    type = OptType.BOOLEAN


@dataclass(frozen=True)
class StringOpt:
    name: str
    description: str
    default: Optional[str] = None
    optional: bool = False
    pattern: Optional[str] = None
    pattern_help: Optional[str] = None

    type = OptType.STRING


@dataclass(frozen=True)
class WorktreeOpt:
    name: str
    description: str
    base_dir_arg: str
    default: Optional[str] = None
    optional: bool = False

    type = OptType.WORKTREE


ScriptOpt = Union[BooleanOpt, StringOpt, WorktreeOpt]

OPT_CLASSES: Dict[OptType, type] = {
    OptType.BOOLEAN: BooleanOpt,
    OptType.STRING: StringOpt,
    OptType.WORKTREE: WorktreeOpt,
}


def opt_to_dict(opt: ScriptOpt) -> Dict[str, Any]:
    """Serialize an option back to its @vercel.opt JSON shape."""
    data = {"name": opt.name, "description": opt.description, "type": opt.type.value}
    for key, value in asdict(opt).items():
        if key in data or value is None:
            continue
        if key == "optional" and not value:
            continue
        data[key] = value
    return data


@dataclass(frozen=True)
class ScriptDescriptor:
    """One discovered script.

    `pathname` is the stable identifier used for dependency lookup, the export
    map and the remembered selection. It is unique within one discovery run.
    """

    name: str
    key: ScriptKey
    absolute_pathname: Path
    description: Optional[str] = None
    after: Tuple[str, ...] = ()
    requires: Tuple[ScriptRequirement, ...] = ()
    args: Tuple[ScriptArg, ...] = ()
    opts: Tuple[ScriptOpt, ...] = ()
    stdin: Optional[str] = None

    @property
    def pathname(self) -> str:
        return self.key.value

    @property
    def embedded(self) -> bool:
        return self.key.source is ScriptSource.EMBEDDED

    @property
    def filename(self) -> str:
        return self.absolute_pathname.name

    @property
    def inherits_stdio(self) -> bool:
        return self.stdin == STDIN_INHERIT

    def __str__(self) -> str:
        return f"{self.name} " + typer.style(f"({self.filename})", dim=True)
