"""Script discovery, planning and execution.

Scripts are shell files annotated with `@vercel.*` comments. They are ordered
by their dependencies and run one at a time, passing exported variables
forward.

Copyright 2025 Ben Mensi
Licensed under the Apache License, Version 2.0
"""

from vss.scripts.exports import (
    ExportLine,
    ExportParser,
    LineKind,
    read_exports_from_files,
)
from vss.scripts.graph import ScriptIndex, build_execution_order
from vss.scripts.manager import ScriptManager, count_scripts
from vss.scripts.parser import parse_script
from vss.scripts.runner import ExportMap, execute_scripts
from vss.scripts.types import (
    BooleanOpt,
    OptType,
    ScriptArg,
    ScriptDescriptor,
    ScriptKey,
    ScriptRequirement,
    ScriptSource,
    StringOpt,
    WorktreeOpt,
)

__all__ = [
    "ScriptDescriptor",
    "ScriptKey",
    "ScriptSource",
    "ScriptArg",
    "ScriptRequirement",
    "OptType",
    "BooleanOpt",
    "StringOpt",
    "WorktreeOpt",
    "parse_script",
    "ScriptIndex",
    "build_execution_order",
    "ScriptManager",
    "count_scripts",
    "ExportLine",
    "ExportParser",
    "LineKind",
    "read_exports_from_files",
    "ExportMap",
    "execute_scripts",
]
