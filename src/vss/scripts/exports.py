"""Export protocol codec.

A running script hands variables back to vss in one of two ways:

- Marker protocol: print `### VSS_EXPORTS_BEGIN ###`, then one `NAME=value`
  per line, then `### VSS_EXPORTS_END ###`.
- Snapshot-diff protocol: the runtime dumps `export -p` to the files named by
  VSS_PRE_ENV_FILE before the script body and VSS_POST_ENV_FILE after it.
  Lines present only in the post file are the script's exports.

Copyright 2025 Ben Mensi
Licensed under the Apache License, Version 2.0
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Union

logger = logging.getLogger(__name__)

BEGIN_MARKER = "### VSS_EXPORTS_BEGIN ###"
END_MARKER = "### VSS_EXPORTS_END ###"

# Environment variables the engine injects with the snapshot file paths.
PRE_ENV_FILE_VAR = "VSS_PRE_ENV_FILE"
POST_ENV_FILE_VAR = "VSS_POST_ENV_FILE"

# Keys inside a marker section that name snapshot files instead of exports.
PRE_ENV_FILE_KEY = "PRE_ENV_FILE"
POST_ENV_FILE_KEY = "POST_ENV_FILE"


class LineKind(Enum):
    PASSTHROUGH = "passthrough"
    VARIABLE = "variable"
    MARKER = "marker"


@dataclass(frozen=True)
class ExportLine:
    """Classification of one stdout line."""

    kind: LineKind
    text: Optional[str] = None
    key: Optional[str] = None
    value: Optional[str] = None


MARKER_LINE = ExportLine(LineKind.MARKER)


def strip_quotes(value: str, quotes: str = '"') -> str:
    """Remove one layer of matching surrounding quotes."""
    if len(value) > 1 and value[0] == value[-1] and value[0] in quotes:
        return value[1:-1]
    return value


class ExportParser:
    """Streaming line classifier for the marker protocol.

    State is a single inside/outside flag; lines must be fed in arrival order.
    """

    def __init__(self):
        self.in_export_section = False
        self.exports: Dict[str, str] = {}
        self.pre_env_file: Optional[str] = None
        self.post_env_file: Optional[str] = None

    def process_line(self, line: str) -> ExportLine:
        """Classify a line and update state.

        Variable lines are also recorded in `exports`.
        """
        if BEGIN_MARKER in line:
            self.in_export_section = True
            return MARKER_LINE

        if END_MARKER in line:
            self.in_export_section = False
            return MARKER_LINE

        if not self.in_export_section:
            return ExportLine(LineKind.PASSTHROUGH, text=line)

        stripped = line.strip()
        if not stripped or "=" not in stripped:
            return MARKER_LINE

        key, value = stripped.split("=", 1)
        key = key.strip()
        value = value.strip()

        if key == PRE_ENV_FILE_KEY:
            self.pre_env_file = value
            return MARKER_LINE
        if key == POST_ENV_FILE_KEY:
            self.post_env_file = value
            return MARKER_LINE

        value = strip_quotes(value)
        self.exports[key] = value
        return ExportLine(LineKind.VARIABLE, key=key, value=value)

    @property
    def snapshot_files(self) -> Optional[Tuple[str, str]]:
        """Snapshot file pair announced through the marker section, if complete."""
        if self.pre_env_file and self.post_env_file:
            return self.pre_env_file, self.post_env_file
        return None


# Characters bash escapes with a backslash inside double quotes.
DOUBLE_QUOTE_ESCAPE = re.compile(r'\\([\\"$`])')


def unquote_shell_value(value: str) -> str:
    """Undo the quoting bash uses when printing `export -p` values.

    Backslash escapes inside a double-quoted value are removed. A
    single-quoted value is taken literally.
    """
    if len(value) > 1 and value[0] == value[-1] == '"':
        return DOUBLE_QUOTE_ESCAPE.sub(r"\1", value[1:-1])
    return strip_quotes(value, quotes="'")


def parse_export_line(line: str) -> Optional[Tuple[str, str]]:
    """Parse `export NAME=value` or `declare -x NAME=value`.

    Returns:
        (name, value) with shell quoting undone, or None if the line is not
        an assignment.
    """
    eq_pos = line.find("=")
    if eq_pos < 0:
        return None
    before_eq = line[:eq_pos]
    space = before_eq.rfind(" ")
    if space < 0:
        return None
    key = before_eq[space + 1:].strip()
    if not key:
        return None
    return key, unquote_shell_value(line[eq_pos + 1:].strip())


def _read_lines(path: Union[str, Path]) -> Optional[List[str]]:
    path = Path(path)
    if not path.exists():
        return None
    try:
        return path.read_text(errors="replace").splitlines()
    except OSError as e:
        logger.debug(f"Could not read snapshot file {path}: {e}")
        return None


def read_exports_from_files(pre_file: Union[str, Path], post_file: Union[str, Path]) -> Dict[str, str]:
    """Diff two export snapshots.

    Missing or empty files count as no variables.

    Returns:
        Variables whose line appears in the post snapshot but not the pre one.
    """
    pre_lines = _read_lines(pre_file) or []
    post_lines = _read_lines(post_file) or []

    before: Set[str] = set(pre_lines)
    exports: Dict[str, str] = {}
    for line in post_lines:
        if line in before:
            continue
        parsed = parse_export_line(line)
        if parsed is not None:
            key, value = parsed
            exports[key] = value
    return exports
