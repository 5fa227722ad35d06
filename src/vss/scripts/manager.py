"""Script discovery and staging.

Embedded scripts ship as package resources under `vss/embedded/`. External
scripts live in the directories the user registered with `add-script-dir`.
Before a script runs, the runtime shim and (for embedded scripts) the script
body are staged into the user cache directory so bash can source real files.

Copyright 2025 Ben Mensi
Licensed under the Apache License, Version 2.0
"""

import logging
import os
from importlib import resources
from pathlib import Path
from typing import Iterable, List, Optional, Union

from vss.scripts.parser import parse_script
from vss.scripts.types import ScriptDescriptor, ScriptKey

logger = logging.getLogger(__name__)

SCRIPT_SUFFIX = ".sh"
RUNTIME_FILENAME = "runtime.sh"


def _cache_dir() -> Path:
    """Get the vss cache directory."""
    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        return Path(xdg) / "vss"
    return Path("~/.cache/vss").expanduser()


def _embedded_root():
    return resources.files("vss") / "embedded"


def _runtime_resource():
    return resources.files("vss") / "runtime" / RUNTIME_FILENAME


def list_script_files(directory: Union[str, Path]) -> List[Path]:
    """List `*.sh` files directly inside a directory, sorted by filename.

    Returns:
        Matching files, or an empty list if the directory doesn't exist.
    """
    directory = Path(directory).expanduser()
    if not directory.is_dir():
        return []
    return sorted(
        (p for p in directory.iterdir() if p.is_file() and p.suffix == SCRIPT_SUFFIX),
        key=lambda p: p.name,
    )


def count_scripts(directory: Union[str, Path]) -> int:
    return len(list_script_files(directory))


def _write_if_changed(target: Path, content: str) -> bool:
    """Write content to target unless it already holds exactly that content.

    Returns:
        True if the file was written.
    """
    target.parent.mkdir(parents=True, exist_ok=True)
    if target.exists() and target.read_text() == content:
        return False
    target.write_text(content)
    return True


class ScriptManager:
    """Discovers scripts and stages them for execution.

    Args:
        cache_dir: Staging directory. Defaults to $XDG_CACHE_HOME/vss or
            ~/.cache/vss.
    """

    def __init__(self, cache_dir: Optional[Path] = None):
        self.cache_dir = Path(cache_dir) if cache_dir is not None else _cache_dir()

    def embedded_scripts(self) -> List[ScriptDescriptor]:
        root = _embedded_root()
        entries = sorted(
            (e for e in root.iterdir() if e.is_file() and e.name.endswith(SCRIPT_SUFFIX)),
            key=lambda e: e.name,
        )
        scripts = []
        for entry in entries:
            logger.debug(f"Discovered embedded script: {entry.name}")
            scripts.append(
                parse_script(entry.read_text(), Path(str(entry)), ScriptKey.embedded(entry.name))
            )
        return scripts

    def external_scripts(self, directory: Union[str, Path]) -> List[ScriptDescriptor]:
        directory = Path(directory).expanduser()
        if not directory.is_dir():
            logger.debug(f"Script directory not found, skipping: {directory}")
            return []

        scripts = []
        for path in list_script_files(directory):
            absolute = path.resolve()
            logger.debug(f"Discovered external script: {absolute}")
            scripts.append(
                parse_script(absolute.read_text(), absolute, ScriptKey.external(absolute))
            )
        return scripts

    def discover(self, external_dirs: Iterable[Union[str, Path]] = ()) -> List[ScriptDescriptor]:
        """Discover embedded scripts, then each configured directory in order.

        Raises:
            ScriptParseError: If any script's annotations are malformed.
        """
        scripts = self.embedded_scripts()
        seen = set()
        for directory in external_dirs:
            resolved = Path(directory).expanduser().resolve()
            if resolved in seen:
                logger.debug(f"Script directory listed more than once, skipping: {directory}")
                continue
            seen.add(resolved)
            scripts.extend(self.external_scripts(resolved))
        logger.debug(f"Discovered {len(scripts)} scripts")
        return scripts

    def prepare_runtime(self) -> Path:
        """Stage the runtime shim and return its path."""
        target = self.cache_dir / RUNTIME_FILENAME
        if _write_if_changed(target, _runtime_resource().read_text()):
            logger.debug(f"Wrote runtime to {target}")
        target.chmod(0o755)
        return target

    def prepare_script(self, script: ScriptDescriptor) -> Path:
        """Return a runnable path for a script, staging embedded ones first."""
        if not script.embedded:
            return script.absolute_pathname

        target = self.cache_dir / "script" / script.filename
        content = (_embedded_root() / script.filename).read_text()
        if _write_if_changed(target, content):
            logger.debug(f"Staged embedded script {script.filename} to {target}")
        target.chmod(0o755)
        return target
