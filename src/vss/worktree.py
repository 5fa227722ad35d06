# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""Git worktree discovery for worktree options."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

DETACHED = "(detached)"


@dataclass(frozen=True)
class Worktree:
    path: str
    branch: str
    head: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.branch} ({self.path})"


def parse_porcelain(output: str) -> List[Worktree]:
    """Parse `git worktree list --porcelain` output.

    Entries are separated by blank lines. A missing `branch` line means the
    worktree is detached.
    """
    worktrees = []
    path = branch = head = None

    def flush():
        if path:
            worktrees.append(Worktree(path=path, branch=branch or DETACHED, head=head))

    for line in output.splitlines():
        line = line.strip()
        if not line:
            flush()
            path = branch = head = None
        elif line.startswith("worktree "):
            path = line[len("worktree "):]
        elif line.startswith("branch "):
            branch = line[len("branch "):]
            if branch.startswith("refs/heads/"):
                branch = branch[len("refs/heads/"):]
        elif line.startswith("HEAD "):
            head = line[len("HEAD "):]
    flush()
    return worktrees


def list_worktrees(base_dir: Union[str, Path]) -> List[Worktree]:
    """List the git worktrees of a repository.

    Returns:
        Worktrees in git's order, or an empty list if git fails.
    """
    try:
        result = subprocess.run(
            ["git", "worktree", "list", "--porcelain"],
            cwd=str(Path(base_dir).expanduser()),
            capture_output=True,
            text=True,
            check=True,
        )
    except (subprocess.CalledProcessError, OSError) as e:
        logger.debug(f"git worktree list failed in {base_dir}: {e}")
        return []
    return parse_porcelain(result.stdout)
