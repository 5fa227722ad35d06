# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""Error types shared by planning, execution and the CLI."""

from typing import List


class VssError(Exception):
    """Base class for all vss errors."""

    pass


class ConfigError(VssError):
    """Raised when a config file cannot be read or parsed."""

    pass


class ScriptParseError(VssError):
    """Raised when a script's annotations are malformed."""

    pass


class DependencyPathError(ScriptParseError):
    """Raised when a dependency reference escapes the script directory."""

    pass


class PlanningError(VssError):
    """Raised when no valid execution plan can be built."""

    pass


class DependencyNotFoundError(PlanningError):
    """Raised when a dependency reference resolves to no known script."""

    def __init__(self, reference: str, script_name: str, kind: str = "Dependency"):
        self.reference = reference
        self.script_name = script_name
        super().__init__(
            f"{kind} '{reference}' not found in any known script directory "
            f"for script '{script_name}'"
        )


class CircularDependencyError(PlanningError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        if cycle:
            message = "Circular dependency detected: " + " -> ".join(cycle)
        else:
            message = "Circular dependency detected"
        super().__init__(message)


class MissingExportsError(VssError):
    """Raised when a script requires variables its dependencies never exported."""

    def __init__(self, script_name: str, messages: List[str]):
        self.script_name = script_name
        self.messages = messages
        super().__init__(
            f"Script '{script_name}' failed due to missing required variables: "
            + "; ".join(messages)
        )


class ScriptFailedError(VssError):
    """Raised when a script exits with a non-zero status."""

    def __init__(self, script_name: str, exit_code: int):
        self.script_name = script_name
        self.exit_code = exit_code
        super().__init__(f"Script {script_name} failed with exit code: {exit_code}")


class UserInterrupted(VssError):
    """Raised when the user aborts an interactive prompt."""

    pass
