"""Dependency graph builder and execution ordering.

Builds a directed graph over discovered scripts from `after` (ordering only)
and `requires` (ordering plus exported variables) references and produces a
deterministic topological order. Planning either yields a full valid order or
raises before anything runs.

Copyright 2025 Ben Mensi
Licensed under the Apache License, Version 2.0
"""

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import networkx as nx

from vss.errors import CircularDependencyError, DependencyNotFoundError
from vss.scripts.parser import normalize_dependency_path
from vss.scripts.types import ScriptDescriptor, ScriptKey

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _join(base: PathLike, reference: str) -> str:
    return os.path.normpath(os.path.join(str(base), reference))


class ScriptIndex:
    """Lookup table from ScriptKey to descriptor position.

    Resolution order for a reference:
    1. bare filename of an embedded script (or an absolute external path)
    2. relative to the referencing script's directory (external scripts only)
    3. each configured external directory, first match wins
    """

    def __init__(self, scripts: Sequence[ScriptDescriptor], external_dirs: Iterable[PathLike] = ()):
        self.scripts: List[ScriptDescriptor] = []
        self.external_dirs = [Path(d).expanduser().resolve() for d in external_dirs]
        self._positions: Dict[ScriptKey, int] = {}
        for script in scripts:
            if script.key in self._positions:
                other = self.scripts[self._positions[script.key]]
                logger.warning(
                    f"Duplicate script identity '{script.pathname}' "
                    f"({other.name} and {script.name}); keeping the first"
                )
                continue
            self._positions[script.key] = len(self.scripts)
            self.scripts.append(script)

    def position(self, reference: str, referrer: ScriptDescriptor) -> Optional[int]:
        """Return the index of the script a reference points at, or None."""
        normalized = normalize_dependency_path(reference)
        logger.debug(
            f"Resolving dependency '{reference}' -> '{normalized}' for script '{referrer.name}'"
        )

        candidates = [ScriptKey.embedded(normalized)]
        if os.path.isabs(normalized):
            candidates.append(ScriptKey.external(os.path.normpath(normalized)))
        for key in candidates:
            if key in self._positions:
                logger.debug(f"Found dependency '{normalized}' via direct lookup")
                return self._positions[key]

        if not referrer.embedded:
            key = ScriptKey.external(_join(referrer.absolute_pathname.parent, normalized))
            if key in self._positions:
                logger.debug(f"Found dependency '{normalized}' relative to script directory")
                return self._positions[key]

        for directory in self.external_dirs:
            key = ScriptKey.external(_join(directory, normalized))
            if key in self._positions:
                logger.debug(f"Found dependency '{normalized}' in external directory '{directory}'")
                return self._positions[key]

        logger.debug(f"Could not resolve dependency '{normalized}' in any location")
        return None

    def resolve(self, reference: str, referrer: ScriptDescriptor) -> Optional[ScriptDescriptor]:
        position = self.position(reference, referrer)
        if position is None:
            return None
        return self.scripts[position]


def build_graph(index: ScriptIndex) -> "nx.MultiDiGraph":
    """Build the dependency graph with one node per script position.

    Edges point from dependency to dependent.

    Raises:
        DependencyNotFoundError: If any reference cannot be resolved.
    """
    graph = nx.MultiDiGraph()
    graph.add_nodes_from(range(len(index.scripts)))

    for i, script in enumerate(index.scripts):
        for dep in script.after:
            dep_idx = index.position(dep, script)
            if dep_idx is None:
                raise DependencyNotFoundError(dep, script.name)
            logger.debug(f"Adding dependency edge: {index.scripts[dep_idx].name} -> {script.name}")
            graph.add_edge(dep_idx, i, kind="after")

        for requirement in script.requires:
            dep_idx = index.position(requirement.script, script)
            if dep_idx is None:
                raise DependencyNotFoundError(requirement.script, script.name, kind="Required script")
            logger.debug(
                f"Adding requirement edge: {index.scripts[dep_idx].name} -> {script.name} "
                f"for variables {list(requirement.variables)}"
            )
            graph.add_edge(dep_idx, i, kind="requires", variables=requirement.variables)

    return graph


def topological_order(graph: "nx.MultiDiGraph", scripts: Sequence[ScriptDescriptor]) -> List[int]:
    """Order node positions so every dependency precedes its dependents.

    Ties between independent scripts are broken by discovery position, so the
    result is stable for a fixed input.

    Raises:
        CircularDependencyError: If the graph contains a cycle.
    """
    try:
        return list(nx.lexicographical_topological_sort(graph))
    except nx.NetworkXUnfeasible:
        try:
            edges = nx.find_cycle(graph)
        except nx.NetworkXNoCycle:
            edges = []
        cycle = [scripts[edge[0]].name for edge in edges]
        if edges:
            cycle.append(scripts[edges[0][0]].name)
        raise CircularDependencyError(cycle)


def build_execution_order(
    scripts: Sequence[ScriptDescriptor], external_dirs: Iterable[PathLike] = ()
) -> List[ScriptDescriptor]:
    """Sort scripts into a valid execution order.

    Args:
        scripts: Every discovered script (embedded and external).
        external_dirs: Configured script directories, in configured order.

    Returns:
        The scripts, each exactly once, dependencies first.

    Raises:
        DependencyNotFoundError: If a reference cannot be resolved.
        CircularDependencyError: If the dependencies form a cycle.
    """
    index = ScriptIndex(scripts, external_dirs)
    logger.debug(f"Building dependency graph for {len(index.scripts)} scripts")
    graph = build_graph(index)

    logger.debug("Performing topological sort")
    ordered = [index.scripts[i] for i in topological_order(graph, index.scripts)]

    logger.debug(f"Final execution order: {[s.name for s in ordered]}")
    return ordered
