"""Topological ordering of entity types by declared dependencies."""

from collections import deque
from typing import Dict, List, Mapping, Sequence

from sync_dal.errors import ConfigurationError


def compute_resource_order(
    graph: Mapping[str, Sequence[str]], strict: bool = False
) -> Dict[str, int]:
    """Assign each entity a 1-based sync position that respects its dependencies.

    Entities with no pending dependencies are taken in configuration order.
    Dependency names that are not themselves entities of ``graph`` are
    ignored, unless ``strict`` is set, in which case they are an error.

    Raises:
        ConfigurationError: When the graph contains a cycle (naming every
            entity that could not be ordered) or, in strict mode, when a
            dependency is unknown.
    """
    names = list(graph)
    in_degree: Dict[str, int] = {name: 0 for name in names}
    dependents: Dict[str, List[str]] = {name: [] for name in names}
    unknown: List[str] = []

    for name in names:
        for dep in graph[name] or ():
            if dep in dependents:
                in_degree[name] += 1
                dependents[dep].append(name)
            elif dep not in unknown:
                unknown.append(dep)

    if strict and unknown:
        raise ConfigurationError(
            f"Unknown dependencies: {', '.join(unknown)}", entities=unknown
        )

    queue = deque(name for name in names if in_degree[name] == 0)
    order: Dict[str, int] = {}
    while queue:
        current = queue.popleft()
        order[current] = len(order) + 1
        for dependent in dependents[current]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(order) != len(names):
        missing = [name for name in names if name not in order]
        raise ConfigurationError(
            f"Circular dependency detected among: {', '.join(missing)}", entities=missing
        )
    return order


def ordered_names(order: Mapping[str, int]) -> List[str]:
    """Return entity names sorted by their assigned position."""
    return sorted(order, key=order.__getitem__)
