"""
DEFCACHE Dependency Sorter

Module 02 v1.0

Topological order of a DependencyGraph with cycle detection.

Order convention: a node is emitted only after all of its dependencies, so
the result reads dependencies-first, dependents-last. Eviction consumes the
list from the back, which removes records nothing depends on first.
"""

from __future__ import annotations
from typing import Iterator, List, Set, Tuple, TYPE_CHECKING

from defcache.errors import CyclicDependencyError

if TYPE_CHECKING:
    from .graph import DependencyGraph


def sort_dependency_graph(graph: "DependencyGraph") -> List[str]:
    """
    Sort the dependency graph by topological order.

    Depth-first, driven by an explicit stack of (key, remaining dependencies)
    so chain length is not limited by the interpreter's recursion limit. An
    explicit ancestor path is tracked, so reaching a node that was visited
    through a different branch is not mistaken for a cycle.

    Raises:
        CyclicDependencyError: If a dependency edge points back into the
            current ancestor chain.
    """
    ordered: List[str] = []
    visited: Set[str] = set()

    for root in graph.keys():
        if root in visited:
            continue

        visited.add(root)
        ancestors: List[str] = [root]
        on_path: Set[str] = {root}
        stack: List[Tuple[str, Iterator[str]]] = [
            (root, iter(sorted(graph.get_node(root).dependencies)))
        ]

        while stack:
            key, remaining = stack[-1]
            descended = False

            for dep in remaining:
                if dep in on_path:
                    start = ancestors.index(dep)
                    raise CyclicDependencyError(key, dep, ancestors[start:] + [dep])
                if dep in graph and dep not in visited:
                    visited.add(dep)
                    ancestors.append(dep)
                    on_path.add(dep)
                    stack.append((dep, iter(sorted(graph.get_node(dep).dependencies))))
                    descended = True
                    break

            if not descended:
                stack.pop()
                ancestors.pop()
                on_path.discard(key)
                ordered.append(key)

    return ordered
