"""
DEFCACHE Dependency Engine

Module 02 v1.0

Provides:
- find_dependencies: descriptor references of a stored record
- DependencyGraph: definitions and actions with their dependencies
- GraphBuilder: builds the graph from storage
- sort_dependency_graph: cycle-safe topological order
"""

from .extractor import find_dependencies
from .graph import (
    GraphNode,
    DependencyGraph,
)
from .builder import (
    GraphBuilder,
    is_bootstrap_action,
)
from .sorting import sort_dependency_graph

__all__ = [
    "find_dependencies",
    "GraphNode",
    "DependencyGraph",
    "GraphBuilder",
    "is_bootstrap_action",
    "sort_dependency_graph",
]
