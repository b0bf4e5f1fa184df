"""
DEFCACHE Dependency Graph

Module 02 v1.0

Directed graph over stored definitions and actions: an edge A -> B means
A depends on B. Built fresh for every eviction pass and never cached, since
storage can change between passes.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple
import logging

logger = logging.getLogger(__name__)


@dataclass
class GraphNode:
    """A stored record in the dependency graph."""
    id: str
    dependencies: Set[str] = field(default_factory=set)
    is_action: bool = False

    def __hash__(self):
        return hash(self.id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "dependencies": sorted(self.dependencies),
            "action": self.is_action,
        }


class DependencyGraph:
    """
    Mapping of record key -> GraphNode.

    For example, with three components plant, tree and leaf, where tree's
    superDef is plant and tree has leaf in its facet, and an action getTree
    that returned an instance of tree:

        tree:    dependencies = {plant, leaf}
        getTree: dependencies = {tree, plant, leaf}   (action)
    """

    def __init__(self):
        self._nodes: Dict[str, GraphNode] = {}
        self._dependents: Optional[Dict[str, Set[str]]] = None

    def add_node(
        self,
        key: str,
        dependencies: Iterable[str] = (),
        is_action: bool = False,
    ) -> GraphNode:
        """Add (or replace) a node. Self references are dropped."""
        node = GraphNode(
            id=key,
            dependencies={d for d in dependencies if d != key},
            is_action=is_action,
        )
        self._nodes[key] = node
        self._dependents = None
        return node

    def get_node(self, key: str) -> Optional[GraphNode]:
        return self._nodes.get(key)

    def keys(self) -> List[str]:
        """Node keys in insertion order."""
        return list(self._nodes.keys())

    def nodes(self) -> List[GraphNode]:
        return list(self._nodes.values())

    def __contains__(self, key: object) -> bool:
        return key in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    @property
    def edge_count(self) -> int:
        return sum(len(n.dependencies) for n in self._nodes.values())

    # -------------------------------------------------------------------------
    # Reverse edges
    # -------------------------------------------------------------------------

    def _dependents_index(self) -> Dict[str, Set[str]]:
        if self._dependents is None:
            index: Dict[str, Set[str]] = {key: set() for key in self._nodes}
            for node in self._nodes.values():
                for dep in node.dependencies:
                    if dep in index:
                        index[dep].add(node.id)
            self._dependents = index
        return self._dependents

    def get_direct_dependents(self, key: str) -> Set[str]:
        """Nodes that list key as a dependency."""
        return set(self._dependents_index().get(key, set()))

    def get_upstream(self, root_key: str) -> Set[str]:
        """
        Get the "upstream" dependencies of a node: every node that depends on
        it, directly or indirectly, plus the node itself.

        This is the set of records that must be removed if root_key is
        removed. With the plant/tree/leaf example, the upstream of leaf is
        {leaf, tree, getTree}; plant is not upstream of leaf.
        """
        index = self._dependents_index()
        upstream = {root_key}
        to_process = [root_key]

        while to_process:
            current = to_process.pop()
            for dependent in index.get(current, ()):
                if dependent not in upstream:
                    upstream.add(dependent)
                    to_process.append(dependent)

        return upstream

    def split_components_and_actions(
        self,
        keys: Iterable[str],
        exclude: Iterable[str] = (),
    ) -> Tuple[List[str], List[str]]:
        """
        Separate keys into (actions, defs), pruning those in exclude.

        Keys unknown to the graph are treated as definitions.
        """
        excluded = set(exclude)
        actions: List[str] = []
        defs: List[str] = []
        for key in sorted(keys):
            if key in excluded:
                continue
            node = self._nodes.get(key)
            if node is not None and node.is_action:
                actions.append(key)
            else:
                defs.append(key)
        return actions, defs

    def to_dict(self) -> Dict[str, Any]:
        return {key: node.to_dict() for key, node in self._nodes.items()}
