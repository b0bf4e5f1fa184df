"""
DEFCACHE Graph Builder

Module 02 v1.0

Loads every stored definition and action and builds the dependency graph.
A stored action depends on the component defs named in its return value;
a component def depends on the defs in its superDef chain and facets.
"""

from __future__ import annotations
from typing import Any, Dict, Sequence, TYPE_CHECKING
import asyncio
import logging

from defcache.core.constants import BOOTSTRAP_ACTION_PREFIXES
from defcache.errors import StorageReadFailed
from .extractor import find_dependencies
from .graph import DependencyGraph

if TYPE_CHECKING:
    from defcache.storage.adapter import RecordStore
    from defcache.storage.partitions import CacheStorage

logger = logging.getLogger(__name__)


def is_bootstrap_action(key: str, prefixes: Sequence[str] = BOOTSTRAP_ACTION_PREFIXES) -> bool:
    """True for framework bootstrap actions, which must never be evicted."""
    return any(key.startswith(prefix) for prefix in prefixes)


class GraphBuilder:
    """Builds a DependencyGraph from a consistent snapshot of both partitions."""

    def __init__(
        self,
        storage: "CacheStorage",
        bootstrap_action_prefixes: Sequence[str] = BOOTSTRAP_ACTION_PREFIXES,
    ):
        self._storage = storage
        self._bootstrap_prefixes = tuple(bootstrap_action_prefixes)

    async def _read_all(self, store: "RecordStore") -> Dict[str, Any]:
        try:
            return await store.get_all([], True)
        except Exception as e:
            raise StorageReadFailed(
                f"Failed to read all records from {store.name}: {e}",
                source="dependencies.builder",
            ) from e

    async def build(self) -> DependencyGraph:
        """
        Build the graph for all persisted component definitions and stored actions.

        Loading everything forces the stores to scan all rows, so the sizes
        they report afterwards are accurate.

        Raises:
            StorageReadFailed: If either read fails. No partial graph is returned.
        """
        defs_store = self._storage.get_storage()
        actions_store = self._storage.get_action_storage()

        reads = [
            self._read_all(actions_store) if actions_store is not None else _empty(),
            self._read_all(defs_store) if defs_store is not None else _empty(),
        ]
        action_entries, def_entries = await asyncio.gather(*reads)

        def_keys = frozenset(def_entries.keys())
        graph = DependencyGraph()

        skipped = 0
        for key, value in action_entries.items():
            if is_bootstrap_action(key, self._bootstrap_prefixes):
                skipped += 1
                continue
            graph.add_node(key, find_dependencies(key, value, def_keys), is_action=True)

        for key, value in def_entries.items():
            graph.add_node(key, find_dependencies(key, value, def_keys), is_action=False)

        logger.info(
            f"Dependency graph built: {len(graph)} nodes, {graph.edge_count} edges "
            f"({skipped} bootstrap actions excluded)"
        )
        return graph


async def _empty() -> Dict[str, Any]:
    return {}
