"""
DEFCACHE Eviction Executor

Module 03 v1.0

Evicts component definitions and the actions that depend on them until the
definition store is under its target size. A record is never removed on its
own: its whole upstream closure goes with it, so no stored record is left
referencing a missing descriptor.
"""

from __future__ import annotations
from typing import List, Optional, Sequence, Set, TYPE_CHECKING
import logging
import uuid

from .audit_log import EventType, EvictionLog
from .budget import EvictionBudget

if TYPE_CHECKING:
    from defcache.dependencies.graph import DependencyGraph
    from defcache.storage.partitions import CacheStorage

logger = logging.getLogger(__name__)


class EvictionExecutor:
    """Removes upstream closures, leaves first, until the target size is met."""

    def __init__(
        self,
        storage: "CacheStorage",
        budget: Optional[EvictionBudget] = None,
        eviction_log: Optional[EvictionLog] = None,
    ):
        self._storage = storage
        self._budget = budget or EvictionBudget()
        self._log = eviction_log

    async def evict(
        self,
        sorted_keys: Sequence[str],
        graph: "DependencyGraph",
        required_kb: float,
        run_id: Optional[str] = None,
    ) -> List[str]:
        """
        Evict until the definition store is reduced to the target size or
        every candidate is evicted.

        Args:
            sorted_keys: Graph keys in dependency order (see sort_dependency_graph).
                Consumed from the back.
            graph: Graph the keys came from
            required_kb: Space required to store incoming records
            run_id: Correlates log entries of one prune

        Returns:
            Evicted action and definition keys, in removal order

        Raises:
            SizeQueryFailed: If the store size cannot be determined
            RemovalFailed: If a removal fails. Keys removed before the
                failure stay removed.
        """
        run_id = run_id or uuid.uuid4().hex[:8]
        starting_size = await self._storage.get_size()
        max_size = self._storage.get_max_size()
        target_size = self._budget.target_size(max_size, required_kb)

        if starting_size <= target_size:
            logger.info(
                f"Short-circuiting eviction because current size ({starting_size:.0f}KB) "
                f"<= target size ({target_size:.0f}KB)"
            )
            return []

        logger.info(
            f"Evicting because current size ({starting_size:.0f}KB) "
            f"> target size ({target_size:.0f}KB)"
        )

        keys_to_evict = list(sorted_keys)
        evicted: List[str] = []
        evicted_set: Set[str] = set()
        current_size = starting_size

        while keys_to_evict and current_size > target_size:
            key = keys_to_evict.pop()
            upstream = graph.get_upstream(key)
            actions, defs = graph.split_components_and_actions(upstream, exclude=evicted_set)

            # nothing left to evict for this key
            if not actions and not defs:
                continue

            await self._storage.remove_actions(actions)
            evicted.extend(actions)
            evicted_set.update(actions)

            await self._storage.remove_defs(defs)
            evicted.extend(defs)
            evicted_set.update(defs)

            new_size = await self._storage.get_size()
            logger.debug(
                f"Evicted upstream of {key}: {len(actions)} actions, {len(defs)} defs "
                f"({current_size:.0f}KB -> {new_size:.0f}KB)"
            )
            if self._log is not None:
                self._log.record(
                    EventType.RECORDS_EVICTED,
                    run_id=run_id,
                    keys=actions + defs,
                    size_before_kb=current_size,
                    size_after_kb=new_size,
                    required_kb=required_kb,
                    payload={"root": key},
                )
            current_size = new_size

        return evicted

    async def evict_actions(
        self,
        graph: "DependencyGraph",
        required_kb: float,
        run_id: Optional[str] = None,
    ) -> List[str]:
        """
        Evict stored actions, oldest first, until the action store is under
        its target size.

        Nothing depends on an action, so an action is always its own
        upstream closure. Bootstrap actions are not graph nodes and are
        never touched.

        Raises:
            SizeQueryFailed: If the action store size cannot be determined
            RemovalFailed: If a removal fails
        """
        run_id = run_id or uuid.uuid4().hex[:8]
        starting_size = await self._storage.get_action_size()
        max_size = self._storage.get_action_max_size()
        target_size = self._budget.target_size(max_size, required_kb)

        if starting_size <= target_size:
            logger.info(
                f"Short-circuiting action eviction because current size ({starting_size:.0f}KB) "
                f"<= target size ({target_size:.0f}KB)"
            )
            return []

        candidates = [node.id for node in graph.nodes() if node.is_action]
        candidates.reverse()
        evicted: List[str] = []
        current_size = starting_size

        while candidates and current_size > target_size:
            key = candidates.pop()
            await self._storage.remove_actions([key])
            evicted.append(key)

            new_size = await self._storage.get_action_size()
            if self._log is not None:
                self._log.record(
                    EventType.RECORDS_EVICTED,
                    run_id=run_id,
                    keys=[key],
                    size_before_kb=current_size,
                    size_after_kb=new_size,
                    required_kb=required_kb,
                    payload={"root": key, "partition": "actions"},
                )
            current_size = new_size

        return evicted
