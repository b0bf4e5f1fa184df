"""
DEFCACHE Persistence Service

Module 04 v1.0

Entry point used by the component-instantiation layer to persist newly
fetched definitions and actions, restore them at startup, and make room
for them when storage nears capacity.

Every failure inside the prune pipeline bubbles up to this service, which
is the single place the clear-and-continue fallback happens: a partially
pruned store may hold records whose dependencies are gone, so it is wiped.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple, TYPE_CHECKING
import asyncio
import logging
import uuid

from defcache.core.constants import (
    BOOTSTRAP_ACTION_PREFIXES,
    COMPONENT_DEFS_KEY,
    EVENT_DEFS_KEY,
    LIBRARY_DEFS_KEY,
)
from defcache.core.records import ActionRecord, DefinitionRecord, estimate_total_size_kb
from defcache.dependencies import GraphBuilder, sort_dependency_graph
from defcache.errors import (
    CacheError,
    ErrorSeverity,
    RecoveryStrategy,
    StorageReadFailed,
    StorageUnavailable,
    get_recovery_option,
)
from defcache.eviction.audit_log import EventType, EvictionLog
from defcache.eviction.budget import EvictionBudget
from defcache.eviction.executor import EvictionExecutor

if TYPE_CHECKING:
    from defcache.dependencies.graph import DependencyGraph
    from defcache.storage.adapter import RecordStore
    from defcache.storage.partitions import CacheStorage

logger = logging.getLogger(__name__)

ClearListener = Callable[[Dict[str, Any]], None]
Register = Callable[[str, Any], None]


class PersistenceService:
    """
    Persists definitions and actions, pruning the store before each write.

    Graph-based partial eviction is behind a flag and off by default: the
    server does not yet send every dependency of a definition (markup-declared
    dependencies and those spidered from JS are missing), so evicting part of
    the store can strand records. With the flag off, running out of space
    clears the whole store.
    """

    def __init__(
        self,
        storage: "CacheStorage",
        budget: Optional[EvictionBudget] = None,
        eviction_log: Optional[EvictionLog] = None,
        graph_eviction_enabled: bool = False,
        bootstrap_action_prefixes: Sequence[str] = BOOTSTRAP_ACTION_PREFIXES,
    ):
        self._storage = storage
        self._budget = budget or EvictionBudget()
        self._log = eviction_log or EvictionLog()
        self.graph_eviction_enabled = graph_eviction_enabled
        self._builder = GraphBuilder(storage, bootstrap_action_prefixes)
        self._executor = EvictionExecutor(storage, self._budget, self._log)
        self._clear_listeners: List[ClearListener] = []
        self._background: Set[asyncio.Task] = set()

    @property
    def storage(self) -> "CacheStorage":
        return self._storage

    @property
    def budget(self) -> EvictionBudget:
        return self._budget

    @property
    def eviction_log(self) -> EvictionLog:
        return self._log

    def add_clear_listener(self, listener: ClearListener) -> None:
        """Register a callback receiving the reason payload of every store clear."""
        self._clear_listeners.append(listener)

    def _persistent_storage(self) -> "RecordStore":
        store = self._storage.get_storage()
        if store is None or not store.is_persistent():
            raise StorageUnavailable(
                "Definition storage is absent or not persistent",
                source="persistence.service",
            )
        return store

    # =========================================================================
    # Pruning
    # =========================================================================

    async def prune_defs_from_storage(self, required_kb: float) -> List[str]:
        """
        Prune component definitions and dependent actions from persistent storage.

        Not gated: callers must already hold the mutation gate.

        Args:
            required_kb: Space (in KB) required by new configs to be stored

        Returns:
            Keys evicted by graph-based eviction (empty when nothing was
            needed or the store was cleared instead)
        """
        try:
            self._persistent_storage()
        except StorageUnavailable as e:
            logger.debug(f"Nothing to prune: {e}")
            return []

        run_id = uuid.uuid4().hex[:8]
        current_size = await self._storage.get_size()
        max_size = self._storage.get_max_size()

        if not self._budget.needs_eviction(current_size, max_size, required_kb):
            self._log.record(
                EventType.PRUNE_SKIPPED,
                run_id=run_id,
                size_before_kb=current_size,
                required_kb=required_kb,
            )
            return []

        if not self.graph_eviction_enabled:
            await self._clear({
                "cause": "sizeAboveThreshold",
                "defsRequiredSize": required_kb,
                "storageCurrentSize": current_size,
                "storageRequiredSize": self._budget.projected_size(current_size, max_size, required_kb),
            })
            return []

        # build() loads every row, which also makes the stores' sizes accurate
        graph = await self._builder.build()
        keys_to_evict = sort_dependency_graph(graph)
        evicted = await self._executor.evict(keys_to_evict, graph, required_kb, run_id=run_id)

        size_after = await self._storage.get_size()
        logger.info(f"Pruned definition storage: evicted {len(evicted)} component defs and actions")
        self._log.record(
            EventType.EVICTION_RUN,
            run_id=run_id,
            keys=evicted,
            size_before_kb=current_size,
            size_after_kb=size_after,
            required_kb=required_kb,
        )
        return evicted

    async def prune_actions_from_storage(self, required_kb: float) -> List[str]:
        """
        Make room in the action store for an incoming action result.

        Same policy as prune_defs_from_storage, measured against the action
        store's own max size. Not gated.

        Returns:
            Action keys evicted (empty when nothing was needed or the store
            was cleared instead)
        """
        store = self._storage.get_action_storage()
        if store is None:
            return []

        run_id = uuid.uuid4().hex[:8]
        current_size = await self._storage.get_action_size()
        max_size = self._storage.get_action_max_size()

        if not self._budget.needs_eviction(current_size, max_size, required_kb):
            return []

        if not self.graph_eviction_enabled:
            await self._clear({
                "cause": "sizeAboveThreshold",
                "partition": store.name,
                "actionsRequiredSize": required_kb,
                "storageCurrentSize": current_size,
                "storageRequiredSize": self._budget.projected_size(current_size, max_size, required_kb),
            })
            return []

        graph = await self._builder.build()
        evicted = await self._executor.evict_actions(graph, required_kb, run_id=run_id)

        logger.info(f"Pruned action storage: evicted {len(evicted)} actions")
        self._log.record(
            EventType.EVICTION_RUN,
            run_id=run_id,
            keys=evicted,
            size_before_kb=current_size,
            size_after_kb=await self._storage.get_action_size(),
            required_kb=required_kb,
            payload={"partition": store.name},
        )
        return evicted

    async def ensure_free_space(self, required_kb: float) -> List[str]:
        """
        Resolve once at least required_kb can be stored, after eviction or clear.

        Returns:
            Keys evicted by graph-based eviction
        """
        async def work() -> List[str]:
            try:
                return await self.prune_defs_from_storage(required_kb)
            except Exception as e:
                await self._recover(e, {"cause": "ensureFreeSpace", "defsRequiredSize": required_kb})
                return []

        return await self._storage.enqueue(work, owner="ensureFreeSpace")

    # =========================================================================
    # Clearing
    # =========================================================================

    async def clear_all(self, reason_payload: Optional[Dict[str, Any]] = None) -> None:
        """Clear persisted definitions and actions unconditionally."""
        payload = dict(reason_payload or {"cause": "clearAll"})
        await self._storage.enqueue(lambda: self._clear(payload), owner="clearAll")

    async def _clear(self, payload: Dict[str, Any]) -> None:
        logger.warning(f"Clearing definition and action storage: {payload}")
        try:
            size_before: Optional[float] = await self._storage.get_size()
        except CacheError as e:
            logger.debug(f"Size unknown before clear: {e}")
            size_before = None
        await self._storage.clear()
        self._log.record(EventType.STORE_CLEARED, size_before_kb=size_before, payload=payload)

        for listener in self._clear_listeners:
            try:
                listener(payload)
            except Exception as e:
                logger.error(f"Clear listener failed: {e}")

    async def _recover(self, error: BaseException, payload: Dict[str, Any]) -> None:
        """Apply the recovery strategy for a failure in the persistence path."""
        option = get_recovery_option(error)

        if option.strategy == RecoveryStrategy.SKIP:
            logger.debug(f"Ignoring {type(error).__name__}: {error}")
            return
        if option.strategy == RecoveryStrategy.ABORT:
            raise error

        if isinstance(error, CacheError):
            record = error.to_record()
            if error.severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL):
                logger.error(f"{type(error).__name__} [{error.code.name}]: {error}")
            error_detail: Any = record.to_dict()
        else:
            logger.exception(f"Unexpected failure in persistence path: {error}")
            error_detail = str(error)

        self._log.record(
            EventType.EVICTION_FAILED,
            keys=getattr(error, "keys", []),
            required_kb=payload.get("defsRequiredSize"),
            payload={"error": error_detail, "recovery": option.to_dict()},
        )
        await self._clear({**payload, "error": error_detail})

    # =========================================================================
    # Saving
    # =========================================================================

    async def save_defs_to_storage(self, config: Dict[str, Any]) -> None:
        """
        Save component, library and event defs to persistent storage.

        Args:
            config: Bag with "componentDefs", "libraryDefs" and "eventDefs"
                lists of definition configs, each carrying its descriptor

        Storage errors are handled (logged, then the store is cleared), so
        this returns normally unless clearing itself fails.

        Raises:
            ValueError: If a config has no descriptor
        """
        cmp_configs = config.get(COMPONENT_DEFS_KEY) or []
        lib_configs = config.get(LIBRARY_DEFS_KEY) or []
        evt_configs = config.get(EVENT_DEFS_KEY) or []

        if not cmp_configs and not lib_configs and not evt_configs:
            return
        if self._storage.get_storage() is None:
            return

        records = [
            DefinitionRecord.from_config(c)
            for c in (*cmp_configs, *lib_configs, *evt_configs)
        ]
        required_kb = (
            estimate_total_size_kb(cmp_configs)
            + estimate_total_size_kb(lib_configs)
            + estimate_total_size_kb(evt_configs)
        )

        async def work() -> None:
            try:
                await self.prune_defs_from_storage(required_kb)
                await self._storage.store_defs({r.key: r.value for r in records})
                self._log.record(
                    EventType.DEFS_STORED,
                    keys=[r.key for r in records],
                    required_kb=required_kb,
                )
            except Exception as e:
                # the persisted components and actions may now be inconsistent:
                # dependencies may not be available
                await self._recover(e, {"cause": "saveDefsToStorage", "defsRequiredSize": required_kb})

        await self._storage.enqueue(work, owner="saveDefsToStorage")

    async def save_action_to_storage(self, action_id: str, return_value: Any) -> None:
        """
        Persist a server action result after making room for it in both the
        definition budget and the action store's own max size.
        """
        if self._storage.get_action_storage() is None:
            return

        record = ActionRecord(key=action_id, value=return_value)
        required_kb = record.size_kb

        async def work() -> None:
            try:
                await self.prune_defs_from_storage(required_kb)
                await self.prune_actions_from_storage(required_kb)
                await self._storage.store_action(record.key, record.value)
                self._log.record(EventType.ACTION_STORED, keys=[record.key], required_kb=required_kb)
            except Exception as e:
                await self._recover(e, {"cause": "saveActionToStorage", "defsRequiredSize": required_kb})

        await self._storage.enqueue(work, owner="saveActionToStorage")

    # =========================================================================
    # Restoring
    # =========================================================================

    async def restore_defs_from_storage(self, register: Optional[Register] = None) -> Dict[str, Any]:
        """
        Retrieve all definitions from storage and hand each to register.

        A non-persistent store means actions are not secure, but partial
        pieces may still be usable: they are restored in the background and
        the caller does not wait for them.

        Returns:
            Restored configs keyed by descriptor (empty when restoring in
            the background)
        """
        store = self._storage.get_storage()
        if store is None:
            return {}

        if not store.is_persistent():
            task = asyncio.ensure_future(self._restore_all(store, register))
            self._background.add(task)
            task.add_done_callback(self._on_background_done)
            return {}

        return await self._restore_all(store, register)

    async def _restore_all(self, store: "RecordStore", register: Optional[Register]) -> Dict[str, Any]:
        try:
            defs = await store.get_all()
        except Exception as e:
            raise StorageReadFailed(
                f"Failed to restore definitions from {store.name}: {e}",
                source="persistence.service",
            ) from e

        if register is not None:
            for descriptor, def_config in defs.items():
                register(descriptor, def_config)

        self._log.record(EventType.DEFS_RESTORED, keys=list(defs.keys()))
        logger.info(f"Restored {len(defs)} definitions from {store.name}")
        return defs

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background definition restore failed: {task.exception()}")

    async def wait_for_background(self) -> None:
        """Wait for background restores (used at shutdown and in tests)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # =========================================================================
    # Introspection
    # =========================================================================

    async def build_eviction_plan(self) -> Tuple["DependencyGraph", List[str]]:
        """
        Build the current graph and eviction order under the gate.

        Raises:
            StorageUnavailable: If storage is absent or not persistent
            CyclicDependencyError: If the graph has no valid order
        """
        self._persistent_storage()

        async def work():
            graph = await self._builder.build()
            return graph, sort_dependency_graph(graph)

        return await self._storage.enqueue(work, owner="buildEvictionPlan")

    async def get_stats(self) -> Dict[str, Any]:
        """Sizes and record counts of both partitions."""
        stats: Dict[str, Any] = {
            "persistent": self._storage.is_persistent(),
            "graph_eviction_enabled": self.graph_eviction_enabled,
            "target_load": self._budget.target_load,
            "headroom": self._budget.headroom,
            "gate": {
                "locked": self._storage.gate.is_locked,
                "owner": self._storage.gate.owner,
                "waiting": self._storage.gate.waiting,
            },
        }
        for label, store in (
            ("definitions", self._storage.get_storage()),
            ("actions", self._storage.get_action_storage()),
        ):
            if store is None:
                stats[label] = None
                continue
            records = await store.get_all([], True)
            stats[label] = {
                "name": store.name,
                "count": len(records),
                "size_kb": round(await store.get_size(), 3),
                "max_size_kb": store.get_max_size(),
            }
        return stats
