"""
storage/partitions.py - Definition and action partitions

Pairs the two independent record stores and owns the mutation gate every
write goes through.
"""

from __future__ import annotations
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar
import logging

from defcache.errors import RemovalFailed, SizeQueryFailed, StorageWriteFailed
from .adapter import RecordStore
from .gate import MutationGate

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheStorage:
    """
    Definitions partition (required for persistence) plus optional actions
    partition, behind one MutationGate.
    """

    def __init__(
        self,
        defs_store: Optional[RecordStore],
        actions_store: Optional[RecordStore] = None,
        gate: Optional[MutationGate] = None,
    ):
        self._defs = defs_store
        self._actions = actions_store
        self._gate = gate or MutationGate()

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def get_storage(self) -> Optional[RecordStore]:
        """Definition store, None when persistence is disabled."""
        return self._defs

    def get_action_storage(self) -> Optional[RecordStore]:
        return self._actions

    @property
    def gate(self) -> MutationGate:
        return self._gate

    def is_persistent(self) -> bool:
        return self._defs is not None and self._defs.is_persistent()

    async def enqueue(self, work: Callable[[], Awaitable[T]], owner: str = "anonymous") -> T:
        """Run work once every earlier enqueued mutation has finished."""
        return await self._gate.run(work, owner=owner)

    # -------------------------------------------------------------------------
    # Size
    # -------------------------------------------------------------------------

    async def get_size(self) -> float:
        """Current definition store size in KB."""
        if self._defs is None:
            return 0.0
        try:
            return await self._defs.get_size()
        except Exception as e:
            raise SizeQueryFailed(
                f"Could not query size of {self._defs.name}: {e}",
                source="storage.partitions",
            ) from e

    def get_max_size(self) -> float:
        return self._defs.get_max_size() if self._defs is not None else 0.0

    async def get_action_size(self) -> float:
        """Current action store size in KB."""
        if self._actions is None:
            return 0.0
        try:
            return await self._actions.get_size()
        except Exception as e:
            raise SizeQueryFailed(
                f"Could not query size of {self._actions.name}: {e}",
                source="storage.partitions",
            ) from e

    def get_action_max_size(self) -> float:
        return self._actions.get_max_size() if self._actions is not None else 0.0

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def store_defs(self, defs: Dict[str, Any]) -> None:
        """Persist definition configs keyed by descriptor."""
        if self._defs is None or not defs:
            return
        try:
            await self._defs.put_all(defs)
        except Exception as e:
            raise StorageWriteFailed(
                f"Failed to store {len(defs)} definitions: {e}",
                source="storage.partitions",
                keys=defs.keys(),
            ) from e
        logger.debug(f"Stored {len(defs)} definitions in {self._defs.name}")

    async def store_action(self, key: str, value: Any) -> None:
        if self._actions is None:
            return
        try:
            await self._actions.put(key, value)
        except Exception as e:
            raise StorageWriteFailed(
                f"Failed to store action {key}: {e}",
                source="storage.partitions",
                keys=[key],
            ) from e

    async def remove_actions(self, keys: List[str]) -> None:
        """Remove action records in one batch."""
        if not keys:
            return
        if self._actions is None:
            raise RemovalFailed(
                f"Actions store doesn't exist but requested removal of {len(keys)} actions",
                source="storage.partitions",
                keys=keys,
            )
        await self._remove_batch(self._actions, keys)
        logger.debug(f"Removed {len(keys)} actions")

    async def remove_defs(self, keys: List[str]) -> None:
        if not keys or self._defs is None:
            return
        await self._remove_batch(self._defs, keys)
        logger.debug(f"Removed {len(keys)} definitions")

    async def _remove_batch(self, store: RecordStore, keys: Iterable[str]) -> None:
        keys = list(keys)
        try:
            await store.remove_all(keys)
        except Exception as e:
            raise RemovalFailed(
                f"Failed to remove batch of {len(keys)} records from {store.name}: {e}",
                source="storage.partitions",
                keys=keys,
            ) from e

    async def clear(self) -> None:
        """Wipe actions first, then definitions."""
        if self._actions is not None:
            await self._actions.clear()
        if self._defs is not None:
            await self._defs.clear()
