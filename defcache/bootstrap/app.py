"""
bootstrap/app.py - Application assembly

Builds the stores, mutation gate, eviction log and persistence service from
a CacheConfig. One CacheApp per process; nothing is held in module state.
"""

from __future__ import annotations
from typing import Optional
import logging

from defcache.core.constants import ACTIONS_STORE_NAME, DEFS_STORE_NAME
from defcache.eviction.audit_log import EvictionLog
from defcache.eviction.budget import EvictionBudget
from defcache.persistence.service import PersistenceService
from defcache.storage.adapter import RecordStore
from defcache.storage.file_store import JsonFileStore
from defcache.storage.gate import MutationGate
from defcache.storage.memory import MemoryStore
from defcache.storage.partitions import CacheStorage
from .config import CacheConfig, get_config, load_config

logger = logging.getLogger("bootstrap.app")


def create_store(config: CacheConfig, name: str, max_size_kb: float) -> RecordStore:
    """Create one partition's adapter for the configured backend."""
    storage = config.storage
    if storage.backend == "file":
        return JsonFileStore(
            name,
            max_size_kb,
            base_dir=storage.base_dir,
            default_expiration_s=storage.default_expiration_s,
        )
    return MemoryStore(
        name,
        max_size_kb,
        persistent=storage.persistent,
        default_expiration_s=storage.default_expiration_s,
    )


class CacheApp:
    """Wired definition cache."""

    def __init__(self, config: Optional[CacheConfig] = None, config_path: Optional[str] = None):
        if config is None:
            config = load_config(config_path) if config_path else get_config()
        config.validate()
        self.config = config

        defs_store = create_store(config, DEFS_STORE_NAME, config.storage.defs_max_size_kb)
        actions_store = None
        if config.storage.enable_actions:
            actions_store = create_store(config, ACTIONS_STORE_NAME, config.storage.actions_max_size_kb)

        self.gate = MutationGate(DEFS_STORE_NAME)
        self.storage = CacheStorage(defs_store, actions_store, self.gate)
        self.eviction_log = EvictionLog(max_entries=config.eviction.log_max_entries)
        self.service = PersistenceService(
            self.storage,
            budget=EvictionBudget(
                target_load=config.eviction.target_load,
                headroom=config.eviction.headroom,
            ),
            eviction_log=self.eviction_log,
            graph_eviction_enabled=config.eviction.graph_eviction_enabled,
            bootstrap_action_prefixes=config.eviction.bootstrap_action_prefixes,
        )

        logger.info(
            f"Definition cache ready: backend={config.storage.backend}, "
            f"graph_eviction={'on' if config.eviction.graph_eviction_enabled else 'off'}"
        )

    async def shutdown(self) -> None:
        await self.service.wait_for_background()
