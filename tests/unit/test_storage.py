"""
Unit tests for the storage layer: MemoryStore, JsonFileStore, CacheStorage.
"""

import asyncio
import json
import pytest
from unittest.mock import AsyncMock, Mock

from defcache.errors import RemovalFailed, SizeQueryFailed, StorageWriteFailed
from defcache.storage.file_store import JsonFileStore
from defcache.storage.memory import MemoryStore
from defcache.storage.partitions import CacheStorage
from tests.conftest import GET_TREE, PLANT, TREE


# =============================================================================
# MEMORY STORE
# =============================================================================

class TestMemoryStore:
    """Test MemoryStore adapter."""

    @pytest.mark.asyncio
    async def test_put_and_get(self):
        store = MemoryStore("defs", 8.0)
        await store.put(PLANT, {"descriptor": PLANT})
        assert await store.get(PLANT) == {"descriptor": PLANT}
        assert await store.get(TREE) is None

    @pytest.mark.asyncio
    async def test_size_grows_with_content(self):
        store = MemoryStore("defs", 8.0)
        assert await store.get_size() == 0.0
        await store.put(PLANT, {"pad": "x" * 1024})
        assert await store.get_size() > 1.0

    @pytest.mark.asyncio
    async def test_get_all_with_prefixes(self):
        store = MemoryStore("defs", 8.0)
        await store.put_all({PLANT: 1, "java://x": 2})
        assert await store.get_all(["markup://"]) == {PLANT: 1}
        assert await store.get_all([]) == {PLANT: 1, "java://x": 2}

    @pytest.mark.asyncio
    async def test_expired_records(self):
        store = MemoryStore("defs", 8.0, default_expiration_s=-1)
        await store.put(PLANT, 1)
        assert await store.get(PLANT) is None
        assert await store.get_all() == {}
        assert await store.get_all([], True) == {PLANT: 1}

    @pytest.mark.asyncio
    async def test_remove_absent_key(self):
        store = MemoryStore("defs", 8.0)
        await store.remove(PLANT)
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_clear(self):
        store = MemoryStore("defs", 8.0)
        await store.put_all({PLANT: 1, TREE: 2})
        await store.clear()
        assert len(store) == 0
        assert await store.get_size() == 0.0

    def test_persistence_flag(self):
        assert MemoryStore("defs", 8.0).is_persistent()
        assert not MemoryStore("defs", 8.0, persistent=False).is_persistent()
        assert MemoryStore("defs", 8.0).get_max_size() == 8.0


# =============================================================================
# JSON FILE STORE
# =============================================================================

class TestJsonFileStore:
    """Test JsonFileStore adapter."""

    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path):
        store = JsonFileStore("defs", 8.0, base_dir=str(tmp_path))
        await store.put_all({PLANT: {"descriptor": PLANT}, TREE: {"descriptor": TREE}})

        reopened = JsonFileStore("defs", 8.0, base_dir=str(tmp_path))
        assert await reopened.get_all() == {PLANT: {"descriptor": PLANT}, TREE: {"descriptor": TREE}}

    @pytest.mark.asyncio
    async def test_file_layout(self, tmp_path):
        store = JsonFileStore("defs", 8.0, base_dir=str(tmp_path))
        await store.put(PLANT, {"descriptor": PLANT})

        data = json.loads((tmp_path / "defs.json").read_text())
        assert data[PLANT] == {"value": {"descriptor": PLANT}, "expires_at": None}

    @pytest.mark.asyncio
    async def test_concurrent_removes_persisted(self, tmp_path):
        store = JsonFileStore("defs", 8.0, base_dir=str(tmp_path))
        await store.put_all({PLANT: 1, TREE: 2, GET_TREE: 3})
        await asyncio.gather(store.remove(PLANT), store.remove(TREE))

        reopened = JsonFileStore("defs", 8.0, base_dir=str(tmp_path))
        assert await reopened.get_all() == {GET_TREE: 3}

    @pytest.mark.asyncio
    async def test_remove_all_and_size(self, tmp_path):
        store = JsonFileStore("defs", 8.0, base_dir=str(tmp_path))
        await store.put_all({PLANT: 1, TREE: 2})
        before = await store.get_size()
        await store.remove_all([PLANT])
        assert await store.get_size() < before
        assert await store.get(PLANT) is None

    @pytest.mark.asyncio
    async def test_clear(self, tmp_path):
        store = JsonFileStore("defs", 8.0, base_dir=str(tmp_path))
        await store.put(PLANT, 1)
        await store.clear()
        assert json.loads(store.path.read_text()) == {}

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, tmp_path):
        store = JsonFileStore("defs", 8.0, base_dir=str(tmp_path / "nowhere"))
        assert await store.get_all() == {}
        assert await store.get_size() == 0.0
        assert store.is_persistent()


# =============================================================================
# CACHE STORAGE
# =============================================================================

class TestCacheStorage:
    """Test the definition/action partition pair."""

    def test_is_persistent(self, storage):
        assert storage.is_persistent()
        assert not CacheStorage(None).is_persistent()
        assert not CacheStorage(MemoryStore("defs", 8.0, persistent=False)).is_persistent()

    @pytest.mark.asyncio
    async def test_size_is_definition_store_only(self, storage, actions_store):
        await actions_store.put(GET_TREE, {"pad": "x" * 4096})
        assert await storage.get_size() == 0.0

    @pytest.mark.asyncio
    async def test_size_failure_wrapped(self, storage, defs_store):
        defs_store.get_size = AsyncMock(side_effect=OSError("unknown"))
        with pytest.raises(SizeQueryFailed):
            await storage.get_size()

    @pytest.mark.asyncio
    async def test_store_defs(self, storage, defs_store):
        await storage.store_defs({PLANT: {"descriptor": PLANT}})
        assert PLANT in defs_store

    @pytest.mark.asyncio
    async def test_store_defs_failure_wrapped(self, storage, defs_store):
        defs_store.put_all = AsyncMock(side_effect=OSError("full"))
        with pytest.raises(StorageWriteFailed) as exc_info:
            await storage.store_defs({PLANT: {}})
        assert exc_info.value.keys == [PLANT]

    @pytest.mark.asyncio
    async def test_store_action_without_store_is_noop(self, defs_store):
        await CacheStorage(defs_store).store_action(GET_TREE, {})

    @pytest.mark.asyncio
    async def test_remove_actions_without_store(self, defs_store):
        with pytest.raises(RemovalFailed):
            await CacheStorage(defs_store).remove_actions([GET_TREE])

    @pytest.mark.asyncio
    async def test_remove_nothing_without_store(self, defs_store):
        await CacheStorage(defs_store).remove_actions([])

    @pytest.mark.asyncio
    async def test_partial_removal_failure(self, storage, defs_store):
        await defs_store.put_all({PLANT: 1, TREE: 2})
        original_remove = defs_store.remove

        async def remove(key):
            if key == TREE:
                raise OSError("locked")
            await original_remove(key)

        defs_store.remove = remove
        with pytest.raises(RemovalFailed) as exc_info:
            await storage.remove_defs([PLANT, TREE])

        assert exc_info.value.keys == [PLANT, TREE]
        # keys removed before the failure stay removed
        assert PLANT not in defs_store

    @pytest.mark.asyncio
    async def test_removal_is_one_batch(self, storage, defs_store):
        defs_store.remove_all = AsyncMock()
        await storage.remove_defs([PLANT, TREE])
        defs_store.remove_all.assert_awaited_once_with([PLANT, TREE])

    @pytest.mark.asyncio
    async def test_file_store_batch_rewrites_once(self, tmp_path):
        store = JsonFileStore("defs", 8.0, base_dir=str(tmp_path))
        await store.put_all({PLANT: 1, TREE: 2, GET_TREE: 3})
        store._write = Mock(wraps=store._write)

        await CacheStorage(store).remove_defs([PLANT, TREE])

        assert store._write.call_count == 1
        assert await store.get_all() == {GET_TREE: 3}

    @pytest.mark.asyncio
    async def test_clear_both_partitions(self, plant_tree_storage, defs_store, actions_store):
        await plant_tree_storage.clear()
        assert len(defs_store) == 0
        assert len(actions_store) == 0
