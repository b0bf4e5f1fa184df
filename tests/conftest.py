"""
Definition cache test configuration and fixtures.

The plant/tree/leaf fixture:
- Three components: plant, tree, leaf.
- Tree's superDef is plant; tree has leaf in its facet.
- An action getTree returned an instance of tree.
- A framework bootstrap action that must never be evicted.
"""

import asyncio
import concurrent.futures
import pytest
from typing import Any, Dict

from defcache.storage.memory import MemoryStore
from defcache.storage.partitions import CacheStorage


PLANT = "markup://ns:plant"
TREE = "markup://ns:tree"
LEAF = "markup://ns:leaf"
GET_TREE = "java://org.example.TreeController/ACTION$getTree:{}"
GVP = "globalValueProviders"

# Padding makes each definition about 2KB so eviction rounds are predictable
PAD = "x" * 2048


def plant_tree_defs() -> Dict[str, Any]:
    return {
        PLANT: {"descriptor": PLANT, "pad": PAD},
        TREE: {
            "descriptor": TREE,
            "superDef": {"descriptor": PLANT},
            "facets": [{"componentDef": {"descriptor": LEAF}}],
            "pad": PAD,
        },
        LEAF: {"descriptor": LEAF, "pad": PAD},
    }


def plant_tree_actions() -> Dict[str, Any]:
    return {
        GET_TREE: {
            "returnValue": {
                "componentDef": {"descriptor": TREE},
                "components": [
                    {"componentDef": {"descriptor": PLANT}},
                    {"componentDef": {"descriptor": LEAF}},
                ],
            },
        },
        GVP: {"$Label": {"descriptor": PLANT}},
    }


def seed(store: MemoryStore, records: Dict[str, Any]) -> None:
    """Populate a MemoryStore from synchronous fixture code."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(store.put_all(records))
        return
    # Called from inside a running event loop (async tests): run on a worker thread.
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        pool.submit(asyncio.run, store.put_all(records)).result()


@pytest.fixture
def defs_store():
    return MemoryStore("ComponentDefStorage", max_size_kb=8.0)


@pytest.fixture
def actions_store():
    return MemoryStore("actions", max_size_kb=64.0)


@pytest.fixture
def storage(defs_store, actions_store):
    """Empty definition and action partitions."""
    return CacheStorage(defs_store, actions_store)


@pytest.fixture
def plant_tree_storage(defs_store, actions_store, storage):
    """Partitions holding the plant/tree/leaf definitions and actions."""
    seed(defs_store, plant_tree_defs())
    seed(actions_store, plant_tree_actions())
    return storage
