"""
DEFCACHE - Persistent component definition cache

Persists component definitions and server action results across page loads
and evicts them in dependency-safe groups when storage nears capacity.
"""

__version__ = "1.0.0"

from defcache.core.records import ActionRecord, DefinitionRecord
from defcache.dependencies import (
    DependencyGraph,
    GraphBuilder,
    GraphNode,
    find_dependencies,
    sort_dependency_graph,
)
from defcache.eviction import EvictionBudget, EvictionExecutor, EvictionLog
from defcache.persistence import PersistenceService
from defcache.storage import CacheStorage, JsonFileStore, MemoryStore, MutationGate, RecordStore

__all__ = [
    "__version__",
    "ActionRecord",
    "DefinitionRecord",
    "DependencyGraph",
    "GraphBuilder",
    "GraphNode",
    "find_dependencies",
    "sort_dependency_graph",
    "EvictionBudget",
    "EvictionExecutor",
    "EvictionLog",
    "PersistenceService",
    "CacheStorage",
    "JsonFileStore",
    "MemoryStore",
    "MutationGate",
    "RecordStore",
]
