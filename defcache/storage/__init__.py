"""
DEFCACHE Storage Layer

Record store adapters, the mutation gate and the paired partitions.
"""

from .adapter import RecordStore
from .memory import MemoryStore
from .file_store import JsonFileStore
from .gate import MutationGate, MutationGateError
from .partitions import CacheStorage

__all__ = [
    "RecordStore",
    "MemoryStore",
    "JsonFileStore",
    "MutationGate",
    "MutationGateError",
    "CacheStorage",
]
