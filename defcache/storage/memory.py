"""
storage/memory.py - In-memory record store

Used by tests and as the non-persistent fallback backend. Size is the
encoded JSON size of keys and values.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence
import time

from defcache.core.constants import BYTES_PER_KB
from defcache.core.records import encode_value
from .adapter import RecordStore, matches_prefixes


@dataclass
class _Entry:
    value: Any
    size_bytes: int
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class MemoryStore(RecordStore):
    """Dictionary-backed adapter."""

    def __init__(
        self,
        name: str,
        max_size_kb: float,
        persistent: bool = True,
        default_expiration_s: Optional[float] = None,
    ):
        super().__init__(name, max_size_kb)
        self._persistent = persistent
        self._default_expiration_s = default_expiration_s
        self._entries: Dict[str, _Entry] = {}

    def is_persistent(self) -> bool:
        return self._persistent

    async def get_all(
        self,
        key_prefixes: Optional[Sequence[str]] = None,
        include_expired: bool = False,
    ) -> Dict[str, Any]:
        now = time.time()
        return {
            key: entry.value
            for key, entry in self._entries.items()
            if matches_prefixes(key, key_prefixes)
            and (include_expired or not entry.is_expired(now))
        }

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(time.time()):
            return None
        return entry.value

    async def get_size(self) -> float:
        return sum(e.size_bytes for e in self._entries.values()) / BYTES_PER_KB

    async def put(self, key: str, value: Any) -> None:
        expires_at = None
        if self._default_expiration_s is not None:
            expires_at = time.time() + self._default_expiration_s
        size = len(key.encode("utf-8")) + len(encode_value(value).encode("utf-8"))
        self._entries[key] = _Entry(value=value, size_bytes=size, expires_at=expires_at)

    async def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
