"""
storage/adapter.py - Record store adapter interface

One adapter instance backs one partition (definitions or actions). All
I/O methods are coroutines; they are the only suspension points of the
eviction pipeline.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional, Sequence


class RecordStore(ABC):
    """Key-value persistent store for one partition."""

    def __init__(self, name: str, max_size_kb: float):
        self.name = name
        self._max_size_kb = float(max_size_kb)

    def get_max_size(self) -> float:
        """Maximum capacity in KB."""
        return self._max_size_kb

    @abstractmethod
    def is_persistent(self) -> bool:
        """True if records survive a process restart."""

    @abstractmethod
    async def get_all(
        self,
        key_prefixes: Optional[Sequence[str]] = None,
        include_expired: bool = False,
    ) -> Dict[str, Any]:
        """
        Get all records.

        Args:
            key_prefixes: Only return keys starting with one of these (all when empty)
            include_expired: Also return records past their expiration

        Returns:
            Mapping of key -> value
        """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get one value, None when absent or expired."""

    @abstractmethod
    async def get_size(self) -> float:
        """Current size in KB."""

    @abstractmethod
    async def put(self, key: str, value: Any) -> None:
        """Store a value, replacing any existing one."""

    async def put_all(self, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            await self.put(key, value)

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error."""

    async def remove_all(self, keys: Iterable[str]) -> None:
        for key in keys:
            await self.remove(key)

    @abstractmethod
    async def clear(self) -> None:
        """Remove every record."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, max_size_kb={self._max_size_kb})"


def matches_prefixes(key: str, key_prefixes: Optional[Sequence[str]]) -> bool:
    if not key_prefixes:
        return True
    return any(key.startswith(prefix) for prefix in key_prefixes)
