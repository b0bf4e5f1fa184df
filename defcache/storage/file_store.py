"""
storage/file_store.py - JSON file record store

Persistent adapter: one JSON document per partition under a base
directory, rewritten atomically on every mutation.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence
import asyncio
import json
import logging
import os
import tempfile
import time

from defcache.core.constants import BYTES_PER_KB
from defcache.core.records import encode_value
from .adapter import RecordStore, matches_prefixes

logger = logging.getLogger(__name__)


class JsonFileStore(RecordStore):
    """File-backed adapter. Each entry is stored as {"value": ..., "expires_at": ...}."""

    def __init__(
        self,
        name: str,
        max_size_kb: float,
        base_dir: str,
        default_expiration_s: Optional[float] = None,
    ):
        super().__init__(name, max_size_kb)
        self._path = Path(base_dir) / f"{name}.json"
        self._default_expiration_s = default_expiration_s
        self._entries: Optional[Dict[str, Dict[str, Any]]] = None
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def is_persistent(self) -> bool:
        return True

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if self._entries is None:
            if self._path.exists():
                with open(self._path, encoding="utf-8") as f:
                    self._entries = json.load(f)
                logger.debug(f"Loaded {len(self._entries)} records from {self._path}")
            else:
                self._entries = {}
        return self._entries

    def _write(self, entries: Dict[str, Dict[str, Any]]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self._path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entries, f, separators=(",", ":"))
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def _flush(self) -> None:
        # Snapshot under the lock so the last write to land is the latest state
        async with self._write_lock:
            snapshot = dict(self._load())
            await asyncio.to_thread(self._write, snapshot)

    async def get_all(
        self,
        key_prefixes: Optional[Sequence[str]] = None,
        include_expired: bool = False,
    ) -> Dict[str, Any]:
        now = time.time()
        return {
            key: entry["value"]
            for key, entry in self._load().items()
            if matches_prefixes(key, key_prefixes)
            and (include_expired or not _is_expired(entry, now))
        }

    async def get(self, key: str) -> Optional[Any]:
        entry = self._load().get(key)
        if entry is None or _is_expired(entry, time.time()):
            return None
        return entry["value"]

    async def get_size(self) -> float:
        total = sum(
            len(key.encode("utf-8")) + len(encode_value(entry["value"]).encode("utf-8"))
            for key, entry in self._load().items()
        )
        return total / BYTES_PER_KB

    def _entry(self, value: Any) -> Dict[str, Any]:
        expires_at = None
        if self._default_expiration_s is not None:
            expires_at = time.time() + self._default_expiration_s
        return {"value": value, "expires_at": expires_at}

    async def put(self, key: str, value: Any) -> None:
        self._load()[key] = self._entry(value)
        await self._flush()

    async def put_all(self, values: Dict[str, Any]) -> None:
        entries = self._load()
        for key, value in values.items():
            entries[key] = self._entry(value)
        await self._flush()

    async def remove(self, key: str) -> None:
        if self._load().pop(key, None) is not None:
            await self._flush()

    async def remove_all(self, keys: Iterable[str]) -> None:
        entries = self._load()
        removed = [entries.pop(key) for key in list(keys) if key in entries]
        if removed:
            await self._flush()

    async def clear(self) -> None:
        self._entries = {}
        await self._flush()


def _is_expired(entry: Dict[str, Any], now: float) -> bool:
    expires_at = entry.get("expires_at")
    return expires_at is not None and expires_at <= now
