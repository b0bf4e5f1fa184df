"""
DEFCACHE Eviction Log

Audit trail of prunes, evictions and store clears. Clears are otherwise
invisible to the end user (the only symptom is a slower cold start), so
this is where they are explained.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set
from pathlib import Path
import json
import logging
import uuid

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Type of eviction log event."""
    PRUNE_SKIPPED = "prune_skipped"        # Enough headroom, nothing to do
    EVICTION_RUN = "eviction_run"          # Graph-based eviction finished
    RECORDS_EVICTED = "records_evicted"    # One upstream closure removed
    STORE_CLEARED = "store_cleared"        # Both partitions wiped
    EVICTION_FAILED = "eviction_failed"    # Pipeline failed, fallback follows
    DEFS_STORED = "defs_stored"            # Incoming definitions persisted
    ACTION_STORED = "action_stored"        # Incoming action result persisted
    DEFS_RESTORED = "defs_restored"        # Definitions restored at startup


@dataclass
class EvictionLogEntry:
    """A single entry in the eviction log."""
    entry_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    event_type: EventType = EventType.PRUNE_SKIPPED
    run_id: Optional[str] = None

    keys: List[str] = field(default_factory=list)
    size_before_kb: Optional[float] = None
    size_after_kb: Optional[float] = None
    required_kb: Optional[float] = None

    # Clear reason or error details
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "run_id": self.run_id,
            "keys": list(self.keys),
            "size_before_kb": self.size_before_kb,
            "size_after_kb": self.size_after_kb,
            "required_kb": self.required_kb,
            "payload": _jsonable(self.payload),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EvictionLogEntry":
        return cls(
            entry_id=data.get("entry_id", uuid.uuid4().hex[:12]),
            timestamp=datetime.fromisoformat(data["timestamp"]) if data.get("timestamp") else datetime.now(timezone.utc),
            event_type=EventType(data.get("event_type", "prune_skipped")),
            run_id=data.get("run_id"),
            keys=list(data.get("keys", [])),
            size_before_kb=data.get("size_before_kb"),
            size_after_kb=data.get("size_after_kb"),
            required_kb=data.get("required_kb"),
            payload=data.get("payload", {}),
        )


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    return str(value)


class EvictionLog:
    """Bounded, queryable log of eviction events."""

    DEFAULT_MAX_ENTRIES = 1000

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        self._entries: List[EvictionLogEntry] = []
        self._max_entries = max_entries
        self._by_run: Dict[str, List[EvictionLogEntry]] = {}

    def log(self, entry: EvictionLogEntry) -> str:
        self._entries.append(entry)
        if entry.run_id:
            self._by_run.setdefault(entry.run_id, []).append(entry)

        if len(self._entries) > self._max_entries:
            self._trim_entries()

        return entry.entry_id

    def record(self, event_type: EventType, **kwargs) -> str:
        """Convenience method to log an event."""
        return self.log(EvictionLogEntry(event_type=event_type, **kwargs))

    def query(
        self,
        event_types: Optional[Set[EventType]] = None,
        since: Optional[datetime] = None,
        key: Optional[str] = None,
        limit: int = 100,
    ) -> List[EvictionLogEntry]:
        """
        Query the log.

        Returns:
            Matching entries, newest first
        """
        matched = []
        for entry in reversed(self._entries):
            if event_types and entry.event_type not in event_types:
                continue
            if since and entry.timestamp < since:
                continue
            if key and key not in entry.keys:
                continue
            matched.append(entry)
            if len(matched) >= limit:
                break
        return matched

    def get_recent(self, count: int = 100) -> List[EvictionLogEntry]:
        return list(reversed(self._entries[-count:]))

    def get_run(self, run_id: str) -> List[EvictionLogEntry]:
        return list(self._by_run.get(run_id, []))

    def export_to_json(self, path: Path, limit: int = 10000) -> int:
        """Export entries to a JSON file. Returns the number exported."""
        entries = self.query(limit=limit)
        data = {
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "entry_count": len(entries),
            "entries": [e.to_dict() for e in entries],
        }
        with open(path, "w") as f:
            json.dump(data, f, indent=2)

        logger.info(f"Exported {len(entries)} eviction log entries to {path}")
        return len(entries)

    def _trim_entries(self) -> None:
        trim_count = len(self._entries) - self._max_entries
        self._entries = self._entries[trim_count:]

        self._by_run.clear()
        for entry in self._entries:
            if entry.run_id:
                self._by_run.setdefault(entry.run_id, []).append(entry)

    def clear(self) -> None:
        self._entries.clear()
        self._by_run.clear()

    def __len__(self) -> int:
        return len(self._entries)
