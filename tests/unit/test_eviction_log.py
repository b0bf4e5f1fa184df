"""
Unit tests for eviction/audit_log.py
"""

import json
import pytest
from datetime import datetime, timedelta, timezone

from defcache.eviction.audit_log import EventType, EvictionLog, EvictionLogEntry


class TestEvictionLogEntry:
    """Test EvictionLogEntry serialization."""

    def test_to_dict(self):
        entry = EvictionLogEntry(
            event_type=EventType.STORE_CLEARED,
            keys=["a"],
            size_before_kb=3.5,
            payload={"cause": "sizeAboveThreshold", "keys": {"b"}},
        )
        data = entry.to_dict()
        assert data["event_type"] == "store_cleared"
        assert data["size_before_kb"] == 3.5
        assert data["payload"] == {"cause": "sizeAboveThreshold", "keys": ["b"]}

    def test_from_dict(self):
        entry = EvictionLogEntry(event_type=EventType.EVICTION_RUN, run_id="r1", keys=["a", "b"])
        restored = EvictionLogEntry.from_dict(entry.to_dict())
        assert restored.entry_id == entry.entry_id
        assert restored.event_type == EventType.EVICTION_RUN
        assert restored.timestamp == entry.timestamp
        assert restored.keys == ["a", "b"]


class TestEvictionLog:
    """Test EvictionLog queries."""

    @pytest.fixture
    def log(self):
        log = EvictionLog()
        log.record(EventType.PRUNE_SKIPPED, run_id="r1")
        log.record(EventType.RECORDS_EVICTED, run_id="r2", keys=["tree"])
        log.record(EventType.EVICTION_RUN, run_id="r2", keys=["tree"])
        log.record(EventType.STORE_CLEARED, payload={"cause": "clearAll"})
        return log

    def test_len(self, log):
        assert len(log) == 4

    def test_query_newest_first(self, log):
        assert log.query()[0].event_type == EventType.STORE_CLEARED

    def test_query_by_event_type(self, log):
        entries = log.query(event_types={EventType.EVICTION_RUN, EventType.PRUNE_SKIPPED})
        assert [e.event_type for e in entries] == [EventType.EVICTION_RUN, EventType.PRUNE_SKIPPED]

    def test_query_by_key(self, log):
        assert len(log.query(key="tree")) == 2

    def test_query_since(self, log):
        future = datetime.now(timezone.utc) + timedelta(hours=1)
        assert log.query(since=future) == []

    def test_query_limit(self, log):
        assert len(log.query(limit=2)) == 2

    def test_get_run(self, log):
        assert [e.event_type for e in log.get_run("r2")] == [
            EventType.RECORDS_EVICTED,
            EventType.EVICTION_RUN,
        ]

    def test_get_recent(self, log):
        assert log.get_recent(1)[0].event_type == EventType.STORE_CLEARED

    def test_trim(self):
        log = EvictionLog(max_entries=3)
        for i in range(5):
            log.record(EventType.PRUNE_SKIPPED, run_id=f"r{i}")
        assert len(log) == 3
        assert log.get_run("r0") == []
        assert len(log.get_run("r4")) == 1

    def test_clear(self, log):
        log.clear()
        assert len(log) == 0
        assert log.get_run("r2") == []

    def test_export_to_json(self, log, tmp_path):
        path = tmp_path / "evictions.json"
        assert log.export_to_json(path) == 4

        data = json.loads(path.read_text())
        assert data["entry_count"] == 4
        assert data["entries"][0]["event_type"] == "store_cleared"
