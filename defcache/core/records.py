"""
core/records.py - Stored record types

Definitions and actions share one key namespace for graph purposes; the
kind is carried as a tag.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable
import json

from .constants import BYTES_PER_KB, DESCRIPTOR_FIELD


class RecordKind(Enum):
    """Partition a record lives in."""
    DEFINITION = "definition"
    ACTION = "action"


@dataclass(frozen=True)
class StoredRecord:
    """A key and its serialized value."""
    key: str
    value: Any

    kind = RecordKind.DEFINITION

    @property
    def is_action(self) -> bool:
        return self.kind is RecordKind.ACTION

    @property
    def size_kb(self) -> float:
        return estimate_size_kb(self.value)

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "kind": self.kind.value, "value": self.value}


@dataclass(frozen=True)
class DefinitionRecord(StoredRecord):
    """Persisted metadata describing one component type, keyed by descriptor."""
    kind = RecordKind.DEFINITION

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "DefinitionRecord":
        descriptor = config.get(DESCRIPTOR_FIELD)
        if not isinstance(descriptor, str) or not descriptor:
            raise ValueError(f"Definition config has no descriptor: {config!r}")
        return cls(key=descriptor, value=config)


@dataclass(frozen=True)
class ActionRecord(StoredRecord):
    """Persisted return value of one prior server action, keyed by action id."""
    kind = RecordKind.ACTION


def encode_value(value: Any) -> str:
    """Compact JSON encoding used for size estimates and file persistence."""
    return json.dumps(value, separators=(",", ":"), sort_keys=True, default=str)


def estimate_size_kb(value: Any) -> float:
    """Approximate stored size of a value in KB."""
    return len(encode_value(value).encode("utf-8")) / BYTES_PER_KB


def estimate_total_size_kb(values: Iterable[Any]) -> float:
    return sum(estimate_size_kb(v) for v in values)
