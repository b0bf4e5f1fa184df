"""
DEFCACHE Core Module

Record types and constants shared by every layer.
"""

from defcache.core.records import (
    RecordKind,
    StoredRecord,
    DefinitionRecord,
    ActionRecord,
    encode_value,
    estimate_size_kb,
    estimate_total_size_kb,
)

__all__ = [
    "RecordKind",
    "StoredRecord",
    "DefinitionRecord",
    "ActionRecord",
    "encode_value",
    "estimate_size_kb",
    "estimate_total_size_kb",
]
