"""
DEFCACHE Eviction Engine

Module 03 v1.0

Provides:
- EvictionBudget: target size and headroom pre-check
- EvictionExecutor: removes upstream closures until the target is met
- EvictionLog: audit trail of prunes, evictions and clears
"""

from .budget import EvictionBudget
from .executor import EvictionExecutor
from .audit_log import (
    EventType,
    EvictionLog,
    EvictionLogEntry,
)

__all__ = [
    "EvictionBudget",
    "EvictionExecutor",
    "EventType",
    "EvictionLog",
    "EvictionLogEntry",
]
