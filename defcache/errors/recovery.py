"""
errors/recovery.py - Recovery strategies for cache failures

The persistence path is the single place failures are recovered; this maps
each error code to what it does.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict
from enum import Enum

from .taxonomy import CacheError, ErrorCode


class RecoveryStrategy(Enum):
    """Recovery strategy types."""
    SKIP = "skip"              # Nothing to do, continue as if successful
    CLEAR_ALL = "clear_all"    # Wipe both partitions and continue
    ABORT = "abort"            # Propagate to the caller


@dataclass
class RecoveryOption:
    """Single recovery option."""

    strategy: RecoveryStrategy
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "description": self.description,
        }


RECOVERY_STRATEGIES: Dict[ErrorCode, RecoveryOption] = {
    ErrorCode.STO_UNAVAILABLE: RecoveryOption(
        strategy=RecoveryStrategy.SKIP,
        description="No persistent store, nothing to prune",
    ),
    ErrorCode.STO_READ: RecoveryOption(
        strategy=RecoveryStrategy.CLEAR_ALL,
        description="Graph could not be built from storage",
    ),
    ErrorCode.STO_SIZE_QUERY: RecoveryOption(
        strategy=RecoveryStrategy.CLEAR_ALL,
        description="Store size unknown, reset the store",
    ),
    ErrorCode.STO_REMOVAL: RecoveryOption(
        strategy=RecoveryStrategy.CLEAR_ALL,
        description="Partial eviction, reset the store",
    ),
    ErrorCode.STO_WRITE: RecoveryOption(
        strategy=RecoveryStrategy.CLEAR_ALL,
        description="Stored records may be missing dependencies",
    ),
    ErrorCode.DEP_CYCLE: RecoveryOption(
        strategy=RecoveryStrategy.CLEAR_ALL,
        description="No valid eviction order exists",
    ),
    ErrorCode.EVI_FAILED: RecoveryOption(
        strategy=RecoveryStrategy.CLEAR_ALL,
        description="Eviction failed",
    ),
    ErrorCode.SYS_CONFIG: RecoveryOption(
        strategy=RecoveryStrategy.ABORT,
        description="Configuration must be fixed by the operator",
    ),
}

_DEFAULT_OPTION = RecoveryOption(
    strategy=RecoveryStrategy.CLEAR_ALL,
    description="Unexpected failure in the persistence path",
)


def get_recovery_option(error: BaseException) -> RecoveryOption:
    """Resolve the recovery option for any exception raised in the persistence path."""
    if isinstance(error, CacheError):
        return RECOVERY_STRATEGIES.get(error.code, _DEFAULT_OPTION)
    return _DEFAULT_OPTION
