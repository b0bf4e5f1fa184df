"""
errors/taxonomy.py - Cache error classification

Structured errors raised by the storage, dependency and eviction layers.
Every failure inside the eviction pipeline is one of these; the persistence
service decides the recovery (see recovery.py).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
from datetime import datetime, timezone
from enum import Enum
import uuid


class ErrorSeverity(Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""
    # Storage errors (1xxx)
    STORAGE = "storage"

    # Dependency graph errors (2xxx)
    DEPENDENCY = "dependency"

    # Eviction errors (3xxx)
    EVICTION = "eviction"

    # Configuration errors (6xxx)
    CONFIGURATION = "configuration"


class ErrorCode(Enum):
    """Specific error codes."""

    # Storage (1xxx)
    STO_UNAVAILABLE = 1001
    STO_READ = 1002
    STO_SIZE_QUERY = 1003
    STO_REMOVAL = 1004
    STO_WRITE = 1005

    # Dependency (2xxx)
    DEP_CYCLE = 2001

    # Eviction (3xxx)
    EVI_FAILED = 3001

    # System (6xxx)
    SYS_CONFIG = 6001


@dataclass
class CacheErrorRecord:
    """Structured error representation, suitable for logs and metrics payloads."""

    error_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    code: ErrorCode = ErrorCode.EVI_FAILED
    category: ErrorCategory = ErrorCategory.EVICTION
    severity: ErrorSeverity = ErrorSeverity.ERROR

    message: str = ""

    # Context
    source: str = ""
    keys: List[str] = field(default_factory=list)

    recoverable: bool = True

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "source": self.source,
            "keys": list(self.keys),
            "recoverable": self.recoverable,
            "created_at": self.created_at.isoformat(),
        }


# =============================================================================
# EXCEPTIONS
# =============================================================================

class CacheError(Exception):
    """Base exception for definition cache errors."""

    code: ErrorCode = ErrorCode.EVI_FAILED
    category: ErrorCategory = ErrorCategory.EVICTION
    severity: ErrorSeverity = ErrorSeverity.ERROR
    recoverable: bool = True

    def __init__(self, message: str, source: str = "", keys: Optional[Iterable[str]] = None):
        self.message = message
        self.source = source
        self.keys: List[str] = list(keys or [])
        super().__init__(message)

    def to_record(self) -> CacheErrorRecord:
        return CacheErrorRecord(
            code=self.code,
            category=self.category,
            severity=self.severity,
            message=self.message,
            source=self.source,
            keys=self.keys,
            recoverable=self.recoverable,
        )


class StorageUnavailable(CacheError):
    """Store is absent or not persistent. Callers treat this as nothing to prune."""
    code = ErrorCode.STO_UNAVAILABLE
    category = ErrorCategory.STORAGE
    severity = ErrorSeverity.INFO


class StorageReadFailed(CacheError):
    """Reading all records of a partition failed."""
    code = ErrorCode.STO_READ
    category = ErrorCategory.STORAGE


class SizeQueryFailed(CacheError):
    """The current size of a partition could not be determined."""
    code = ErrorCode.STO_SIZE_QUERY
    category = ErrorCategory.STORAGE


class RemovalFailed(CacheError):
    """A delete against the store failed mid-eviction. Removed keys stay removed."""
    code = ErrorCode.STO_REMOVAL
    category = ErrorCategory.STORAGE


class StorageWriteFailed(CacheError):
    """Persisting incoming records failed."""
    code = ErrorCode.STO_WRITE
    category = ErrorCategory.STORAGE


class CyclicDependencyError(CacheError):
    """The dependency graph has no valid order. Fatal to the eviction attempt."""
    code = ErrorCode.DEP_CYCLE
    category = ErrorCategory.DEPENDENCY
    severity = ErrorSeverity.CRITICAL
    recoverable = False

    def __init__(self, source_key: str, target_key: str, cycle: Optional[List[str]] = None):
        self.source_key = source_key
        self.target_key = target_key
        self.cycle: List[str] = list(cycle or [source_key, target_key])
        super().__init__(
            f"Found a cycle in the graph: {target_key} is in {source_key} "
            f"({' -> '.join(self.cycle)})",
            source="dependencies.sorting",
            keys=[source_key, target_key],
        )


class ConfigurationError(CacheError):
    """Invalid cache configuration."""
    code = ErrorCode.SYS_CONFIG
    category = ErrorCategory.CONFIGURATION
    recoverable = False
