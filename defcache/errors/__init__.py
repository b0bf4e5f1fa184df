"""
errors/ - Error Taxonomy & Recovery

Structured error classification for the definition cache and the recovery
applied by the persistence path.
"""

from .taxonomy import (
    ErrorSeverity,
    ErrorCategory,
    ErrorCode,
    CacheErrorRecord,
    CacheError,
    StorageUnavailable,
    StorageReadFailed,
    SizeQueryFailed,
    RemovalFailed,
    StorageWriteFailed,
    CyclicDependencyError,
    ConfigurationError,
)

from .recovery import (
    RecoveryStrategy,
    RecoveryOption,
    RECOVERY_STRATEGIES,
    get_recovery_option,
)

__all__ = [
    # Taxonomy
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorCode",
    "CacheErrorRecord",
    "CacheError",
    "StorageUnavailable",
    "StorageReadFailed",
    "SizeQueryFailed",
    "RemovalFailed",
    "StorageWriteFailed",
    "CyclicDependencyError",
    "ConfigurationError",
    # Recovery
    "RecoveryStrategy",
    "RecoveryOption",
    "RECOVERY_STRATEGIES",
    "get_recovery_option",
]
