"""
DEFCACHE Persistence Layer

Saving, restoring and pruning persisted definitions and actions.
"""

from .service import PersistenceService

__all__ = ["PersistenceService"]
