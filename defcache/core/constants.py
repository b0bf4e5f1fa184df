"""
DEFCACHE Cache Constants

Constants used by the persistence and eviction layers.
"""

from typing import Tuple

# ==================== Eviction Budget ====================

# Fraction of max capacity the definition store is pruned down to
EVICTION_TARGET_LOAD = 0.6

# Fraction of max capacity kept free for writes that immediately follow a prune
EVICTION_HEADROOM = 0.1

# ==================== Record Conventions ====================

# Reserved field marking a cross-reference to another definition
DESCRIPTOR_FIELD = "descriptor"

# Framework bootstrap actions. Never evicted: the framework cannot boot without them.
BOOTSTRAP_ACTION_PREFIXES: Tuple[str, ...] = (
    "globalValueProviders",
    "aura://ComponentController/ACTION$getApplication",
)

# Keys of the definition bag passed to save_defs_to_storage()
COMPONENT_DEFS_KEY = "componentDefs"
LIBRARY_DEFS_KEY = "libraryDefs"
EVENT_DEFS_KEY = "eventDefs"

# ==================== Storage Defaults ====================

DEFAULT_DEFS_MAX_SIZE_KB = 4096.0
DEFAULT_ACTIONS_MAX_SIZE_KB = 4096.0

DEFS_STORE_NAME = "ComponentDefStorage"
ACTIONS_STORE_NAME = "actions"

BYTES_PER_KB = 1024.0
