"""
DEFCACHE Dependency Extractor

Module 02 v1.0

Finds the stored records a definition or action references. Records are
plain nested data; a cross-reference is any mapping entry named
"descriptor". The walk uses an explicit work stack, so nesting depth is
bounded only by memory.
"""

from __future__ import annotations
from typing import AbstractSet, Any, List, Mapping, Set

from defcache.core.constants import DESCRIPTOR_FIELD


def find_dependencies(
    key: str,
    config: Any,
    stored_keys: AbstractSet[str],
) -> Set[str]:
    """
    Find dependencies of a component def or action.

    A component def depends on the defs in its superDef chain and facets;
    an action depends on the defs named in its return value.

    Args:
        key: Key of the record being scanned (never reported as its own dependency)
        config: Serialized value of the record
        stored_keys: Keys that currently exist in the store

    Returns:
        Keys referenced by config that are present in stored_keys
    """
    dependencies: Set[str] = set()
    to_process: List[Any] = [config]

    while to_process:
        current = to_process.pop()
        if isinstance(current, (list, tuple)):
            to_process.extend(current)
        elif isinstance(current, Mapping):
            for attr, value in current.items():
                if attr == DESCRIPTOR_FIELD:
                    if isinstance(value, str) and value != key and value in stored_keys:
                        dependencies.add(value)
                else:
                    to_process.append(value)

    return dependencies
