"""
eviction/budget.py - Eviction budget

Target size and the approximate pre-check that decides whether any
eviction work is needed at all.
"""

from __future__ import annotations
from dataclasses import dataclass

from defcache.core.constants import EVICTION_HEADROOM, EVICTION_TARGET_LOAD


@dataclass(frozen=True)
class EvictionBudget:
    """Fixed fractions of total capacity, process-wide."""

    target_load: float = EVICTION_TARGET_LOAD
    headroom: float = EVICTION_HEADROOM

    def __post_init__(self):
        if not 0.0 < self.target_load <= 1.0:
            raise ValueError(f"target_load must be in (0, 1], got {self.target_load}")
        if not 0.0 <= self.headroom < 1.0:
            raise ValueError(f"headroom must be in [0, 1), got {self.headroom}")

    def target_size(self, max_size_kb: float, required_kb: float) -> float:
        """
        Size to evict down to: the lesser of
        a) a percent of max size, and
        b) the size that leaves headroom after the subsequent puts.
        """
        return min(
            max_size_kb * self.target_load,
            max_size_kb - max_size_kb * self.headroom - required_kb,
        )

    def projected_size(self, current_kb: float, max_size_kb: float, required_kb: float) -> float:
        return current_kb + required_kb + max_size_kb * self.headroom

    def needs_eviction(self, current_kb: float, max_size_kb: float, required_kb: float) -> bool:
        """
        Approximate check meant to avoid loading the whole store and
        analysing the graph, which are expensive.
        """
        return self.projected_size(current_kb, max_size_kb, required_kb) >= max_size_kb
