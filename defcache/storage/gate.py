"""
DEFCACHE Mutation Gate

Serializes every build -> evaluate -> evict -> write cycle against the
record store. Graph builds read a full snapshot; an interleaved mutation
would make that snapshot stale.

Waiters are admitted in FIFO order. Admitted work always runs to completion
or failure; there is no cancellation of admitted work.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar
import asyncio
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MutationGateError(Exception):
    """Raised when the gate is released by someone who does not hold it."""
    pass


class MutationGate:
    """
    Exclusive access to the record store.

    Usage:
        result = await gate.run(work, owner="saveDefs")

        async with gate.exclusive_access("prune"):
            ...
    """

    def __init__(self, name: str = "defcache"):
        self.name = name
        self._lock = asyncio.Lock()
        self._owner: Optional[str] = None
        self._waiting = 0
        self._admitted = 0

    @property
    def is_locked(self) -> bool:
        return self._lock.locked()

    @property
    def owner(self) -> Optional[str]:
        return self._owner

    @property
    def waiting(self) -> int:
        """Callers queued behind the current holder."""
        return self._waiting

    @property
    def admitted_count(self) -> int:
        return self._admitted

    async def acquire(self, owner: str) -> None:
        self._waiting += 1
        try:
            await self._lock.acquire()
        finally:
            self._waiting -= 1
        self._owner = owner
        self._admitted += 1
        logger.debug(f"Gate {self.name} admitted {owner} ({self._waiting} waiting)")

    def release(self, owner: str) -> None:
        if not self._lock.locked() or self._owner != owner:
            raise MutationGateError(
                f"Gate {self.name} held by {self._owner}, not {owner}"
            )
        self._owner = None
        self._lock.release()

    @asynccontextmanager
    async def exclusive_access(self, owner: str) -> AsyncIterator["MutationGate"]:
        await self.acquire(owner)
        try:
            yield self
        finally:
            self.release(owner)

    async def run(self, work: Callable[[], Awaitable[T]], owner: str = "anonymous") -> T:
        """Run work with exclusive access and return its result."""
        async with self.exclusive_access(owner):
            return await work()
