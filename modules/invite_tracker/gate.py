import asyncio
from typing import Awaitable, Callable, TypeVar

from modules.invite_tracker.models import CommunityId

T = TypeVar("T")


class SerializationGate:
    """
    Per-guild exclusivity for everything that reads or writes a snapshot.

    asyncio.Lock wakes waiters in the order they queued, so work for one guild
    runs in arrival order. Guilds never share a lock.
    """

    def __init__(self):
        self._locks: dict[CommunityId, asyncio.Lock] = {}

    def _get_lock(self, community: CommunityId) -> asyncio.Lock:
        """Return a per-guild lock, creating it if needed"""
        if community not in self._locks:
            self._locks[community] = asyncio.Lock()
        return self._locks[community]

    def is_busy(self, community: CommunityId) -> bool:
        lock = self._locks.get(community)
        return lock is not None and lock.locked()

    async def run(self, community: CommunityId, fn: Callable[[], Awaitable[T]]) -> T:
        """
        Run `fn` with exclusive access to the guild's snapshot.
        Queues behind any invocation already in flight for the same guild.
        Exceptions from `fn` release the gate and propagate.
        """
        async with self._get_lock(community):
            return await fn()
