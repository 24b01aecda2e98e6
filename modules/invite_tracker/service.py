import asyncio
from typing import Callable, Optional

from core.logger import setup_logger
from modules.invite_tracker.gate import SerializationGate
from modules.invite_tracker.ingestor import AttributionCallback, EventIngestor
from modules.invite_tracker.models import CommunityId, CommunityObserved, InviteRecord, Snapshot
from modules.invite_tracker.resolver import AttributionResolver
from modules.invite_tracker.source import InviteSource
from modules.invite_tracker.store import SnapshotStore

logger = setup_logger("invite_tracker")


class InviteTrackerService:
    """Wires the snapshot store, gate, resolver and ingestor together for the bot."""

    def __init__(
            self,
            source: InviteSource,
            is_mapped: Callable[[CommunityId, str], bool],
            on_attribution: Optional[AttributionCallback] = None,
            fetch_timeout: float = 10.0,
    ):
        self.source = source
        self.store = SnapshotStore()
        self.gate = SerializationGate()
        self.resolver = AttributionResolver(
            store=self.store,
            source=source,
            is_mapped=is_mapped,
            fetch_timeout=fetch_timeout,
        )
        self.ingestor = EventIngestor(
            store=self.store,
            gate=self.gate,
            resolver=self.resolver,
            on_attribution=on_attribution,
        )

    async def observe_all(self) -> int:
        """Snapshot every guild the client can see. Returns how many were cached."""
        communities = self.source.list_communities()
        await asyncio.gather(
            *(self.ingestor.handle(CommunityObserved(community=c)) for c in communities)
        )
        cached = sum(1 for c in communities if c in self.store)
        logger.info(f"[InviteTracker] Snapshots ready for {cached}/{len(communities)} guild(s)")
        return cached

    async def force_resync(self, community: CommunityId) -> Snapshot:
        """Re-fetch and replace the guild's snapshot. Raises FetchFailed."""
        return await self.gate.run(community, lambda: self.resolver.force_resync(community))

    def current_snapshot(self, community: CommunityId) -> Snapshot:
        """Read-only copy of the guild's snapshot, empty if never observed."""
        return self.resolver.current_snapshot(community)

    async def inspect(self, community: CommunityId) -> tuple[Snapshot, list[InviteRecord]]:
        """Snapshot and live invites side by side, without touching the snapshot. Raises FetchFailed."""
        async def _read():
            return self.resolver.current_snapshot(community), await self.resolver.fetch(community)

        return await self.gate.run(community, _read)
