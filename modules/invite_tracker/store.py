from typing import Optional

from modules.invite_tracker.models import CommunityId, Snapshot


class SnapshotStore:
    """
    In-memory invite usage snapshots, one per guild.

    Structure: { guild_id: { code: uses } }

    The store does no locking. Every mutation for a guild must happen while
    that guild's gate is held.
    """

    def __init__(self):
        self._snapshots: dict[CommunityId, Snapshot] = {}

    def get(self, community: CommunityId) -> Optional[Snapshot]:
        """Return a copy of the guild's snapshot, or None if it was never observed."""
        snapshot = self._snapshots.get(community)
        if snapshot is None:
            return None
        return dict(snapshot)

    def replace(self, community: CommunityId, snapshot: Snapshot) -> None:
        self._snapshots[community] = dict(snapshot)

    def upsert(self, community: CommunityId, code: str, uses: int) -> None:
        self._snapshots.setdefault(community, {})[code] = uses

    def remove(self, community: CommunityId, code: str) -> None:
        snapshot = self._snapshots.get(community)
        if snapshot is not None:
            snapshot.pop(code, None)

    def drop(self, community: CommunityId) -> None:
        self._snapshots.pop(community, None)

    def communities(self) -> list[CommunityId]:
        return list(self._snapshots)

    def __contains__(self, community: CommunityId) -> bool:
        return community in self._snapshots

    def __len__(self) -> int:
        return len(self._snapshots)
