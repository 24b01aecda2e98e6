import asyncio
from typing import Callable, Optional

from core.logger import setup_logger
from modules.invite_tracker.errors import FetchFailed, TransientNetworkError
from modules.invite_tracker.models import (
    Attributed,
    AttributedByFallback,
    AttributionResult,
    CommunityId,
    InviteRecord,
    Snapshot,
    Unattributed,
    UnattributedReason,
)
from modules.invite_tracker.source import InviteSource
from modules.invite_tracker.store import SnapshotStore

logger = setup_logger("invite_tracker")


def to_snapshot(invites: list[InviteRecord]) -> Snapshot:
    return {invite.code: invite.uses for invite in invites}


def find_used_invite(snapshot: Snapshot, invites: list[InviteRecord]) -> Optional[Attributed]:
    """
    Diff a live invite listing against the last snapshot.

    Every code whose uses went up is a candidate; codes never seen before count
    from 0. Codes only present in the snapshot are ignored. The winner has the
    largest increment, ties go to the lexicographically smallest code.
    """
    candidates = []
    for invite in invites:
        cached_uses = snapshot.get(invite.code, 0)
        if invite.uses > cached_uses:
            candidates.append((invite.code, cached_uses, invite.uses))

    if not candidates:
        return None

    code, previous, new = min(candidates, key=lambda c: (-(c[2] - c[1]), c[0]))
    return Attributed(code=code, previous_uses=previous, new_uses=new, candidates=len(candidates))


class AttributionResolver:
    """
    Works out which invite a member used by diffing live invite uses against
    the stored snapshot, then replaces the snapshot with the live view.

    CRITICAL: every coroutine here assumes the caller holds the guild's gate.
    """

    def __init__(
            self,
            store: SnapshotStore,
            source: InviteSource,
            is_mapped: Callable[[CommunityId, str], bool],
            fetch_timeout: float = 10.0,
    ):
        self.store = store
        self.source = source
        self.is_mapped = is_mapped
        self.fetch_timeout = fetch_timeout

    async def fetch(self, community: CommunityId) -> list[InviteRecord]:
        """Fetch the live invite list, failing fast after `fetch_timeout` seconds."""
        try:
            return await asyncio.wait_for(self.source.list_invites(community), timeout=self.fetch_timeout)
        except asyncio.TimeoutError as e:
            raise TransientNetworkError(community, f"timed out after {self.fetch_timeout:g}s") from e

    async def resolve(self, community: CommunityId, member_id: int) -> AttributionResult:
        snapshot = self.store.get(community)
        if snapshot is None:
            logger.info(f"[InviteTracker] No snapshot for guild {community}, diffing against an empty one")
            snapshot = {}

        try:
            invites = await self.fetch(community)
        except FetchFailed as e:
            logger.warning(f"[InviteTracker] {e}. Join of {member_id} left unattributed, snapshot untouched")
            return Unattributed(reason=UnattributedReason.FETCH_FAILED, detail=e.detail)

        logger.debug(f"[InviteTracker] Guild {community}: cached={len(snapshot)}, current={len(invites)}")
        used = find_used_invite(snapshot, invites)

        # The live view is the only source of truth, fold all of it in
        self.store.replace(community, to_snapshot(invites))

        if used:
            if used.candidates > 1:
                logger.warning(
                    f"[InviteTracker] {used.candidates} invites incremented in guild {community}, "
                    f"attributing {member_id} to {used.code} (+{used.delta})"
                )
            logger.info(
                f"[InviteTracker] {member_id} joined guild {community} using invite {used.code} "
                f"({used.previous_uses} -> {used.new_uses})"
            )
            return used

        vanity_code = self.source.vanity_code_of(community)
        if vanity_code and self.is_mapped(community, vanity_code):
            logger.info(f"[InviteTracker] {member_id} likely joined guild {community} via vanity URL discord.gg/{vanity_code}")
            return AttributedByFallback(vanity_code=vanity_code)

        logger.warning(f"[InviteTracker] Could not determine which invite {member_id} used in guild {community}")
        logger.debug(
            f"[InviteTracker] Vanity URL: {f'discord.gg/{vanity_code}' if vanity_code else 'No'}, "
            f"available invites: {', '.join(sorted(to_snapshot(invites))) or 'None'}"
        )
        return Unattributed(reason=UnattributedReason.NO_INCREMENT)

    async def observe(self, community: CommunityId, invites: Optional[list[InviteRecord]] = None) -> Optional[Snapshot]:
        """
        Seed the baseline snapshot for a guild (startup or guild join).
        Fetch failures are logged and leave the snapshot absent.
        """
        if invites is None:
            try:
                invites = await self.fetch(community)
            except FetchFailed as e:
                logger.error(f"[InviteTracker] Error caching invites: {e}")
                return None

        snapshot = to_snapshot(invites)
        self.store.replace(community, snapshot)
        logger.info(f"[InviteTracker] Cached {len(snapshot)} invites for guild {community}")

        vanity_code = self.source.vanity_code_of(community)
        if vanity_code:
            logger.info(f"[InviteTracker] Guild {community} has vanity URL: discord.gg/{vanity_code}")
        return snapshot

    async def force_resync(self, community: CommunityId) -> Snapshot:
        """Replace the snapshot with a fresh fetch, no attribution. Raises FetchFailed."""
        invites = await self.fetch(community)
        snapshot = to_snapshot(invites)
        self.store.replace(community, snapshot)
        logger.info(f"[InviteTracker] Resynced {len(snapshot)} invites for guild {community}")
        return snapshot

    def current_snapshot(self, community: CommunityId) -> Snapshot:
        return self.store.get(community) or {}
