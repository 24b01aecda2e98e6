from typing import Awaitable, Callable, Optional

import discord

from core.logger import setup_logger
from modules.invite_tracker.gate import SerializationGate
from modules.invite_tracker.models import (
    AttributionResult,
    CommunityId,
    CommunityLeft,
    CommunityObserved,
    IngestEvent,
    InviteAdded,
    InviteRemoved,
    MemberJoined,
)
from modules.invite_tracker.resolver import AttributionResolver
from modules.invite_tracker.store import SnapshotStore

logger = setup_logger("invite_tracker")

AttributionCallback = Callable[[CommunityId, int, AttributionResult], Awaitable[object]]


class EventIngestor:
    """
    Turns gateway notifications into ingest events and runs each one through
    its guild's gate, in the order they were handed in.
    """

    def __init__(
            self,
            store: SnapshotStore,
            gate: SerializationGate,
            resolver: AttributionResolver,
            on_attribution: Optional[AttributionCallback] = None,
    ):
        self.store = store
        self.gate = gate
        self.resolver = resolver
        self.on_attribution = on_attribution

    # --- Translation from discord.py objects ---

    @staticmethod
    def community_observed(guild: discord.Guild) -> CommunityObserved:
        return CommunityObserved(community=guild.id)

    @staticmethod
    def community_left(guild: discord.Guild) -> CommunityLeft:
        return CommunityLeft(community=guild.id)

    @staticmethod
    def invite_added(invite: discord.Invite) -> InviteAdded:
        return InviteAdded(community=invite.guild.id, code=invite.code, uses=invite.uses or 0)

    @staticmethod
    def invite_removed(invite: discord.Invite) -> InviteRemoved:
        return InviteRemoved(community=invite.guild.id, code=invite.code)

    @staticmethod
    def member_joined(member: discord.Member) -> MemberJoined:
        return MemberJoined(community=member.guild.id, member_id=member.id)

    # --- Dispatch ---

    async def handle(self, event: IngestEvent) -> Optional[AttributionResult]:
        """
        Process one event. Returns the attribution for MemberJoined, None otherwise.

        The gate is entered before anything else is awaited, so events for one
        guild queue up in the order handle() was called.
        """
        if isinstance(event, MemberJoined):
            result = await self.gate.run(
                event.community,
                lambda: self.resolver.resolve(event.community, event.member_id),
            )
            # Role granting happens outside the gate
            await self._notify(event, result)
            return result

        await self.gate.run(event.community, lambda: self._apply(event))
        return None

    async def _apply(self, event: IngestEvent) -> None:
        if isinstance(event, InviteAdded):
            self.store.upsert(event.community, event.code, event.uses)
            logger.debug(f"[InviteTracker] Invite {event.code} created in guild {event.community}")
        elif isinstance(event, InviteRemoved):
            self.store.remove(event.community, event.code)
            logger.debug(f"[InviteTracker] Invite {event.code} deleted in guild {event.community}")
        elif isinstance(event, CommunityObserved):
            await self.resolver.observe(event.community, event.invites)
        elif isinstance(event, CommunityLeft):
            self.store.drop(event.community)
            logger.info(f"[InviteTracker] Dropped snapshot for guild {event.community}")
        else:
            raise TypeError(f"Unsupported ingest event: {type(event).__name__}")

    async def _notify(self, event: MemberJoined, result: AttributionResult) -> None:
        if self.on_attribution is None:
            return
        try:
            await self.on_attribution(event.community, event.member_id, result)
        except Exception as e:
            # The snapshot update already happened and stays
            logger.error(f"[InviteTracker] Attribution handler failed for {event.member_id} in {event.community}: {e}")
