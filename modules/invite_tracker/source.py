from typing import Optional, Protocol

import aiohttp
import discord

from modules.invite_tracker.errors import FetchFailed, PermissionDenied, TransientNetworkError
from modules.invite_tracker.models import CommunityId, InviteRecord


class InviteSource(Protocol):
    async def list_invites(self, community: CommunityId) -> list[InviteRecord]: ...

    def list_communities(self) -> list[CommunityId]: ...

    def vanity_code_of(self, community: CommunityId) -> Optional[str]: ...


def to_record(invite: discord.Invite) -> InviteRecord:
    return InviteRecord(
        code=invite.code,
        uses=invite.uses or 0,
        # 0 means unlimited on Discord's side
        max_uses=invite.max_uses or None,
        expires_at=invite.expires_at,
        inviter_id=invite.inviter.id if invite.inviter else None,
    )


class DiscordInviteSource:
    """InviteSource backed by a connected discord.py client."""

    def __init__(self, client: discord.Client):
        self.client = client

    def _guild(self, community: CommunityId) -> discord.Guild:
        guild = self.client.get_guild(community)
        if guild is None:
            raise FetchFailed(community, "unknown guild")
        return guild

    async def list_invites(self, community: CommunityId) -> list[InviteRecord]:
        guild = self._guild(community)
        try:
            invites = await guild.invites()
        except discord.Forbidden as e:
            raise PermissionDenied(community, "missing 'Manage Guild' permission") from e
        except discord.HTTPException as e:
            raise TransientNetworkError(community, f"HTTP {e.status}: {e.text or e}") from e
        except (OSError, aiohttp.ClientError) as e:
            # discord.py re-raises connection failures untranslated
            raise TransientNetworkError(community, f"connection error: {e}") from e

        return [to_record(invite) for invite in invites]

    def list_communities(self) -> list[CommunityId]:
        return [guild.id for guild in self.client.guilds]

    def vanity_code_of(self, community: CommunityId) -> Optional[str]:
        guild = self.client.get_guild(community)
        if guild is None:
            return None
        return guild.vanity_url_code
