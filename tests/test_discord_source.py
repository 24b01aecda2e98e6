"""
DiscordInviteSource tests with mocked discord.py objects.
"""

import datetime
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import discord
import pytest

from modules.invite_tracker.errors import FetchFailed, PermissionDenied, TransientNetworkError
from modules.invite_tracker.source import DiscordInviteSource, to_record


def make_invite(code, uses, max_uses=0, inviter_id=None, expires_at=None):
    invite = MagicMock(code=code, uses=uses, max_uses=max_uses, expires_at=expires_at)
    invite.inviter = MagicMock(id=inviter_id) if inviter_id else None
    return invite


@pytest.fixture
def guild():
    guild = MagicMock(id=10, vanity_url_code="cool")
    guild.invites = AsyncMock(return_value=[make_invite("abc", 3, inviter_id=7), make_invite("def", None)])
    return guild


@pytest.fixture
def client(guild):
    client = MagicMock()
    client.get_guild.side_effect = lambda gid: guild if gid == guild.id else None
    client.guilds = [guild]
    return client


class TestToRecord:

    def test_maps_fields(self):
        expires = datetime.datetime(2030, 1, 1, tzinfo=datetime.timezone.utc)
        record = to_record(make_invite("abc", 3, max_uses=10, inviter_id=7, expires_at=expires))

        assert record.code == "abc"
        assert record.uses == 3
        assert record.max_uses == 10
        assert record.inviter_id == 7
        assert record.expires_at == expires

    def test_unlimited_and_missing_values(self):
        record = to_record(make_invite("abc", None))

        assert record.uses == 0
        assert record.max_uses is None
        assert record.inviter_id is None


class TestDiscordInviteSource:

    @pytest.mark.asyncio
    async def test_list_invites(self, client):
        records = await DiscordInviteSource(client).list_invites(10)
        assert [(r.code, r.uses) for r in records] == [("abc", 3), ("def", 0)]

    @pytest.mark.asyncio
    async def test_forbidden_is_permission_denied(self, client, guild):
        guild.invites.side_effect = discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Missing Permissions")

        with pytest.raises(PermissionDenied):
            await DiscordInviteSource(client).list_invites(10)

    @pytest.mark.asyncio
    async def test_http_error_is_transient(self, client, guild):
        guild.invites.side_effect = discord.HTTPException(MagicMock(status=503, reason="Unavailable"), "down")

        with pytest.raises(TransientNetworkError) as exc:
            await DiscordInviteSource(client).list_invites(10)
        assert "503" in exc.value.detail

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        ConnectionRefusedError(111, "Connection refused"),
        aiohttp.ClientConnectionError("connection reset"),
    ])
    async def test_connection_error_is_transient(self, client, guild, error):
        guild.invites.side_effect = error

        with pytest.raises(TransientNetworkError) as exc:
            await DiscordInviteSource(client).list_invites(10)
        assert "connection error" in exc.value.detail

    @pytest.mark.asyncio
    async def test_unknown_guild(self, client):
        with pytest.raises(FetchFailed):
            await DiscordInviteSource(client).list_invites(99)

    def test_communities_and_vanity(self, client):
        source = DiscordInviteSource(client)
        assert source.list_communities() == [10]
        assert source.vanity_code_of(10) == "cool"
        assert source.vanity_code_of(99) is None
