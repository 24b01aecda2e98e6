"""
Shared fixtures for the invite tracker tests.
"""

import asyncio
import os

# Settings are read at import time, provide the required values first
os.environ.setdefault("DISCORD_TOKEN", "test-token")
os.environ.pop("MONGO_URI", None)

import pytest  # noqa: E402

from modules.invite_tracker.errors import FetchFailed  # noqa: E402
from modules.invite_tracker.models import InviteRecord  # noqa: E402
from modules.invite_tracker.service import InviteTrackerService  # noqa: E402
from modules.role_mapping.service import RoleMappingService  # noqa: E402


class FakeInviteSource:
    """
    In-memory InviteSource.

    `invites` holds the live {code: uses} per guild, `failures` makes the next
    fetches for a guild raise, `gates` lets a test hold a fetch open.
    """

    def __init__(self):
        self.invites: dict[int, dict[str, int]] = {}
        self.vanity: dict[int, str] = {}
        self.failures: dict[int, FetchFailed] = {}
        self.gates: dict[int, asyncio.Event] = {}
        self.delays: dict[int, float] = {}
        self.fetches: list[int] = []

    def set(self, community: int, **uses: int):
        self.invites[community] = dict(uses)

    async def list_invites(self, community: int) -> list[InviteRecord]:
        self.fetches.append(community)
        if community in self.gates:
            await self.gates[community].wait()
        if community in self.delays:
            await asyncio.sleep(self.delays[community])
        if community in self.failures:
            raise self.failures[community]
        return [InviteRecord(code=code, uses=uses) for code, uses in self.invites.get(community, {}).items()]

    def list_communities(self) -> list[int]:
        return list(self.invites)

    def vanity_code_of(self, community: int):
        return self.vanity.get(community)


@pytest.fixture
def source():
    return FakeInviteSource()


@pytest.fixture
def mappings():
    return RoleMappingService(seed={"VANITY": 111})


@pytest.fixture
def attributions():
    """Records every on_attribution call."""
    return []


@pytest.fixture
def tracker(source, mappings, attributions):
    async def on_attribution(community, member_id, result):
        attributions.append((community, member_id, result))

    return InviteTrackerService(
        source=source,
        is_mapped=mappings.is_mapped,
        on_attribution=on_attribution,
        fetch_timeout=0.5,
    )


@pytest.fixture
def mock_guild():
    """Guild with a role registry tests can fill in through `roles`."""
    from unittest.mock import MagicMock

    guild = MagicMock(id=1, vanity_url_code=None, member_count=5)
    guild.name = "Test Guild"
    guild.roles = {}
    guild.get_role.side_effect = lambda role_id: guild.roles.get(role_id)
    return guild


@pytest.fixture
def mock_discord_interaction(mock_guild):
    """Interaction whose response and followup calls are awaitable and recorded."""
    from unittest.mock import AsyncMock, MagicMock

    interaction = MagicMock()
    interaction.guild = mock_guild
    interaction.user.id = 42
    interaction.response.defer = AsyncMock()
    interaction.response.send_message = AsyncMock()
    interaction.response.is_done = MagicMock(return_value=False)
    interaction.followup.send = AsyncMock()
    return interaction


def make_role(role_id: int, name: str):
    from unittest.mock import MagicMock

    role = MagicMock(id=role_id)
    role.name = name
    return role


def sent_text(interaction) -> str:
    """Everything sent through followup.send, joined."""
    return "\n".join(call.args[0] for call in interaction.followup.send.call_args_list if call.args)
