from enum import Enum
from typing import Optional

import discord

from core.database import Database
from core.logger import setup_logger
from modules.invite_tracker.models import Attributed, AttributedByFallback, AttributionResult
from modules.role_mapping.models import RoleMapping

logger = setup_logger("role_mapping")


class RoleMappingService:
    """
    Invite code -> role id table.

    Global mappings come from settings and apply to every guild, guild
    mappings are edited through commands and persisted to MongoDB when it
    is configured. A guild mapping wins over a global one for the same code.
    """

    def __init__(self, seed: Optional[dict[str, int]] = None):
        self._global: dict[str, int] = dict(seed or {})
        # Structure: { guild_id: { code: role_id } }
        self._guilds: dict[int, dict[str, int]] = {}

    async def load(self) -> int:
        """Load persisted guild mappings. Returns the number of mappings loaded."""
        if not Database.is_connected():
            return 0

        loaded = 0
        async for doc in Database.role_mappings().find({}):
            mapping = RoleMapping(**doc)
            self._guilds.setdefault(mapping.guild_id, {})[mapping.code] = mapping.role_id
            loaded += 1

        logger.info(f"[RoleMapping] Loaded {loaded} mapping(s) from MongoDB")
        return loaded

    def get_role_id(self, guild_id: int, code: str) -> Optional[int]:
        role_id = self._guilds.get(guild_id, {}).get(code)
        if role_id is None:
            role_id = self._global.get(code)
        return role_id

    def is_mapped(self, guild_id: int, code: str) -> bool:
        return self.get_role_id(guild_id, code) is not None

    def list(self, guild_id: int) -> dict[str, int]:
        return {**self._global, **self._guilds.get(guild_id, {})}

    def is_global(self, code: str) -> bool:
        return code in self._global

    def count(self) -> int:
        return len(self._global) + sum(len(m) for m in self._guilds.values())

    async def add(self, guild_id: int, code: str, role_id: int) -> RoleMapping:
        mapping = RoleMapping(guild_id=guild_id, code=code, role_id=role_id)

        # Memory only changes after the write succeeds
        if Database.is_connected():
            await Database.role_mappings().update_one(
                {"guild_id": guild_id, "code": code},
                {
                    "$set": {"role_id": role_id, "updated_at": mapping.updated_at},
                    "$setOnInsert": {"created_at": mapping.created_at},
                },
                upsert=True,
            )

        self._guilds.setdefault(guild_id, {})[code] = role_id
        logger.info(f"[RoleMapping] Guild {guild_id}: {code} -> role {role_id}")
        return mapping

    async def remove(self, guild_id: int, code: str) -> bool:
        """Remove a guild mapping. Global mappings can only be changed in settings."""
        if code not in self._guilds.get(guild_id, {}):
            return False

        if Database.is_connected():
            await Database.role_mappings().delete_one({"guild_id": guild_id, "code": code})

        del self._guilds[guild_id][code]
        logger.info(f"[RoleMapping] Guild {guild_id}: removed mapping for {code}")
        return True


class GrantOutcome(str, Enum):
    GRANTED = "granted"
    UNATTRIBUTED = "unattributed"
    NO_MAPPING = "no_mapping"
    ROLE_NOT_FOUND = "role_not_found"
    MEMBER_NOT_FOUND = "member_not_found"
    FORBIDDEN = "forbidden"
    FAILED = "failed"


class RoleGrantService:
    """Turns an attribution into a role grant using the mapping table."""

    def __init__(self, client: discord.Client, mappings: RoleMappingService):
        self.client = client
        self.mappings = mappings

    @staticmethod
    def code_for(result: AttributionResult) -> Optional[str]:
        if isinstance(result, Attributed):
            return result.code
        if isinstance(result, AttributedByFallback):
            return result.vanity_code
        return None

    async def on_attribution(self, guild_id: int, member_id: int, result: AttributionResult) -> GrantOutcome:
        code = self.code_for(result)
        if code is None:
            return GrantOutcome.UNATTRIBUTED

        role_id = self.mappings.get_role_id(guild_id, code)
        if role_id is None:
            logger.info(f"[RoleMapping] No role mapping configured for invite: {code}")
            logger.info(f"[RoleMapping] Add mapping with: /addmapping {code} <role>")
            return GrantOutcome.NO_MAPPING

        guild = self.client.get_guild(guild_id)
        if guild is None:
            logger.warning(f"[RoleMapping] Guild {guild_id} is no longer available")
            return GrantOutcome.FAILED

        role = guild.get_role(role_id)
        if role is None:
            logger.warning(f"[RoleMapping] Role with ID {role_id} not found for invite {code}")
            return GrantOutcome.ROLE_NOT_FOUND

        member = guild.get_member(member_id)
        if member is None:
            # Try fetching if not in cache
            try:
                member = await guild.fetch_member(member_id)
            except discord.NotFound:
                logger.warning(f"[RoleMapping] Member {member_id} left guild {guild_id} before the role was added")
                return GrantOutcome.MEMBER_NOT_FOUND
            except discord.HTTPException as e:
                logger.error(f"[RoleMapping] Failed to fetch member {member_id}: {e}")
                return GrantOutcome.FAILED

        try:
            await member.add_roles(role, reason=f"Joined via invite {code}")
        except discord.Forbidden:
            logger.error(f"[RoleMapping] Missing permission to add role \"{role.name}\" to {member_id} (role hierarchy?)")
            return GrantOutcome.FORBIDDEN
        except discord.HTTPException as e:
            logger.error(f"[RoleMapping] Error adding role to {member_id}: {e}")
            return GrantOutcome.FAILED

        logger.info(f"[RoleMapping] Added role \"{role.name}\" to {member_id} (joined via {code})")
        return GrantOutcome.GRANTED
