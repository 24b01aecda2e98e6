import discord
from discord import app_commands
from core.config import settings


def is_admin():
    """Allow the bot owner and members with the Administrator permission."""
    async def predicate(interaction: discord.Interaction) -> bool:
        if settings.owner_id and interaction.user.id == settings.owner_id:
            return True
        permissions = getattr(interaction.user, "guild_permissions", None)
        if permissions and permissions.administrator:
            return True
        raise app_commands.MissingPermissions(["administrator"])
    return app_commands.check(predicate)
