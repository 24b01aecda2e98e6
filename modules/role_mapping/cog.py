import discord
from discord.ext import commands
from discord import app_commands

from core.permissions import is_admin
from utils.discord_utils import chunk_message, parse_invite_code


class RoleMappingCog(commands.Cog):
    def __init__(self, bot):
        self.bot = bot
        self.mappings = bot.role_mappings

    @app_commands.command(name="addmapping", description="Grant a role to members joining through an invite")
    @app_commands.guild_only()
    @is_admin()
    @app_commands.describe(invite="Invite code or discord.gg link", role="Role to grant")
    async def addmapping(self, interaction: discord.Interaction, invite: str, role: discord.Role):
        await interaction.response.defer(ephemeral=True)

        code = parse_invite_code(invite)
        if code is None:
            await interaction.followup.send(f"❌ `{invite}` is not a valid invite code or link.", ephemeral=True)
            return

        await self.mappings.add(interaction.guild.id, code, role.id)
        await interaction.followup.send(f"✅ Added mapping: Invite `{code}` → Role `{role.name}`", ephemeral=True)

    @app_commands.command(name="removemapping", description="Stop granting a role for an invite")
    @app_commands.guild_only()
    @is_admin()
    @app_commands.describe(invite="Invite code or discord.gg link")
    async def removemapping(self, interaction: discord.Interaction, invite: str):
        await interaction.response.defer(ephemeral=True)

        code = parse_invite_code(invite) or invite
        if await self.mappings.remove(interaction.guild.id, code):
            await interaction.followup.send(f"✅ Removed mapping for invite `{code}`", ephemeral=True)
        elif self.mappings.is_global(code):
            await interaction.followup.send(
                f"`{code}` is configured in INVITE_ROLE_MAP and can only be changed there.", ephemeral=True
            )
        else:
            await interaction.followup.send(f"No mapping configured for invite `{code}`.", ephemeral=True)

    @app_commands.command(name="listmappings", description="List invite to role mappings")
    @app_commands.guild_only()
    @is_admin()
    async def listmappings(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)

        mappings = self.mappings.list(interaction.guild.id)
        if not mappings:
            await interaction.followup.send("No invite-role mappings configured.", ephemeral=True)
            return

        response = "**Current Invite-Role Mappings:**\n"
        for code, role_id in sorted(mappings.items()):
            role = interaction.guild.get_role(role_id)
            role_name = role.name if role else "Unknown Role"
            response += f"`{code}` → `{role_name}`\n"

        for chunk in chunk_message(response):
            await interaction.followup.send(chunk, ephemeral=True)


async def setup(bot):
    await bot.add_cog(RoleMappingCog(bot))
