import discord
from discord.ext import commands
from discord import app_commands
from loguru import logger

from core.embed_builder import embed_builder
from core.permissions import is_admin
from modules.invite_tracker.errors import FetchFailed
from utils.discord_utils import chunk_message


class InviteTrackerCog(commands.Cog):
    def __init__(self, bot):
        self.bot = bot
        self.tracker = bot.invite_tracker
        self.mappings = bot.role_mappings

    @commands.Cog.listener(name="on_member_join")
    async def on_member_join(self, member: discord.Member):
        # Hand the join to the ingestor straight away so it queues behind
        # earlier events for this guild
        logger.info(f"[InviteTracker] Member {member} joined guild: {member.guild.name}")
        await self.tracker.ingestor.handle(self.tracker.ingestor.member_joined(member))

    def _role_name(self, guild: discord.Guild, code: str) -> str | None:
        role_id = self.mappings.get_role_id(guild.id, code)
        if role_id is None:
            return None
        role = guild.get_role(role_id)
        return role.name if role else "Unknown Role"

    @app_commands.command(name="refreshcache", description="Re-fetch the invite snapshot for this server")
    @app_commands.guild_only()
    @is_admin()
    async def refreshcache(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)
        guild = interaction.guild

        try:
            snapshot = await self.tracker.force_resync(guild.id)
        except FetchFailed as e:
            logger.error(f"[InviteTracker] Error refreshing cache: {e}")
            await interaction.followup.send("❌ Error refreshing invite cache. Check bot permissions.", ephemeral=True)
            return

        fields = [("Cached invites", str(len(snapshot)), True)]
        if guild.vanity_url_code:
            fields.append(("Vanity URL", f"discord.gg/{guild.vanity_url_code}", True))

        description = "\n".join(f"`{code}` - {uses} uses" for code, uses in sorted(snapshot.items()))
        embed = embed_builder(
            title=f"✅ Invite cache refreshed for {guild.name}",
            description=description or "No regular invites found",
            color=discord.Color.green(),
            fields=fields,
        )
        await interaction.followup.send(embed=embed, ephemeral=True)
        logger.info(f"[InviteTracker] Manual cache refresh performed for {guild.name} by {interaction.user}")

    @app_commands.command(name="invitedebug", description="Compare the invite snapshot with live invite uses")
    @app_commands.guild_only()
    @is_admin()
    async def invitedebug(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)
        guild = interaction.guild

        try:
            snapshot, invites = await self.tracker.inspect(guild.id)
        except FetchFailed as e:
            logger.error(f"[InviteTracker] Error generating debug info: {e}")
            await interaction.followup.send("❌ Error generating debug information.", ephemeral=True)
            return

        response = f"🔍 **Invite Debug Info for {guild.name}**\n\n"
        response += "📊 **Cache Status:**\n"
        response += f"  - Cached invites: {len(snapshot)}\n"
        response += f"  - Current invites: {len(invites)}\n"
        response += f"  - Guild member count: {guild.member_count}\n\n"

        if guild.vanity_url_code:
            response += f"🔗 **Vanity URL:** discord.gg/{guild.vanity_url_code}\n"
            role_name = self._role_name(guild, guild.vanity_url_code)
            response += f"  - Role mapping: {role_name}\n\n" if role_name else "  - No role mapping configured\n\n"

        if invites:
            response += "📋 **Current Invites:**\n"
            for invite in sorted(invites, key=lambda i: i.code):
                cached_uses = snapshot.get(invite.code, 0)
                response += f"  `{invite.code}` - {invite.uses} uses"
                if cached_uses != invite.uses:
                    response += f" (cached: {cached_uses})"
                role_name = self._role_name(guild, invite.code)
                if role_name:
                    response += f" → {role_name}"
                response += "\n"
        else:
            response += "📋 **No regular invites found**\n"

        mappings = self.mappings.list(guild.id)
        if mappings:
            response += "\n🎭 **Configured Role Mappings:**\n"
            for code in sorted(mappings):
                response += f"  `{code}` → `{self._role_name(guild, code)}`\n"

        for chunk in chunk_message(response):
            await interaction.followup.send(chunk, ephemeral=True)


async def setup(bot):
    await bot.add_cog(InviteTrackerCog(bot))
