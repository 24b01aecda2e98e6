import discord
from discord import app_commands
from discord.ext import commands
from core.config import settings
from core.database import Database
from loguru import logger
import os

from modules.invite_tracker.service import InviteTrackerService
from modules.invite_tracker.source import DiscordInviteSource
from modules.role_mapping.service import RoleGrantService, RoleMappingService


class InviteRoleBot(commands.Bot):
    def __init__(self):
        intents = discord.Intents.default()
        intents.members = True
        intents.invites = True

        super().__init__(
            command_prefix="!",
            intents=intents,
            help_command=None,
            owner_id=settings.owner_id
        )

        self.role_mappings = RoleMappingService(seed=settings.invite_role_map)
        self.role_granter = RoleGrantService(client=self, mappings=self.role_mappings)
        self.invite_tracker = InviteTrackerService(
            source=DiscordInviteSource(self),
            is_mapped=self.role_mappings.is_mapped,
            on_attribution=self.role_granter.on_attribution,
            fetch_timeout=settings.fetch_timeout_seconds,
        )

    async def setup_hook(self):
        """Called when bot is logging in."""
        logger.info("Starting up...")

        # Connect to Database
        await Database.connect()
        await self.role_mappings.load()

        # Load extensions/modules
        await self.load_modules()
        self.tree.on_error = self.on_app_command_error

        # Sync slash commands
        logger.info("Syncing commands...")
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} command(s).")
        except Exception as e:
            logger.error(f"Failed to sync commands: {e}")

    async def load_modules(self):
        """Load the cog of every module under modules/."""
        if os.path.exists("modules"):
            for root, dirs, files in os.walk("modules"):
                if "cog.py" not in files:
                    continue

                # Construct module path: modules.invite_tracker.cog
                rel_path = os.path.relpath(os.path.join(root, "cog.py"), ".")
                module_name = rel_path.replace(os.path.sep, ".")[:-3]

                try:
                    await self.load_extension(module_name)
                    logger.info(f"Loaded extension: {module_name}")
                except Exception as e:
                    logger.error(f"Failed to load extension {module_name}: {e}")

    async def on_ready(self):
        logger.info(f"Logged in as {self.user} (ID: {self.user.id})")
        logger.info(f"Bot is in {len(self.guilds)} server(s)")
        logger.info(f"Invite mappings configured: {self.role_mappings.count()}")

        # Cache all invites for all guilds
        await self.invite_tracker.observe_all()
        logger.info("Bot initialization complete! Ready to track invite usage.")

    async def on_guild_join(self, guild: discord.Guild):
        """Seed the snapshot when bot joins a new guild."""
        await self.invite_tracker.ingestor.handle(self.invite_tracker.ingestor.community_observed(guild))

    async def on_guild_remove(self, guild: discord.Guild):
        await self.invite_tracker.ingestor.handle(self.invite_tracker.ingestor.community_left(guild))

    async def on_invite_create(self, invite: discord.Invite):
        """Keep the snapshot fresh when a new invite is created."""
        if invite.guild is None:
            return
        await self.invite_tracker.ingestor.handle(self.invite_tracker.ingestor.invite_added(invite))

    async def on_invite_delete(self, invite: discord.Invite):
        """Remove deleted invite from the snapshot to avoid stale diffs."""
        if invite.guild is None:
            return
        await self.invite_tracker.ingestor.handle(self.invite_tracker.ingestor.invite_removed(invite))

    async def on_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError):
        if isinstance(error, app_commands.NoPrivateMessage):
            message = "This command can only be used in a server."
        elif isinstance(error, app_commands.MissingPermissions):
            message = "You need administrator permissions to use this command."
        else:
            logger.error(f"Command {interaction.command.name if interaction.command else '?'} failed: {error}")
            message = "❌ Something went wrong while running this command."

        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=True)
        else:
            await interaction.response.send_message(message, ephemeral=True)

    async def on_error(self, event_method: str, *args, **kwargs):
        logger.exception(f"Discord client error in {event_method}")

    async def close(self):
        """Called when bot is shutting down."""
        logger.info("Shutting down...")
        await Database.close()
        await super().close()
