import asyncio
from core.bot import InviteRoleBot
from core.config import settings
from core.logger import configure_logging
from loguru import logger

async def main():
    configure_logging(settings.log_level)
    bot = InviteRoleBot()
    async with bot:
        await bot.start(settings.discord_token)

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.critical(f"Critical error running bot: {e}")
