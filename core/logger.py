import os
import sys

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} - {extra[name]} - {level} - {message}"

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Install the console and rotating file sinks. Safe to call more than once."""
    global _configured
    if _configured:
        return

    logger.remove()
    logger.configure(extra={"name": "bot"})

    # Console
    logger.add(sys.stdout, level=level, format=LOG_FORMAT)

    # File
    if not os.path.exists("logs"):
        os.makedirs("logs")

    logger.add(
        "logs/bot.log",
        level=level,
        format=LOG_FORMAT,
        rotation="5 MB",
        retention=5,
        encoding="utf-8",
    )
    _configured = True


def setup_logger(name: str):
    return logger.bind(name=name)
