"""
Logging configuration.

Configures loguru sinks for the engine.
"""

import sys

from loguru import logger

from rewards_engine.config.settings import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level> | {extra}"
)


def setup_logging(level: str | None = None, serialize: bool = False) -> None:
    """
    Replace default loguru sink with a configured stderr sink.

    Args:
        level: Minimum level (defaults to settings.log_level)
        serialize: Emit JSON lines instead of formatted text
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level or settings.log_level,
        format=LOG_FORMAT,
        serialize=serialize,
        backtrace=settings.debug,
        diagnose=settings.debug,
    )
