"""
Loguru sink configuration.
"""

import sys

from loguru import logger

from .config import Settings


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logging(settings: Settings) -> int:
    """
    Replace loguru's default handler with a stderr sink at the configured level.

    Args:
        settings: Application settings

    Returns:
        Handler id of the new sink
    """
    logger.remove()
    return logger.add(
        sys.stderr,
        level=settings.effective_log_level(),
        format=LOG_FORMAT,
        backtrace=not settings.is_production,
        diagnose=not settings.is_production,
    )
