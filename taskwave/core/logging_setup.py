"""Loguru configuration for the taskwave CLI."""

import sys

from loguru import logger

from taskwave.core.config import Settings, get_settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def configure_logging(settings: Settings | None = None, level: str | None = None) -> None:
    """Configure loguru based on settings.

    Logs go to stderr so command output on stdout stays machine readable.

    Args:
        settings: Optional settings override. Uses default if not provided.
        level: Optional level override (e.g. from a CLI flag).
    """
    settings = settings or get_settings()
    logger.remove()  # Remove default handler

    effective = level or ("DEBUG" if settings.debug else settings.log_level)

    logger.add(
        sys.stderr,
        level=effective.upper(),
        format=LOG_FORMAT,
        colorize=True,
    )
