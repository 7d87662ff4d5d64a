"""Core module - configuration, logging and exceptions."""

from taskwave.core.config import Settings, get_settings
from taskwave.core.exceptions import (
    CacheError,
    ClaimFormatError,
    ParseError,
    TaskSetError,
    TaskwaveError,
)
from taskwave.core.logging_setup import configure_logging

__all__ = [
    "CacheError",
    "ClaimFormatError",
    "ParseError",
    "Settings",
    "TaskSetError",
    "TaskwaveError",
    "configure_logging",
    "get_settings",
]
