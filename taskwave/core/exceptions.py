"""Exception hierarchy for taskwave."""


class TaskwaveError(Exception):
    """Base exception for taskwave errors."""

    pass


class TaskSetError(TaskwaveError):
    """Task set source is missing, unreadable or malformed."""

    pass


class ParseError(TaskwaveError):
    """Source file could not be parsed into a syntax tree."""

    pass


class ClaimFormatError(TaskwaveError):
    """Export claim is not a valid ``name:kind`` pair."""

    pass


class CacheError(TaskwaveError):
    """Verification cache entry could not be read or written."""

    pass
