"""Export verification - confirming declared artifacts exist.

This module provides the verification pipeline:
- Parsing (source file -> syntax tree -> top-level declarations)
- Claim checking (expected name/kind pairs -> verification result)
- Content-hash caching (unchanged files are not re-parsed)
"""

from taskwave.verification.cache import (
    CacheRecord,
    FileSystemCache,
    MemoryCache,
    VerificationCache,
    cache_key,
)
from taskwave.verification.models import (
    BatchClaimResult,
    Claim,
    ClaimResult,
    DeclarationReport,
    ExportKind,
    ExportRecord,
    VerificationResult,
)
from taskwave.verification.verifier import ExportVerifier, parse_claims

__all__ = [
    # Models
    "BatchClaimResult",
    "Claim",
    "ClaimResult",
    "DeclarationReport",
    "ExportKind",
    "ExportRecord",
    "VerificationResult",
    # Cache
    "CacheRecord",
    "FileSystemCache",
    "MemoryCache",
    "VerificationCache",
    "cache_key",
    # Verifier
    "ExportVerifier",
    "parse_claims",
]
