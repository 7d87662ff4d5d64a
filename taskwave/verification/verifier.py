"""Export verification.

Confirms that the declarations a task claims to have written really exist
by parsing the file into a syntax tree. Expected failures (missing file,
unsupported type, syntax error) are reported in result objects, never
raised.
"""

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from loguru import logger

from taskwave.core.config import Settings, get_settings
from taskwave.core.exceptions import ClaimFormatError, ParseError
from taskwave.verification.cache import (
    CacheRecord,
    FileSystemCache,
    VerificationCache,
    cache_key,
    content_hash,
)
from taskwave.verification.models import (
    BatchClaimResult,
    Claim,
    ClaimResult,
    DeclarationReport,
    VerificationResult,
)
from taskwave.verification.parsers import parser_for, supported_suffixes

ClaimInput = Claim | Mapping[str, Any] | str | tuple[str, str]


class ExportVerifier:
    """
    Verify exported declarations in source files.

    Example:
        >>> verifier = ExportVerifier()
        >>> verifier.exists("src/user.ts", "createUser")
        True
        >>> result = verifier.verify_claims(
        ...     "src/user.ts",
        ...     [{"name": "User", "kind": "interface"}],
        ... )
        >>> result.verified
        True
    """

    def __init__(
        self,
        cache: VerificationCache | None = None,
        settings: Settings | None = None,
        use_cache: bool | None = None,
    ) -> None:
        """
        Initialize the verifier.

        Args:
            cache: Cache store. Defaults to a FileSystemCache in ``settings.cache_dir``.
            settings: Optional settings override. Uses default if not provided.
            use_cache: Override ``settings.cache_enabled``.
        """
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else FileSystemCache(self.settings.cache_dir)
        self.use_cache = self.settings.cache_enabled if use_cache is None else use_cache

    # =========================================================================
    # DECLARATIONS
    # =========================================================================

    def get_declarations(self, file_path: str | Path) -> DeclarationReport:
        """
        Parse a file and extract every top-level declaration.

        Args:
            file_path: Source file to analyze.

        Returns:
            DeclarationReport. ``verified`` is False with a descriptive
            error when the file is missing, unreadable, unsupported or
            cannot be parsed.
        """
        path = Path(file_path)
        data, error = self._read(path)
        if data is None:
            return DeclarationReport(file=str(path), errors=[error or "Unreadable file"])
        return self._parse(path, data)

    def _read(self, path: Path) -> tuple[bytes | None, str | None]:
        if not path.exists():
            return None, f"File not found: {path}"
        if not path.is_file():
            return None, f"Not a file: {path}"
        try:
            return path.read_bytes(), None
        except OSError as e:
            return None, f"Cannot read {path}: {e}"

    def _parse(self, path: Path, data: bytes) -> DeclarationReport:
        file_hash = content_hash(data)
        parser = parser_for(path)
        if parser is None:
            return DeclarationReport(
                file=str(path),
                file_hash=file_hash,
                errors=[
                    f"Unsupported file type '{path.suffix or path.name}' "
                    f"(supported: {', '.join(supported_suffixes())})"
                ],
            )

        try:
            parsed = parser.parse(data)
        except ParseError as e:
            logger.warning(f"Failed to parse {path}: {e}")
            return DeclarationReport(
                file=str(path),
                language=parser.language,
                file_hash=file_hash,
                errors=[f"Failed to parse {path}: {e}"],
            )

        logger.debug(f"Parsed {path}: {len(parsed.declarations)} declarations")
        return DeclarationReport(
            file=str(path),
            language=parser.language,
            verified=True,
            declarations=parsed.declarations,
            reexports=parsed.reexports,
            warnings=parsed.warnings,
            file_hash=file_hash,
        )

    def _cached_declarations(self, path: Path, use_cache: bool) -> DeclarationReport:
        if not use_cache:
            return self.get_declarations(path)

        data, error = self._read(path)
        if data is None:
            return DeclarationReport(file=str(path), errors=[error or "Unreadable file"])

        key = cache_key(path)
        file_hash = content_hash(data)
        record = self.cache.get(key)
        if record is not None and record.file_hash == file_hash:
            try:
                report = DeclarationReport.from_dict(record.result)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Discarding malformed cache entry for {path}: {e}")
            else:
                logger.debug(f"Cache hit for {path}")
                report.cached = True
                return report

        report = self._parse(path, data)
        if report.verified:
            record = CacheRecord(
                file=str(path.resolve()),
                file_hash=file_hash,
                result=report.to_dict(),
            )
            self.cache.set(key, record)
        return report

    # =========================================================================
    # EXISTENCE CHECKS
    # =========================================================================

    def exists(self, file_path: str | Path, name: str) -> bool:
        """Check whether ``name`` is exported (declared or re-exported) by a file."""
        report = self._cached_declarations(Path(file_path), self.use_cache)
        return self._exports_name(report, name)

    def function_exists(self, file_path: str | Path, name: str) -> bool:
        """Check whether ``name`` is an exported function-shaped declaration."""
        report = self._cached_declarations(Path(file_path), self.use_cache)
        return any(d.exported and d.is_function for d in report.find(name))

    @staticmethod
    def _exports_name(report: DeclarationReport, name: str) -> bool:
        return any(d.exported for d in report.find(name)) or name in report.reexports

    # =========================================================================
    # CLAIM VERIFICATION
    # =========================================================================

    def verify(self, file_path: str | Path) -> VerificationResult:
        """Verify that a file exists and parses; no claims are checked."""
        return self.verify_with_cache(file_path, claims=None, use_cache=False)

    def verify_claims(
        self,
        file_path: str | Path,
        expected: Iterable[ClaimInput],
    ) -> VerificationResult:
        """
        Check expected (name, kind) exports against a file.

        Args:
            file_path: Source file to check.
            expected: Claims as ``{"name", "kind"}`` mappings, ``Claim``
                tuples or ``"name:kind"`` strings.

        Returns:
            VerificationResult that passes only if every claim matched.

        Raises:
            ClaimFormatError: If a claim cannot be interpreted.
        """
        return self.verify_with_cache(file_path, claims=expected, use_cache=False)

    def verify_with_cache(
        self,
        file_path: str | Path,
        claims: Iterable[ClaimInput] | None = None,
        use_cache: bool | None = None,
    ) -> VerificationResult:
        """
        Verify a file, reusing cached declarations when its content is unchanged.

        Args:
            file_path: Source file to check.
            claims: Optional expected exports.
            use_cache: Override the verifier's cache setting for this call.

        Returns:
            VerificationResult; ``cached`` is True when no re-parse happened.
        """
        parsed_claims = [Claim.coerce(c) for c in claims] if claims is not None else []
        path = Path(file_path)
        report = self._cached_declarations(path, self.use_cache if use_cache is None else use_cache)
        return self._evaluate(report, parsed_claims)

    def _evaluate(self, report: DeclarationReport, claims: list[Claim]) -> VerificationResult:
        result = VerificationResult(
            file=report.file,
            verified=False,
            declarations=list(report.declarations),
            errors=list(report.errors),
            warnings=list(report.warnings),
            file_hash=report.file_hash,
            cached=report.cached,
        )
        if not report.verified:
            result.missing = [c.name for c in claims]
            result.claims = [ClaimResult(c.name, c.kind, found=False) for c in claims]
            return result

        for claim in claims:
            declared = report.find(claim.name)
            exact = next((d for d in declared if d.kind == claim.kind), None)

            if exact is not None and exact.exported:
                result.claims.append(
                    ClaimResult(claim.name, claim.kind, True, exact.kind, exported=True)
                )
                continue

            if exact is not None:
                result.claims.append(ClaimResult(claim.name, claim.kind, False, exact.kind))
                result.errors.append(
                    f"{claim.kind.value} '{claim.name}' is declared but not exported"
                )
                continue

            if declared:
                actual = next((d for d in declared if d.exported), declared[0])
                result.claims.append(
                    ClaimResult(claim.name, claim.kind, False, actual.kind, actual.exported)
                )
                found_kinds = ", ".join(sorted({d.kind.value for d in declared}))
                result.errors.append(
                    f"'{claim.name}' exists but as {found_kinds}, not {claim.kind.value}"
                )
                continue

            result.claims.append(ClaimResult(claim.name, claim.kind, False))
            if claim.name in report.reexports:
                result.errors.append(
                    f"'{claim.name}' is re-exported from another module; "
                    f"cannot confirm it is a {claim.kind.value}"
                )
            else:
                result.missing.append(claim.name)
                result.errors.append(
                    f"{claim.kind.value} '{claim.name}' not found in {report.file}"
                )

        claimed = {c.name for c in claims}
        result.extra = [n for n in report.exported_names() if n not in claimed] if claims else []
        result.verified = not result.errors

        if claims:
            logger.info(
                f"Verified {len(result.matched)}/{len(claims)} claims in {report.file}"
            )
        return result

    # =========================================================================
    # BATCH
    # =========================================================================

    def batch_verify(self, claims: Iterable[Mapping[str, Any]]) -> list[BatchClaimResult]:
        """
        Check existence of many ``{file, name}`` items independently.

        A failing item is flagged with an error and the batch continues.

        Args:
            claims: Items with ``file`` and ``name`` keys.

        Returns:
            One BatchClaimResult per input item, in order.
        """
        results: list[BatchClaimResult] = []
        for item in claims:
            if not isinstance(item, Mapping):
                results.append(
                    BatchClaimResult(
                        str(item), "", False, "Claim must be an object with 'file' and 'name'"
                    )
                )
                continue
            file_value = str(item.get("file", "") or "")
            name = str(item.get("name", "") or "")
            if not file_value or not name:
                results.append(
                    BatchClaimResult(file_value, name, False, "Claim needs both 'file' and 'name'")
                )
                continue

            report = self._cached_declarations(Path(file_value), self.use_cache)
            if not report.verified:
                error = "; ".join(report.errors) or "File could not be verified"
                results.append(BatchClaimResult(file_value, name, False, error))
                continue

            found = self._exports_name(report, name)
            results.append(
                BatchClaimResult(
                    file_value,
                    name,
                    found,
                    None if found else f"'{name}' is not exported by {file_value}",
                )
            )

        failed = sum(1 for r in results if not r.exists)
        logger.info(f"Batch verification: {len(results) - failed} found, {failed} missing")
        return results

    # =========================================================================
    # CACHE UTILITIES
    # =========================================================================

    def content_hash(self, file_path: str | Path) -> str | None:
        """Get the content hash used as the cache validator, or None if unreadable."""
        data, error = self._read(Path(file_path))
        if data is None:
            logger.warning(error)
            return None
        return content_hash(data)

    def clear_cache(self, file_path: str | Path | None = None) -> int:
        """
        Remove cache entries.

        Args:
            file_path: Entry to remove; clears everything when omitted.

        Returns:
            Number of entries removed.
        """
        if file_path is None:
            return self.cache.clear()
        return 1 if self.cache.delete(cache_key(file_path)) else 0


def parse_claims(values: Iterable[str]) -> list[Claim]:
    """
    Parse ``name:kind`` strings into claims.

    Raises:
        ClaimFormatError: If any value is malformed.
    """
    claims = [Claim.coerce(v) for v in values]
    if not claims:
        raise ClaimFormatError("At least one name:kind claim is required")
    return claims


__all__ = ["ExportVerifier", "parse_claims"]
