"""Data structures for export verification."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple

from taskwave.core.exceptions import ClaimFormatError


class ExportKind(str, Enum):
    """Kinds of top-level declarations recognised by the parsers."""

    INTERFACE = "interface"
    TYPE = "type"
    ENUM = "enum"
    CLASS = "class"
    FUNCTION = "function"
    VARIABLE = "variable"  # Non-function const/let/var or module assignment

    @classmethod
    def parse(cls, value: "str | ExportKind") -> "ExportKind":
        """Parse a kind name, accepting a few common spellings."""
        if isinstance(value, ExportKind):
            return value
        normalized = value.strip().lower().replace("-", "_")
        aliases = {
            "type_alias": cls.TYPE,
            "typealias": cls.TYPE,
            "fn": cls.FUNCTION,
            "const": cls.VARIABLE,
            "var": cls.VARIABLE,
        }
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(k.value for k in cls)
            raise ClaimFormatError(f"Unknown declaration kind '{value}' (expected one of: {valid})")


class Claim(NamedTuple):
    """Expectation that ``name`` is exported as a declaration of ``kind``."""

    name: str
    kind: ExportKind

    @classmethod
    def coerce(cls, value: "Claim | Mapping[str, Any] | str | tuple[str, str]") -> "Claim":
        """
        Build a claim from a mapping, a ``(name, kind)`` pair or a ``name:kind`` string.

        Raises:
            ClaimFormatError: If the value cannot be interpreted.
        """
        if isinstance(value, Claim):
            return value
        if isinstance(value, Mapping):
            name, kind = value.get("name"), value.get("kind") or value.get("type")
        elif isinstance(value, str):
            name, sep, kind = value.rpartition(":")
            if not sep:
                raise ClaimFormatError(f"Claim '{value}' must look like name:kind")
        elif isinstance(value, tuple) and len(value) == 2:
            name, kind = value
        else:
            raise ClaimFormatError(f"Unsupported claim: {value!r}")

        if not name or not kind:
            raise ClaimFormatError(f"Claim {value!r} needs both a name and a kind")
        return cls(name=str(name).strip(), kind=ExportKind.parse(str(kind)))


@dataclass(frozen=True)
class ExportRecord:
    """A declaration found at the top level of a source file."""

    name: str
    kind: ExportKind
    exported: bool
    default: bool = False
    line: int = 0

    @property
    def is_function(self) -> bool:
        """Check if the declaration is function-shaped."""
        return self.kind == ExportKind.FUNCTION

    def to_dict(self) -> dict[str, Any]:
        """Convert record to dictionary."""
        return {
            "name": self.name,
            "kind": self.kind.value,
            "exported": self.exported,
            "default": self.default,
            "line": self.line,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExportRecord":
        """Rebuild a record from :meth:`to_dict` output."""
        return cls(
            name=data["name"],
            kind=ExportKind(data["kind"]),
            exported=bool(data["exported"]),
            default=bool(data.get("default", False)),
            line=int(data.get("line", 0)),
        )


@dataclass
class ParsedSource:
    """Raw parser output for one file."""

    declarations: list[ExportRecord] = field(default_factory=list)
    reexports: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class DeclarationReport:
    """All declarations extracted from one file."""

    file: str
    language: str | None = None
    verified: bool = False
    declarations: list[ExportRecord] = field(default_factory=list)
    reexports: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    file_hash: str | None = None
    cached: bool = False

    def exported(self) -> list[ExportRecord]:
        """Get exported declarations."""
        return [d for d in self.declarations if d.exported]

    def exported_names(self) -> list[str]:
        """Get unique exported names in declaration order."""
        return list(dict.fromkeys(d.name for d in self.declarations if d.exported))

    def find(self, name: str) -> list[ExportRecord]:
        """Get every declaration with the given name."""
        return [d for d in self.declarations if d.name == name]

    def to_dict(self) -> dict[str, Any]:
        """Convert report to dictionary."""
        return {
            "file": self.file,
            "language": self.language,
            "verified": self.verified,
            "declarations": [d.to_dict() for d in self.declarations],
            "reexports": self.reexports,
            "errors": self.errors,
            "warnings": self.warnings,
            "file_hash": self.file_hash,
            "cached": self.cached,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeclarationReport":
        """Rebuild a report from :meth:`to_dict` output."""
        return cls(
            file=data["file"],
            language=data.get("language"),
            verified=bool(data["verified"]),
            declarations=[ExportRecord.from_dict(d) for d in data.get("declarations", [])],
            reexports=list(data.get("reexports", [])),
            errors=list(data.get("errors", [])),
            warnings=list(data.get("warnings", [])),
            file_hash=data.get("file_hash"),
            cached=bool(data.get("cached", False)),
        )


@dataclass(frozen=True)
class ClaimResult:
    """Outcome of checking a single claim."""

    name: str
    expected_kind: ExportKind
    found: bool
    actual_kind: ExportKind | None = None
    exported: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert claim result to dictionary."""
        return {
            "name": self.name,
            "expected_kind": self.expected_kind.value,
            "found": self.found,
            "actual_kind": self.actual_kind.value if self.actual_kind else None,
            "exported": self.exported,
        }


@dataclass
class VerificationResult:
    """Result of verifying a file against expected exports."""

    file: str
    verified: bool
    declarations: list[ExportRecord] = field(default_factory=list)
    claims: list[ClaimResult] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    extra: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    file_hash: str | None = None
    cached: bool = False

    @property
    def matched(self) -> list[str]:
        """Names of claims that were found."""
        return [c.name for c in self.claims if c.found]

    @property
    def mismatched(self) -> list[ClaimResult]:
        """Claims whose name exists but with a different kind."""
        return [
            c for c in self.claims
            if not c.found and c.actual_kind is not None and c.actual_kind != c.expected_kind
        ]

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary."""
        return {
            "file": self.file,
            "verified": self.verified,
            "declarations": [d.to_dict() for d in self.declarations],
            "claims": [c.to_dict() for c in self.claims],
            "matched": self.matched,
            "missing": self.missing,
            "extra": self.extra,
            "errors": self.errors,
            "warnings": self.warnings,
            "file_hash": self.file_hash,
            "cached": self.cached,
        }


@dataclass(frozen=True)
class BatchClaimResult:
    """Existence check for one ``{file, name}`` item of a batch."""

    file: str
    name: str
    exists: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "file": self.file,
            "name": self.name,
            "exists": self.exists,
            "error": self.error,
        }
