"""
Base parser interface for export verification.

Every supported language implements :class:`SourceParser`: it turns raw
file bytes into the file's top-level declarations.
"""

from abc import ABC, abstractmethod

from taskwave.verification.models import ExportKind, ExportRecord, ParsedSource


class SourceParser(ABC):
    """Extracts top-level declarations from source code."""

    #: Language name reported in declaration reports
    language: str = "unknown"

    #: File suffixes this parser handles
    suffixes: tuple[str, ...] = ()

    @abstractmethod
    def parse(self, source: bytes) -> ParsedSource:
        """
        Parse source bytes into declarations.

        Args:
            source: Raw file contents.

        Returns:
            ParsedSource with declarations, re-exported names and warnings.

        Raises:
            ParseError: If the source cannot be parsed at all.
        """


class DeclarationCollector:
    """Accumulates records so each (name, kind) appears once per file."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, ExportKind], ExportRecord] = {}

    def add(
        self,
        name: str,
        kind: ExportKind,
        exported: bool,
        default: bool = False,
        line: int = 0,
    ) -> None:
        """Add a declaration, merging flags into an existing (name, kind) record."""
        key = (name, kind)
        existing = self._records.get(key)
        if existing is None:
            self._records[key] = ExportRecord(name, kind, exported, default, line)
            return
        self._records[key] = ExportRecord(
            name=name,
            kind=kind,
            exported=existing.exported or exported,
            default=existing.default or default,
            line=existing.line or line,
        )

    def mark_exported(self, name: str, default: bool = False) -> bool:
        """Mark every declaration of ``name`` as exported. Returns False if none exist."""
        keys = [key for key in self._records if key[0] == name]
        for key in keys:
            record = self._records[key]
            self._records[key] = ExportRecord(
                name=record.name,
                kind=record.kind,
                exported=True,
                default=record.default or default,
                line=record.line,
            )
        return bool(keys)

    def declared(self, name: str) -> list[ExportRecord]:
        """Get the records declared under ``name``."""
        return [record for (n, _), record in self._records.items() if n == name]

    def records(self) -> list[ExportRecord]:
        """Get records ordered by source line."""
        return sorted(self._records.values(), key=lambda r: (r.line, r.name, r.kind.value))
