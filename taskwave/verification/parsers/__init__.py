"""Source parsers for export verification."""

from pathlib import Path

from taskwave.verification.parsers.base import DeclarationCollector, SourceParser
from taskwave.verification.parsers.python import PythonParser
from taskwave.verification.parsers.typescript import TypeScriptParser

TYPESCRIPT_SUFFIXES = (".ts", ".mts", ".cts")
TSX_SUFFIXES = (".tsx", ".js", ".jsx", ".mjs", ".cjs")


def parser_for(path: str | Path) -> SourceParser | None:
    """
    Get a parser for a file based on its suffix.

    Returns:
        A SourceParser, or None if the file type is not supported.
    """
    suffix = Path(path).suffix.lower()
    if suffix in TYPESCRIPT_SUFFIXES:
        return TypeScriptParser()
    if suffix in TSX_SUFFIXES:
        return TypeScriptParser(tsx=True)
    if suffix in PythonParser.suffixes:
        return PythonParser()
    return None


def supported_suffixes() -> tuple[str, ...]:
    """Get every file suffix with a parser."""
    return TYPESCRIPT_SUFFIXES + TSX_SUFFIXES + PythonParser.suffixes


__all__ = [
    "DeclarationCollector",
    "PythonParser",
    "SourceParser",
    "TypeScriptParser",
    "parser_for",
    "supported_suffixes",
]
