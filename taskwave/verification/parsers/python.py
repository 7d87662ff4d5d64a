"""Python declaration extraction using the standard library ``ast`` module."""

import ast

from taskwave.core.exceptions import ParseError
from taskwave.verification.models import ExportKind, ParsedSource
from taskwave.verification.parsers.base import DeclarationCollector, SourceParser

ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}
INTERFACE_BASES = {"Protocol", "TypedDict"}
TYPE_FACTORIES = {"NewType", "TypeVar", "ParamSpec", "TypeVarTuple"}


def _base_name(node: ast.expr) -> str | None:
    if isinstance(node, ast.Subscript):  # Protocol[T], Generic[T]
        node = node.value
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


class PythonParser(SourceParser):
    """
    Extract module-level declarations from Python source.

    A name is exported when it is listed in a literal ``__all__``, or, when
    the module has no ``__all__``, when it does not start with an underscore.
    """

    language = "python"
    suffixes = (".py", ".pyi")

    def parse(self, source: bytes) -> ParsedSource:
        """Parse source bytes and collect module-level declarations."""
        try:
            tree = ast.parse(source)
        except SyntaxError as e:
            raise ParseError(f"Syntax error at line {e.lineno}: {e.msg}") from e

        result = ParsedSource()
        public = self._read_all(tree, result)
        collector = DeclarationCollector()

        def is_exported(name: str) -> bool:
            if public is not None:
                return name in public
            return not name.startswith("_")

        for node in tree.body:
            for name, kind in self._declarations(node):
                if name.startswith("__") and name.endswith("__"):
                    continue
                collector.add(name, kind, is_exported(name), line=node.lineno)

        result.declarations = collector.records()

        if public is not None:
            declared = {d.name for d in result.declarations}
            # Names in __all__ bound by imports are re-exports of unknown kind
            result.reexports = [name for name in public if name not in declared]

        return result

    def _declarations(self, node: ast.stmt) -> list[tuple[str, ExportKind]]:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            return [(node.name, ExportKind.FUNCTION)]

        if isinstance(node, ast.ClassDef):
            bases = {_base_name(b) for b in node.bases}
            if bases & ENUM_BASES:
                return [(node.name, ExportKind.ENUM)]
            if bases & INTERFACE_BASES:
                return [(node.name, ExportKind.INTERFACE)]
            return [(node.name, ExportKind.CLASS)]

        type_alias = getattr(ast, "TypeAlias", None)  # Python 3.12+
        if type_alias is not None and isinstance(node, type_alias):
            return [(node.name.id, ExportKind.TYPE)]

        if isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
            if _base_name(node.annotation) == "TypeAlias":
                return [(node.target.id, ExportKind.TYPE)]
            return [(node.target.id, self._value_kind(node.value))]

        if isinstance(node, ast.Assign):
            kind = self._value_kind(node.value)
            return [
                (target.id, kind)
                for target in node.targets
                if isinstance(target, ast.Name)
            ]

        return []

    def _value_kind(self, value: ast.expr | None) -> ExportKind:
        if isinstance(value, ast.Lambda):
            return ExportKind.FUNCTION
        if isinstance(value, ast.Call) and _base_name(value.func) in TYPE_FACTORIES:
            return ExportKind.TYPE
        return ExportKind.VARIABLE

    def _read_all(self, tree: ast.Module, result: ParsedSource) -> list[str] | None:
        names: list[str] | None = None
        for node in tree.body:
            if isinstance(node, ast.Assign):
                targets = [t.id for t in node.targets if isinstance(t, ast.Name)]
                value = node.value
                extend = False
            elif isinstance(node, ast.AugAssign) and isinstance(node.target, ast.Name):
                targets = [node.target.id]
                value = node.value
                extend = True
            else:
                continue

            if "__all__" not in targets:
                continue
            if not isinstance(value, (ast.List, ast.Tuple)) or not all(
                isinstance(e, ast.Constant) and isinstance(e.value, str) for e in value.elts
            ):
                result.warnings.append(
                    f"__all__ at line {node.lineno} is not a literal list; "
                    "falling back to underscore naming"
                )
                return None
            listed = [e.value for e in value.elts]
            names = (names or []) + listed if extend else listed
        return names
