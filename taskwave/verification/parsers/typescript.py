"""TypeScript / JavaScript declaration extraction using tree-sitter."""

import tree_sitter_typescript
from loguru import logger
from tree_sitter import Language, Node, Parser

from taskwave.verification.models import ExportKind, ParsedSource
from taskwave.verification.parsers.base import DeclarationCollector, SourceParser

TS_LANGUAGE = Language(tree_sitter_typescript.language_typescript())
TSX_LANGUAGE = Language(tree_sitter_typescript.language_tsx())

FUNCTION_DECLARATIONS = {
    "function_declaration",
    "generator_function_declaration",
    "function_signature",
}
CLASS_DECLARATIONS = {"class_declaration", "abstract_class_declaration"}
VARIABLE_DECLARATIONS = {"lexical_declaration", "variable_declaration"}

# Initializers that make a const/let binding function-shaped
FUNCTION_VALUES = {
    "arrow_function",
    "function_expression",
    "function",
    "generator_function",
}
CLASS_VALUES = {"class", "class_expression"}


def _text(node: Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _line(node: Node) -> int:
    return node.start_point[0] + 1


class TypeScriptParser(SourceParser):
    """
    Extract top-level declarations from TypeScript and JavaScript.

    Handles function, class, interface, type alias and enum declarations,
    ``const``/``let``/``var`` bindings, ``declare`` forms, ``export { ... }``
    lists, re-exports from other modules and default exports.

    Example:
        >>> parsed = TypeScriptParser().parse(b"export interface User { id: string }")
        >>> parsed.declarations[0].kind
        <ExportKind.INTERFACE: 'interface'>
    """

    def __init__(self, tsx: bool = False) -> None:
        """
        Initialize the parser.

        Args:
            tsx: Use the TSX grammar (JSX syntax, also used for plain JavaScript).
        """
        self.tsx = tsx
        self.language = "tsx" if tsx else "typescript"
        self._parser = Parser(TSX_LANGUAGE if tsx else TS_LANGUAGE)

    def parse(self, source: bytes) -> ParsedSource:
        """Parse source bytes and collect top-level declarations."""
        tree = self._parser.parse(source)
        root = tree.root_node

        collector = DeclarationCollector()
        pending: list[tuple[str, str]] = []  # (local name, exported name)
        result = ParsedSource()

        for node in root.named_children:
            if node.type == "export_statement":
                self._visit_export(node, collector, pending, result)
            else:
                self._visit_declaration(node, collector, exported=False)

        # Export lists may name declarations that appear later in the file
        for local, exported_name in pending:
            declared = collector.declared(local)
            if not declared:
                # Imported binding passed through, kind unknown here
                result.reexports.append(exported_name)
            elif exported_name in (local, "default"):
                collector.mark_exported(local, default=exported_name == "default")
            else:
                for record in declared:
                    collector.add(exported_name, record.kind, exported=True, line=record.line)

        if root.has_error:
            result.warnings.append("Source contains syntax errors; declarations may be incomplete")
            logger.debug("tree-sitter reported syntax errors while parsing")

        result.declarations = collector.records()
        result.reexports = list(dict.fromkeys(result.reexports))
        return result

    # =========================================================================
    # NODE VISITORS
    # =========================================================================

    def _visit_declaration(
        self,
        node: Node,
        collector: DeclarationCollector,
        exported: bool,
        default: bool = False,
    ) -> None:
        kind_by_type = {
            "interface_declaration": ExportKind.INTERFACE,
            "type_alias_declaration": ExportKind.TYPE,
            "enum_declaration": ExportKind.ENUM,
        }
        node_type = node.type

        if node_type == "ambient_declaration":
            for child in node.named_children:
                self._visit_declaration(child, collector, exported, default)
        elif node_type in FUNCTION_DECLARATIONS:
            self._add_named(node, ExportKind.FUNCTION, collector, exported, default)
        elif node_type in CLASS_DECLARATIONS:
            self._add_named(node, ExportKind.CLASS, collector, exported, default)
        elif node_type in kind_by_type:
            self._add_named(node, kind_by_type[node_type], collector, exported, default)
        elif node_type in VARIABLE_DECLARATIONS:
            for declarator in node.named_children:
                if declarator.type != "variable_declarator":
                    continue
                name_node = declarator.child_by_field_name("name")
                if name_node is None or name_node.type != "identifier":
                    continue  # Destructuring patterns are not tracked
                value = declarator.child_by_field_name("value")
                kind = (
                    ExportKind.FUNCTION
                    if value is not None and value.type in FUNCTION_VALUES
                    else ExportKind.VARIABLE
                )
                collector.add(_text(name_node), kind, exported, default, _line(declarator))

    def _add_named(
        self,
        node: Node,
        kind: ExportKind,
        collector: DeclarationCollector,
        exported: bool,
        default: bool,
    ) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            collector.add(_text(name_node), kind, exported, default, _line(node))
        elif default:
            collector.add("default", kind, exported, default, _line(node))

    def _visit_export(
        self,
        node: Node,
        collector: DeclarationCollector,
        pending: list[tuple[str, str]],
        result: ParsedSource,
    ) -> None:
        is_default = any(child.type == "default" for child in node.children)

        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            self._visit_declaration(declaration, collector, exported=True, default=is_default)
            return

        source = node.child_by_field_name("source")
        clause = next((c for c in node.named_children if c.type == "export_clause"), None)
        if clause is not None:
            for specifier in clause.named_children:
                if specifier.type != "export_specifier":
                    continue
                local = _text(specifier.child_by_field_name("name"))
                alias = specifier.child_by_field_name("alias")
                exported_name = _text(alias) if alias is not None else local
                if source is not None:
                    result.reexports.append(exported_name)
                else:
                    pending.append((local, exported_name))
            return

        if source is not None:
            namespace = next((c for c in node.named_children if c.type == "namespace_export"), None)
            if namespace is not None:
                names = [c for c in namespace.named_children if c.type in ("identifier", "string")]
                if names:
                    result.reexports.append(_text(names[-1]).strip("'\""))
            else:
                result.warnings.append(
                    f"Wildcard re-export from {_text(source)} at line {_line(node)} "
                    "cannot be resolved"
                )
            return

        value = node.child_by_field_name("value")
        if value is None or not is_default:
            return

        if value.type == "identifier":
            pending.append((_text(value), "default"))
        elif value.type in FUNCTION_VALUES:
            self._add_named(value, ExportKind.FUNCTION, collector, True, True)
        elif value.type in CLASS_VALUES:
            self._add_named(value, ExportKind.CLASS, collector, True, True)
        else:
            collector.add("default", ExportKind.VARIABLE, True, True, _line(node))
