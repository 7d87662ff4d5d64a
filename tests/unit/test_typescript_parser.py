"""Unit tests for the tree-sitter TypeScript parser."""

import pytest

from taskwave.verification.models import ExportKind
from taskwave.verification.parsers import TypeScriptParser, parser_for


def declarations(source: str, tsx: bool = False) -> dict[tuple[str, str], tuple[bool, bool]]:
    """Map (name, kind) -> (exported, default)."""
    parsed = TypeScriptParser(tsx=tsx).parse(source.encode("utf-8"))
    return {(d.name, d.kind.value): (d.exported, d.default) for d in parsed.declarations}


class TestDeclarationKinds:
    """Each declaration form maps to the right kind."""

    def test_sample_module(self, sample_ts_source) -> None:
        parsed = TypeScriptParser().parse(sample_ts_source.encode())

        found = [(d.name, d.kind) for d in parsed.declarations]
        assert found == [
            ("User", ExportKind.INTERFACE),
            ("UserId", ExportKind.TYPE),
            ("createUser", ExportKind.FUNCTION),
            ("UserService", ExportKind.CLASS),
            ("UserRole", ExportKind.ENUM),
        ]
        assert all(d.exported for d in parsed.declarations)
        assert parsed.warnings == []

    def test_line_numbers(self, sample_ts_source) -> None:
        parsed = TypeScriptParser().parse(sample_ts_source.encode())

        lines = {d.name: d.line for d in parsed.declarations}
        assert lines["User"] == 1
        assert lines["UserId"] == 7

    def test_nested_members_are_ignored(self, sample_ts_source) -> None:
        parsed = TypeScriptParser().parse(sample_ts_source.encode())

        names = {d.name for d in parsed.declarations}
        assert "add" not in names
        assert "users" not in names

    def test_const_arrow_function(self) -> None:
        found = declarations("export const handler = async (req: Request) => req.url;\n")

        assert found[("handler", "function")] == (True, False)

    def test_const_function_expression(self) -> None:
        found = declarations("export const build = function () { return 1; };\n")

        assert ("build", "function") in found

    def test_plain_const_is_variable(self) -> None:
        found = declarations("export const MAX_USERS = 100;\nlet counter = 0;\n")

        assert found[("MAX_USERS", "variable")] == (True, False)
        assert found[("counter", "variable")] == (False, False)

    def test_generator_function(self) -> None:
        found = declarations("export function* ids() { yield 1; }\n")

        assert ("ids", "function") in found

    def test_abstract_class(self) -> None:
        found = declarations("export abstract class Repository<T> { abstract get(): T; }\n")

        assert ("Repository", "class") in found

    def test_declare_forms(self) -> None:
        source = (
            "export declare function connect(url: string): void;\n"
            "declare const VERSION: string;\n"
        )

        found = declarations(source)

        assert found[("connect", "function")] == (True, False)
        assert found[("VERSION", "variable")] == (False, False)

    def test_overloads_are_deduplicated(self) -> None:
        source = (
            "export function parse(x: string): number;\n"
            "export function parse(x: number): number;\n"
            "export function parse(x: any): number { return Number(x); }\n"
        )

        parsed = TypeScriptParser().parse(source.encode())

        assert [(d.name, d.kind) for d in parsed.declarations] == [("parse", ExportKind.FUNCTION)]
        assert parsed.declarations[0].line == 1

    def test_merged_declarations_keep_each_kind(self) -> None:
        source = "export interface Config { a: string }\nexport const Config = { a: 'x' };\n"

        found = declarations(source)

        assert ("Config", "interface") in found
        assert ("Config", "variable") in found

    def test_destructuring_is_skipped(self) -> None:
        found = declarations("export const { a, b } = load();\n")

        assert found == {}


class TestExportForms:
    """Export lists, defaults and re-exports."""

    def test_unexported_declarations(self) -> None:
        found = declarations("interface Internal { a: string }\nfunction helper() {}\n")

        assert found[("Internal", "interface")] == (False, False)
        assert found[("helper", "function")] == (False, False)

    def test_export_list_marks_earlier_declarations(self) -> None:
        source = "function helper() {}\ninterface Shape { x: number }\nexport { helper, Shape };\n"

        found = declarations(source)

        assert found[("helper", "function")] == (True, False)
        assert found[("Shape", "interface")] == (True, False)

    def test_export_list_before_declaration(self) -> None:
        found = declarations("export { later };\nfunction later() {}\n")

        assert found[("later", "function")] == (True, False)

    def test_export_alias(self) -> None:
        found = declarations("const value = 1;\nexport { value as renamed };\n")

        assert found[("renamed", "variable")] == (True, False)
        assert found[("value", "variable")] == (False, False)

    def test_default_function_declaration(self) -> None:
        found = declarations("export default function main() {}\n")

        assert found[("main", "function")] == (True, True)

    def test_default_identifier(self) -> None:
        found = declarations("class App {}\nexport default App;\n")

        assert found[("App", "class")] == (True, True)

    def test_anonymous_default_class(self) -> None:
        found = declarations("export default class {}\n")

        assert found[("default", "class")] == (True, True)

    def test_default_expression(self) -> None:
        found = declarations("export default { port: 8080 };\n")

        assert found[("default", "variable")] == (True, True)

    def test_named_reexports(self) -> None:
        parsed = TypeScriptParser().parse(
            b"export { User, Role as UserRole } from './user';\nexport * as utils from './utils';\n"
        )

        assert parsed.declarations == []
        assert parsed.reexports == ["User", "UserRole", "utils"]

    def test_imported_binding_in_export_list(self) -> None:
        parsed = TypeScriptParser().parse(b"import { Thing } from './thing';\nexport { Thing };\n")

        assert parsed.reexports == ["Thing"]

    def test_wildcard_reexport_warns(self) -> None:
        parsed = TypeScriptParser().parse(b"export * from './models';\n")

        assert parsed.reexports == []
        assert any("Wildcard re-export" in w for w in parsed.warnings)


class TestRobustness:
    """Malformed input and grammar selection."""

    def test_syntax_error_produces_warning(self) -> None:
        parsed = TypeScriptParser().parse(b"export function ok() {}\nexport function broken( {\n")

        assert any("syntax errors" in w for w in parsed.warnings)
        assert ("ok", ExportKind.FUNCTION) in [(d.name, d.kind) for d in parsed.declarations]

    def test_empty_source(self) -> None:
        parsed = TypeScriptParser().parse(b"")

        assert parsed.declarations == []
        assert parsed.warnings == []

    def test_tsx_component(self) -> None:
        source = "export const Button = (props: Props) => <button>{props.label}</button>;\n"

        found = declarations(source, tsx=True)

        assert found[("Button", "function")] == (True, False)

    @pytest.mark.parametrize(
        ("filename", "language"),
        [
            ("user.ts", "typescript"),
            ("user.mts", "typescript"),
            ("view.tsx", "tsx"),
            ("index.js", "tsx"),
            ("models.py", "python"),
        ],
    )
    def test_parser_for_suffix(self, filename, language) -> None:
        parser = parser_for(filename)

        assert parser is not None
        assert parser.language == language

    def test_unsupported_suffix(self) -> None:
        assert parser_for("README.md") is None
