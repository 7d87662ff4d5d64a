"""Export verification commands (``taskwave ast ...``)."""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from taskwave.core.exceptions import ClaimFormatError
from taskwave.verification.verifier import ExportVerifier, parse_claims

ast_app = typer.Typer(
    name="ast",
    help="Verify exports in source files by parsing them.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def _verifier(no_cache: bool = False) -> ExportVerifier:
    return ExportVerifier(use_cache=False if no_cache else None)


@ast_app.command("verify")
def verify_file(
    file: Path = typer.Argument(..., help="Source file to verify"),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Always re-parse instead of using the content-hash cache",
    ),
) -> None:
    """
    Print every declaration found in a file as JSON.

    Exits non-zero if the file could not be read or parsed.
    """
    result = _verifier(no_cache).verify_with_cache(file)
    console.print_json(data=result.to_dict())
    if not result.verified:
        raise typer.Exit(code=1)


@ast_app.command("check-export")
def check_export(
    file: Path = typer.Argument(..., help="Source file to check"),
    name: str = typer.Argument(..., help="Exported name to look for"),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Always re-parse instead of using the content-hash cache",
    ),
) -> None:
    """
    Exit 0 if the file exports a declaration named NAME.
    """
    if _verifier(no_cache).exists(file, name):
        console.print(f"[green]✓[/green] {escape(name)} is exported by {escape(str(file))}")
        return
    err_console.print(f"[red]✗[/red] {escape(name)} is not exported by {escape(str(file))}")
    raise typer.Exit(code=1)


@ast_app.command("check-function")
def check_function(
    file: Path = typer.Argument(..., help="Source file to check"),
    name: str = typer.Argument(..., help="Exported function to look for"),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Always re-parse instead of using the content-hash cache",
    ),
) -> None:
    """
    Exit 0 if the file exports a function (or const bound to a function) named NAME.
    """
    if _verifier(no_cache).function_exists(file, name):
        console.print(
            f"[green]✓[/green] function {escape(name)} is exported by {escape(str(file))}"
        )
        return
    err_console.print(
        f"[red]✗[/red] function {escape(name)} is not exported by {escape(str(file))}"
    )
    raise typer.Exit(code=1)


@ast_app.command("check-types")
def check_types(
    file: Path = typer.Argument(..., help="Source file to check"),
    claims: list[str] = typer.Argument(..., help="Expected exports as name:kind"),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Always re-parse instead of using the content-hash cache",
    ),
) -> None:
    """
    Check name:kind claims (interface, type, enum, class, function, variable).

    Example:
        taskwave ast check-types src/user.ts User:interface createUser:function
    """
    try:
        parsed = parse_claims(claims)
    except ClaimFormatError as e:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=2) from e

    result = _verifier(no_cache).verify_with_cache(file, claims=parsed)
    console.print_json(data=result.to_dict())
    if not result.verified:
        for error in result.errors:
            err_console.print(f"[red]✗[/red] {escape(error)}")
        raise typer.Exit(code=1)


@ast_app.command("types")
def list_types(
    file: Path = typer.Argument(..., help="Source file to inspect"),
) -> None:
    """
    List every top-level declaration (informational, always exits 0).
    """
    report = _verifier(no_cache=True).get_declarations(file)
    for error in report.errors:
        err_console.print(f"[yellow]{escape(error)}[/yellow]")

    table = Table(title=f"Declarations in {file}")
    table.add_column("Line", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Kind", style="cyan")
    table.add_column("Exported")

    for record in report.declarations:
        exported = "default" if record.default else ("yes" if record.exported else "no")
        table.add_row(str(record.line), record.name, record.kind.value, exported)
    for name in report.reexports:
        table.add_row("-", name, "re-export", "yes")

    console.print(table)


@ast_app.command("hash")
def hash_file(
    file: Path = typer.Argument(..., help="File to hash"),
) -> None:
    """
    Print the content hash used as the cache validator.
    """
    digest = _verifier(no_cache=True).content_hash(file)
    if digest is None:
        err_console.print(f"[bold red]Error:[/bold red] cannot read {escape(str(file))}")
        raise typer.Exit(code=1)
    typer.echo(digest)


@ast_app.command("clear-cache")
def clear_cache(
    file: Path | None = typer.Argument(None, help="Only clear this file's entry"),
) -> None:
    """
    Remove verification cache entries.
    """
    removed = _verifier().clear_cache(file)
    typer.echo(json.dumps({"removed": removed, "file": str(file) if file else None}))
