"""Main CLI entry point using Typer."""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from taskwave import __version__
from taskwave.cli.verify import ast_app
from taskwave.core.exceptions import TaskSetError
from taskwave.core.logging_setup import configure_logging
from taskwave.scheduling.loader import load_execution_strategy, load_task_set
from taskwave.scheduling.models import ParallelizationAnalysis
from taskwave.scheduling.wave_scheduler import WaveScheduler

app = typer.Typer(
    name="taskwave",
    help="taskwave - execution wave planning and export verification",
    add_completion=False,
    rich_markup_mode="rich",
)
app.add_typer(ast_app, name="ast")

console = Console()
err_console = Console(stderr=True)

EXIT_STUCK = 1
EXIT_INPUT_ERROR = 2


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]taskwave[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level (DEBUG, INFO, WARNING, ERROR). Defaults to TASKWAVE_LOG_LEVEL.",
    ),
) -> None:
    """
    Plan parallel execution waves for a task set and verify that the
    exports tasks claim to have written actually exist.
    """
    configure_logging(level=log_level)


def _analyze(source: str, strict: bool) -> ParallelizationAnalysis:
    scheduler = WaveScheduler(strict_dependencies=True if strict else None)
    try:
        return scheduler.analyze_for_parallelization(source)
    except TaskSetError as e:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=EXIT_INPUT_ERROR) from e


def _report_stuck(analysis: ParallelizationAnalysis) -> None:
    if analysis.is_complete:
        return
    for line in analysis.diagnostics:
        err_console.print(f"[bold red]{escape(line)}[/bold red]")
    raise typer.Exit(code=EXIT_STUCK)


@app.command()
def analyze(
    source: str = typer.Argument(..., help="Path to tasks.json (or a directory containing one)"),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Treat dependencies on unknown task ids as unsatisfiable",
    ),
) -> None:
    """
    Compute execution waves and print the full analysis as JSON.

    Example:
        taskwave analyze .agent-os/specs/auth/tasks.json
    """
    analysis = _analyze(source, strict)
    console.print_json(data=analysis.to_dict())
    _report_stuck(analysis)


@app.command()
def waves(
    source: str = typer.Argument(..., help="Path to tasks.json (or a directory containing one)"),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Treat dependencies on unknown task ids as unsatisfiable",
    ),
) -> None:
    """
    Print a compact per-wave summary.
    """
    analysis = _analyze(source, strict)

    table = Table(title="Execution Waves")
    table.add_column("Wave", style="cyan")
    table.add_column("Tasks", style="bold")
    table.add_column("Parallel")
    table.add_column("Isolation")
    table.add_column("Est. (min)")

    for wave in analysis.waves:
        table.add_row(
            str(wave.wave_id),
            ", ".join(wave.tasks),
            "[green]yes[/green]" if wave.can_parallel else "no",
            f"{wave.isolation_score:.2f}",
            f"{wave.estimated_duration:g}",
        )

    console.print(table)
    console.print(
        f"Max concurrent workers: [bold]{analysis.max_concurrent_workers}[/bold]  "
        f"Estimated speedup: [bold]{analysis.estimated_speedup}x[/bold]"
    )
    _report_stuck(analysis)


@app.command()
def status(
    source: str = typer.Argument(..., help="Path to tasks.json (or a directory containing one)"),
) -> None:
    """
    Show task counts and the current wave.

    Uses the stored execution strategy when it is valid, otherwise
    recomputes waves from the tasks.
    """
    try:
        task_set = load_task_set(source)
    except TaskSetError as e:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=EXIT_INPUT_ERROR) from e

    scheduler = WaveScheduler()
    strategy = load_execution_strategy(task_set)
    if strategy is not None:
        wave_list = strategy.waves
        origin = "stored"
    else:
        wave_list = scheduler.identify_parallel_waves(task_set.tasks).waves
        origin = "computed"

    summary = task_set.summary()
    current = scheduler.current_wave(task_set, wave_list)

    console.print(f"[bold]Spec:[/bold] {task_set.spec or Path(source).stem}")
    for key, value in summary.items():
        console.print(f"  {key.replace('_', ' ')}: {value}")
    if current is None:
        console.print(f"[green]All {len(wave_list)} {origin} waves complete[/green]")
    else:
        console.print(
            f"Current wave: [bold cyan]{current}[/bold cyan] of {len(wave_list)} ({origin})"
        )


if __name__ == "__main__":
    app()
