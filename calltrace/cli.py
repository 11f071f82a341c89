"""CLI entry point for Calltrace."""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from calltrace.core.config import ExploreConfig, ResolutionMode
from calltrace.core.exceptions import CalltraceError
from calltrace.core.explorer import CallGraphExplorer, render, render_rich, tree_to_dict
from calltrace.core.models import CallTreeNode, LoadStats, Marker
from calltrace.core.program import Program, load_program
from calltrace.core.storage import RunRepository, get_default_db_path

app = typer.Typer(
    name="calltrace",
    help="Static call tree exploration for Python programs.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def get_repo(db: Path | None) -> RunRepository:
    """Get a run repository for the given path, or the default one."""
    return RunRepository(db or get_default_db_path(Path(".").resolve()))


def configure_logging(verbose: bool) -> None:
    """Send library logging through rich, at DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def fail(error: CalltraceError) -> typer.Exit:
    """Report an error and return the exit to raise."""
    err_console.print(f"[red]Error:[/red] {escape(str(error))}")
    return typer.Exit(code=1)


def load_with_progress(
    program: Path, exclude: list[str] | None, show_progress: bool
) -> tuple[Program, LoadStats]:
    """Load a program, showing a progress bar for source directories."""
    if not show_progress or not program.is_dir():
        return load_program(program, exclude_patterns=exclude)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=err_console,
        transient=True,
    ) as progress:
        task = progress.add_task(f"Loading [cyan]{program.name}[/]", total=None)

        def on_progress(file: Path, current: int, total: int) -> None:
            progress.update(task, total=total, completed=current)
            try:
                rel_path: Path | str = file.relative_to(program)
            except ValueError:
                rel_path = file.name
            progress.update(task, description=f"[cyan]{rel_path}[/]")

        return load_program(program, exclude_patterns=exclude, on_progress=on_progress)


def print_tree(tree: CallTreeNode, output_json: bool, pretty: bool) -> None:
    if output_json:
        print(json.dumps(tree_to_dict(tree)))
    elif pretty:
        console.print(render_rich(tree))
    else:
        print(render(tree), end="")


@app.command()
def explore(
    program: Annotated[Path, typer.Argument(help="Source directory, .py file, or .json manifest")],
    class_name: Annotated[str, typer.Argument(help="Qualified name of the entry class")],
    method_name: Annotated[str, typer.Argument(help="Name of the entry method")],
    max_depth: Annotated[
        int | None, typer.Option("--depth", "-d", min=0, help="Maximum call depth to expand")
    ] = None,
    max_nodes: Annotated[
        int | None, typer.Option("--max-nodes", "-n", min=1, help="Maximum methods to expand")
    ] = None,
    resolution: Annotated[
        ResolutionMode, typer.Option("--resolution", "-r", help="How call targets are matched")
    ] = ResolutionMode.NAME,
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
    pretty: Annotated[bool, typer.Option("--pretty", "-p", help="Render a rich tree")] = False,
    save: Annotated[bool, typer.Option("--save", "-s", help="Store the run")] = False,
    db: Annotated[Path | None, typer.Option("--db", help="Run database path")] = None,
    exclude: Annotated[
        list[str] | None, typer.Option("--exclude", "-e", help="Patterns to exclude")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Explore every call chain reachable from an entry method."""
    configure_logging(verbose)
    program = program.resolve()
    config = ExploreConfig(max_depth=max_depth, max_nodes=max_nodes, resolution=resolution)

    try:
        model, load_stats = load_with_progress(program, exclude, show_progress=not output_json)
        tree = CallGraphExplorer(model, config).explore(class_name, method_name)

        if save:
            with get_repo(db) as repo:
                run_id = repo.save_run(tree, str(program), class_name, method_name, resolution)
            err_console.print(f"[green]Saved run {run_id}[/green]")
    except CalltraceError as e:
        raise fail(e) from e

    print_tree(tree, output_json, pretty)

    if load_stats.errors and not output_json:
        err_console.print(f"[yellow]{len(load_stats.errors)} file(s) failed to parse[/yellow]")
        for error in load_stats.errors:
            err_console.print(f"  [dim]{escape(error)}[/]")


@app.command()
def find(
    program: Annotated[Path, typer.Argument(help="Source directory, .py file, or .json manifest")],
    query: Annotated[str, typer.Argument(help="Substring of a qualified method name")],
    exclude: Annotated[
        list[str] | None, typer.Option("--exclude", "-e", help="Patterns to exclude")
    ] = None,
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Search for methods by qualified name to pick an entry point."""
    try:
        model, _ = load_program(program.resolve(), exclude_patterns=exclude)
    except CalltraceError as e:
        raise fail(e) from e

    methods = model.find(query)

    if output_json:
        result = [
            {
                "class_name": m.signature.owner,
                "method_name": m.name,
                "qualified_name": m.signature.qualified_name,
                "parameters": list(m.signature.parameter_types),
                "file": str(m.file) if m.file else None,
                "line": m.line,
                "calls": len(m.invocations),
            }
            for m in methods
        ]
        print(json.dumps(result))
    else:
        if not methods:
            console.print(f"No matches for '[cyan]{escape(query)}[/cyan]'")
            return
        for method in methods:
            console.print(f"[cyan]{escape(method.signature.display())}[/cyan]")
            if method.file:
                console.print(f"  [dim]{method.file}:{method.line}[/]")


@app.command()
def runs(
    db: Annotated[Path | None, typer.Option("--db", help="Run database path")] = None,
    limit: Annotated[int | None, typer.Option("--limit", "-l", help="Show at most N runs")] = None,
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """List saved runs, newest first."""
    try:
        with get_repo(db) as repo:
            records = repo.runs.list(limit)
    except CalltraceError as e:
        raise fail(e) from e

    if output_json:
        print(json.dumps([r.to_dict() for r in records]))
        return

    if not records:
        console.print("No saved runs")
        return
    for run in records:
        style = "green" if run.root_marker is Marker.EXPANDED else "red"
        console.print(
            f"[bold]{run.id}[/bold] "
            f"[cyan]{escape(run.class_name)}.{escape(run.method_name)}[/cyan] "
            f"[{style}]{run.root_marker.value}[/] {run.node_count} nodes "
            f"[dim]{run.resolution} {run.created_at}[/]"
        )
        console.print(f"  [dim]{escape(run.program)}[/]")


@app.command()
def show(
    run_id: Annotated[int, typer.Argument(help="ID of a saved run")],
    db: Annotated[Path | None, typer.Option("--db", help="Run database path")] = None,
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
    pretty: Annotated[bool, typer.Option("--pretty", "-p", help="Render a rich tree")] = False,
) -> None:
    """Render a saved run."""
    try:
        with get_repo(db) as repo:
            tree = repo.load_tree(run_id)
    except CalltraceError as e:
        raise fail(e) from e

    print_tree(tree, output_json, pretty)


@app.command()
def stats(
    db: Annotated[Path | None, typer.Option("--db", help="Run database path")] = None,
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show run storage statistics."""
    try:
        with get_repo(db) as repo:
            result = repo.get_stats()
    except CalltraceError as e:
        raise fail(e) from e

    if output_json:
        print(json.dumps(result, default=str))
    else:
        console.print(f"Runs: {result['runs']}")
        console.print(f"Nodes: {result['nodes']}")
        if result["last_run"]:
            console.print(f"Last run: {result['last_run']}")


if __name__ == "__main__":
    app()
