"""CLI entry point for sheet-hasher."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table as RichTable

from sheet_hasher import DERIVED_SUFFIX, __version__
from sheet_hasher.errors import ParseError, ProcessingError
from sheet_hasher.io import write_output
from sheet_hasher.pipeline import derived_name
from sheet_hasher.session import Session

app = typer.Typer(
    name="shash",
    help="sheet-hasher — Add SHA-256 digest columns to a spreadsheet, locally.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"sheet-hasher v{__version__}")
        raise typer.Exit()


def _load(session: Session, input_file: Path) -> None:
    try:
        session.load_file(input_file)
    except (ParseError, OSError) as exc:
        _err(f"{session.status.message} {exc}")
        raise typer.Exit(code=2)


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """sheet-hasher CLI."""


# ── inspect command ──────────────────────────────────────────────


@app.command()
def inspect(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to an .xlsx or .xls workbook.",
        exists=True, readable=True,
    ),
) -> None:
    """Show the columns of a workbook's first sheet."""
    session = Session()
    _load(session, input_file)
    dataset = session.dataset
    if dataset is None:  # pragma: no cover - load either sets it or exits
        raise typer.Exit(code=2)

    tbl = RichTable(title=session.summary(), show_lines=False)
    tbl.add_column("#", justify="right", style="dim")
    tbl.add_column("Column", style="bold")
    for idx, header in enumerate(dataset.headers, 1):
        tbl.add_row(str(idx), header or "[dim](empty)[/dim]")
    console.print(tbl)


# ── run command ──────────────────────────────────────────────────


@app.command()
def run(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to an .xlsx or .xls workbook.",
        exists=True, readable=True,
    ),
    columns: list[str] | None = typer.Option(
        None, "--column", "-c",
        help="Column to hash (repeatable). Derived columns appear in this order.",
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Directory the encrypted workbook is written to.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes the workbook.",
    ),
) -> None:
    """Hash the chosen columns and write ``<name>_encrypted.<ext>``."""
    echo = _printer(quiet)
    session = Session()

    if not quiet:
        console.print(Panel(
            f"[bold]sheet-hasher[/bold] v{__version__}\n"
            f"Input:  {input_file}\nOutput: {out_dir}",
            title="Pipeline Start", border_style="blue",
        ))

    # ── Load ─────────────────────────────────────────────────────
    echo("[blue]>[/blue] Loading input file …")
    _load(session, input_file)
    echo(f"  {session.summary()}")

    # ── Select ───────────────────────────────────────────────────
    if not columns:
        _err("No columns selected. Pass --column NAME (see `shash inspect`).")
        raise typer.Exit(code=2)
    try:
        session.select(columns)
    except KeyError as exc:
        _err(str(exc.args[0]) if exc.args else "Unknown column")
        headers = session.dataset.headers if session.dataset else []
        console.print(f"  Available: {', '.join(headers)}")
        raise typer.Exit(code=2)
    echo(
        "  Derived columns: "
        + ", ".join(derived_name(col) for col in session.selection)
    )

    # ── Process ──────────────────────────────────────────────────
    echo(f"[blue]>[/blue] Hashing {len(session.selection)} column(s) with SHA-256 …")
    progress = Progress(
        TextColumn("  {task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        disable=quiet,
        transient=True,
    )
    try:
        with progress:
            task_id = progress.add_task(session.status.message or "Encrypting", total=100)
            output = session.process_sync(
                lambda value: progress.update(task_id, completed=value)
            )
    except ProcessingError as exc:
        _err(session.status.message)
        console.print(f"  Detail: {exc.detail or exc}")
        raise typer.Exit(code=1)

    if output is None:  # pragma: no cover - guarded by the checks above
        _err("Nothing to process.")
        raise typer.Exit(code=2)

    if not quiet:
        for w in session.warnings:
            console.print(f"  [yellow]![/yellow] {w}")

    # ── Write ────────────────────────────────────────────────────
    echo(f"[blue]>[/blue] Writing {output.name} …")
    try:
        out_path = write_output(out_dir, output)
    except OSError as exc:
        _err(f"Could not write output: {exc}")
        raise typer.Exit(code=1)
    echo(f"  Workbook -> {out_path}")

    if not quiet:
        console.print(Panel(
            f"[green]Done[/green] — {session.status.message}\n"
            f"{session.dataset.row_count if session.dataset else 0} rows, "
            f"suffix {DERIVED_SUFFIX!r} -> {out_path}",
            title="Pipeline Complete", border_style="green",
        ))
