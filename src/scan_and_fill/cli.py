"""Click CLI: all user-facing commands."""

from __future__ import annotations

import re
from decimal import Decimal
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from scan_and_fill.config import DATA_DIR
from scan_and_fill.errors import ScanFillError, SpreadsheetError
from scan_and_fill.extraction.numbers import NUMBER_RE, parse_amount
from scan_and_fill.extraction.pipeline import Extractor
from scan_and_fill.logs import configure_logging
from scan_and_fill.models.project import Project, SpreadsheetConfig
from scan_and_fill.models.run import Conflict, ProgressEvent, RunStatus, RunSummary
from scan_and_fill.orchestrator import Orchestrator
from scan_and_fill.reporting.reports import candidates_table, print_extraction, print_summary
from scan_and_fill.spreadsheet.workbook import WorkbookSink, cell_position, column_index
from scan_and_fill.storage.caches import Caches
from scan_and_fill.storage.projects import ProjectStore

console = Console()


class AppContext:
    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir
        self.caches = Caches(data_dir)
        self.projects = ProjectStore(data_dir / "projects.json")


def _pairs(values: tuple[str, ...], option: str) -> dict[str, str]:
    """Parse repeated KEY=VALUE options."""
    result = {}
    for value in values:
        key, sep, val = value.partition("=")
        if not sep or not key.strip() or not val.strip():
            raise click.BadParameter(f"expected KEY=VALUE, got {value!r}", param_hint=option)
        result[key.strip()] = val.strip()
    return result


def _get_project(ctx: AppContext, project_id: str) -> Project:
    project = ctx.projects.get(project_id)
    if project is None:
        console.print(f"[red]Project {project_id!r} not found.[/red]")
        raise SystemExit(1)
    return project


@click.group()
@click.option("--data-dir", type=click.Path(file_okay=False, path_type=Path), default=DATA_DIR,
              envvar="SCANFILL_DATA_DIR", show_default=True, help="Where caches and projects live")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx: click.Context, data_dir: Path, verbose: bool) -> None:
    """Scan and Fill: extract invoice totals from dated folders into a spreadsheet."""
    configure_logging("DEBUG" if verbose else None)
    ctx.obj = AppContext(data_dir)


# -- projects ------------------------------------------------------------------

@cli.group()
def project() -> None:
    """Manage project definitions."""


@project.command("add")
@click.argument("project_id")
@click.option("--root", "root_path", required=True,
              type=click.Path(exists=True, file_okay=False, path_type=Path),
              help="Folder containing the month folders")
@click.option("--name", default="", help="Display name")
@click.option("--sheet-file", type=click.Path(dir_okay=False, path_type=Path), help="Target .xlsx file")
@click.option("--sheet-name", help="Worksheet to fill")
@click.option("--month-start", default="B1", show_default=True, help="Cell holding the first month header")
@click.option("--category-column", default="A", show_default=True, help="Column holding category labels")
@click.option("--alias", "aliases", multiple=True, metavar="FOLDER=LABEL",
              help="Rename a category folder")
@click.option("--row", "rows", multiple=True, metavar="LABEL=ROW", help="Spreadsheet row of a category")
@click.option("--pattern", help="Regex with one group capturing the amount")
@click.pass_obj
def project_add(ctx: AppContext, project_id: str, root_path: Path, name: str,
                sheet_file: Path | None, sheet_name: str | None, month_start: str,
                category_column: str, aliases: tuple[str, ...], rows: tuple[str, ...],
                pattern: str | None) -> None:
    """Create or update a project."""
    if pattern:
        try:
            re.compile(pattern)
        except re.error as exc:
            raise click.BadParameter(str(exc), param_hint="--pattern") from exc

    row_map = {}
    for label, row in _pairs(rows, "--row").items():
        if not row.isdigit() or int(row) < 1:
            raise click.BadParameter(f"row of {label!r} must be a positive integer", param_hint="--row")
        row_map[label] = int(row)

    spreadsheet = None
    if sheet_file:
        if not sheet_name:
            raise click.BadParameter("required with --sheet-file", param_hint="--sheet-name")
        try:
            cell_position(month_start)
        except SpreadsheetError as exc:
            raise click.BadParameter(str(exc), param_hint="--month-start") from exc
        try:
            column_index(category_column)
        except SpreadsheetError as exc:
            raise click.BadParameter(str(exc), param_hint="--category-column") from exc
        spreadsheet = SpreadsheetConfig(
            file_path=str(sheet_file.resolve()),
            sheet_name=sheet_name,
            month_start_cell=month_start.upper(),
            category_column=category_column.upper(),
            category_rows=row_map,
        )

    saved = ctx.projects.upsert(Project(
        id=project_id,
        name=name or project_id,
        root_path=str(root_path.resolve()),
        category_mapping=_pairs(aliases, "--alias"),
        spreadsheet=spreadsheet,
        amount_pattern=pattern,
    ))
    console.print(f"Project saved: [bold]{saved.id}[/bold] ({saved.root_path})")


@project.command("list")
@click.pass_obj
def project_list(ctx: AppContext) -> None:
    """List all projects."""
    projects = ctx.projects.list_projects()
    if not projects:
        console.print("[yellow]No projects defined.[/yellow]")
        return

    table = Table(title="Projects")
    table.add_column("ID", style="bold", width=14)
    table.add_column("Name", width=20)
    table.add_column("Root", width=40)
    table.add_column("Spreadsheet", width=30)
    table.add_column("Aliases", justify="right", width=7)
    for p in projects:
        sheet = escape(f"{Path(p.spreadsheet.file_path).name} [{p.spreadsheet.sheet_name}]") if p.spreadsheet else "—"
        table.add_row(p.id, p.name, p.root_path, sheet, str(len(p.category_mapping)))
    console.print(table)


@project.command("remove")
@click.argument("project_id")
@click.pass_obj
def project_remove(ctx: AppContext, project_id: str) -> None:
    """Delete a project and its extraction cache."""
    if not ctx.projects.delete(project_id):
        console.print(f"[red]Project {project_id!r} not found.[/red]")
        raise SystemExit(1)
    ctx.caches.extraction.clear(project_id)
    console.print(f"Project {project_id} removed")


# -- run -----------------------------------------------------------------------

def _prompt_amount(default: Decimal | None) -> Decimal | None:
    while True:
        answer = click.prompt(
            "Amount (empty to skip)",
            default=str(default) if default is not None else "",
            show_default=default is not None,
        ).strip()
        if not answer:
            return None
        # The whole answer must be a number, not just its prefix
        compact = re.sub(r"\s", "", answer)
        amount = parse_amount(compact) if NUMBER_RE.fullmatch(compact) else None
        if amount is not None and amount > 0:
            return amount
        console.print(f"[red]Not an amount: {escape(answer)}[/red]")


def _resolve_interactively(orchestrator: Orchestrator, conflicts: list[Conflict]) -> None:
    for i, conflict in enumerate(conflicts, start=1):
        console.print(
            f"\n[bold]{i}/{len(conflicts)}[/bold]  {conflict.month} / {conflict.category} / "
            f"{escape(conflict.file_name)}  [yellow]{conflict.status.value}[/yellow]"
        )
        if conflict.message:
            console.print(f"  [dim]{escape(conflict.message)}[/dim]")

        previous = orchestrator.manual_entry_for(conflict.file_path)
        if previous:
            console.print(f"  [dim]Previously entered: {previous.amount}[/dim]")

        if conflict.candidates:
            console.print(candidates_table(conflict.candidates))
            choices = [str(n) for n in range(1, len(conflict.candidates) + 1)] + ["m", "s"]
            choice = click.prompt(
                "Pick a candidate, [m]anual amount or [s]kip",
                type=click.Choice(choices),
                default="1",
            )
            if choice == "s":
                continue
            if choice != "m":
                orchestrator.resolve(conflict, conflict.candidates[int(choice) - 1].amount)
                continue

        amount = _prompt_amount(previous.amount if previous else None)
        if amount is not None:
            orchestrator.resolve(conflict, amount, manual=True)


@cli.command()
@click.argument("project_id")
@click.option("--force", is_flag=True, help="Drop the extraction cache and re-read every file")
@click.option("-m", "--month", help="Only process this month (any language)")
@click.option("-w", "--workers", type=click.IntRange(1, 32), default=1, show_default=True,
              help="Parallel extraction workers")
@click.option("-y", "--yes", is_flag=True, help="Write without prompting; unresolved conflicts count as 0")
@click.pass_obj
def run(ctx: AppContext, project_id: str, force: bool, month: str | None, workers: int, yes: bool) -> None:
    """Scan a project, resolve conflicts and write the totals."""
    project = _get_project(ctx, project_id)
    updates: dict[str, object] = {}
    if force:
        updates["force_rescan"] = True
    if month:
        updates["month_filter"] = month
    project = project.model_copy(update=updates)

    orchestrator = Orchestrator(ctx.caches, max_workers=workers)

    with Progress(
        TextColumn("{task.description}"), BarColumn(), TaskProgressColumn(),
        console=console, transient=True,
    ) as progress:
        task = progress.add_task("Starting...", total=100)

        def on_progress(event: ProgressEvent) -> None:
            if event.progress is not None:
                progress.update(task, completed=event.progress, description=event.message)
            else:
                progress.update(task, description=event.message)

        try:
            summary: RunSummary = orchestrator.run(project, on_progress)
        except ScanFillError as exc:
            console.print(f"[red]{escape(str(exc))}[/red]")
            raise SystemExit(1)

    print_summary(summary, console)

    if summary.conflicts and not yes:
        _resolve_interactively(orchestrator, summary.conflicts)
        console.print()
        print_summary(summary, console)

    if project.spreadsheet is None:
        console.print("[yellow]No spreadsheet configured, nothing written.[/yellow]")
        return
    if not yes and not click.confirm(
        f"Write totals to {Path(project.spreadsheet.file_path).name} [{project.spreadsheet.sheet_name}]?",
        default=True,
    ):
        return

    event = orchestrator.finalize(project, summary)
    if event.status != RunStatus.DONE:
        console.print(f"[red]{escape(event.message)}[/red]")
        raise SystemExit(1)
    console.print(f"[green]{event.message}[/green]")


# -- single document / spreadsheet --------------------------------------------

@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--pattern", help="Regex with one group capturing the amount")
@click.pass_obj
def extract(ctx: AppContext, file_path: Path, pattern: str | None) -> None:
    """Extract the total of a single PDF and show the candidates."""
    result = Extractor(ctx.caches.ocr).extract_amount(file_path, pattern)
    print_extraction(file_path.name, result, console)


@cli.command("sheet-info")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--sheet", "sheet_name", help="Worksheet (default: first)")
@click.option("--category-column", default="A", show_default=True)
@click.option("--month-start", default="B1", show_default=True)
def sheet_info(file_path: Path, sheet_name: str | None, category_column: str, month_start: str) -> None:
    """Show tabs, category rows and month columns detected in a spreadsheet."""
    try:
        meta = WorkbookSink().get_metadata(file_path, sheet_name, category_column, month_start)
    except ScanFillError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise SystemExit(1)

    console.print(f"Tabs: {', '.join(meta.tabs) or '—'}")

    table = Table(title="Categories")
    table.add_column("Label", width=30)
    table.add_column("Row", justify="right", width=5)
    table.add_column("Cell", width=6)
    for label, cell in meta.categories.items():
        table.add_row(label, str(cell.row), cell.address)
    console.print(table)

    table = Table(title="Months")
    table.add_column("Header", width=20)
    table.add_column("Month", width=12)
    table.add_column("Cell", width=6)
    for m in meta.months:
        table.add_row(m.label, m.month, m.address)
    console.print(table)


# -- caches --------------------------------------------------------------------

@cli.group()
def cache() -> None:
    """Inspect or clear the caches."""


@cache.command("stats")
@click.pass_obj
def cache_stats(ctx: AppContext) -> None:
    """Show cache sizes."""
    stats = ctx.caches.stats()
    console.print(f"Cache directory:   {stats['cache_dir']}")
    console.print(f"OCR results:       {stats['ocr_cache_count']}")
    console.print(f"Manual entries:    {stats['manual_entry_count']}")
    console.print(f"Extraction cache:  {stats['extraction_entry_count']}")


@cache.command("clear")
@click.option("--ocr", is_flag=True, help="Clear cached OCR text")
@click.option("--manual", is_flag=True, help="Clear remembered manual amounts")
@click.option("--project", "project_id", help="Clear one project's extraction cache")
@click.option("--all", "clear_all", is_flag=True, help="Clear everything")
@click.pass_obj
def cache_clear(ctx: AppContext, ocr: bool, manual: bool, project_id: str | None, clear_all: bool) -> None:
    """Clear caches."""
    if not (ocr or manual or project_id or clear_all):
        console.print("[yellow]Nothing to clear: pass --ocr, --manual, --project or --all.[/yellow]")
        return
    if ocr or clear_all:
        console.print(f"Cleared {ctx.caches.ocr.clear()} OCR result(s)")
    if manual or clear_all:
        console.print(f"Cleared {ctx.caches.manual.clear()} manual entr(y/ies)")
    if clear_all:
        console.print(f"Cleared {ctx.caches.extraction.clear_all()} extraction cache entr(y/ies)")
    elif project_id:
        console.print(f"Cleared {ctx.caches.extraction.clear(project_id)} entr(y/ies) of {project_id}")
