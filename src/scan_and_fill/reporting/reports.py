"""Rich tables for run summaries, conflicts and extraction results."""

from __future__ import annotations

from decimal import Decimal

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from scan_and_fill.models.extraction import Candidate, ExtractionResult, ExtractionStatus
from scan_and_fill.models.run import Conflict, RunSummary

console = Console()

STATUS_STYLES = {
    ExtractionStatus.SUCCESS: "green",
    ExtractionStatus.AMBIGUOUS: "yellow",
    ExtractionStatus.FAILED: "red",
}


def _money(value: Decimal) -> str:
    return f"{value:,.2f}"


def totals_table(summary: RunSummary) -> Table:
    """Month x category grid of final totals (resolved conflicts included)."""
    totals = summary.final_totals()
    categories = sorted({c for month in totals.values() for c in month})

    table = Table(title=f"Totals: {summary.project_id}")
    table.add_column("Category", width=24)
    for month in totals:
        table.add_column(month.capitalize()[:3], justify="right", width=11)
    table.add_column("Total", justify="right", style="bold", width=12)

    for category in categories:
        row_total = sum((m.get(category, Decimal("0")) for m in totals.values()), Decimal("0"))
        table.add_row(
            category,
            *(_money(m[category]) if category in m else "—" for m in totals.values()),
            _money(row_total),
        )

    table.add_section()
    table.add_row(
        "[bold]Total[/bold]",
        *(_money(sum(m.values(), Decimal("0"))) for m in totals.values()),
        _money(summary.grand_total()),
    )
    return table


def conflicts_table(conflicts: list[Conflict]) -> Table:
    table = Table(title="Conflicts")
    table.add_column("#", style="dim", width=3)
    table.add_column("Month", width=10)
    table.add_column("Category", width=18)
    table.add_column("File", width=30)
    table.add_column("Status", width=10)
    table.add_column("Candidates", justify="right", width=10)
    table.add_column("Resolved", justify="right", width=12)

    for i, c in enumerate(conflicts, start=1):
        style = STATUS_STYLES.get(c.status, "white")
        table.add_row(
            str(i),
            c.month,
            c.category,
            escape(c.file_name),
            f"[{style}]{c.status.value}[/{style}]",
            str(len(c.candidates)),
            _money(c.resolved_amount) if c.resolved_amount is not None else "—",
        )
    return table


def candidates_table(candidates: list[Candidate], title: str = "Candidates") -> Table:
    table = Table(title=title)
    table.add_column("#", style="dim", width=3)
    table.add_column("Amount", justify="right", width=12)
    table.add_column("Tier", justify="right", width=4)
    table.add_column("Prio", justify="right", width=4)
    table.add_column("Context", overflow="fold")
    for i, c in enumerate(candidates, start=1):
        table.add_row(str(i), _money(c.amount), str(c.tier), str(c.priority), escape(c.context))
    return table


def print_summary(summary: RunSummary, out: Console | None = None) -> None:
    out = out or console
    s = summary.stats
    out.print(totals_table(summary))
    out.print(
        f"\nDone: {s.done} extracted, {s.skipped} from cache, "
        f"{s.ambiguous} ambiguous, {s.failed} failed ({s.total} files)"
    )
    if summary.conflicts:
        out.print()
        out.print(conflicts_table(summary.conflicts))


def print_extraction(name: str, result: ExtractionResult, out: Console | None = None) -> None:
    out = out or console
    style = STATUS_STYLES.get(result.status, "white")
    line = f"[{style}]{result.status.value}[/{style}]  {escape(name)}"
    if result.status == ExtractionStatus.SUCCESS:
        line += f" — {_money(result.amount)}"
    if result.message:
        line += f" ({escape(result.message)})"
    out.print(line)
    if result.candidates:
        out.print(candidates_table(result.candidates))
