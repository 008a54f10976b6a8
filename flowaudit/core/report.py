"""Print a human-readable evaluation report in the terminal."""

from __future__ import annotations
from flowaudit.models.types import EvaluationReport, RunStatus, format_duration
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.text import Text


STATUS_COLORS = {
    RunStatus.COMPLETED: "green bold",
    RunStatus.PARTIAL: "yellow bold",
    RunStatus.FAILED: "red bold",
    RunStatus.BLOCKED: "magenta bold",
}


def print_report(report: EvaluationReport, console: Console | None = None):
    """Print the run summary and a per-step table using Rich."""
    console = console or Console()

    header = Text()
    header.append("\n FlowAudit Evaluation Report\n", style="bold")
    header.append(f" {report.flow_name}\n", style="dim")
    header.append(
        f" {report.total_steps} steps on {report.viewport} in {format_duration(report.total_duration_ms)}\n",
        style="dim",
    )
    console.print(Panel(header, border_style="blue"))

    console.print()
    status_text = Text()
    status_text.append("  Status: ", style="bold")
    if report.status:
        status_text.append(report.status.value.upper(), style=STATUS_COLORS[report.status])
    else:
        status_text.append("RUNNING", style="dim")
    if report.termination:
        status_text.append(f"  ({report.termination.value.replace('_', ' ')})", style="dim")
    console.print(status_text)
    console.print(
        f"  [green]{report.completed_steps} completed[/green], "
        f"[red]{report.failed_steps} with errors[/red]\n"
    )

    if not report.steps:
        console.print("  [dim]No steps were recorded.[/dim]\n")
        return

    table = Table(show_header=True, header_style="bold", padding=(0, 1))
    table.add_column("#", width=3, justify="right")
    table.add_column("Step", min_width=24, max_width=40)
    table.add_column("Page", max_width=35)
    table.add_column("Fields", width=6, justify="right")
    table.add_column("Load", width=7, justify="right")
    table.add_column("Notes", max_width=50)

    for step in report.steps:
        page_short = step.url.replace("https://", "").replace("http://", "")
        if len(page_short) > 35:
            page_short = page_short[:32] + "..."

        if step.blocked:
            name = Text(step.name[:40], style="magenta")
        elif step.ok:
            name = Text(step.name[:40])
        else:
            name = Text(step.name[:40], style="red")

        notes = step.notes or ""
        if step.errors:
            notes = "; ".join(step.errors)
        table.add_row(
            str(step.step_number),
            name,
            page_short,
            str(len(step.form_fields)),
            format_duration(step.load_time_ms),
            notes[:80],
        )

    console.print(table)
    console.print()

    screenshots = [s.screenshot for s in report.steps if s.screenshot]
    if screenshots:
        console.print(f"  [dim]Screenshots: {len(screenshots)} captured, e.g. {screenshots[0]}[/dim]")
    console.print(f"  [dim]Report id: {report.id}[/dim]\n")
