"""Rich Formatting Utilities for CLI Output"""

from typing import Any

from rich import box
from rich.console import Console
from rich.table import Table

console = Console()

STATUS_STYLES = {
    "pending": "yellow",
    "processing": "blue",
    "completed": "green",
    "failed": "red",
}


def print_success(message: str):
    """Print success message with green styling"""
    console.print(f"[green]✓ {message}[/green]")


def print_error(message: str):
    """Print error message with red styling"""
    console.print(f"[red]✗ {message}[/red]")


def print_warning(message: str):
    """Print warning message with yellow styling"""
    console.print(f"[yellow]⚠ {message}[/yellow]")


def print_info(message: str):
    """Print info message with blue styling"""
    console.print(f"[blue]ℹ {message}[/blue]")


def format_status(status: str) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def create_status_table(statuses: list[dict[str, Any]]) -> Table:
    """Create a formatted table for job statuses"""
    table = Table(title="AI Queue", box=box.ROUNDED)

    table.add_column("ID", justify="right", style="cyan", no_wrap=True)
    table.add_column("Status", justify="center")
    table.add_column("Error", justify="left", style="white")

    for row in statuses:
        table.add_row(
            str(row.get("id", "")),
            format_status(row.get("status", "")),
            row.get("error") or "—",
        )

    return table


def create_job_table(job: dict[str, Any]) -> Table:
    """Create a key/value table for a single job"""
    table = Table(title=f"Job {job.get('id')}", box=box.ROUNDED, show_header=False)

    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    for field in ("type", "model", "attempts", "started_at", "completed_at"):
        value = job.get(field)
        table.add_row(field, "—" if value is None else str(value))
    table.add_row("status", format_status(job.get("status", "")))
    if job.get("error"):
        table.add_row("error", f"[red]{job['error']}[/red]")
    if job.get("response"):
        table.add_row("response", _truncate(job["response"], 200))

    return table


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."
