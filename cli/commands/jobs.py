"""AI Queue Commands - inspect, enqueue and trigger jobs"""

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from ..client.endpoints import VibeQueueClient, VibeQueueError
from ..utils.config_manager import config
from ..utils.formatting import (
    create_job_table,
    create_status_table,
    print_error,
    print_success,
    print_warning,
)

console = Console()
app = typer.Typer(name="jobs", help="AI queue job commands")


@app.command("status")
def job_status(
    job_ids: list[int] = typer.Argument(..., help="Job IDs to check"),
):
    """📋 Show status of one or more jobs"""
    base_url = config.get("api.base_url")

    try:
        with VibeQueueClient(base_url) as client:
            statuses = client.get_statuses(job_ids)

        if not statuses:
            print_warning("No matching jobs found")
            return

        console.print(create_status_table(statuses))

        missing = set(job_ids) - {row["id"] for row in statuses}
        if missing:
            print_warning(f"Unknown job IDs: {', '.join(str(i) for i in sorted(missing))}")

    except VibeQueueError as e:
        print_error(f"Failed to fetch job status: {e}")
        raise typer.Exit(1) from None


@app.command("show")
def show_job(
    job_id: int = typer.Argument(..., help="Job ID to show"),
):
    """🔍 Show a job in detail"""
    base_url = config.get("api.base_url")

    try:
        with VibeQueueClient(base_url) as client:
            job = client.get_job(job_id)

        console.print(create_job_table(job))

    except VibeQueueError as e:
        print_error(f"Failed to fetch job: {e}")
        raise typer.Exit(1) from None


@app.command("process")
def process_job(
    job_id: int = typer.Argument(..., help="Job ID to process now"),
):
    """▶️ Process a pending or failed job immediately"""
    base_url = config.get("api.base_url")

    try:
        with VibeQueueClient(base_url) as client:
            client.process_job(job_id)

        print_success(f"Job {job_id} accepted for processing")
        console.print(f"💡 Follow it with [cyan]vibequeue jobs status {job_id}[/cyan]")

    except VibeQueueError as e:
        print_error(f"Job {job_id} was not accepted: {e}")
        raise typer.Exit(1) from None


@app.command("enqueue")
def enqueue_job(
    type: str = typer.Option(..., "--type", "-t", help="Job type"),
    model: str = typer.Option(..., "--model", "-m", help="Model identifier"),
    prompt: str | None = typer.Option(None, "--prompt", "-p", help="Prompt text"),
    prompt_file: Path | None = typer.Option(
        None, "--prompt-file", "-f", exists=True, dir_okay=False, help="Read prompt from file"
    ),
):
    """➕ Enqueue a new job"""
    if prompt_file is not None:
        prompt = prompt_file.read_text()
    if not prompt:
        print_error("Provide --prompt or --prompt-file")
        raise typer.Exit(1)

    base_url = config.get("api.base_url")

    try:
        with VibeQueueClient(base_url) as client:
            job = client.enqueue_job(type=type, model=model, prompt=prompt)

        console.print(
            Panel(
                f"• ID: [cyan]{job['id']}[/cyan]\n"
                f"• Type: [magenta]{job['type']}[/magenta]\n"
                f"• Model: [yellow]{job['model']}[/yellow]\n"
                f"• Status: {job['status']}",
                title="Job Enqueued",
                border_style="green",
            )
        )

    except VibeQueueError as e:
        print_error(f"Failed to enqueue job: {e}")
        raise typer.Exit(1) from None
