"""vibequeue CLI - Main Entry Point"""

import typer
from typing import Optional
from rich.console import Console
from rich.panel import Panel

from .commands import config, jobs
from .utils.formatting import print_error, print_info
from .utils.config_manager import config as config_manager
from .client.endpoints import VibeQueueClient, VibeQueueError

console = Console()

app = typer.Typer(
    name="vibequeue",
    help="🎵 vibequeue - AI generation queue operator CLI",
    rich_markup_mode="rich",
)

app.add_typer(jobs.app, name="jobs")
app.add_typer(config.app, name="config")


@app.command()
def status():
    """📊 Check API and queue status"""
    base_url = config_manager.get("api.base_url")
    print_info(f"Checking connection to: {base_url}")

    try:
        with VibeQueueClient(base_url) as client:
            health = client.health_check()
    except VibeQueueError as e:
        print_error(f"Failed to connect: {e}")
        console.print(Panel(
            f"🚫 [red]Connection Failed[/red]\n\n"
            f"Make sure the vibequeue API is running at:\n"
            f"[blue]{base_url}[/blue]\n\n"
            f"You can update the API URL with:\n"
            f"[cyan]vibequeue config set api.base_url <url>[/cyan]",
            title="Connection Error",
            border_style="red"
        ))
        raise typer.Exit(1)

    queue = health.get("queue") or {}
    by_status = queue.get("by_status", {})
    models = ", ".join(queue.get("autoprocess_models", [])) or "none"
    console.print(Panel(
        f"🚀 [green]Connected Successfully![/green]\n\n"
        f"• Version: [cyan]{health.get('version', 'unknown')}[/cyan]\n"
        f"• Environment: [yellow]{health.get('environment', 'unknown')}[/yellow]\n"
        f"• Processor running: [cyan]{queue.get('processor_running', False)}[/cyan]\n"
        f"• Autoprocess models: [magenta]{models}[/magenta]\n"
        f"• Pending: {by_status.get('pending', 0)}  "
        f"Processing: {by_status.get('processing', 0)}  "
        f"Failed: {by_status.get('failed', 0)}",
        title="System Status",
        border_style="green"
    ))


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None, "--version", "-v", help="Show version and exit", is_eager=True
    ),
):
    """
    🎵 vibequeue CLI

    Inspect, enqueue and manually trigger AI generation jobs.
    """
    if version:
        from . import __version__
        console.print(f"vibequeue CLI v{__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


if __name__ == "__main__":
    app()
