"""
Sentinel CLI - command-line interface for running the pipeline.

Starts the API server and queue workers, and runs metric backfills inline.
"""

import time
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from sentinel.logging_config import setup_logging

app = typer.Typer(
    name="sentinel",
    help="Sentinel - AI code attribution and alerting",
    no_args_is_help=True,
)

console = Console()


def _setup_logging(context: str) -> None:
    try:
        setup_logging(context=context)
    except PermissionError:
        import logging

        logging.basicConfig(level=logging.INFO)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind to"),
    port: Optional[int] = typer.Option(None, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """
    Start the FastAPI server.

    Runs the webhook receiver and the admin/alert API.
    """
    import uvicorn

    from sentinel.config import settings

    host = host or settings.api_host
    port = port or settings.api_port
    reload = reload or settings.api_reload

    console.print("[bold green]Starting Sentinel API server...[/bold green]")
    console.print(f"  Host: {host}")
    console.print(f"  Port: {port}")
    console.print(f"  Reload: {reload}")
    console.print(f"\n  API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "sentinel.api.app:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def worker(
    no_scheduler: bool = typer.Option(
        False, "--no-scheduler", help="Run queue workers without periodic triggers"
    ),
) -> None:
    """
    Run the queue workers (and the scheduler) until interrupted.
    """
    from sentinel.github.client import GitHubClient
    from sentinel.notifications.dispatcher import default_notifiers
    from sentinel.queue.handlers import build_handlers
    from sentinel.queue.scheduler import Scheduler
    from sentinel.queue.worker import WorkerPool, queue_concurrency

    _setup_logging("worker")

    concurrency = queue_concurrency()
    table = Table(title="Queue workers")
    table.add_column("Queue", style="cyan")
    table.add_column("Concurrency", justify="right")
    for queue, count in concurrency.items():
        table.add_row(queue, str(count))
    console.print(table)

    github = GitHubClient()
    notifiers = default_notifiers()
    pool = WorkerPool(build_handlers(github, notifiers), concurrency)
    scheduler = None if no_scheduler else Scheduler()

    pool.start()
    if scheduler is not None:
        scheduler.start()
    console.print("[bold green]Workers running.[/bold green] Press Ctrl-C to stop.")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down...[/yellow]")
    finally:
        if scheduler is not None:
            scheduler.stop()
        pool.stop()
        github.close()
        for notifier in notifiers.values():
            notifier.close()
        console.print("[green]✓ Stopped[/green]")


@app.command("compute-metrics")
def compute_metrics(
    date: Optional[str] = typer.Option(None, help="Day to compute (YYYY-MM-DD)"),
    start_date: Optional[str] = typer.Option(None, help="Backfill range start"),
    end_date: Optional[str] = typer.Option(None, help="Backfill range end"),
    repo_id: Optional[str] = typer.Option(None, help="Limit to one repository"),
) -> None:
    """
    Compute daily metrics inline (defaults to yesterday for every active repo).
    """
    from sentinel.db.connection import db_session
    from sentinel.jobs.compute_metrics import compute_metrics_job

    _setup_logging("cli")

    payload = {
        key: value
        for key, value in {
            "date": date,
            "start_date": start_date,
            "end_date": end_date,
            "repo_id": repo_id,
        }.items()
        if value
    }

    try:
        with db_session() as session:
            result = compute_metrics_job(session, payload)
    except ValueError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    console.print(
        f"[green]✓ Metrics computed[/green] "
        f"processed={result['processed']} skipped={result['skipped']}"
    )


@app.command("init-db")
def init_db() -> None:
    """Create database tables."""
    from sentinel.db.connection import init_db as create_tables

    create_tables()
    console.print("[green]✓ Database tables created[/green]")


if __name__ == "__main__":
    app()
