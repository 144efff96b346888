"""Phase scheduler CLI commands."""

from __future__ import annotations

import asyncio
import signal

import typer
from rich.console import Console
from rich.table import Table

from chapters.integrations.slack import SlackClient
from chapters.scheduler.phase_transition import PhaseTransitionScheduler, PollReport

app = typer.Typer(help="Phase scheduler commands")
console = Console()


def _build_scheduler(ctx) -> tuple[PhaseTransitionScheduler, list[SlackClient]]:
    """Build a scheduler plus the list of Slack clients it ends up creating."""
    from chapters.web.app import build_slack_client

    clients: list[SlackClient] = []

    def notifier_factory() -> SlackClient | None:
        client = build_slack_client(ctx.config)
        if client is not None:
            clients.append(client)
        return client

    scheduler = PhaseTransitionScheduler(
        ctx.repository,
        ctx.config,
        notifier_factory=notifier_factory,
    )
    return scheduler, clients


async def _close_clients(clients: list[SlackClient]) -> None:
    for client in clients:
        await client.close()


def report_table(report: PollReport) -> Table:
    """Render a poll report as a two-column table."""
    table = Table(title="Phase Check")
    table.add_column("Outcome", style="cyan")
    table.add_column("Cycles", justify="right")
    for field, value in report.model_dump().items():
        table.add_row(field.replace("_", " "), str(value))
    return table


@app.command()
def check() -> None:
    """Run one phase check over every active cycle."""
    from chapters.main import get_app_context

    ctx = get_app_context()
    scheduler, clients = _build_scheduler(ctx)

    async def _check() -> PollReport:
        try:
            return await scheduler.trigger_check()
        finally:
            await _close_clients(clients)

    report = ctx.run(_check)
    console.print(report_table(report))
    if report.failed:
        raise typer.Exit(code=1)


@app.command()
def run() -> None:
    """Run the recurring phase check until interrupted."""
    from chapters.main import get_app_context

    ctx = get_app_context()
    scheduler, clients = _build_scheduler(ctx)

    console.print("[bold cyan]Starting phase scheduler[/bold cyan]")
    console.print(f"[dim]Interval:[/dim] {scheduler.interval_seconds:g}s")
    console.print("[dim]Press Ctrl+C to stop[/dim]")

    async def _run() -> None:
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

        await scheduler.start()
        try:
            await stop.wait()
        finally:
            await scheduler.stop()
            await _close_clients(clients)

    ctx.run(_run)
    console.print("[green]Phase scheduler stopped[/green]")
