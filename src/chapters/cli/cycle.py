"""Cycle management CLI commands.

These commands act on the active cycle of a channel: start and configure
it, inspect it, move it between phases by hand, complete it, or reset it.
"""

from __future__ import annotations

from typing import Annotated, Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from chapters.cycles.entity import Cycle
from chapters.cycles.phases import TIMED_PHASES, CyclePhase, PhaseDurations
from chapters.scheduler.messages import format_deadline, rollback_notice

app = typer.Typer(help="Cycle management commands")
console = Console()


def _cycle_panel(cycle: Cycle, title: str, border_style: str = "green") -> Panel:
    lines = [
        f"[bold]ID:[/bold] {cycle.id}",
        f"[bold]Name:[/bold] {cycle.name}",
        f"[bold]Channel:[/bold] {cycle.channel_id}",
        f"[bold]Status:[/bold] {cycle.status.value}",
        f"[bold]Phase:[/bold] {cycle.current_phase.label}",
    ]
    if cycle.current_phase.is_timed:
        deadline = cycle.current_phase_deadline()
        lines.append(
            f"[bold]Phase ends:[/bold] {format_deadline(deadline, cycle.phase_durations.unit)}"
        )
    if cycle.selected_book_id is not None:
        lines.append(f"[bold]Selected book:[/bold] {cycle.selected_book_id}")
    return Panel("\n".join(lines), title=title, border_style=border_style)


@app.command()
def create(
    channel_id: Annotated[str, typer.Argument(help="Channel to start the cycle in")],
    name: Annotated[
        Optional[str],
        typer.Option("--name", "-n", help="Cycle name (default: current month and year)"),
    ] = None,
) -> None:
    """Start a new cycle in the pending phase."""
    from chapters.main import get_app_context

    ctx = get_app_context()
    cycle = ctx.run(lambda: ctx.cycles.create_cycle(channel_id, name))
    console.print(_cycle_panel(cycle, "Cycle Created"))
    console.print("Run [bold]chapters cycle configure[/bold] to open the suggestion phase.")


@app.command()
def configure(
    channel_id: Annotated[str, typer.Argument(help="Channel of the pending cycle")],
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="Cycle name")] = None,
    suggestion: Annotated[
        Optional[int], typer.Option("--suggestion", min=1, help="Suggestion phase length")
    ] = None,
    voting: Annotated[
        Optional[int], typer.Option("--voting", min=1, help="Voting phase length")
    ] = None,
    reading: Annotated[
        Optional[int], typer.Option("--reading", min=1, help="Reading phase length")
    ] = None,
    discussion: Annotated[
        Optional[int], typer.Option("--discussion", min=1, help="Discussion phase length")
    ] = None,
) -> None:
    """Set the cycle's name and phase lengths and open the suggestion phase.

    Lengths are in days, or in minutes when test mode is enabled.
    """
    from chapters.main import get_app_context

    ctx = get_app_context()

    async def _configure() -> Cycle:
        cycle = await ctx.cycles.get_active_cycle(channel_id)
        overrides = {
            key: value
            for key, value in {
                "suggestion": suggestion,
                "voting": voting,
                "reading": reading,
                "discussion": discussion,
            }.items()
            if value is not None
        }
        durations: PhaseDurations | None = None
        if overrides:
            durations = cycle.phase_durations.model_copy(update=overrides)
        return await ctx.cycles.configure_cycle(cycle, name=name, durations=durations)

    cycle = ctx.run(_configure)
    console.print(_cycle_panel(cycle, "Cycle Configured"))


@app.command()
def status(
    channel_id: Annotated[str, typer.Argument(help="Channel to inspect")],
) -> None:
    """Show the active cycle with its suggestions and participation."""
    from chapters.main import get_app_context

    ctx = get_app_context()

    async def _status():
        cycle = await ctx.cycles.get_active_cycle(channel_id)
        suggestions = await ctx.suggestions.list_suggestions(cycle)
        stats = await ctx.cycles.get_stats(cycle)
        return cycle, suggestions, stats

    cycle, suggestions, stats = ctx.run(_status)
    console.print(_cycle_panel(cycle, "Active Cycle", border_style="cyan"))

    durations = Table(title="Phase Lengths")
    durations.add_column("Phase", style="cyan")
    durations.add_column("Length")
    durations.add_column("Started")
    for phase in TIMED_PHASES:
        timing = cycle.timing(phase)
        started = timing.start_date.strftime("%Y-%m-%d %H:%M") if timing.start_date else "-"
        durations.add_row(phase.label, str(cycle.phase_duration(phase)), started)
    console.print(durations)

    if suggestions:
        table = Table(title="Suggestions")
        table.add_column("ID", style="dim")
        table.add_column("Book", style="bold")
        table.add_column("Author")
        table.add_column("Points", justify="right")
        table.add_column("Voters", justify="right")
        for s in suggestions:
            table.add_row(
                str(s.id), s.book_name, s.author, str(s.total_points), str(s.unique_voter_count)
            )
        console.print(table)

    console.print(
        f"[dim]{stats.total_suggestions} suggestions, {stats.total_voters} voters[/dim]"
    )


@app.command()
def phase(
    channel_id: Annotated[str, typer.Argument(help="Channel of the active cycle")],
    target: Annotated[CyclePhase, typer.Argument(help="Phase to move to")],
    book: Annotated[
        Optional[UUID],
        typer.Option("--book", "-b", help="Suggestion ID to select as the book"),
    ] = None,
) -> None:
    """Move the active cycle to another phase by hand."""
    from chapters.main import get_app_context

    ctx = get_app_context()

    async def _change() -> tuple[CyclePhase, Cycle]:
        cycle = await ctx.cycles.get_active_cycle(channel_id)
        moved = await ctx.cycles.change_phase(cycle, target, selected_book_id=book)
        return cycle.current_phase, moved

    previous, cycle = ctx.run(_change)
    console.print(_cycle_panel(cycle, "Phase Changed"))
    if target is CyclePhase.SUGGESTION and previous is not CyclePhase.SUGGESTION:
        console.print(rollback_notice())


@app.command()
def complete(
    channel_id: Annotated[str, typer.Argument(help="Channel of the active cycle")],
) -> None:
    """Complete a cycle that is in its discussion phase."""
    from chapters.main import get_app_context

    ctx = get_app_context()

    async def _complete() -> Cycle:
        cycle = await ctx.cycles.get_active_cycle(channel_id)
        return await ctx.cycles.complete_cycle(cycle)

    cycle = ctx.run(_complete)
    console.print(_cycle_panel(cycle, "Cycle Completed"))


@app.command()
def reset(
    channel_id: Annotated[str, typer.Argument(help="Channel of the active cycle")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip the confirmation prompt"),
    ] = False,
) -> None:
    """Delete the active cycle with all of its suggestions, votes and ratings."""
    from chapters.main import get_app_context

    if not yes:
        typer.confirm(
            f"Delete the active cycle in {channel_id} with all its suggestions and votes?",
            abort=True,
        )

    ctx = get_app_context()

    async def _reset() -> bool:
        cycle = await ctx.cycles.get_active_cycle(channel_id)
        return await ctx.cycles.reset_cycle(cycle)

    if ctx.run(_reset):
        console.print("[green]Cycle reset.[/green]")
    else:
        console.print("[yellow]Cycle was already gone.[/yellow]")
