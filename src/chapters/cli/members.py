"""Member action CLI commands: suggest, vote and rate."""

from __future__ import annotations

from typing import Annotated, Optional
from uuid import UUID

import typer
from pydantic import ValidationError
from rich.console import Console

from chapters.voting.ballot import Ballot

console = Console()


def suggest(
    channel_id: Annotated[str, typer.Argument(help="Channel of the active cycle")],
    user_id: Annotated[str, typer.Argument(help="Member making the suggestion")],
    book_name: Annotated[str, typer.Argument(help="Book title")],
    author: Annotated[str, typer.Argument(help="Book author")],
    link: Annotated[Optional[str], typer.Option("--link", "-l", help="Link to the book")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", help="Notes")] = None,
) -> None:
    """Suggest a book during the suggestion phase."""
    from chapters.main import get_app_context

    ctx = get_app_context()

    async def _suggest():
        cycle = await ctx.cycles.get_active_cycle(channel_id)
        return await ctx.suggestions.suggest_book(
            cycle, user_id, book_name, author, link=link, notes=notes
        )

    suggestion = ctx.run(_suggest)
    console.print(
        f"[green]Suggested[/green] [bold]{suggestion.book_name}[/bold] by {suggestion.author} "
        f"[dim]({suggestion.id})[/dim]"
    )


def vote(
    channel_id: Annotated[str, typer.Argument(help="Channel of the active cycle")],
    user_id: Annotated[str, typer.Argument(help="Member casting the ballot")],
    first: Annotated[UUID, typer.Argument(help="First choice suggestion ID")],
    second: Annotated[UUID, typer.Argument(help="Second choice suggestion ID")],
    third: Annotated[UUID, typer.Argument(help="Third choice suggestion ID")],
) -> None:
    """Cast a ranked ballot during the voting phase."""
    from chapters.main import get_app_context

    try:
        ballot = Ballot(first_choice=first, second_choice=second, third_choice=third)
    except ValidationError:
        console.print("[red]Please select different books for each choice.[/red]")
        raise typer.Exit(code=1)

    ctx = get_app_context()

    async def _vote() -> None:
        cycle = await ctx.cycles.get_active_cycle(channel_id)
        await ctx.votes.submit_vote(cycle, user_id, ballot)

    ctx.run(_vote)
    console.print("[green]Your vote has been recorded.[/green]")


def rate(
    channel_id: Annotated[str, typer.Argument(help="Channel of the active cycle")],
    user_id: Annotated[str, typer.Argument(help="Member rating the book")],
    rating: Annotated[int, typer.Argument(help="Rating from 1 to 5")],
    recommend: Annotated[
        bool,
        typer.Option("--recommend/--no-recommend", help="Whether you recommend the book"),
    ] = True,
) -> None:
    """Rate the selected book during the discussion phase."""
    from chapters.main import get_app_context

    ctx = get_app_context()

    async def _rate():
        cycle = await ctx.cycles.get_active_cycle(channel_id)
        await ctx.ratings.submit_rating(cycle, user_id, rating, recommend)
        return await ctx.ratings.get_rating_stats(cycle)

    stats = ctx.run(_rate)
    console.print("[green]Thanks for rating![/green]")
    console.print(
        f"[dim]Average {stats.average_rating}/5 from {stats.total_ratings} ratings, "
        f"{stats.recommendation_percentage}% would recommend[/dim]"
    )
