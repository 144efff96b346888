"""Main CLI entry point for Chapters.

This module provides the main Typer application with sub-commands for cycle
management, member actions and the phase scheduler.

Usage:
    chapters serve
    chapters cycle create C0123456 --name "Spring Reads"
    chapters suggest C0123456 U0AAA "Piranesi" "Susanna Clarke"
    chapters scheduler check
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Optional, TypeVar

import typer
from rich.console import Console

from chapters.cli import cycle as cycle_cli
from chapters.cli import members as members_cli
from chapters.cli import scheduler as scheduler_cli
from chapters.config import ChaptersConfig, load_config
from chapters.database.connection import get_engine, get_session_factory
from chapters.errors import ChaptersError
from chapters.logging import setup_logging
from chapters.repository import SqlCycleRepository
from chapters.services import CycleService, RatingService, SuggestionService, VoteService

T = TypeVar("T")

app = typer.Typer(
    name="chapters",
    help="Chapters: book club cycles for your chat workspace",
    no_args_is_help=True,
)

app.add_typer(cycle_cli.app, name="cycle", help="Manage a channel's cycle")
app.add_typer(scheduler_cli.app, name="scheduler", help="Run the phase scheduler")
app.command("suggest")(members_cli.suggest)
app.command("vote")(members_cli.vote)
app.command("rate")(members_cli.rate)

console = Console()


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded Chapters configuration
        engine: Async SQLAlchemy engine
        session_factory: Factory for creating database sessions
        repository: Repository over the session factory
    """

    def __init__(self, config: ChaptersConfig):
        self.config = config
        self.engine = get_engine(config.database)
        self.session_factory = get_session_factory(self.engine)
        self.repository = SqlCycleRepository(self.session_factory)

    @property
    def cycles(self) -> CycleService:
        return CycleService(self.repository, self.config.phases)

    @property
    def suggestions(self) -> SuggestionService:
        return SuggestionService(self.repository)

    @property
    def votes(self) -> VoteService:
        return VoteService(self.repository)

    @property
    def ratings(self) -> RatingService:
        return RatingService(self.repository)

    def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run an async operation to completion, then release connections.

        Domain errors are printed and turned into exit code 1.
        """

        async def _run() -> T:
            try:
                return await operation()
            finally:
                await self.engine.dispose()

        try:
            return asyncio.run(_run())
        except ChaptersError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1)


# Global context holder
_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: ChaptersConfig) -> AppContext:
    """Initialize the global application context."""
    global _app_context
    _app_context = AppContext(config)
    return _app_context


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", "-h", help="Host to bind to (default: from config)"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Port to bind to (default: from config)"),
    ] = None,
) -> None:
    """Start the web server with the in-process phase scheduler."""
    import uvicorn

    from chapters.web.app import create_app

    config = get_app_context().config
    host = host or config.web.host
    port = port or config.web.port

    console.print("[bold cyan]Starting Chapters[/bold cyan]")
    console.print(f"[dim]Host:[/dim] {host}")
    console.print(f"[dim]Port:[/dim] {port}")
    console.print(f"[dim]Scheduler:[/dim] {'enabled' if config.scheduler.enabled else 'disabled'}")
    console.print()

    uvicorn.run(create_app(config), host=host, port=port, log_level="info")


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Load configuration, set up logging and initialize the context."""
    try:
        config = load_config(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1)

    logging_config = config.logging
    if verbose:
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    setup_logging(logging_config)

    try:
        initialize_context(config)
    except Exception as e:
        console.print(f"[red]Error initializing application:[/red] {e}")
        raise typer.Exit(code=1)

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]")


if __name__ == "__main__":
    app()
