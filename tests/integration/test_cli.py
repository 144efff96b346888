"""Integration tests for CLI commands.

The commands run against a SQLite database file configured through a TOML
file, exactly as an operator would invoke them.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog
from sqlalchemy.ext.asyncio import create_async_engine
from typer.testing import CliRunner

from chapters.cycles.suggestion import Suggestion
from chapters.database.connection import get_session_factory
from chapters.database.models.base import Base
from chapters.main import app
from chapters.repository import SqlCycleRepository


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop the handlers each invocation installs on captured stdout."""
    yield
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """SQLite database file with the schema created."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'chapters.db'}"

    async def _create_schema() -> None:
        engine = create_async_engine(url)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()

    asyncio.run(_create_schema())
    return url


@pytest.fixture
def config_file(tmp_path: Path, database_url: str) -> Path:
    path = tmp_path / "chapters.toml"
    path.write_text(
        f"""
[database]
url = "{database_url}"

[logging]
level = "WARNING"
"""
    )
    return path


@pytest.fixture
def invoke(cli_runner: CliRunner, config_file: Path):
    """Invoke the CLI with the test configuration."""

    def _invoke(*args: str):
        return cli_runner.invoke(app, ["--config", str(config_file), *args])

    return _invoke


def list_suggestions(database_url: str, channel_id: str) -> list[Suggestion]:
    """Read a channel's suggestions straight from the database."""

    async def _list() -> list[Suggestion]:
        engine = create_async_engine(database_url)
        try:
            repository = SqlCycleRepository(get_session_factory(engine))
            cycle = await repository.get_active_cycle_for_channel(channel_id)
            assert cycle is not None
            return await repository.list_suggestions_for_cycle(cycle.id)
        finally:
            await engine.dispose()

    return asyncio.run(_list())


@pytest.mark.integration
class TestCycleCLI:
    """Integration tests for cycle management commands."""

    def test_create_and_configure(self, invoke) -> None:
        created = invoke("cycle", "create", "C001", "--name", "Spring Reads")
        configured = invoke("cycle", "configure", "C001", "--reading", "21")
        status = invoke("cycle", "status", "C001")

        assert created.exit_code == 0, created.output
        assert "Cycle Created" in created.output
        assert "Pending" in created.output
        assert configured.exit_code == 0, configured.output
        assert "Suggestion" in configured.output
        assert status.exit_code == 0, status.output
        assert "Spring Reads" in status.output
        assert "21 days" in status.output
        assert "0 suggestions, 0 voters" in status.output

    def test_second_active_cycle_refused(self, invoke) -> None:
        invoke("cycle", "create", "C001")

        result = invoke("cycle", "create", "C001")

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_status_without_cycle(self, invoke) -> None:
        result = invoke("cycle", "status", "C404")

        assert result.exit_code == 1
        assert "No active book club cycle" in result.output

    def test_phase_change_blocked_without_suggestions(self, invoke) -> None:
        invoke("cycle", "create", "C001")
        invoke("cycle", "configure", "C001")

        result = invoke("cycle", "phase", "C001", "voting")

        assert result.exit_code == 1
        assert "At least 3 book suggestions" in result.output

    def test_reset(self, invoke) -> None:
        invoke("cycle", "create", "C001")

        result = invoke("cycle", "reset", "C001", "--yes")

        assert result.exit_code == 0
        assert "Cycle reset." in result.output
        assert invoke("cycle", "status", "C001").exit_code == 1


@pytest.mark.integration
class TestMemberCLI:
    """Integration tests for a full cycle driven from the command line."""

    def test_full_cycle(self, invoke, database_url: str) -> None:
        assert invoke("cycle", "create", "C001").exit_code == 0
        assert invoke("cycle", "configure", "C001").exit_code == 0
        for title, author in (("Piranesi", "Clarke"), ("Dune", "Herbert"), ("Beloved", "Morrison")):
            result = invoke("suggest", "C001", "U1", title, author)
            assert result.exit_code == 0, result.output
            assert "Suggested" in result.output

        assert invoke("cycle", "phase", "C001", "voting").exit_code == 0
        books = {s.book_name: s for s in list_suggestions(database_url, "C001")}
        piranesi, dune, beloved = books["Piranesi"], books["Dune"], books["Beloved"]
        voted = invoke("vote", "C001", "U2", str(dune.id), str(beloved.id), str(piranesi.id))
        again = invoke("vote", "C001", "U2", str(dune.id), str(beloved.id), str(piranesi.id))
        reading = invoke("cycle", "phase", "C001", "reading")

        assert voted.exit_code == 0, voted.output
        assert "Your vote has been recorded." in voted.output
        assert again.exit_code == 1
        assert "already voted" in again.output
        assert reading.exit_code == 0, reading.output
        assert str(dune.id) in reading.output

        assert invoke("cycle", "phase", "C001", "discussion").exit_code == 0
        rated = invoke("rate", "C001", "U2", "4", "--no-recommend")
        completed = invoke("cycle", "complete", "C001")

        assert rated.exit_code == 0, rated.output
        assert "Average 4.0/5 from 1 ratings, 0% would recommend" in rated.output
        assert completed.exit_code == 0, completed.output
        assert "Cycle Completed" in completed.output

    def test_vote_with_repeated_choice(self, invoke) -> None:
        book = "00000000-0000-0000-0000-000000000001"
        other = "00000000-0000-0000-0000-000000000002"

        result = invoke("vote", "C001", "U1", book, other, book)

        assert result.exit_code == 1
        assert "Please select different books for each choice." in result.output

    def test_suggest_outside_suggestion_phase(self, invoke) -> None:
        invoke("cycle", "create", "C001")

        result = invoke("suggest", "C001", "U1", "Dune", "Herbert")

        assert result.exit_code == 1
        assert "suggestion phase" in result.output


@pytest.mark.integration
class TestSchedulerCLI:
    def test_check_reports_counts(self, invoke) -> None:
        invoke("cycle", "create", "C001")
        invoke("cycle", "create", "C002")
        invoke("cycle", "configure", "C002")

        result = invoke("scheduler", "check")

        assert result.exit_code == 0, result.output
        assert "Phase Check" in result.output
        assert "checked" in result.output

    def test_check_closes_slack_client(self, invoke, monkeypatch: pytest.MonkeyPatch) -> None:
        """A reminder needs the chat client, which is closed after the check."""
        slack = MagicMock()
        slack.post_message = AsyncMock()
        slack.close = AsyncMock()
        monkeypatch.setattr("chapters.web.app.build_slack_client", lambda config: slack)
        invoke("cycle", "create", "C001")
        invoke("cycle", "configure", "C001", "--suggestion", "1")

        result = invoke("scheduler", "check")

        assert result.exit_code == 0, result.output
        slack.post_message.assert_awaited_once()
        slack.close.assert_awaited_once()
