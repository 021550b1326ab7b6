"""
Tests for the CLI interface.
"""
import os
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from speak_coach.cli.main import EXIT_CODE_FAIL, EXIT_CODE_PASS, app
from speak_coach.demo.seed_demo_data import build_demo_events
from speak_coach.storage.repository import ConversationRepository

runner = CliRunner()


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Point the CLI at a temporary database."""
    path = str(tmp_path / "cli.db")
    monkeypatch.setenv("SPEAK_COACH_DB", path)
    monkeypatch.delenv("SPEAK_COACH_CONFIG", raising=False)
    return path


class TestCLI:
    """Test CLI commands."""

    def test_no_command_prints_hint(self, db_path):
        result = runner.invoke(app, [])
        assert result.exit_code == EXIT_CODE_PASS
        assert "Use --help" in result.output

    def test_init_creates_database(self, db_path):
        result = runner.invoke(app, ["init"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "Database initialized" in result.output
        assert os.path.exists(db_path)

    def test_init_with_missing_config_fails(self, db_path):
        result = runner.invoke(app, ["init", "--config", "/nonexistent/config.yaml"])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "Error initializing database" in result.output

    def test_seed_demo(self, db_path):
        result = runner.invoke(app, ["seed-demo", "demo-user", "--days", "2"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Inserted 8 demo messages" in result.output
        assert len(ConversationRepository(db_path).fetch_events("demo-user")) == 8

    def test_stats_without_records(self, db_path):
        result = runner.invoke(app, ["stats", "nobody"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "No conversation records found for nobody" in result.output

    def test_stats_after_seeding(self, db_path):
        runner.invoke(app, ["seed-demo", "demo-user", "--days", "3"])

        result = runner.invoke(app, ["stats", "demo-user", "--period", "weekly"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Practice Summary for demo-user" in result.output
        assert "Current streak: 3 days" in result.output
        assert "Sessions: 3" in result.output

    def test_stats_invalid_period(self, db_path):
        result = runner.invoke(app, ["stats", "demo-user", "--period", "hourly"])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "period must be one of" in result.output

    def test_serve_runs_uvicorn(self, db_path):
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(app, ["serve", "--port", "9000"])

        assert result.exit_code == EXIT_CODE_PASS
        mock_run.assert_called_once()
        assert mock_run.call_args.kwargs["port"] == 9000
        assert mock_run.call_args.kwargs["host"] == "127.0.0.1"


class TestDemoData:
    """Test demo conversation generation."""

    def test_one_session_per_day(self):
        now = datetime(2024, 1, 20, 12, 0, tzinfo=timezone.utc)
        events = build_demo_events("u1", now=now, days=3)

        assert len(events) == 12
        assert sorted({e.session_id for e in events}) == [
            "demo-2024-01-18", "demo-2024-01-19", "demo-2024-01-20",
        ]
        assert [e.role for e in events[:4]] == ["user", "assistant", "user", "assistant"]
        assert all(e.user_id == "u1" for e in events)

    def test_sessions_stay_on_their_day_just_after_midnight(self):
        """Running shortly after midnight still yields one session per date."""
        now = datetime(2024, 1, 20, 0, 10, tzinfo=timezone.utc)
        events = build_demo_events("u1", now=now, days=2)

        assert sorted({e.session_id for e in events}) == ["demo-2024-01-19", "demo-2024-01-20"]
        for e in events:
            assert e.session_id == f"demo-{e.timestamp.date().isoformat()}"
