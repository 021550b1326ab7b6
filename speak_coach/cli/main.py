"""
CLI interface for Speak Coach.

Local administration: database setup, demo data, analytics inspection
and running the API server.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from speak_coach.config.loader import load_config
from speak_coach.core.analytics import build_analytics, parse_period
from speak_coach.demo.seed_demo_data import seed_demo_data
from speak_coach.storage.repository import ConversationRepository, initialize_schema

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

ConfigOption = typer.Option(None, "--config", "-c", help="Path to YAML config file")


def configure_logging(level: str = "INFO") -> None:
    """Route standard logging through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
):
    """Speak Coach CLI."""
    configure_logging(log_level)
    if ctx.invoked_subcommand is None:
        console.print("Speak Coach - Use --help to see available commands")


@app.command()
def init(config: Optional[str] = ConfigOption):
    """Initialize the conversation database."""
    try:
        db_path = load_config(config).db_path
        initialize_schema(db_path)
        console.print(f"[green]✓[/] Database initialized at {db_path}")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command("seed-demo")
def seed_demo(
    user_id: str = typer.Argument(..., help="User id to own the demo conversations"),
    days: int = typer.Option(3, "--days", "-d", min=1, help="Number of consecutive practice days"),
    config: Optional[str] = ConfigOption,
):
    """Insert a few days of demo conversations for a user."""
    try:
        count = seed_demo_data(user_id, load_config(config).db_path, days=days)
    except Exception as e:
        console.print(f"[red]Error seeding demo data:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] Inserted {count} demo messages for {user_id}")


@app.command()
def stats(
    user_id: str = typer.Argument(..., help="User id to report on"),
    period: str = typer.Option("all", "--period", "-p", help="daily, weekly, monthly or all"),
    config: Optional[str] = ConfigOption,
):
    """Show speaking time, streaks and sessions for a user."""
    try:
        analytics_period = parse_period(period)
    except ValueError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    try:
        db_path = load_config(config).db_path
        initialize_schema(db_path)
        events = ConversationRepository(db_path).fetch_events(user_id)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if not events:
        console.print(f"\n[bold yellow]No conversation records found for {user_id}[/]\n")
        sys.exit(EXIT_CODE_PASS)

    data = build_analytics(events, analytics_period, now=datetime.now(timezone.utc))
    _display_analytics(user_id, data)


def _display_analytics(user_id: str, data: dict) -> None:
    speaking = data["speakingTime"]
    streaks = data["streaks"]
    sessions = data["sessions"]

    console.print(f"\n[bold]Practice Summary for {user_id}[/bold]")
    console.print("-" * 40)
    console.print(f"Speaking time: {speaking['totalMinutes']} min")
    console.print(f"Current streak: {streaks['currentStreak']} days")
    console.print(f"Longest streak: {streaks['longestStreak']} days")
    console.print(f"Sessions: {sessions['totalSessions']} "
                  f"(avg {sessions['averageMessagesPerSession']} messages)")
    favorite = sessions["favoriteCharacter"]
    if favorite:
        console.print(f"Favorite tutor: {favorite['name']} ({favorite['count']} messages)")

    if speaking["dailyBreakdown"]:
        table = Table(title="Daily speaking time")
        table.add_column("Date")
        table.add_column("Minutes", justify="right")
        for entry in speaking["dailyBreakdown"]:
            table.add_row(entry["date"], str(entry["minutes"]))
        console.print(table)

    if sessions["recentSessions"]:
        table = Table(title="Recent sessions")
        table.add_column("Session")
        table.add_column("Tutor")
        table.add_column("Messages", justify="right")
        table.add_column("Started")
        for s in sessions["recentSessions"]:
            table.add_row(s["sessionId"], s["characterName"] or "-", str(s["messageCount"]), s["startTime"])
        console.print(table)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    config: Optional[str] = ConfigOption,
):
    """Run the HTTP API."""
    import uvicorn

    from speak_coach.api.app import create_app

    uvicorn.run(create_app(load_config(config)), host=host, port=port, log_config=None)


if __name__ == "__main__":
    app()
