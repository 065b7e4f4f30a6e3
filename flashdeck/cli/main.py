"""
CLI entry point for flashdeck.
"""

# Standard library imports
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

# Third-party imports
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

# Local application imports
from flashdeck.analytics import most_missed_cards, summarize_reviews
from flashdeck.config import Settings
from flashdeck.db.db_utils import backup_database, find_latest_backup
from flashdeck.exceptions import DatabaseError, SeedFileError
from flashdeck.seeds import sanitize_card_text
from flashdeck.cli._export_logic import (
    export_to_json,
    import_payload,
    read_import_file,
)
from flashdeck.cli._session_logic import open_study_session
from flashdeck.cli.review_ui import start_study_flow


console = Console()

app = typer.Typer(
    name="flashdeck",
    help="flashdeck: spaced repetition flashcards in the terminal.",
    add_completion=False,
    rich_markup_mode="markdown",
)


# ---------------------------------------------------------------------------
# Shared options and helpers
# ---------------------------------------------------------------------------

_db_option = typer.Option(  # noqa: B008
    None,
    "--db",
    help="Path to the DuckDB database file. "
    "Falls back to FLASHDECK_DB_PATH or ~/.flashdeck/flashdeck.db.",
)

_seed_option = typer.Option(  # noqa: B008
    None,
    "--seed",
    help="YAML deck used to start a fresh database. "
    "Falls back to FLASHDECK_SEED_PATH or the built-in deck.",
)


@app.callback()
def configure(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _resolve_paths(db: Optional[Path], seed: Optional[Path]):
    """Merge CLI flags over the environment/.env settings."""
    settings = Settings()
    return (
        db if db is not None else settings.db_path,
        settings.storage_key,
        seed if seed is not None else settings.seed_path,
    )


def _format_ms(ms: Optional[int]) -> str:
    if ms is None:
        return "-"
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.strftime("%Y-%m-%d %H:%M")


def _fail(message: str, exc: Optional[Exception] = None):
    console.print(f"[bold red]{escape(message)}[/bold red]")
    if exc is not None:
        raise typer.Exit(code=1) from exc
    raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Card commands
# ---------------------------------------------------------------------------


@app.command()
def add(
    question: str = typer.Argument(..., help="Question text."),  # noqa: B008
    answer: str = typer.Argument(..., help="Answer text."),  # noqa: B008
    db: Optional[Path] = _db_option,
    seed: Optional[Path] = _seed_option,
):
    """Add a new card. It is due immediately."""
    db_path, storage_key, seed_path = _resolve_paths(db, seed)
    try:
        with open_study_session(db_path, storage_key, seed_path) as session:
            card = session.add_card(
                sanitize_card_text(question), sanitize_card_text(answer)
            )
    except ValidationError as e:
        _fail("Error: question and answer must not be empty.", e)
    except (DatabaseError, SeedFileError) as e:
        _fail(f"Error: {e}", e)
    console.print(f"[green]Added card[/green] [cyan]{escape(card.id)}[/cyan].")


@app.command()
def remove(
    card_id: str = typer.Argument(..., help="Id of the card to delete."),  # noqa: B008
    db: Optional[Path] = _db_option,
    seed: Optional[Path] = _seed_option,
):
    """Delete a card. Its review history is kept."""
    db_path, storage_key, seed_path = _resolve_paths(db, seed)
    try:
        with open_study_session(db_path, storage_key, seed_path) as session:
            removed = session.remove_card(card_id)
    except (DatabaseError, SeedFileError) as e:
        _fail(f"Error: {e}", e)
    if not removed:
        _fail(f"Error: no card with id {card_id}.")
    console.print(f"[green]Removed card[/green] [cyan]{escape(card_id)}[/cyan].")


@app.command("list")
def list_cards(
    db: Optional[Path] = _db_option,
    seed: Optional[Path] = _seed_option,
):
    """List every card with its schedule."""
    db_path, storage_key, seed_path = _resolve_paths(db, seed)
    try:
        with open_study_session(db_path, storage_key, seed_path) as session:
            cards = session.cards
    except (DatabaseError, SeedFileError) as e:
        _fail(f"Error: {e}", e)

    if not cards:
        console.print("[yellow]No cards found.[/yellow]")
        return

    table = Table(title="Cards")
    table.add_column("Id", style="cyan")
    table.add_column("Question")
    table.add_column("Interval", style="magenta")
    table.add_column("Ease", style="magenta")
    table.add_column("Reviews", style="magenta")
    table.add_column("Next Review (UTC)", style="yellow")
    for card in sorted(cards, key=lambda c: c.next_review_at):
        table.add_row(
            Text(card.id),
            Text(card.question),
            f"{card.interval}d",
            f"{card.ease_factor:.2f}",
            str(card.review_count),
            _format_ms(card.next_review_at),
        )
    console.print(table)


@app.command()
def due(
    db: Optional[Path] = _db_option,
    seed: Optional[Path] = _seed_option,
):
    """Show how many cards fall due now, today, tomorrow and this week."""
    db_path, storage_key, seed_path = _resolve_paths(db, seed)
    try:
        with open_study_session(db_path, storage_key, seed_path) as session:
            counts = session.get_due_counts()
    except (DatabaseError, SeedFileError) as e:
        _fail(f"Error: {e}", e)

    table = Table(title="Due Cards", show_header=False)
    table.add_column("Bucket", style="cyan")
    table.add_column("Count", style="magenta")
    table.add_row("Due now", str(counts.due_now))
    table.add_row("Within 24 hours", str(counts.due_today))
    table.add_row("Tomorrow", str(counts.due_tomorrow))
    table.add_row("Later this week", str(counts.due_this_week))
    table.add_row("Total cards", str(counts.total))
    console.print(table)


# ---------------------------------------------------------------------------
# Study & stats
# ---------------------------------------------------------------------------


@app.command()
def study(
    db: Optional[Path] = _db_option,
    seed: Optional[Path] = _seed_option,
    limit: Optional[int] = typer.Option(
        None, "--limit", "-l", min=1, help="Maximum number of cards to review."
    ),
):
    """Review every card that is due now."""
    db_path, storage_key, seed_path = _resolve_paths(db, seed)
    try:
        with open_study_session(db_path, storage_key, seed_path) as session:
            start_study_flow(session, limit=limit)
    except (DatabaseError, SeedFileError) as e:
        _fail(f"Error: {e}", e)


@app.command()
def stats(
    db: Optional[Path] = _db_option,
    seed: Optional[Path] = _seed_option,
):
    """Display review statistics."""
    db_path, storage_key, seed_path = _resolve_paths(db, seed)
    try:
        with open_study_session(db_path, storage_key, seed_path) as session:
            data = session.export_snapshot()
            summary = summarize_reviews(data, session.clock())
    except (DatabaseError, SeedFileError) as e:
        _fail(f"Error: {e}", e)

    overall = Table(title="Review Stats", show_header=False)
    overall.add_column("Metric", style="cyan")
    overall.add_column("Value", style="magenta")
    overall.add_row("Total Cards", str(len(data.cards)))
    overall.add_row("Total Reviews", str(summary.total_reviews))
    overall.add_row("Accuracy", f"{summary.accuracy_percentage}%")
    overall.add_row("Current Streak", f"{summary.current_streak} day(s)")
    overall.add_row("Upcoming (7 days)", str(summary.upcoming_reviews))
    if summary.orphaned_reviews:
        overall.add_row("Reviews of Deleted Cards", str(summary.orphaned_reviews))
    console.print(overall)

    week = Table(title="Last 7 Days")
    week.add_column("Day", style="cyan")
    week.add_column("Reviews", style="magenta")
    for entry in summary.last_seven_days:
        week.add_row(entry.day.strftime("%a %b %d"), str(entry.reviews))
    console.print(week)

    missed = most_missed_cards(data)
    if missed:
        hardest = Table(title="Most Missed")
        hardest.add_column("Question")
        hardest.add_column("Misses", style="red")
        for card, count in missed:
            hardest.add_row(Text(card.question), str(count))
        console.print(hardest)


# ---------------------------------------------------------------------------
# Import / export / restore
# ---------------------------------------------------------------------------


@app.command()
def export(
    output: Path = typer.Option(  # noqa: B008
        ..., "--output", "-o", help="JSON file to write.", dir_okay=False
    ),
    db: Optional[Path] = _db_option,
    seed: Optional[Path] = _seed_option,
):
    """Export all cards and the review history to a JSON file."""
    db_path, storage_key, seed_path = _resolve_paths(db, seed)
    try:
        with open_study_session(db_path, storage_key, seed_path) as session:
            document = export_to_json(session, output)
    except (DatabaseError, SeedFileError, IOError) as e:
        _fail(f"An error occurred during export: {e}", e)
    console.print(
        f"[green]Exported {len(document['cards'])} card(s) to[/green] "
        f"[cyan]{output}[/cyan]."
    )


@app.command("import")
def import_cards(
    input_file: Path = typer.Argument(  # noqa: B008
        ..., help="JSON file to import.", exists=True, dir_okay=False
    ),
    db: Optional[Path] = _db_option,
    seed: Optional[Path] = _seed_option,
    strict: bool = typer.Option(
        True,
        "--strict/--no-strict",
        help="Validate every card before importing.",
    ),
):
    """Replace the cards with the contents of a JSON file."""
    db_path, storage_key, seed_path = _resolve_paths(db, seed)
    try:
        payload = read_import_file(input_file)
    except (IOError, ValueError) as e:
        _fail(f"Error: {e}", e)

    backup_path = backup_database(db_path)
    if backup_path != db_path:
        console.print(f"Database backed up to: [dim]{escape(str(backup_path))}[/dim]")

    try:
        with open_study_session(db_path, storage_key, seed_path) as session:
            result = import_payload(session, payload, strict=strict)
            card_count = len(session.cards)
    except (DatabaseError, SeedFileError) as e:
        _fail(f"Error: {e}", e)

    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")
    for error in result.errors:
        console.print(f"[red]Error:[/red] {escape(error)}")
    if not result.is_valid:
        _fail("Import failed. No changes were made.")
    console.print(f"[bold green]Imported {card_count} card(s).[/bold green]")


@app.command()
def restore(
    db: Optional[Path] = _db_option,
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Bypass confirmation prompt."
    ),
):
    """Restores the database from the most recent backup."""
    db_path, _, _ = _resolve_paths(db, None)
    latest_backup = find_latest_backup(db_path)
    if not latest_backup:
        _fail("Error: No backup files found.")

    console.print(f"Found latest backup: [cyan]{escape(latest_backup.name)}[/cyan]")
    if not yes:
        confirmed = typer.confirm(
            "Are you sure you want to overwrite the current "
            "database with this backup?"
        )
        if not confirmed:
            console.print("Restore operation cancelled.")
            raise typer.Exit()

    try:
        shutil.copy2(latest_backup, db_path)
    except OSError as e:
        _fail(f"An unexpected error occurred during restore: {e}", e)
    console.print(
        f"[bold green]Database successfully restored from {latest_backup.name}[/bold green]"
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """Run the CLI application, turning unexpected errors into exit code 1."""
    try:
        app()
    except Exception as e:
        console.print(f"[bold red]UNEXPECTED ERROR: {escape(str(e))}[/bold red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
